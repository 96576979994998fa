"""Work-item context tracking for log correlation.

While a queue worker runs an item processor, the queue name and the item's
envelope id are stored in a context variable. The log formatters in
``durable_workqueue.core.logging`` read it, so every record emitted from
inside a processor callback carries a ``[queue=...][item=...]`` prefix.

Usage:
    with work_item_context("audit", item_id="8154"):
        processor.process(item)
"""

from __future__ import annotations

import contextvars
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from contextvars import Token

from durable_workqueue.core.utils import utc_now


@dataclass
class WorkItemContext:
    """Context information for the work item currently being processed.

    Attributes:
        queue_name: Name of the queue processor running the item.
        item_id: Envelope id of the item.
        started_at: When processing of the item started.
    """

    queue_name: str
    item_id: str
    started_at: datetime

    def elapsed_ms(self) -> float:
        """Milliseconds since processing of the item started."""
        return (utc_now() - self.started_at).total_seconds() * 1000


_context: contextvars.ContextVar[WorkItemContext | None] = contextvars.ContextVar(
    "work_item_context", default=None
)


def get_current_context() -> WorkItemContext | None:
    """Get the current work-item context, or None outside a processor call."""
    return _context.get()


def set_context(ctx: WorkItemContext) -> Token[WorkItemContext | None]:
    """Set the current work-item context.

    Returns:
        A token that can be used to reset the context.
    """
    return _context.set(ctx)


def clear_context(token: Token[WorkItemContext | None]) -> None:
    """Reset the context to its previous value."""
    _context.reset(token)


@contextmanager
def work_item_context(queue_name: str, item_id: str) -> Generator[WorkItemContext, None, None]:
    """Context manager that sets the work-item context for its duration."""
    ctx = WorkItemContext(queue_name=queue_name, item_id=item_id, started_at=utc_now())
    token = set_context(ctx)
    try:
        yield ctx
    finally:
        clear_context(token)


def format_context_prefix() -> str:
    """Format the current context as a log prefix.

    Returns:
        A string like "[queue=audit][item=8154]" or "" if no context.
    """
    ctx = get_current_context()
    if ctx is None:
        return ""
    return f"[queue={ctx.queue_name}][item={ctx.item_id}]"
