"""Envelope wrapping a work item for storage in the backing store.

An envelope records when an item was submitted, a short locally unique id and
a type tag next to the JSON form of the item itself. Envelopes are stored as
compact JSON objects with single-letter keys:

    {"t": "2026-01-15T10:30:00Z", "m": "{...item json...}", "c": "app.AuditEvent", "i": "8154"}

Each processor declares one payload type. The codec serializes items with a
pydantic ``TypeAdapter`` for that type and refuses envelopes whose type tag
names a different one.
"""

from __future__ import annotations

import random
import threading
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from durable_workqueue.core.errors import EnvelopeDecodeError
from durable_workqueue.core.utils import to_aware_utc, utc_now

W = TypeVar("W")

ID_SPACE = 2**31


class ItemEnvelope(BaseModel):
    """Immutable persisted wrapper around a serialized work item."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    submitted_at: datetime = Field(..., alias="t")
    payload: str = Field(..., alias="m")
    type_tag: str = Field(..., alias="c")
    id: str = Field(..., alias="i")

    def age_seconds(self, now: datetime | None = None) -> float:
        """Seconds elapsed since the item was submitted."""
        current = now or utc_now()
        return (current - to_aware_utc(self.submitted_at)).total_seconds()


class LoopingIdGenerator:
    """Thread-safe counter for envelope ids.

    Starts at a random point so ids from consecutive process runs are unlikely
    to collide in logs, and wraps to zero at the end of the 31-bit range.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._next = (seed if seed is not None else random.randrange(ID_SPACE)) % ID_SPACE
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            value = self._next
            self._next = (value + 1) % ID_SPACE
            return value


def type_tag_for(item_type: Any) -> str:
    """Stable tag naming a payload type, e.g. ``myapp.events.AuditEvent``."""
    if item_type is Any:
        return "typing.Any"
    module = getattr(item_type, "__module__", None)
    qualname = getattr(item_type, "__qualname__", None)
    if module and qualname:
        if module == "builtins":
            return qualname
        return f"{module}.{qualname}"
    return repr(item_type)


class EnvelopeCodec(Generic[W]):
    """Wraps items into envelopes and serializes them, and the reverse.

    Args:
        item_type: The payload type accepted by this codec. Anything pydantic's
            TypeAdapter understands: models, dataclasses, TypedDicts, builtins.
    """

    def __init__(self, item_type: Any = Any) -> None:
        self.item_type = item_type
        self.type_tag = type_tag_for(item_type)
        self._adapter: TypeAdapter[Any] = TypeAdapter(item_type)

    def wrap(self, item: W, item_id: str) -> ItemEnvelope:
        """Build a new envelope for an item, stamped with the current time."""
        payload = self._adapter.dump_json(item).decode("utf-8")
        return ItemEnvelope(
            submitted_at=utc_now(),
            payload=payload,
            type_tag=self.type_tag,
            id=item_id,
        )

    @staticmethod
    def encode(envelope: ItemEnvelope) -> str:
        """Serialize an envelope to its stored string form."""
        return envelope.model_dump_json(by_alias=True)

    def decode(self, raw: str) -> ItemEnvelope:
        """Parse a stored string back into an envelope.

        Raises:
            EnvelopeDecodeError: If the value is not a well-formed envelope or
                carries a different payload type tag.
        """
        try:
            envelope = ItemEnvelope.model_validate_json(raw)
        except ValidationError as e:
            raise EnvelopeDecodeError(
                f"malformed envelope ({e.error_count()} validation errors)"
            ) from e
        if envelope.type_tag != self.type_tag:
            raise EnvelopeDecodeError(
                f"envelope type '{envelope.type_tag}' does not match "
                f"queue payload type '{self.type_tag}'"
            )
        return envelope

    def unwrap(self, envelope: ItemEnvelope) -> W:
        """Deserialize the work item carried by an envelope.

        Raises:
            EnvelopeDecodeError: If the payload does not validate as item_type.
        """
        try:
            return self._adapter.validate_json(envelope.payload)
        except ValidationError as e:
            raise EnvelopeDecodeError(
                f"unable to deserialize work item {envelope.id}: "
                f"{e.error_count()} validation errors"
            ) from e
