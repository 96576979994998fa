"""Data models for the durable work queue."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ProcessResult(str, Enum):
    """Outcome reported by an item processor for a single work item."""

    SUCCESS = "success"  # Done, remove from the queue
    FAILED = "failed"  # Terminal failure, remove without retrying
    RETRY = "retry"  # Keep at the head and try again after retry_interval


@dataclass(frozen=True)
class WorkQueueSettings:
    """Tunables for a single WorkQueueProcessor instance.

    Attributes:
        max_events: Maximum queue length before producers are held back.
            Zero or negative disables the length check.
        max_submit_wait_seconds: How long a producer may wait on a full queue.
        retry_interval_seconds: Delay before a RETRY-ed head item is re-attempted.
        retry_discard_age_seconds: Items older than this are discarded unprocessed.
        max_shutdown_wait_seconds: How long close() waits for the backlog to drain.
    """

    max_events: int = 1000
    max_submit_wait_seconds: float = 5.0
    retry_interval_seconds: float = 30.0
    retry_discard_age_seconds: float = 3600.0
    max_shutdown_wait_seconds: float = 30.0

    def __post_init__(self) -> None:
        for name in (
            "max_submit_wait_seconds",
            "retry_interval_seconds",
            "retry_discard_age_seconds",
            "max_shutdown_wait_seconds",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")


@dataclass(frozen=True)
class TransactionSizeSettings:
    """Settings for the adaptive transaction-size controller.

    Attributes:
        duration_goal_seconds: Target wall-clock duration of one transaction.
        min_transactions: Lower bound for the recommended size.
        max_transactions: Upper bound for the recommended size.
        close_threshold_ratio: Fraction of the goal considered "near the goal".
        halve_threshold_multiple: Overshoot (in goals) that halves the size.
        reset_threshold_multiple: Overshoot (in goals) that resets to the minimum.
    """

    duration_goal_seconds: float = 0.1
    min_transactions: int = 50
    max_transactions: int = 5000
    close_threshold_ratio: float = 0.15
    halve_threshold_multiple: float = 2.0
    reset_threshold_multiple: float = 10.0

    def __post_init__(self) -> None:
        if self.duration_goal_seconds <= 0:
            raise ValueError("duration_goal_seconds must be positive")
        if self.min_transactions < 1:
            raise ValueError("min_transactions must be at least 1")
        if self.max_transactions < self.min_transactions:
            raise ValueError("max_transactions must be >= min_transactions")
        if self.close_threshold_ratio < 0:
            raise ValueError("close_threshold_ratio must not be negative")
