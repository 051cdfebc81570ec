"""Per-market attempt bookkeeping for the prediction dispatcher."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class AttemptState(str, Enum):
    PENDING = "pending"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class RetryPolicy:
    """How many times and how long to wait before retrying a market."""

    max_retries: int = 1
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 30.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be zero or greater")
        if self.backoff_base_seconds < 0:
            raise ValueError("backoff_base_seconds must be zero or greater")

    def delay_for(self, retry_number: int) -> float:
        """Exponential backoff before the given retry (1-based)."""
        delay = self.backoff_base_seconds * (2 ** max(retry_number - 1, 0))
        return min(delay, self.backoff_max_seconds)


@dataclass
class MarketAttempt:
    """Attempt state machine for one market within a run.

    ``pending -> retrying* -> succeeded | failed``; terminal states are final.
    """

    market_id: str
    policy: RetryPolicy
    state: AttemptState = AttemptState.PENDING
    attempts: int = 0
    last_error: Optional[str] = field(default=None)

    @property
    def is_done(self) -> bool:
        return self.state in (AttemptState.SUCCEEDED, AttemptState.FAILED)

    def start(self) -> None:
        if self.is_done:
            raise RuntimeError(f"Market {self.market_id} already {self.state.value}")
        self.attempts += 1

    def succeed(self) -> None:
        self.state = AttemptState.SUCCEEDED
        self.last_error = None

    def fail(self, error: str, retryable: bool) -> bool:
        """
        Register a failed attempt.

        Returns:
            True when another attempt should be made.
        """
        self.last_error = error
        if retryable and self.attempts <= self.policy.max_retries:
            self.state = AttemptState.RETRYING
            return True
        self.state = AttemptState.FAILED
        return False

    def next_delay(self) -> float:
        return self.policy.delay_for(self.attempts)
