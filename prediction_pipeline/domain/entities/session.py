"""
Domain Entities - Prediction Session

A prediction session is one batch run over a fixed, ordered list of target
markets. Outcome bookkeeping is set based, so the final state does not depend
on the order in which workers finish.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4


class SessionStatus(str, Enum):
    """Status of a prediction session."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"
    ABANDONED = "abandoned"


TERMINAL_STATUSES = frozenset(
    {SessionStatus.COMPLETED, SessionStatus.FAILED, SessionStatus.ABANDONED}
)
LEASABLE_STATUSES = frozenset({SessionStatus.PENDING, SessionStatus.IN_PROGRESS})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionLease:
    """Time-bounded claim of exclusive ownership over a session."""

    session_id: UUID
    owner: str
    expires_at: datetime


@dataclass
class PredictionSession:
    """Represents one batch prediction run."""

    id: UUID = field(default_factory=uuid4)
    owner_id: Optional[str] = None
    status: SessionStatus = SessionStatus.PENDING
    model_name: str = ""

    target_market_ids: List[str] = field(default_factory=list)
    completed_market_ids: List[str] = field(default_factory=list)
    failed_markets: Dict[str, str] = field(default_factory=dict)

    metadata: Dict[str, Any] = field(default_factory=dict)

    # Leasing / recovery
    lease_owner: Optional[str] = None
    lease_expires_at: Optional[datetime] = None
    recovery_attempts: int = 0

    error: Optional[str] = None

    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        # insertion order is processing order; duplicates would double count
        self.target_market_ids = list(dict.fromkeys(self.target_market_ids))

    def update_timestamp(self) -> None:
        """Update the 'updated_at' timestamp to current time."""
        self.updated_at = _utcnow()

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def remaining_market_ids(self) -> List[str]:
        """Targets not yet completed, in processing order."""
        completed = set(self.completed_market_ids)
        return [m for m in self.target_market_ids if m not in completed]

    def record_success(self, market_id: str) -> bool:
        """
        Mark a market as completed.

        Returns:
            True when the session changed, False for a replayed outcome.
        """
        self._ensure_target(market_id)
        changed = self.failed_markets.pop(market_id, None) is not None
        if market_id not in self.completed_market_ids:
            self.completed_market_ids.append(market_id)
            changed = True
        if changed:
            self.update_timestamp()
        return changed

    def record_failure(self, market_id: str, error: str) -> bool:
        """
        Record the last error for a market that has not completed.

        A failure never overrides a success for the same market.
        """
        self._ensure_target(market_id)
        if market_id in self.completed_market_ids:
            return False
        if self.failed_markets.get(market_id) == error:
            return False
        self.failed_markets[market_id] = error
        self.update_timestamp()
        return True

    def resolve_final_status(self) -> SessionStatus:
        """Terminal status implied by the current outcome sets."""
        completed = set(self.completed_market_ids)
        if completed == set(self.target_market_ids):
            return SessionStatus.COMPLETED
        if completed:
            return SessionStatus.PARTIALLY_FAILED
        return SessionStatus.FAILED

    def mark_finished(self) -> SessionStatus:
        """Move to the terminal status implied by the outcome sets."""
        self.status = self.resolve_final_status()
        if self.status is SessionStatus.FAILED and not self.error:
            self.error = f"All {len(self.target_market_ids)} markets failed"
        self.completed_at = _utcnow()
        self.release_lease()
        return self.status

    def mark_abandoned(self, reason: str) -> None:
        self.status = SessionStatus.ABANDONED
        self.error = reason
        self.completed_at = _utcnow()
        self.release_lease()

    def release_lease(self) -> None:
        self.lease_owner = None
        self.lease_expires_at = None
        self.update_timestamp()

    def get_progress(self) -> float:
        """Share of targets with a recorded outcome, as a percentage."""
        total = len(self.target_market_ids)
        if total == 0:
            return 100.0
        processed = len(self.completed_market_ids) + len(self.failed_markets)
        return (processed / total) * 100.0

    def _ensure_target(self, market_id: str) -> None:
        if market_id not in self.target_market_ids:
            raise ValueError(
                f"Market {market_id} is not a target of session {self.id}"
            )
