"""
Domain Entities - Market

Read-only view of a prediction market as served by the market data provider,
plus the constraints used to pick batch candidates.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Tuple


@dataclass
class Market:
    """A market that can receive AI predictions."""

    id: str
    question: str
    description: Optional[str] = None
    outcomes: List[str] = field(default_factory=list)
    volume: Optional[float] = None
    end_date: Optional[datetime] = None
    category: Optional[str] = None
    active: bool = True
    closed: bool = False
    accepting_orders: bool = True

    @property
    def is_open(self) -> bool:
        """Whether the market is still open for betting."""
        return self.active and not self.closed and self.accepting_orders


@dataclass(frozen=True)
class SelectionConstraints:
    """Constraints for selecting batch candidate markets."""

    top_count: int = 20
    end_date_range_hours: float = 24
    target_days_from_now: float = 7
    category_balance: bool = False
    exclude_categories: Tuple[str, ...] = ()

    def window(self, now: datetime) -> Tuple[datetime, datetime]:
        """Resolution window centred on ``now + target_days_from_now``."""
        center = now + timedelta(days=self.target_days_from_now)
        half = timedelta(hours=self.end_date_range_hours / 2)
        return center - half, center + half
