"""Lightweight settings structures consumed by the application layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from prediction_pipeline.shared.consts import DEFAULT_MODEL_NAME


@dataclass(frozen=True)
class DispatchOptions:
    """Subset of configuration required by the prediction dispatcher."""

    concurrency: int = 3
    call_timeout_seconds: float = 60.0
    max_retries: int = 1
    retry_backoff_seconds: float = 1.0
    retry_backoff_max_seconds: float = 30.0
    probability_sum_tolerance: float = 0.01
    # result store writes
    persistence_retries: int = 3
    persistence_backoff_seconds: float = 0.5


@dataclass(frozen=True)
class TrackerOptions:
    """Subset of configuration required by the session tracker."""

    lease_ttl_seconds: float = 600.0
    persistence_retries: int = 3
    persistence_backoff_seconds: float = 0.5


@dataclass(frozen=True)
class RecoveryOptions:
    """Subset of configuration required by the recovery sweep."""

    stale_after_minutes: float = 10.0
    batch_size: int = 20
    max_recovery_attempts: int = 3
    cleanup_after_hours: float = 24.0
    pending_expiry_hours: float = 6.0


@dataclass(frozen=True)
class ScheduledBatchOptions:
    """Parameters of the daily scheduled batch."""

    models: Tuple[str, ...] = field(default_factory=lambda: (DEFAULT_MODEL_NAME,))
    top_markets_count: int = 5
    end_date_range_hours: float = 48.0
    target_days_from_now: float = 7.0
    exclude_categories: Tuple[str, ...] = ("crypto",)
