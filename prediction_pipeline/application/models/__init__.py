"""Application-level configuration models."""

from .pipeline_options import (
    DispatchOptions,
    RecoveryOptions,
    ScheduledBatchOptions,
    TrackerOptions,
)

__all__ = [
    "DispatchOptions",
    "RecoveryOptions",
    "ScheduledBatchOptions",
    "TrackerOptions",
]
