"""
Domain Services Package

Pure business rules shared by the application use cases.
"""

from .market_selection import filter_eligible, rank_candidates
from .prediction_validator import (
    PROBABILITY_SUM_TOLERANCE,
    align_to_market_order,
    parse_prediction_payload,
    strip_markdown_fence,
)
from .prompt_builder import SYSTEM_MESSAGE, build_prediction_prompt
from .retry_policy import AttemptState, MarketAttempt, RetryPolicy

__all__ = [
    "filter_eligible",
    "rank_candidates",
    "PROBABILITY_SUM_TOLERANCE",
    "align_to_market_order",
    "parse_prediction_payload",
    "strip_markdown_fence",
    "SYSTEM_MESSAGE",
    "build_prediction_prompt",
    "AttemptState",
    "MarketAttempt",
    "RetryPolicy",
]
