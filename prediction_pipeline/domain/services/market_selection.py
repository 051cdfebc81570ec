"""Domain service for ranking batch candidate markets."""

from collections import Counter
from datetime import datetime
from typing import Iterable, List

from prediction_pipeline.domain.entities.market import Market, SelectionConstraints


def _in_window(market: Market, start: datetime, end: datetime) -> bool:
    return market.end_date is not None and start <= market.end_date <= end


def filter_eligible(
    markets: Iterable[Market], constraints: SelectionConstraints, now: datetime
) -> List[Market]:
    """Keep open markets with a known volume that resolve inside the window."""

    start, end = constraints.window(now)
    excluded = {c.lower() for c in constraints.exclude_categories}

    eligible = []
    for market in markets:
        if not market.is_open or market.volume is None:
            continue
        if not _in_window(market, start, end):
            continue
        if market.category and market.category.lower() in excluded:
            continue
        eligible.append(market)
    return eligible


def rank_candidates(
    markets: Iterable[Market], constraints: SelectionConstraints, now: datetime
) -> List[Market]:
    """
    Rank eligible markets by volume (descending), then id (ascending).

    With ``category_balance`` enabled, markets of equal volume are ordered so
    that categories picked less often so far come first. It never filters.
    """

    eligible = filter_eligible(markets, constraints, now)
    # Duplicate ids from paginated sources would otherwise take two slots.
    unique = {market.id: market for market in eligible}
    ordered = sorted(unique.values(), key=lambda m: (-(m.volume or 0.0), m.id))

    if constraints.category_balance:
        ordered = _balance_ties(ordered)

    return ordered[: constraints.top_count]


def _balance_ties(ordered: List[Market]) -> List[Market]:
    picked: Counter = Counter()
    result: List[Market] = []
    index = 0
    while index < len(ordered):
        volume = ordered[index].volume
        tie = [m for m in ordered[index:] if m.volume == volume]
        index += len(tie)
        while tie:
            best = min(tie, key=lambda m: (picked[m.category or ""], m.id))
            tie.remove(best)
            picked[best.category or ""] += 1
            result.append(best)
    return result
