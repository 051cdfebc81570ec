from __future__ import annotations

from datetime import timedelta

from prediction_pipeline.domain.entities.market import SelectionConstraints
from prediction_pipeline.domain.services.market_selection import (
    filter_eligible,
    rank_candidates,
)
from tests.conftest import NOW, make_market


def test_ranks_by_volume_inside_window() -> None:
    markets = [
        make_market("early", volume=500, end_date=NOW + timedelta(days=6, hours=12)),
        make_market("target", volume=900, end_date=NOW + timedelta(days=7)),
        make_market("late", volume=300, end_date=NOW + timedelta(days=8)),
        make_market("tail", volume=100, end_date=NOW + timedelta(days=7, hours=6)),
    ]

    ranked = rank_candidates(markets, SelectionConstraints(top_count=2), NOW)

    assert [m.id for m in ranked] == ["target", "early"]


def test_filters_closed_unknown_volume_and_excluded_categories() -> None:
    markets = [
        make_market("ok", category="Politics"),
        make_market("closed", closed=True),
        make_market("novolume", volume=None),
        make_market("crypto", category="Crypto"),
    ]
    constraints = SelectionConstraints(exclude_categories=("crypto",))

    assert [m.id for m in filter_eligible(markets, constraints, NOW)] == ["ok"]


def test_ties_break_by_id_and_truncate() -> None:
    markets = [make_market(i, volume=100) for i in ("c", "a", "b")]

    ranked = rank_candidates(markets, SelectionConstraints(top_count=2), NOW)

    assert [m.id for m in ranked] == ["a", "b"]


def test_duplicate_ids_take_one_slot() -> None:
    markets = [make_market("a", volume=10), make_market("a", volume=10)]
    assert len(rank_candidates(markets, SelectionConstraints(), NOW)) == 1


def test_category_balance_spreads_equal_volume_markets() -> None:
    markets = [
        make_market("a1", volume=100, category="sports"),
        make_market("a2", volume=100, category="sports"),
        make_market("b1", volume=100, category="politics"),
        make_market("top", volume=500, category="sports"),
    ]

    plain = rank_candidates(markets, SelectionConstraints(), NOW)
    balanced = rank_candidates(
        markets, SelectionConstraints(category_balance=True), NOW
    )

    assert [m.id for m in plain] == ["top", "a1", "a2", "b1"]
    assert [m.id for m in balanced] == ["top", "b1", "a1", "a2"]
