"""Tests for the arbitrage allocator."""

import math

import pytest

from arbfinder.engine.arbitrage import compute_opportunity, find_opportunities, round_to_unit
from arbfinder.feeds.odds_api import parse_event
from arbfinder.models.schemas import BestQuote, BookmakerOdds, Event


@pytest.fixture
def event():
    return Event(
        event_id="evt_123",
        sport_key="test_sport",
        sport_title="Test Sport",
        home_team="Team A",
        away_team="Team B",
    )


def quotes(*prices: float) -> list[BestQuote]:
    names = ["Team A", "Team B", "Draw", "Other"]
    return [
        BestQuote(outcome_name=names[i], price_decimal=p, bookmaker_id=f"book_{i}")
        for i, p in enumerate(prices)
    ]


class TestRoundToUnit:
    """Round-half-away-from-zero to a stake unit."""

    def test_nearest(self):
        assert round_to_unit(45.652, 1) == 46
        assert round_to_unit(54.348, 1) == 54

    def test_halves_go_away_from_zero(self):
        assert round_to_unit(45.5, 1) == 46
        assert round_to_unit(2.5, 1) == 3
        assert round_to_unit(-2.5, 1) == -3

    def test_larger_units(self):
        assert round_to_unit(12.4, 5) == 10
        assert round_to_unit(12.5, 5) == 15
        assert round_to_unit(37, 25) == 25
        assert round_to_unit(38, 25) == 50


class TestComputeOpportunity:
    """Tests for compute_opportunity."""

    def test_worked_example(self, event):
        arb = compute_opportunity(event, quotes(2.50, 2.10), bankroll=100, rounding_unit=1)

        assert arb is not None
        assert arb.sum_inverse_price == pytest.approx(0.876190, abs=1e-6)
        assert arb.edge_percent == pytest.approx(14.1304, abs=1e-3)
        assert arb.guaranteed_payout == pytest.approx(114.1304, abs=1e-3)
        assert arb.profit == pytest.approx(14.1304, abs=1e-3)

        exact = {s.outcome_name: s.stake_amount for s in arb.exact_allocation}
        assert exact["Team A"] == pytest.approx(45.652, abs=1e-3)
        assert exact["Team B"] == pytest.approx(54.348, abs=1e-3)

    def test_worked_example_rounded(self, event):
        arb = compute_opportunity(event, quotes(2.50, 2.10), bankroll=100, rounding_unit=1)

        rounded = {s.outcome_name: s.stake_amount for s in arb.rounded_allocation}
        assert rounded == {"Team A": 46, "Team B": 54}
        assert arb.total_rounded_stake == pytest.approx(100)
        assert arb.rounded_guaranteed_payout == pytest.approx(113.4)
        assert arb.rounded_profit == pytest.approx(13.4)
        assert arb.rounded_edge_percent == pytest.approx(13.4)
        assert arb.rounding_unit == 1
        assert arb.bankroll == 100

    def test_vig_market_has_no_arb(self, event):
        assert compute_opportunity(event, quotes(1.91, 1.91)) is None

    def test_exactly_one_is_excluded(self, event):
        # 1/2 + 1/2 == 1: zero edge
        assert compute_opportunity(event, quotes(2.0, 2.0), require_positive_rounded=False) is None

    def test_needs_two_outcomes(self, event):
        assert compute_opportunity(event, quotes(5.0)) is None
        assert compute_opportunity(event, []) is None
        assert compute_opportunity(event, {}) is None

    def test_accepts_mapping(self, event):
        best = {q.outcome_name: q for q in quotes(2.50, 2.10)}
        arb = compute_opportunity(event, best)
        assert arb is not None
        assert [q.outcome_name for q in arb.best_quotes] == ["Team A", "Team B"]

    @pytest.mark.parametrize("prices,bankroll", [
        ((2.50, 2.10), 100),
        ((2.05, 2.05), 1000),
        ((1.50, 3.50), 250),
        ((3.40, 3.60, 3.80), 500),
        ((1.10, 12.5), 77),
        ((4.2, 4.4, 4.6, 4.8), 1234.5),
    ])
    def test_exact_payout_equalized(self, event, prices, bankroll):
        arb = compute_opportunity(event, quotes(*prices), bankroll=bankroll, require_positive_rounded=False)

        assert arb is not None
        assert arb.edge_percent > 0
        payouts = [s.stake_amount * q.price_decimal for s, q in zip(arb.exact_allocation, arb.best_quotes)]
        for payout in payouts:
            assert payout == pytest.approx(arb.guaranteed_payout, rel=1e-9)
        assert sum(s.stake_amount for s in arb.exact_allocation) == pytest.approx(bankroll, rel=1e-9)

    @pytest.mark.parametrize("prices", [
        (1.91, 1.91),
        (1.50, 2.50),
        (1.20, 5.00),
        (2.80, 3.10, 2.90),
    ])
    def test_no_arb_when_sum_at_least_one(self, event, prices):
        assert sum(1 / p for p in prices) >= 1
        assert compute_opportunity(event, quotes(*prices), require_positive_rounded=False) is None

    def test_rounding_can_erase_edge(self, event):
        # 5% edge, but bankroll 1 rounds the 3.50 stake (0.3) down to 0
        best = quotes(1.50, 3.50)

        assert compute_opportunity(event, best, bankroll=1, rounding_unit=1) is None

        arb = compute_opportunity(event, best, bankroll=1, rounding_unit=1, require_positive_rounded=False)
        assert arb.edge_percent == pytest.approx(5.0)
        assert arb.rounded_guaranteed_payout == 0
        assert arb.rounded_edge_percent == pytest.approx(-100.0)

    def test_zero_total_rounded_stake(self, event):
        arb = compute_opportunity(
            event, quotes(1.50, 3.50), bankroll=1, rounding_unit=10, require_positive_rounded=False,
        )
        assert arb.total_rounded_stake == 0
        assert arb.rounded_edge_percent == -math.inf

        assert compute_opportunity(event, quotes(1.50, 3.50), bankroll=1, rounding_unit=10) is None

    def test_rounded_payout_is_worst_case(self, event):
        arb = compute_opportunity(event, quotes(3.40, 3.60, 3.80), bankroll=500, rounding_unit=5)
        payouts = [s.stake_amount * q.price_decimal for s, q in zip(arb.rounded_allocation, arb.best_quotes)]
        assert arb.rounded_guaranteed_payout == min(payouts)
        for s in arb.rounded_allocation:
            assert s.stake_amount % 5 == 0

    def test_copies_event_fields(self, arb_event_payload):
        event = parse_event(arb_event_payload)
        arb = compute_opportunity(event, quotes(2.50, 2.10))

        assert arb.event_id == "evt_123"
        assert arb.sport_key == "test_sport"
        assert arb.home_team == "Team A"
        assert arb.away_team == "Team B"
        assert arb.commence_time == event.commence_time

    def test_to_dict_shape(self, arb_event_payload):
        event = parse_event(arb_event_payload)
        arb = compute_opportunity(event, quotes(2.50, 2.10))
        data = arb.to_dict()

        assert data["id"] == "evt_123"
        assert data["commence_time"] == "2025-01-01T12:00:00Z"
        assert data["edge_rounded_percent"] == pytest.approx(13.4)
        assert data["profit"] == pytest.approx(14.1304, abs=1e-3)
        assert data["profit_rounded"] == pytest.approx(13.4)
        assert [s["stake"] for s in data["stakes_rounded"]] == [46, 54]
        assert data["outcomes"][0]["bookmaker"] == "book_0"


class TestFindOpportunities:
    """Tests for find_opportunities."""

    def test_sorted_by_rounded_edge(self, make_event_payload, make_bookmaker):
        small = parse_event(make_event_payload("small", bookmakers=[
            make_bookmaker("a", {"Team A": 105, "Team B": -102}),
            make_bookmaker("b", {"Team A": -110, "Team B": 108}),
        ]))
        big = parse_event(make_event_payload("big", bookmakers=[
            make_bookmaker("a", {"Team A": 150, "Team B": -180}),
            make_bookmaker("b", {"Team A": 120, "Team B": 110}),
        ]))
        none = parse_event(make_event_payload("none", bookmakers=[
            make_bookmaker("a", {"Team A": -110, "Team B": -110}),
        ]))

        found = find_opportunities([small, none, big], bankroll=1000, rounding_unit=1)

        assert [a.event_id for a in found] == ["big", "small"]
        assert found[0].rounded_edge_percent >= found[1].rounded_edge_percent

    def test_bad_event_does_not_abort_batch(self, arb_event_payload):
        good = parse_event(arb_event_payload)
        broken = Event(
            event_id="broken",
            sport_key="test_sport",
            sport_title="Test Sport",
            home_team="X",
            away_team="Y",
            bookmakers=(BookmakerOdds("bad"), None),
        )

        found = find_opportunities([broken, good])
        assert [a.event_id for a in found] == ["evt_123"]

    def test_empty(self):
        assert find_opportunities([]) == []
