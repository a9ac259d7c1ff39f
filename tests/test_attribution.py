"""
Windowed attribution and event comparison.

Guards:
  - Forward sums cover [d, d+w-1], including days past the visible end
  - roas_w is 0 whenever the day's spend is 0
  - mer_w is 0 whenever the forward cost is 0
  - w = 1 reduces to same-day ratios
  - Before/after event windows are adjacent and equally sized
"""
from datetime import date

import pytest

from profit_ledger.exceptions import InvalidWindowError
from profit_ledger.services.attribution import (
    compare_event_window,
    day_total_cost,
    forward_window_series,
    prefix_sums,
)

D1, D2, D3, D4 = (date(2024, 3, d) for d in range(1, 5))

SPEND = {D1: 100.0, D2: 0.0, D3: 50.0}
TRACKED = {D1: 10.0, D2: 20.0, D3: 30.0, D4: 40.0}
REVENUE = {D1: 100.0, D2: 200.0, D3: 300.0, D4: 400.0}
COST = {D1: 50.0, D2: 50.0, D3: 100.0, D4: 100.0}


def test_prefix_sums():
    assert prefix_sums([1, 2, 3]) == [0.0, 1.0, 3.0, 6.0]
    assert prefix_sums([]) == [0.0]
    assert prefix_sums([1, float("nan"), 2]) == [0.0, 1.0, 1.0, 3.0]


def test_two_day_forward_window():
    series = forward_window_series(D1, D3, 2, SPEND, TRACKED, REVENUE, COST)

    assert [p.date for p in series] == [D1, D2, D3]

    assert series[0].rev_tracked_w == pytest.approx(30)
    assert series[0].roas_w == pytest.approx(0.3)
    assert series[0].mer_w == pytest.approx(3.0)

    assert series[1].roas_w == 0  # no spend that day
    assert series[1].mer_w == pytest.approx(500 / 150)

    # D3 reaches into D4, past the visible end
    assert series[2].rev_tracked_w == pytest.approx(70)
    assert series[2].roas_w == pytest.approx(1.4)
    assert series[2].mer_w == pytest.approx(3.5)


def test_single_day_window_matches_same_day_ratios():
    series = forward_window_series(D1, D3, 1, SPEND, TRACKED, REVENUE, COST)
    assert series[0].roas_w == pytest.approx(10 / 100)
    assert series[0].mer_w == pytest.approx(100 / 50)
    assert series[2].mer_w == pytest.approx(300 / 100)


def test_zero_spend_means_zero_roas_regardless_of_revenue():
    tracked = {D1: 1e6, D2: 1e6}
    series = forward_window_series(D1, D2, 7, {}, tracked, {}, {})
    assert all(p.roas_w == 0 for p in series)
    assert all(p.mer_w == 0 for p in series)  # no cost either


def test_invalid_windows():
    with pytest.raises(InvalidWindowError):
        forward_window_series(D1, D3, 0, SPEND, TRACKED, REVENUE, COST)
    with pytest.raises(InvalidWindowError):
        forward_window_series(D3, D1, 2, SPEND, TRACKED, REVENUE, COST)


def test_day_total_cost_includes_spend_and_every_estimate():
    row = {
        "paid_spend": 200,
        "est_cogs": 500,
        "est_processing_fees": 30,
        "est_fulfillment_costs": 20,
        "est_other_variable_costs": None,
        "est_other_fixed_costs": 5,
        "revenue": 1000,
    }
    assert day_total_cost(row) == pytest.approx(755)


class TestCompareEventWindow:

    ROWS = [
        {"date": date(2024, 3, 6), "revenue": 999, "orders": 9, "paid_spend": 9, "contribution_profit": 9},
        {"date": date(2024, 3, 7), "revenue": 100, "orders": 2, "paid_spend": 50, "contribution_profit": 20},
        {"date": date(2024, 3, 9), "revenue": 200, "orders": 2, "paid_spend": 50, "contribution_profit": 40},
        {"date": date(2024, 3, 10), "revenue": 600, "orders": 4, "paid_spend": 100, "contribution_profit": 150},
        {"date": date(2024, 3, 12), "revenue": 300, "orders": 2, "paid_spend": 100, "contribution_profit": 50},
        {"date": date(2024, 3, 13), "revenue": 999, "orders": 9, "paid_spend": 9, "contribution_profit": 9},
    ]

    def test_before_and_after_totals(self):
        result = compare_event_window(self.ROWS, date(2024, 3, 10), 3)
        before, after = result["before"], result["after"]

        assert (before["start"], before["end"]) == ("2024-03-07", "2024-03-09")
        assert (after["start"], after["end"]) == ("2024-03-10", "2024-03-12")

        assert before["revenue"] == pytest.approx(300)
        assert before["aov"] == pytest.approx(75)
        assert before["roas"] == pytest.approx(3.0)
        assert before["profit_return"] == pytest.approx(0.6)

        assert after["revenue"] == pytest.approx(900)
        assert after["orders"] == pytest.approx(6)
        assert after["roas"] == pytest.approx(4.5)
        assert after["profit_return"] == pytest.approx(1.0)

    def test_empty_windows_are_zero(self):
        result = compare_event_window([], date(2024, 3, 10), 7)
        assert result["before"]["aov"] == 0
        assert result["after"]["roas"] == 0

    def test_window_must_be_positive(self):
        with pytest.raises(InvalidWindowError):
            compare_event_window(self.ROWS, date(2024, 3, 10), 0)
