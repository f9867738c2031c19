"""
test_revenue_allocator.py: Unit tests for the proportional allocator.

Tests cover:
  - Conservation: shares of every slot sum to the slot's source revenue
  - The single-kitchen-worker scenario: 687.50 under the coverage model
    (denominator floor 1.0), 750 under the default proportional split
  - Two service workers splitting an €80 hour (€40 each)
  - Pools: Kitchen ↔ Food, Service ↔ All (explicit or Food + Beverage),
    split teams, Management/Other excluded
  - Zero-denominator slots recorded as unattributed house revenue
  - Absolute revenue matching by id / name / unambiguous partial name
"""

from datetime import date

import pytest

from productivity.models.input_schema import WorkerTaggedRevenue
from productivity.models.productivity_models import WorkerHourlyHours
from productivity.services.revenue_allocator import (
    DivisionRevenueLedger,
    match_absolute_revenue,
)

WORK_DATE = date(2025, 3, 10)
LOCATION = "loc-1"


def _hours(worker_id, category, slots, pools):
    return WorkerHourlyHours(
        worker_id=worker_id,
        worker_name=worker_id.title(),
        team_category=category,
        date=WORK_DATE,
        location_id=LOCATION,
        hours_by_hour=dict(slots),
        pool_ratios=dict(pools),
    )


def _kitchen(worker_id, slots):
    return _hours(worker_id, "Kitchen", slots, {"Food": 1.0})


def _service(worker_id, slots):
    return _hours(worker_id, "Service", slots, {"All": 1.0})


def _allocate(allocator, workers, rows):
    return allocator.allocate(workers, DivisionRevenueLedger(rows), LOCATION, WORK_DATE)


# ===========================================================================
# Class 1: Scenarios
# ===========================================================================

class TestScenarios:

    def test_single_kitchen_worker_coverage_model(
        self, decomposer, make_shift, kitchen_scenario_revenue,
    ):
        """
        Shift 09:15–13:45, only Kitchen worker, denominator floor 1.0:
          0.75×100 + 200 + 200 + 200 + 0.75×50 = 687.50
        The unstaffed quarters of hours 9 and 13 (25 + 12.50) are house revenue.
        """
        from productivity.services.revenue_allocator import RevenueAllocator
        coverage = RevenueAllocator(min_denominator=1.0)
        slots = decomposer.decompose(make_shift("w1", "Keuken", "09:15", "13:45"))
        result = _allocate(coverage, [_kitchen("w1", slots)], kitchen_scenario_revenue)
        assert result.relative_revenue["w1"] == pytest.approx(687.50)
        food_house = [s for s in result.unattributed if s.division == "Food"]
        assert sorted((s.hour, round(s.revenue, 2)) for s in food_house) == [(9, 25.0), (13, 12.5)]
        assert result.total_attributed + sum(s.revenue for s in food_house) == pytest.approx(750.0)

    def test_single_kitchen_worker_proportional_model(
        self, allocator, decomposer, make_shift, kitchen_scenario_revenue,
    ):
        """
        Same shift, default proportional split: the lone worker is the whole
        denominator of every slot, so every slot is fully credited:
          100 + 200 + 200 + 200 + 50 = 750
        """
        slots = decomposer.decompose(make_shift("w1", "Keuken", "09:15", "13:45"))
        result = _allocate(allocator, [_kitchen("w1", slots)], kitchen_scenario_revenue)
        assert result.relative_revenue["w1"] == pytest.approx(750.0)
        assert [s for s in result.unattributed if s.division == "Food"] == []

    def test_two_service_workers_split_hour_evenly(self, allocator, make_revenue):
        """Both work 12:00–13:00 fully; All revenue €80 at hour 12 → €40 each."""
        rows = make_revenue("All", {12: 80.0})
        workers = [_service("w1", {12: 1.0}), _service("w2", {12: 1.0})]
        result = _allocate(allocator, workers, rows)
        assert result.share_for("w1", 12) == pytest.approx(40.0)
        assert result.share_for("w2", 12) == pytest.approx(40.0)
        assert result.relative_revenue == pytest.approx({"w1": 40.0, "w2": 40.0})

    def test_fractional_hours_weight_the_split(self, allocator, make_revenue):
        """w1 worked 1.0, w2 0.5 of hour 18 with €90: 60 / 30."""
        rows = make_revenue("All", {18: 90.0})
        result = _allocate(allocator, [_service("w1", {18: 1.0}), _service("w2", {18: 0.5})], rows)
        assert result.relative_revenue == pytest.approx({"w1": 60.0, "w2": 30.0})


# ===========================================================================
# Class 2: Conservation
# ===========================================================================

class TestConservation:

    def test_every_slot_sums_to_source_revenue(self, allocator, make_revenue):
        rows = (
            make_revenue("Food", {11: 123.45, 12: 310.10, 13: 77.0, 17: 12.0})
            + make_revenue("Beverage", {11: 40.0, 12: 99.99, 13: 0.0})
        )
        workers = [
            _kitchen("k1", {11: 1.0, 12: 1.0, 13: 0.33}),
            _kitchen("k2", {12: 0.25, 13: 1.0}),
            _service("s1", {11: 0.7, 12: 1.0}),
            _service("s2", {12: 0.1, 13: 0.9}),
            _hours("d1", "Kitchen", {12: 1.0, 13: 1.0}, {"Food": 0.5, "All": 0.5}),
        ]
        result = _allocate(allocator, workers, rows)
        assert result.slots
        for slot in result.slots:
            assert slot.denominator > 0
            assert sum(slot.shares.values()) == pytest.approx(slot.revenue)
            assert slot.attributed == pytest.approx(slot.revenue)

    def test_attributed_plus_unattributed_equals_pool_revenue(self, allocator, make_revenue):
        """
        Food 100 (h10) + 50 (h20); kitchen worker only at 10.
        Attributed 100, unattributed 50: nothing is lost.
        """
        rows = make_revenue("Food", {10: 100.0, 20: 50.0})
        result = _allocate(allocator, [_kitchen("k1", {10: 1.0})], rows)
        food_attributed = sum(s.revenue for s in result.slots if s.division == "Food")
        food_house = sum(s.revenue for s in result.unattributed if s.division == "Food")
        assert food_attributed + food_house == pytest.approx(150.0)

    def test_shares_never_negative(self, allocator, make_revenue):
        rows = make_revenue("Food", {10: 0.01, 11: 5000.0})
        result = _allocate(allocator, [_kitchen("k1", {10: 0.01, 11: 1.0}), _kitchen("k2", {11: 0.001})], rows)
        assert all(value >= 0 for value in result.relative_revenue.values())


# ===========================================================================
# Class 3: Pools
# ===========================================================================

class TestPools:

    def test_kitchen_does_not_share_beverage(self, allocator, make_revenue):
        rows = make_revenue("Beverage", {12: 100.0})
        result = _allocate(allocator, [_kitchen("k1", {12: 1.0})], rows)
        assert result.relative_revenue["k1"] == 0.0

    def test_service_shares_food_plus_beverage_without_explicit_total(self, allocator, make_revenue):
        """No All rows: service pool at hour 12 = Food 70 + Beverage 30 = 100."""
        rows = make_revenue("Food", {12: 70.0}) + make_revenue("Beverage", {12: 30.0})
        result = _allocate(allocator, [_service("s1", {12: 1.0})], rows)
        assert result.relative_revenue["s1"] == pytest.approx(100.0)

    def test_explicit_all_rows_take_precedence(self, allocator, make_revenue):
        rows = (
            make_revenue("Food", {12: 70.0})
            + make_revenue("Beverage", {12: 30.0})
            + make_revenue("All", {12: 110.0})
        )
        result = _allocate(allocator, [_service("s1", {12: 1.0})], rows)
        assert result.relative_revenue["s1"] == pytest.approx(110.0)

    def test_kitchen_and_service_denominators_are_separate(self, allocator, make_revenue):
        """
        Hour 12: Food 100, Beverage 60 (All = 160).
        Kitchen k1 alone in Food pool → 100. Service s1 alone in All pool → 160.
        """
        rows = make_revenue("Food", {12: 100.0}) + make_revenue("Beverage", {12: 60.0})
        result = _allocate(allocator, [_kitchen("k1", {12: 1.0}), _service("s1", {12: 1.0})], rows)
        assert result.relative_revenue == pytest.approx({"k1": 100.0, "s1": 160.0})

    def test_split_team_contributes_to_both_pools(self, allocator, make_revenue):
        """
        Hour 12: Food 100, Beverage 100 (All 200).
        k1 (kitchen, 1.0) and d1 (afwas 50/50, 1.0):
          Food pool: k1 1.0, d1 0.5 → k1 66.67, d1 33.33
          All  pool: d1 0.5 alone  → d1 200
        """
        rows = make_revenue("Food", {12: 100.0}) + make_revenue("Beverage", {12: 100.0})
        d1 = _hours("d1", "Kitchen", {12: 1.0}, {"Food": 0.5, "All": 0.5})
        result = _allocate(allocator, [_kitchen("k1", {12: 1.0}), d1], rows)
        assert result.relative_revenue["k1"] == pytest.approx(200.0 / 3)
        assert result.relative_revenue["d1"] == pytest.approx(100.0 / 3 + 200.0)

    def test_management_gets_no_relative_revenue(self, allocator, make_revenue):
        rows = make_revenue("Food", {12: 100.0})
        mgr = _hours("m1", "Management", {12: 1.0}, {})
        result = _allocate(allocator, [mgr, _kitchen("k1", {12: 1.0})], rows)
        assert result.relative_revenue["m1"] == 0.0
        assert result.relative_revenue["k1"] == pytest.approx(100.0)

    def test_same_worker_under_two_teams_is_merged(self, allocator, make_revenue):
        rows = make_revenue("Food", {12: 100.0})
        workers = [_kitchen("k1", {12: 0.5}), _kitchen("k1", {12: 0.5}), _kitchen("k2", {12: 1.0})]
        result = _allocate(allocator, workers, rows)
        assert result.relative_revenue == pytest.approx({"k1": 50.0, "k2": 50.0})


# ===========================================================================
# Class 4: Unattributed revenue
# ===========================================================================

class TestUnattributed:

    def test_zero_denominator_is_house_revenue(self, allocator, make_revenue):
        """
        Food 40 (h8) + 100 (h12), kitchen k1 at 12 only, no service staff:
          Food pool: h8 40 unattributed
          All pool (= Food here): h8 40 and h12 100 unattributed
        """
        rows = make_revenue("Food", {8: 40.0, 12: 100.0})
        result = _allocate(allocator, [_kitchen("k1", {12: 1.0})], rows)
        assert [(s.hour, s.division, s.revenue) for s in result.unattributed] == [
            (8, "All", 40.0),
            (12, "All", 100.0),
            (8, "Food", 40.0),
        ]
        assert result.total_unattributed == pytest.approx(180.0)
        assert result.relative_revenue["k1"] == pytest.approx(100.0)

    def test_no_workers_everything_unattributed(self, allocator, make_revenue):
        rows = make_revenue("Food", {12: 100.0}) + make_revenue("Beverage", {12: 50.0})
        result = _allocate(allocator, [], rows)
        assert result.relative_revenue == {}
        # Food pool 100 and All pool 150 (Food + Beverage)
        assert sorted((s.division, s.revenue) for s in result.unattributed) == [("All", 150.0), ("Food", 100.0)]

    def test_zero_revenue_hours_create_no_slots(self, allocator, make_revenue):
        rows = make_revenue("Food", {12: 0.0})
        result = _allocate(allocator, [_kitchen("k1", {12: 1.0})], rows)
        assert result.slots == [] and result.unattributed == []
        assert result.relative_revenue["k1"] == 0.0


# ===========================================================================
# Class 5: Ledger
# ===========================================================================

class TestLedger:

    def test_daily_totals(self, make_revenue):
        ledger = DivisionRevenueLedger(
            make_revenue("Food", {10: 100.0, 11: 50.0}) + make_revenue("Beverage", {10: 25.0})
        )
        assert ledger.daily_total("Food") == pytest.approx(150.0)
        assert ledger.daily_total("Beverage") == pytest.approx(25.0)
        assert ledger.daily_total("All") == pytest.approx(175.0)
        assert not ledger.is_empty()

    def test_all_rows_for_some_hours_only(self, make_revenue):
        """
        All row at 12 (110) only; hour 13 has Food 40 + Beverage 20.
          hourly All: 12 → 110, 13 → 60; daily All = 170
        """
        ledger = DivisionRevenueLedger(
            make_revenue("Food", {12: 70.0, 13: 40.0})
            + make_revenue("Beverage", {12: 30.0, 13: 20.0})
            + make_revenue("All", {12: 110.0})
        )
        assert ledger.hourly(12, "All") == pytest.approx(110.0)
        assert ledger.hourly(13, "All") == pytest.approx(60.0)
        assert ledger.daily_total("All") == pytest.approx(170.0)

    def test_service_funded_in_hours_without_all_row(self, allocator, make_revenue):
        rows = make_revenue("Food", {13: 40.0}) + make_revenue("Beverage", {13: 20.0}) + make_revenue("All", {12: 110.0})
        result = _allocate(allocator, [_service("s1", {12: 1.0, 13: 1.0})], rows)
        assert result.share_for("s1", 12) == pytest.approx(110.0)
        assert result.share_for("s1", 13) == pytest.approx(60.0)
        assert [s.division for s in result.unattributed] == ["Food"]

    def test_duplicate_rows_are_summed(self, make_revenue):
        ledger = DivisionRevenueLedger(make_revenue("Food", {10: 100.0}) + make_revenue("Food", {10: 20.0}))
        assert ledger.hourly(10, "Food") == pytest.approx(120.0)

    def test_empty_ledger(self):
        ledger = DivisionRevenueLedger([])
        assert ledger.is_empty()
        assert ledger.daily_total("All") == 0.0


# ===========================================================================
# Class 6: Absolute revenue
# ===========================================================================

def _tagged(revenue, worker_id=None, worker_name=""):
    return WorkerTaggedRevenue(location_id=LOCATION, date=WORK_DATE, worker_id=worker_id,
                               worker_name=worker_name, revenue=revenue)


class TestAbsoluteRevenue:

    WORKERS = {"s1": "Anna de Vries", "s2": "Bram Jansen", "k1": "Chef Karel"}

    def test_match_by_id(self):
        result = match_absolute_revenue([_tagged(120.0, worker_id="s1")], self.WORKERS, {"s1", "s2"})
        assert result == {"s1": 120.0, "s2": 0.0, "k1": 0.0}

    def test_match_by_exact_name_case_insensitive(self):
        result = match_absolute_revenue([_tagged(80.0, worker_name="BRAM  jansen")], self.WORKERS, {"s1", "s2"})
        assert result["s2"] == pytest.approx(80.0)

    def test_match_by_unambiguous_partial_name(self):
        result = match_absolute_revenue([_tagged(50.0, worker_name="Anna")], self.WORKERS, {"s1", "s2"})
        assert result["s1"] == pytest.approx(50.0)

    def test_ambiguous_partial_name_not_credited(self):
        workers = {"s1": "Anna de Vries", "s2": "Anna Bakker"}
        result = match_absolute_revenue([_tagged(50.0, worker_name="Anna")], workers, {"s1", "s2"})
        assert result == {"s1": 0.0, "s2": 0.0}

    def test_non_service_worker_not_credited(self):
        result = match_absolute_revenue([_tagged(60.0, worker_id="k1")], self.WORKERS, {"s1", "s2"})
        assert result["k1"] == 0.0

    def test_untagged_worker_defaults_to_zero(self):
        result = match_absolute_revenue([], self.WORKERS, {"s1", "s2"})
        assert result == {"s1": 0.0, "s2": 0.0, "k1": 0.0}

    def test_rows_accumulate(self):
        rows = [_tagged(10.0, worker_id="s1"), _tagged(15.5, worker_name="anna de vries")]
        result = match_absolute_revenue(rows, self.WORKERS, {"s1"})
        assert result["s1"] == pytest.approx(25.5)
