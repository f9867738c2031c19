"""
conftest.py: Shared pytest fixtures for the productivity engine test suite.

No broker, database or network fixtures are defined here. All tests are
pure unit tests that exercise engine components on in-memory records.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``productivity.*`` imports resolve regardless of where pytest is invoked.
"""

import sys
import os
from datetime import date, datetime

import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any productivity imports.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


WORK_DATE = date(2025, 3, 10)      # a Monday
TODAY = date(2025, 6, 1)           # fixed clock: WORK_DATE is in the past
LOCATION = "loc-1"


# ---------------------------------------------------------------------------
# Engine component fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def decomposer():
    """ShiftDecomposer with the default 10:00-18:00 fallback window, no timezone."""
    from productivity.services.shift_decomposer import ShiftDecomposer
    return ShiftDecomposer(venue_timezone="")


@pytest.fixture(scope="session")
def classifier():
    """TeamClassifier over the built-in mapping (Afwas = 50/50 kitchen/service)."""
    from productivity import config
    from productivity.services.team_classifier import TeamClassifier
    return TeamClassifier.from_mapping(config.DEFAULT_TEAM_MAPPING)


@pytest.fixture(scope="session")
def goals():
    """
    GoalClassifier with the default thresholds.
      revenue/hour: bad < 45 <= not_great < 55 <= ok < 65 <= great
      labor cost %: great < 30 <= ok <= 32.5 < bad
    """
    from productivity.services.goal_classifier import GoalClassifier
    return GoalClassifier()


@pytest.fixture(scope="session")
def allocator():
    from productivity.services.revenue_allocator import RevenueAllocator
    return RevenueAllocator()


@pytest.fixture(scope="session")
def builder(goals):
    from productivity.services.hierarchy_builder import HierarchyBuilder
    return HierarchyBuilder(goals)


@pytest.fixture
def tracker():
    """A fresh PerformanceTracker per test (the module singleton is left alone)."""
    from productivity.services.perf_monitor import PerformanceTracker
    return PerformanceTracker()


@pytest.fixture
def engine(classifier, decomposer, goals, tracker):
    """ProductivityEngine with a fixed clock (today = 2025-06-01)."""
    from productivity.services.productivity_pipeline import ProductivityEngine
    return ProductivityEngine(
        classifier=classifier,
        decomposer=decomposer,
        goals=goals,
        perf_tracker=tracker,
        today=lambda: TODAY,
        location_names={LOCATION: "Van Kinsbergen"},
    )


# ---------------------------------------------------------------------------
# Record factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_shift():
    """
    Build a ShiftRecord on WORK_DATE at LOCATION.

    ``start`` / ``end`` are "HH:MM" strings on WORK_DATE (or None).
    """
    from productivity.models.input_schema import ShiftRecord

    def _make(worker_id, team, start=None, end=None, break_minutes=0.0,
              worked_hours=None, wage_cost=None, name=None, on_date=WORK_DATE,
              location_id=LOCATION):
        def at(hhmm):
            if hhmm is None:
                return None
            hour, minute = (int(part) for part in hhmm.split(":"))
            return datetime(on_date.year, on_date.month, on_date.day, hour, minute)
        return ShiftRecord(
            worker_id=worker_id,
            worker_name=name or worker_id.title(),
            location_id=location_id,
            date=on_date,
            team_name=team,
            start=at(start),
            end=at(end),
            break_minutes=break_minutes,
            worked_hours=worked_hours,
            wage_cost=wage_cost,
        )
    return _make


@pytest.fixture
def make_revenue():
    """Build HourlyDivisionRevenue rows from ``{hour: amount}`` for one division."""
    from productivity.models.input_schema import HourlyDivisionRevenue

    def _make(division, amounts, on_date=WORK_DATE, location_id=LOCATION):
        return [
            HourlyDivisionRevenue(location_id=location_id, date=on_date, hour=hour,
                                  division=division, revenue=amount)
            for hour, amount in sorted(amounts.items())
        ]
    return _make


@pytest.fixture
def kitchen_scenario_revenue(make_revenue):
    """
    Food revenue: €100 at 09:00, €200 at 10:00-12:00, €50 at 13:00.
    Daily Food total = 100 + 600 + 50 = 750.
    """
    return make_revenue("Food", {9: 100.0, 10: 200.0, 11: 200.0, 12: 200.0, 13: 50.0})
