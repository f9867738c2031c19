"""
test_goal_classifier.py: Unit tests for GoalClassifier.

Default thresholds:
  revenue/hour: bad < 45 <= not_great < 55 <= ok < 65 <= great
  labor cost %: great < 30 <= ok <= 32.5 < bad
The overall label is the worse of the two.
"""

import json

import pytest

from productivity.services.goal_classifier import GoalClassifier


class TestRevenuePerHourBands:

    @pytest.mark.parametrize("rph, expected", [
        (0.0, "bad"),
        (44.99, "bad"),
        (45.0, "not_great"),
        (54.99, "not_great"),
        (55.0, "ok"),
        (64.99, "ok"),
        (65.0, "great"),
        (120.0, "great"),
    ])
    def test_band_edges(self, goals, rph, expected):
        assert goals.revenue_per_hour_status(rph) == expected


class TestLaborCostBands:

    @pytest.mark.parametrize("lcp, expected", [
        (0.0, "great"),
        (29.99, "great"),
        (30.0, "ok"),
        (32.5, "ok"),
        (32.51, "bad"),
        (80.0, "bad"),
    ])
    def test_band_edges(self, goals, lcp, expected):
        assert goals.labor_cost_status(lcp) == expected


class TestCombined:

    def test_worse_of_both(self, goals):
        """rph 70 (great) with labor cost 35 % (bad) → bad."""
        assert goals.classify(70.0, 35.0) == "bad"

    def test_both_great(self, goals):
        assert goals.classify(70.0, 25.0) == "great"

    def test_ok_and_great(self, goals):
        """rph 60 (ok) and labor cost 20 % (great) → ok."""
        assert goals.classify(60.0, 20.0) == "ok"

    def test_zero_everything_is_bad(self, goals):
        """No revenue → rph 0 → bad, regardless of labor cost 0 → great."""
        assert goals.classify(0.0, 0.0) == "bad"


class TestConfiguration:

    def test_custom_thresholds(self):
        strict = GoalClassifier({"revenue_per_hour": [50, 70, 90], "labor_cost_percentage": [25, 28]})
        assert strict.classify(60.0, 20.0) == "not_great"
        assert strict.classify(95.0, 27.0) == "ok"

    @pytest.mark.parametrize("thresholds", [
        {"revenue_per_hour": [65, 55, 45], "labor_cost_percentage": [30, 32.5]},
        {"revenue_per_hour": [45, 55], "labor_cost_percentage": [30, 32.5]},
        {"revenue_per_hour": [45, 55, 65], "labor_cost_percentage": [32.5, 30]},
        {"revenue_per_hour": [45, 55, 65]},
        {"revenue_per_hour": ["a", 55, 65], "labor_cost_percentage": [30, 32.5]},
    ])
    def test_malformed_thresholds_rejected(self, thresholds):
        with pytest.raises(ValueError):
            GoalClassifier(thresholds)

    def test_from_file(self, tmp_path):
        path = tmp_path / "goals.json"
        path.write_text(json.dumps({"revenue_per_hour": [40, 50, 60], "labor_cost_percentage": [28, 31]}))
        loaded = GoalClassifier.from_file(str(path))
        assert loaded.describe() == {
            "revenue_per_hour": [40.0, 50.0, 60.0],
            "labor_cost_percentage": [28.0, 31.0],
        }
        assert loaded.classify(61.0, 27.0) == "great"
