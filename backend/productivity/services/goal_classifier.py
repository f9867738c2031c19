"""
Goal classification: (revenue per hour, labor cost %) -> ordinal label.

Labels, worst to best: bad, not_great, ok, great. Each metric is graded on
its own and the node receives the worse of the two grades. Thresholds are
configuration (config.GOAL_THRESHOLDS or PRODUCTIVITY_GOALS_FILE).
"""
import bisect
import json
from typing import Dict, List, Mapping, Optional, Sequence

from productivity import config

GOAL_LABELS: List[str] = list(config.GOAL_LABELS)


class GoalClassifier:

    def __init__(self, thresholds: Optional[Mapping[str, Sequence[float]]] = None):
        thresholds = thresholds if thresholds is not None else config.GOAL_THRESHOLDS
        try:
            rph = [float(v) for v in thresholds["revenue_per_hour"]]
            lcp = [float(v) for v in thresholds["labor_cost_percentage"]]
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed goal thresholds: {e}") from e

        if len(rph) != 3 or rph != sorted(rph) or len(set(rph)) != 3:
            raise ValueError(f"revenue_per_hour needs 3 strictly ascending breakpoints; received {rph}")
        if len(lcp) != 2 or lcp[0] >= lcp[1]:
            raise ValueError(f"labor_cost_percentage needs 2 ascending breakpoints; received {lcp}")

        self.revenue_per_hour_breaks = rph
        self.labor_cost_breaks = lcp

    @classmethod
    def from_file(cls, path: str) -> "GoalClassifier":
        with open(path, "r", encoding="utf-8") as f:
            return cls(json.load(f))

    @classmethod
    def default(cls) -> "GoalClassifier":
        if config.GOALS_FILE:
            return cls.from_file(config.GOALS_FILE)
        return cls()

    def revenue_per_hour_status(self, revenue_per_hour: float) -> str:
        # bad < 45 <= not_great < 55 <= ok < 65 <= great
        return GOAL_LABELS[bisect.bisect_right(self.revenue_per_hour_breaks, revenue_per_hour)]

    def labor_cost_status(self, labor_cost_percentage: float) -> str:
        # great < 30 <= ok <= 32.5 < bad
        low, high = self.labor_cost_breaks
        if labor_cost_percentage < low:
            return "great"
        if labor_cost_percentage <= high:
            return "ok"
        return "bad"

    def classify(self, revenue_per_hour: float, labor_cost_percentage: float) -> str:
        rph_status = self.revenue_per_hour_status(revenue_per_hour)
        lcp_status = self.labor_cost_status(labor_cost_percentage)
        return min(rph_status, lcp_status, key=GOAL_LABELS.index)

    def describe(self) -> Dict[str, List[float]]:
        return {
            "revenue_per_hour": list(self.revenue_per_hour_breaks),
            "labor_cost_percentage": list(self.labor_cost_breaks),
        }
