"""
HierarchyBuilder: multi-level productivity tree for one (location, date)

    Location
      └─ Division          (Food / Beverage / Management / Other)
           └─ TeamCategory (Kitchen / Service / Management / Other)
                └─ SubTeam (raw team, e.g. "Afwas")
                     └─ Worker

Hours and cost are accumulated at the worker level and summed upwards.
Split teams are placed under both Food/Kitchen and Beverage/Service, each
copy carrying its ratio-scaled hours and cost.

Revenue runs the other way: the location takes the venue daily total, each
division its own authoritative daily total (Management/Other have none),
and every level below receives its parent's revenue in proportion to its
share of the parent's hours.

Ratios are recomputed from each node's own totals:
    revenue_per_hour      = total_revenue / total_hours        (0 if no hours)
    labor_cost_percentage = total_cost / total_revenue × 100   (0 if no revenue)
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from productivity.models.productivity_models import ProductivityHierarchy, ProductivityNode
from productivity.services.goal_classifier import GoalClassifier
from productivity.services.revenue_allocator import DivisionRevenueLedger
from productivity.services.team_classifier import TeamClassification

logger = logging.getLogger("productivity-engine.hierarchy")

# Divisions fed by the hourly revenue source
_REVENUE_DIVISIONS = ("Food", "Beverage")


@dataclass(frozen=True)
class LaborEntry:
    """Hours and cost one worker booked under one team on the unit's date."""
    worker_id: str
    worker_name: str
    team: TeamClassification
    hours: float
    cost: float


def finalize_node(node: ProductivityNode, goals: GoalClassifier) -> ProductivityNode:
    """Recompute derived ratios and goal status for ``node`` and all descendants."""
    node.revenue_per_hour = node.total_revenue / node.total_hours if node.total_hours > 0 else 0.0
    node.labor_cost_percentage = (
        node.total_cost / node.total_revenue * 100.0 if node.total_revenue > 0 else 0.0
    )
    node.goal_status = goals.classify(node.revenue_per_hour, node.labor_cost_percentage)
    for child in node.children.values():
        finalize_node(child, goals)
    return node


class HierarchyBuilder:

    def __init__(self, goals: Optional[GoalClassifier] = None):
        self.goals = goals or GoalClassifier()

    def build(
        self,
        location_id: str,
        on_date: date,
        entries: Iterable[LaborEntry],
        ledger: DivisionRevenueLedger,
        location_name: Optional[str] = None,
    ) -> Optional[ProductivityHierarchy]:
        """
        Returns None when the unit has no labor at all, so "nobody worked"
        stays distinguishable from a zero-valued tree.
        """
        entries = list(entries)
        if not entries:
            logger.info("no labor records; no hierarchy built",
                        extra={"location_id": location_id, "date": on_date})
            return None

        root = ProductivityNode(key=location_id, label=location_name or location_id, level="location")

        # ── 1. Place hours and cost at worker level ──────────────────────────
        for entry in entries:
            for division, ratio in entry.team.division_ratios().items():
                category = self._category_under(entry.team, division)
                division_node = self._child(root, division, division, "division")
                category_node = self._child(division_node, category, category, "team_category")
                sub_key = entry.team.team_key or "unassigned"
                sub_node = self._child(category_node, sub_key, entry.team.display_name, "sub_team")
                worker_node = self._child(sub_node, entry.worker_id, entry.worker_name, "worker")
                worker_node.total_hours += entry.hours * ratio
                worker_node.total_cost += max(0.0, entry.cost) * ratio

        # ── 2. Roll hours and cost upwards ───────────────────────────────────
        self._sum_up(root)

        # ── 3. Distribute revenue downwards ──────────────────────────────────
        root.total_revenue = ledger.daily_total("All")
        for division_key, division_node in root.children.items():
            division_node.total_revenue = (
                ledger.daily_total(division_key) if division_key in _REVENUE_DIVISIONS else 0.0
            )
            self._redistribute(division_node)

        # ── 4. Deterministic order + ratios ──────────────────────────────────
        self._sort_children(root)
        finalize_node(root, self.goals)

        return ProductivityHierarchy(
            location_id=location_id,
            location_name=location_name or location_id,
            date=on_date,
            root=root,
        )

    # ------------------------------------------------------------------

    @staticmethod
    def _category_under(team: TeamClassification, division: str) -> str:
        if team.is_split:
            return "Kitchen" if division == "Food" else "Service"
        return team.category

    @staticmethod
    def _child(parent: ProductivityNode, key: str, label: str, level: str) -> ProductivityNode:
        node = parent.children.get(key)
        if node is None:
            node = ProductivityNode(key=key, label=label, level=level)
            parent.children[key] = node
        return node

    def _sum_up(self, node: ProductivityNode) -> None:
        if not node.children:
            return
        for child in node.children.values():
            self._sum_up(child)
        node.total_hours = sum(child.total_hours for child in node.children.values())
        node.total_cost = sum(child.total_cost for child in node.children.values())

    def _redistribute(self, node: ProductivityNode) -> None:
        for child in node.children.values():
            if node.total_hours > 0:
                child.total_revenue = node.total_revenue * child.total_hours / node.total_hours
            else:
                child.total_revenue = 0.0
            self._redistribute(child)

    def _sort_children(self, node: ProductivityNode) -> None:
        node.children = {key: node.children[key] for key in sorted(node.children)}
        for child in node.children.values():
            self._sort_children(child)


def flatten(hierarchy: ProductivityHierarchy) -> List[dict]:
    """Depth-first rows (one per node) with a slash-joined path, for tabular export."""
    rows: List[dict] = []

    def visit(node: ProductivityNode, path: List[str]) -> None:
        path = path + [node.label]
        rows.append({
            "location_id": hierarchy.location_id,
            "date": hierarchy.date,
            "level": node.level,
            "key": node.key,
            "path": " / ".join(path),
            "total_hours": node.total_hours,
            "total_cost": node.total_cost,
            "total_revenue": node.total_revenue,
            "revenue_per_hour": node.revenue_per_hour,
            "labor_cost_percentage": node.labor_cost_percentage,
            "goal_status": node.goal_status,
        })
        for child in node.children.values():
            visit(child, path)

    visit(hierarchy.root, [])
    return rows
