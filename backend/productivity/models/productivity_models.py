"""
Result models produced by the attribution engine.

ProductivityNode trees and AttributedRevenue rows are value objects: built
fresh per (location, date) unit and never mutated once returned.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

NodeLevel = Literal["location", "division", "team_category", "sub_team", "worker"]
UnitStatus = Literal["ok", "skipped_future", "no_labor"]


@dataclass
class WorkerHourlyHours:
    """Fractional hours per hour bucket for one worker on one date at one location."""
    worker_id: str
    worker_name: str
    team_category: str
    date: date
    location_id: str
    hours_by_hour: Dict[int, float] = field(default_factory=dict)
    # Share of these hours each allocation pool sees, e.g. {"Food": 0.5, "All": 0.5}
    pool_ratios: Dict[str, float] = field(default_factory=dict)

    @property
    def total_hours(self) -> float:
        return sum(self.hours_by_hour.values())


class SlotAllocation(BaseModel):
    """Audit record for one (hour, pool division) revenue split."""
    hour: int
    division: str
    revenue: float             # source revenue for the slot
    attributed: float          # sum of shares; equals revenue unless the slot was under-covered
    denominator: float
    shares: Dict[str, float]   # worker_id -> allocated revenue


class UnattributedSlot(BaseModel):
    """Revenue for an hour/division nobody was rostered on ("house" revenue)."""
    location_id: str
    date: date
    hour: int
    division: str
    revenue: float


class AttributedRevenue(BaseModel):
    """Flat per-(worker, date, location) row for tabular productivity views."""
    worker_id: str
    worker_name: str
    location_id: str
    date: date
    team_category: str
    total_hours: float = 0.0
    total_cost: float = 0.0
    absolute_revenue: float = 0.0   # direct, from worker-tagged POS rows
    relative_revenue: float = 0.0   # proportional share of hourly revenue


class ProductivityNode(BaseModel):
    """
    Generic hierarchy node. Ratios are always recomputed from the node's own
    totals (see hierarchy_builder.finalize_node), never averaged from children.
    """
    key: str
    label: str
    level: NodeLevel
    total_hours: float = 0.0
    total_cost: float = 0.0
    total_revenue: float = 0.0
    revenue_per_hour: float = 0.0
    labor_cost_percentage: float = 0.0
    goal_status: Optional[str] = None
    children: Dict[str, "ProductivityNode"] = Field(default_factory=dict)


class ProductivityHierarchy(BaseModel):
    location_id: str
    location_name: str
    date: date
    root: ProductivityNode


class MissingWageWorker(BaseModel):
    worker_id: str
    worker_name: str
    location_id: str
    date: date


class RecordRejection(BaseModel):
    kind: str
    index: int
    reason: str


class UnitResult(BaseModel):
    """Everything one (location, date) run produces."""
    location_id: str
    date: date
    status: UnitStatus
    hierarchy: Optional[ProductivityHierarchy] = None
    attributed_revenue: List[AttributedRevenue] = Field(default_factory=list)
    allocations: List[SlotAllocation] = Field(default_factory=list)
    unattributed: List[UnattributedSlot] = Field(default_factory=list)
    missing_wage_workers: List[MissingWageWorker] = Field(default_factory=list)


ProductivityNode.model_rebuild()
