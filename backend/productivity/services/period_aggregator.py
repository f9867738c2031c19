"""Roll daily attributed-revenue rows up to day / week / month / year periods."""
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from productivity import config
from productivity.models.productivity_models import AttributedRevenue
from productivity.services.goal_classifier import GoalClassifier


class PeriodProductivity(BaseModel):
    period: str
    period_type: str
    location_id: str
    worker_id: str
    worker_name: str
    team_category: str
    days_worked: int = 0
    total_hours: float = 0.0
    total_cost: float = 0.0
    absolute_revenue: float = 0.0
    relative_revenue: float = 0.0
    revenue_per_hour: float = 0.0
    labor_cost_percentage: float = 0.0
    goal_status: Optional[str] = None


def period_key(day: date, period_type: str) -> str:
    """``2025-03-10`` -> day ``2025-03-10`` / week ``2025-W11`` / month ``2025-03`` / year ``2025``."""
    if period_type == "day":
        return day.isoformat()
    if period_type == "week":
        iso_year, iso_week, _ = day.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    if period_type == "month":
        return f"{day.year}-{day.month:02d}"
    if period_type == "year":
        return str(day.year)
    raise ValueError(f"Unknown period type {period_type!r}; expected one of {config.PERIOD_TYPES}")


def aggregate_attributed_revenue(
    rows: Iterable[AttributedRevenue],
    period_type: str = "day",
    goals: Optional[GoalClassifier] = None,
) -> List[PeriodProductivity]:
    if period_type not in config.PERIOD_TYPES:
        raise ValueError(f"Unknown period type {period_type!r}; expected one of {config.PERIOD_TYPES}")
    goals = goals or GoalClassifier()

    groups: Dict[Tuple[str, str, str], PeriodProductivity] = {}
    days: Dict[Tuple[str, str, str], set] = defaultdict(set)
    for row in rows:
        key = (period_key(row.date, period_type), row.location_id, row.worker_id)
        agg = groups.get(key)
        if agg is None:
            agg = PeriodProductivity(
                period=key[0], period_type=period_type, location_id=row.location_id,
                worker_id=row.worker_id, worker_name=row.worker_name,
                team_category=row.team_category,
            )
            groups[key] = agg
        days[key].add(row.date)
        agg.total_hours += row.total_hours
        agg.total_cost += row.total_cost
        agg.absolute_revenue += row.absolute_revenue
        agg.relative_revenue += row.relative_revenue

    for key, agg in groups.items():
        agg.days_worked = len(days[key])
        agg.revenue_per_hour = agg.relative_revenue / agg.total_hours if agg.total_hours > 0 else 0.0
        agg.labor_cost_percentage = (
            agg.total_cost / agg.relative_revenue * 100.0 if agg.relative_revenue > 0 else 0.0
        )
        agg.goal_status = goals.classify(agg.revenue_per_hour, agg.labor_cost_percentage)

    # Newest period first, then location, then worker name
    result = sorted(groups.values(), key=lambda a: (a.location_id, a.worker_name.casefold(), a.worker_id))
    result.sort(key=lambda a: a.period, reverse=True)
    return result
