"""
revenue_allocator.py: time-weighted revenue attribution for one (location, date)

Relative revenue (shared):
  For every hour and allocation pool, the hour's pool revenue is split
  across the workers active in that pool, proportional to their fractional
  hours in that hour:

      share(W, H, P) = hours(W, H) × ratio(W, P) / Σ hours(·, H, P) × revenue(H, P)

  Pools: Kitchen hours share Food revenue; Service hours share the venue
  total ("All"); split teams take part in both with their ratio.
  Management/Other share nothing. An hour with revenue but no contributing
  hours is recorded as unattributed ("house") revenue.

  Conservation: for every slot with a positive denominator the shares sum
  to the source revenue. With a denominator floor (min_denominator=1.0) an
  hour staffed below one worker-hour credits only the staffed share and the
  rest is recorded as house revenue, so shares + house still add up.

Absolute revenue (unshared):
  Read straight from worker-tagged POS rows and matched to rostered workers
  by id, then by exact name, then by unambiguous partial name.
"""
import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from productivity import config
from productivity.models.input_schema import HourlyDivisionRevenue, WorkerTaggedRevenue
from productivity.models.productivity_models import (
    SlotAllocation,
    UnattributedSlot,
    WorkerHourlyHours,
)

logger = logging.getLogger("productivity-engine.allocator")

_NON_WORD = re.compile(r"[\W_]+", re.UNICODE)


# ---------------------------------------------------------------------------
# Division revenue ledger
# ---------------------------------------------------------------------------

class DivisionRevenueLedger:
    """
    Hour × division revenue for a single (location, date), built from the
    hourly revenue source. Duplicate (hour, division) rows are summed.
    """

    def __init__(self, rows: Iterable[HourlyDivisionRevenue]):
        self._cells: Dict[Tuple[int, str], float] = defaultdict(float)
        seen = set()
        for row in rows:
            cell = (row.hour, row.division)
            if cell in seen:
                logger.warning(
                    "duplicate hourly revenue row summed",
                    extra={"location_id": row.location_id, "date": row.date,
                           "reason": f"hour={row.hour} division={row.division}"},
                )
            seen.add(cell)
            self._cells[cell] += row.revenue

    def hourly(self, hour: int, division: str) -> float:
        """Revenue for one division in one hour. An hour with no "All" row uses Food + Beverage."""
        if division == "All" and (hour, "All") not in self._cells:
            return self._cells.get((hour, "Food"), 0.0) + self._cells.get((hour, "Beverage"), 0.0)
        return self._cells.get((hour, division), 0.0)

    def daily_total(self, division: str) -> float:
        return sum(self.hourly(hour, division) for hour in range(config.HOURS_IN_DAY))

    def is_empty(self) -> bool:
        return not any(value > 0 for value in self._cells.values())


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------

@dataclass
class AllocationResult:
    relative_revenue: Dict[str, float] = field(default_factory=dict)            # worker_id -> total
    relative_by_hour: Dict[str, Dict[int, float]] = field(default_factory=dict)  # worker_id -> hour -> revenue
    slots: List[SlotAllocation] = field(default_factory=list)
    unattributed: List[UnattributedSlot] = field(default_factory=list)

    def share_for(self, worker_id: str, hour: int) -> float:
        """Revenue credited to ``worker_id`` for ``hour`` (all pools combined)."""
        return self.relative_by_hour.get(worker_id, {}).get(hour, 0.0)

    @property
    def total_attributed(self) -> float:
        return sum(self.relative_revenue.values())

    @property
    def total_unattributed(self) -> float:
        return sum(slot.revenue for slot in self.unattributed)


# ---------------------------------------------------------------------------
# RevenueAllocator
# ---------------------------------------------------------------------------

class RevenueAllocator:
    """Stateless: one call per (location, date) unit, no data kept between calls."""

    def __init__(
        self,
        pools: Optional[Dict[str, str]] = None,
        min_denominator: float = config.ALLOCATION_MIN_DENOMINATOR,
    ):
        if min_denominator < 0:
            raise ValueError(f"min_denominator must be >= 0; received {min_denominator}")
        pools = pools if pools is not None else config.ALLOCATION_POOLS
        self.min_denominator = min_denominator
        # Pool divisions in a stable order, e.g. ["All", "Food"]
        self.pool_divisions: List[str] = sorted(set(pools.values()))

    def allocate(
        self,
        worker_hours: Sequence[WorkerHourlyHours],
        ledger: DivisionRevenueLedger,
        location_id: str,
        on_date: date,
    ) -> AllocationResult:
        result = AllocationResult()
        for entry in worker_hours:
            result.relative_revenue.setdefault(entry.worker_id, 0.0)

        for pool in self.pool_divisions:
            for hour in range(config.HOURS_IN_DAY):
                revenue = ledger.hourly(hour, pool)
                if revenue <= 0:
                    continue

                weights = self._weights(worker_hours, hour, pool)
                denominator = sum(weights.values())
                if denominator <= 0:
                    # Nobody in this pool worked this hour
                    result.unattributed.append(UnattributedSlot(
                        location_id=location_id, date=on_date, hour=hour,
                        division=pool, revenue=revenue,
                    ))
                    continue

                effective = max(denominator, self.min_denominator)
                shares = {worker_id: weight / effective * revenue for worker_id, weight in weights.items()}
                attributed = sum(shares.values())
                if effective > denominator:
                    # Under-covered hour: the unstaffed share stays with the house
                    result.unattributed.append(UnattributedSlot(
                        location_id=location_id, date=on_date, hour=hour,
                        division=pool, revenue=revenue - attributed,
                    ))
                for worker_id, share in shares.items():
                    result.relative_revenue[worker_id] = result.relative_revenue.get(worker_id, 0.0) + share
                    by_hour = result.relative_by_hour.setdefault(worker_id, {})
                    by_hour[hour] = by_hour.get(hour, 0.0) + share
                result.slots.append(SlotAllocation(
                    hour=hour, division=pool, revenue=revenue, attributed=attributed,
                    denominator=denominator, shares=shares,
                ))

        if result.unattributed:
            logger.info(
                "revenue with no contributing hours left unattributed",
                extra={"location_id": location_id, "date": on_date,
                       "reason": f"{len(result.unattributed)} slots, {result.total_unattributed:.2f} total"},
            )
        return result

    @staticmethod
    def _weights(worker_hours: Sequence[WorkerHourlyHours], hour: int, pool: str) -> Dict[str, float]:
        weights: Dict[str, float] = {}
        for entry in worker_hours:
            ratio = entry.pool_ratios.get(pool, 0.0)
            worked = entry.hours_by_hour.get(hour, 0.0)
            if ratio <= 0 or worked <= 0:
                continue
            # Same worker may appear under two teams on one day
            weights[entry.worker_id] = weights.get(entry.worker_id, 0.0) + worked * ratio
        return dict(sorted(weights.items()))


# ---------------------------------------------------------------------------
# Absolute revenue
# ---------------------------------------------------------------------------

def normalize_person_name(name: Optional[str]) -> str:
    if not name:
        return ""
    return " ".join(_NON_WORD.sub(" ", name.casefold()).split())


def match_absolute_revenue(
    tagged: Iterable[WorkerTaggedRevenue],
    workers: Dict[str, str],
    eligible: Iterable[str],
) -> Dict[str, float]:
    """
    Credit worker-tagged POS revenue to rostered workers.

    ``workers`` maps worker_id -> display name for everyone in the unit;
    only ids in ``eligible`` (staff with Service participation) are
    credited. Every worker in ``workers`` gets an entry, 0 when untagged.
    """
    eligible_ids = set(eligible)
    absolute: Dict[str, float] = {worker_id: 0.0 for worker_id in workers}
    by_name = {worker_id: normalize_person_name(name) for worker_id, name in workers.items()}

    for row in tagged:
        worker_id = _match_worker(row, workers, by_name)
        if worker_id is None:
            continue
        if worker_id not in eligible_ids:
            logger.debug(
                "tagged revenue for non-service worker ignored",
                extra={"location_id": row.location_id, "date": row.date, "worker_id": worker_id},
            )
            continue
        absolute[worker_id] += row.revenue
    return absolute


def _match_worker(
    row: WorkerTaggedRevenue,
    workers: Dict[str, str],
    by_name: Dict[str, str],
) -> Optional[str]:
    if row.worker_id and row.worker_id in workers:
        return row.worker_id

    name = normalize_person_name(row.worker_name)
    if not name:
        return None

    exact = sorted(worker_id for worker_id, candidate in by_name.items() if candidate == name)
    if len(exact) == 1:
        return exact[0]
    if len(exact) > 1:
        logger.warning(
            "tagged revenue name matches several workers; not credited",
            extra={"location_id": row.location_id, "date": row.date, "reason": row.worker_name},
        )
        return None

    partial = sorted(
        worker_id for worker_id, candidate in by_name.items()
        if candidate and (name in candidate or candidate in name)
    )
    if len(partial) == 1:
        return partial[0]
    if partial:
        logger.warning(
            "tagged revenue name is ambiguous; not credited",
            extra={"location_id": row.location_id, "date": row.date, "reason": row.worker_name},
        )
    return None
