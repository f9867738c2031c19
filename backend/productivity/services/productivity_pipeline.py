"""
ProductivityEngine: orchestration of the attribution pipeline

Per (location, date) unit, strictly in order:
    shifts ─► TeamClassifier + ShiftDecomposer ─► WorkerHourlyHours
           ─► RevenueAllocator (hourly revenue ledger)   ─► relative revenue
           ─► absolute revenue matching (tagged POS rows)
           ─► HierarchyBuilder (+ GoalClassifier)        ─► productivity tree

Units share no mutable state, so run_range may fan them out over a thread
pool. Every unit builds its own ledger and lookups from read-only inputs.
"""
import logging
import time
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from productivity import config
from productivity.models.input_schema import (
    HourlyDivisionRevenue,
    ShiftRecord,
    WorkerTaggedRevenue,
    WorkerWage,
)
from productivity.models.productivity_models import (
    AttributedRevenue,
    MissingWageWorker,
    UnitResult,
    WorkerHourlyHours,
)
from productivity.services.goal_classifier import GoalClassifier
from productivity.services.hierarchy_builder import HierarchyBuilder, LaborEntry
from productivity.services.perf_monitor import PerformanceTracker, timed, tracker as default_tracker
from productivity.services.record_normalizer import normalize_batch
from productivity.services.revenue_allocator import (
    DivisionRevenueLedger,
    RevenueAllocator,
    match_absolute_revenue,
)
from productivity.services.shift_decomposer import ShiftDecomposer
from productivity.services.sources import RecordSource
from productivity.services.team_classifier import TeamClassification, TeamClassifier

logger = logging.getLogger("productivity-engine.pipeline")


@dataclass
class ProductivitySources:
    shifts: RecordSource
    hourly_revenue: RecordSource
    tagged_revenue: Optional[RecordSource] = None
    wages: Optional[RecordSource] = None


@dataclass
class _UnitInputs:
    shifts: List[ShiftRecord]
    revenue: List[HourlyDivisionRevenue]
    tagged: List[WorkerTaggedRevenue]


def resolve_wage(wages: Iterable[WorkerWage], worker_id: str, on_date: date) -> Optional[float]:
    """Most recent wage effective on ``on_date`` (rows without a date count as oldest)."""
    best: Optional[WorkerWage] = None
    for wage in wages:
        if wage.worker_id != worker_id:
            continue
        if wage.effective_from is not None and wage.effective_from > on_date:
            continue
        if best is None or (wage.effective_from or date.min) >= (best.effective_from or date.min):
            best = wage
    return best.hourly_wage if best else None


class ProductivityEngine:

    def __init__(
        self,
        classifier: Optional[TeamClassifier] = None,
        decomposer: Optional[ShiftDecomposer] = None,
        allocator: Optional[RevenueAllocator] = None,
        goals: Optional[GoalClassifier] = None,
        perf_tracker: Optional[PerformanceTracker] = None,
        today: Optional[Callable[[], date]] = None,
        location_names: Optional[Dict[str, str]] = None,
    ):
        self.classifier = classifier or TeamClassifier.default()
        self.decomposer = decomposer or ShiftDecomposer()
        self.allocator = allocator or RevenueAllocator()
        self.goals = goals or GoalClassifier.default()
        self.builder = HierarchyBuilder(self.goals)
        self.tracker = perf_tracker or default_tracker
        self.today = today or date.today
        self.location_names = dict(location_names or {})

    # ------------------------------------------------------------------
    # Single unit
    # ------------------------------------------------------------------

    @timed
    def run_unit(
        self,
        location_id: str,
        on_date: date,
        shifts: Sequence[ShiftRecord],
        revenue: Sequence[HourlyDivisionRevenue],
        tagged: Sequence[WorkerTaggedRevenue] = (),
        wages: Sequence[WorkerWage] = (),
    ) -> UnitResult:
        """Decomposer → Allocator → Hierarchy Builder for one (location, date)."""
        started = time.perf_counter()

        if on_date > self.today():
            logger.info("future date skipped", extra={"location_id": location_id, "date": on_date})
            self.tracker.record_unit_skipped("skipped_future")
            return UnitResult(location_id=location_id, date=on_date, status="skipped_future")

        shifts = [s for s in shifts if s.location_id == location_id and s.date == on_date]
        revenue = [r for r in revenue if r.location_id == location_id and r.date == on_date]
        tagged = [t for t in tagged if t.location_id == location_id and t.date == on_date]
        ledger = DivisionRevenueLedger(revenue)

        # ── 1. Decompose + classify ──────────────────────────────────────────
        hourly: Dict[Tuple[str, str], WorkerHourlyHours] = {}
        teams: Dict[Tuple[str, str], TeamClassification] = {}
        costs: Dict[Tuple[str, str], float] = defaultdict(float)
        names: Dict[str, str] = {}
        missing_wage: Dict[str, MissingWageWorker] = {}

        for shift in shifts:
            team = self.classifier.classify(shift.team_name)
            key = (shift.worker_id, team.team_key)
            names.setdefault(shift.worker_id, shift.worker_name)
            teams[key] = team

            entry = hourly.get(key)
            if entry is None:
                entry = WorkerHourlyHours(
                    worker_id=shift.worker_id,
                    worker_name=shift.worker_name,
                    team_category=team.category,
                    date=on_date,
                    location_id=location_id,
                    pool_ratios=team.pool_ratios(),
                )
                hourly[key] = entry
            for hour, value in self.decomposer.decompose(shift).items():
                entry.hours_by_hour[hour] = entry.hours_by_hour.get(hour, 0.0) + value

            cost = self._shift_cost(shift, wages, on_date)
            if cost is None:
                if shift.total_hours > 0 and shift.worker_id not in missing_wage:
                    missing_wage[shift.worker_id] = MissingWageWorker(
                        worker_id=shift.worker_id, worker_name=shift.worker_name,
                        location_id=location_id, date=on_date,
                    )
                cost = 0.0
            costs[key] += cost

        # Hours booked per (worker, team), before capping a bucket at one hour
        booked = {key: entry.total_hours for key, entry in hourly.items()}
        for entry in hourly.values():
            self._cap_overlaps(entry)

        # ── 2. Allocate ──────────────────────────────────────────────────────
        worker_hours = [hourly[key] for key in sorted(hourly)]
        allocation = self.allocator.allocate(worker_hours, ledger, location_id, on_date)

        eligible = {worker_id for (worker_id, _), team in teams.items() if team.has_service_share}
        absolute = match_absolute_revenue(tagged, names, eligible)

        if missing_wage:
            logger.warning(
                "workers without wage data; cost counted as 0",
                extra={"location_id": location_id, "date": on_date,
                       "reason": ", ".join(sorted(missing_wage))},
            )

        # ── 3. Hierarchy ─────────────────────────────────────────────────────
        entries = [
            LaborEntry(
                worker_id=worker_id, worker_name=names[worker_id], team=teams[(worker_id, team_key)],
                hours=booked[(worker_id, team_key)], cost=costs[(worker_id, team_key)],
            )
            for worker_id, team_key in sorted(hourly)
        ]
        hierarchy = self.builder.build(
            location_id, on_date, entries, ledger,
            location_name=self.location_names.get(location_id),
        )

        attributed = self._attributed_rows(location_id, on_date, entries, allocation.relative_revenue, absolute)

        status = "ok" if hierarchy is not None else "no_labor"
        if status == "no_labor":
            self.tracker.record_unit_skipped("no_labor")
        else:
            self.tracker.record_unit_complete(round((time.perf_counter() - started) * 1000, 2))

        return UnitResult(
            location_id=location_id,
            date=on_date,
            status=status,
            hierarchy=hierarchy,
            attributed_revenue=attributed,
            allocations=allocation.slots,
            unattributed=allocation.unattributed,
            missing_wage_workers=[missing_wage[k] for k in sorted(missing_wage)],
        )

    # ------------------------------------------------------------------
    # Date range
    # ------------------------------------------------------------------

    def run_range(
        self,
        sources: ProductivitySources,
        location_ids: Sequence[str],
        start: date,
        end: date,
        max_workers: int = config.DEFAULT_MAX_WORKERS,
    ) -> List[UnitResult]:
        """
        Run every (location, date) unit in ``[start, end]``.

        Sources are fetched and normalized once per location. A unit that
        raises is logged and left out; the other units still run. Results
        come back in (location, date) order.
        """
        if end < start:
            raise ValueError(f"end date {end} is before start date {start}")
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1; received {max_workers}")

        days = [start + timedelta(days=offset) for offset in range((end - start).days + 1)]
        jobs = []
        for location_id in sorted(set(location_ids)):
            inputs, wages = self._load_location(sources, location_id, start, end)
            for day in days:
                unit = inputs.get(day) or _UnitInputs([], [], [])
                jobs.append((location_id, day, unit, wages))

        def run(job) -> Optional[UnitResult]:
            location_id, day, unit, wages = job
            try:
                return self.run_unit(location_id, day, unit.shifts, unit.revenue, unit.tagged, wages)
            except Exception:
                logger.exception("unit failed", extra={"location_id": location_id, "date": day})
                self.tracker.record_unit_failed()
                return None

        if max_workers > 1 and len(jobs) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                results = list(pool.map(run, jobs))
        else:
            results = [run(job) for job in jobs]

        return [result for result in results if result is not None]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_location(
        self,
        sources: ProductivitySources,
        location_id: str,
        start: date,
        end: date,
    ) -> Tuple[Dict[date, _UnitInputs], List[WorkerWage]]:
        def load(source: Optional[RecordSource], kind: str) -> list:
            if source is None:
                return []
            records, rejections = normalize_batch(source.fetch(location_id, start, end), kind)
            self.tracker.record_rejections(kind, len(rejections))
            return records

        def in_scope(record) -> bool:
            return record.location_id == location_id and start <= record.date <= end

        by_date: Dict[date, _UnitInputs] = defaultdict(lambda: _UnitInputs([], [], []))
        for shift in filter(in_scope, load(sources.shifts, "shift")):
            by_date[shift.date].shifts.append(shift)
        for row in filter(in_scope, load(sources.hourly_revenue, "hourly_revenue")):
            by_date[row.date].revenue.append(row)
        for row in filter(in_scope, load(sources.tagged_revenue, "tagged_revenue")):
            by_date[row.date].tagged.append(row)
        wages = load(sources.wages, "wage")
        return dict(by_date), wages

    @staticmethod
    def _shift_cost(shift: ShiftRecord, wages: Sequence[WorkerWage], on_date: date) -> Optional[float]:
        if shift.wage_cost is not None:
            return shift.wage_cost
        wage = resolve_wage(wages, shift.worker_id, on_date)
        if wage is None:
            return None
        return shift.total_hours * wage

    @staticmethod
    def _cap_overlaps(entry: WorkerHourlyHours) -> None:
        # Overlapping shifts of one worker cannot exceed a full hour per bucket
        over = [hour for hour, value in entry.hours_by_hour.items() if value > 1.0]
        if over:
            logger.warning(
                "overlapping shifts capped at one hour per bucket",
                extra={"location_id": entry.location_id, "date": entry.date,
                       "worker_id": entry.worker_id, "reason": f"hours {sorted(over)}"},
            )
            for hour in over:
                entry.hours_by_hour[hour] = 1.0

    @staticmethod
    def _attributed_rows(
        location_id: str,
        on_date: date,
        entries: Sequence[LaborEntry],
        relative: Dict[str, float],
        absolute: Dict[str, float],
    ) -> List[AttributedRevenue]:
        by_worker: Dict[str, List[LaborEntry]] = defaultdict(list)
        for entry in entries:
            by_worker[entry.worker_id].append(entry)

        rows = []
        for worker_id in sorted(by_worker):
            worker_entries = by_worker[worker_id]
            # Category of the team the worker spent most hours in
            main = max(worker_entries, key=lambda e: (e.hours, e.team.team_key))
            rows.append(AttributedRevenue(
                worker_id=worker_id,
                worker_name=main.worker_name,
                location_id=location_id,
                date=on_date,
                team_category=main.team.category,
                total_hours=sum(e.hours for e in worker_entries),
                total_cost=sum(e.cost for e in worker_entries),
                absolute_revenue=absolute.get(worker_id, 0.0),
                relative_revenue=relative.get(worker_id, 0.0),
            ))
        return rows
