"""
Celery Tasks: one productivity unit per task.

Payload (JSON-safe dict):
    {
      "location_id": "loc-1",
      "date": "2025-03-10",
      "shifts": [...raw shift rows...],
      "hourly_revenue": [...], "tagged_revenue": [...], "wages": [...],
      "team_mapping": {...}            # optional, replaces the default table
    }
"""
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

from productivity.services.perf_monitor import tracker
from productivity.services.productivity_pipeline import ProductivityEngine
from productivity.services.record_normalizer import normalize_batch, parse_date, record_scope
from productivity.services.team_classifier import TeamClassifier
from productivity.workers.celery_app import celery_app

logger = logging.getLogger("productivity-engine.celery")


def _records(payload: Dict[str, Any], field: str, kind: str) -> list:
    records, rejections = normalize_batch(payload.get(field) or [], kind)
    tracker.record_rejections(kind, len(rejections))
    return records


@celery_app.task(name="tasks.build_productivity_unit")
def build_productivity_unit(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Run one (location, date) unit and return the UnitResult as a JSON-safe dict."""
    location_id = str(payload.get("location_id") or "").strip()
    on_date = parse_date(payload.get("date"))
    if not location_id or on_date is None:
        raise ValueError("payload needs a location_id and an ISO date")

    mapping = payload.get("team_mapping")
    classifier = TeamClassifier.from_mapping(mapping) if mapping else None
    engine = ProductivityEngine(classifier=classifier)

    try:
        result = engine.run_unit(
            location_id,
            on_date,
            _records(payload, "shifts", "shift"),
            _records(payload, "hourly_revenue", "hourly_revenue"),
            _records(payload, "tagged_revenue", "tagged_revenue"),
            _records(payload, "wages", "wage"),
        )
    except Exception as e:
        logger.error(f"Productivity unit failed for {location_id} {on_date}: {e}")
        tracker.record_unit_failed()
        raise
    return result.model_dump(mode="json")


def _rows_for(
    rows: Iterable[Dict[str, Any]],
    kind: str,
    location_id: str,
    on_date: date,
) -> List[Dict[str, Any]]:
    """Raw rows of one unit; rows whose location/date cannot be read go to every unit."""
    selected = []
    for row in rows:
        if not isinstance(row, Mapping):
            # left for the unit's normalizer to reject
            selected.append(row)
            continue
        row_location, row_date = record_scope(row, kind)
        if row_location is not None and row_location != location_id:
            continue
        if row_date is not None and row_date != on_date:
            continue
        selected.append(row)
    return selected


def enqueue_range(
    location_ids: Iterable[str],
    dates: Iterable[date],
    shifts: List[Dict[str, Any]],
    hourly_revenue: List[Dict[str, Any]],
    tagged_revenue: Optional[List[Dict[str, Any]]] = None,
    wages: Optional[List[Dict[str, Any]]] = None,
    team_mapping: Optional[Dict[str, Any]] = None,
) -> list:
    """Dispatch one build_productivity_unit task per (location, date). Returns the AsyncResults."""
    dates = sorted(set(dates))
    handles = []
    for location_id in sorted(set(location_ids)):
        for on_date in dates:
            payload = {
                "location_id": location_id,
                "date": on_date.isoformat(),
                "shifts": _rows_for(shifts, "shift", location_id, on_date),
                "hourly_revenue": _rows_for(hourly_revenue, "hourly_revenue", location_id, on_date),
                "tagged_revenue": _rows_for(tagged_revenue or [], "tagged_revenue", location_id, on_date),
                # wage history is not per-date
                "wages": list(wages or []),
            }
            if team_mapping:
                payload["team_mapping"] = team_mapping
            handles.append(build_productivity_unit.delay(payload))
    logger.info("productivity units enqueued", extra={"reason": f"{len(handles)} tasks"})
    return handles
