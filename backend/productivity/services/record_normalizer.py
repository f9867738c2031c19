"""
Record normalizer: turns loosely-typed provider rows into strict records.

Every field is read through one ordered alias list (config.FIELD_ALIASES):
the first alias holding a non-empty value wins. Rows that fail structural
validation are rejected here with a logged reason; unparsable shift
timestamps are not rejections, they become None so the decomposer can fall
back to its estimate.
"""
import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ValidationError

from productivity.config import DIVISION_TAGS, FIELD_ALIASES
from productivity.models.input_schema import (
    HourlyDivisionRevenue,
    ShiftRecord,
    WorkerTaggedRevenue,
    WorkerWage,
)
from productivity.models.productivity_models import RecordRejection

logger = logging.getLogger("productivity-engine.ingestion")

_MISSING = object()


class RecordValidationError(ValueError):
    """A provider row cannot be turned into a typed record."""


# ---------------------------------------------------------------------------
# Field lookup helpers
# ---------------------------------------------------------------------------

def _dig(row: Mapping[str, Any], dotted: str) -> Any:
    current: Any = row
    for part in dotted.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def pick(row: Mapping[str, Any], aliases: Iterable[str]) -> Any:
    """Return the first non-empty value among ``aliases`` (None if all missing)."""
    for alias in aliases:
        value = _dig(row, alias)
        if value is _MISSING or value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def parse_date(value: Any) -> Optional[date]:
    """Accept date, datetime or ISO strings (``2025-03-10`` / ``2025-03-10T00:00:00Z``)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp; returns None for anything unusable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _as_float(value: Any, field_name: str) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise RecordValidationError(f"{field_name} is not numeric: {value!r}")


def _as_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Mapping):
        # Mongo-style {"$oid": "..."} exports
        value = value.get("$oid") or value.get("id")
    text = str(value).strip() if value is not None else ""
    return text or None


def _validated(model: type, data: Dict[str, Any]) -> BaseModel:
    try:
        return model(**data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}" for err in e.errors()
        )
        raise RecordValidationError(problems) from e


def record_scope(row: Mapping[str, Any], kind: str) -> Tuple[Optional[str], Optional[date]]:
    """
    ``(location_id, date)`` of a raw row, read through the same aliases the
    normalizers use. Either part is None when the row does not carry it.
    """
    aliases = FIELD_ALIASES[kind]
    location_id = _as_id(pick(row, aliases["location_id"])) if "location_id" in aliases else None
    row_date = parse_date(pick(row, aliases["date"])) if "date" in aliases else None
    if row_date is None and "start" in aliases:
        start = parse_timestamp(pick(row, aliases["start"]))
        row_date = start.date() if start is not None else None
    return location_id, row_date


# ---------------------------------------------------------------------------
# Per-kind normalizers
# ---------------------------------------------------------------------------

def normalize_shift(row: Mapping[str, Any]) -> ShiftRecord:
    aliases = FIELD_ALIASES["shift"]
    start = parse_timestamp(pick(row, aliases["start"]))
    end = parse_timestamp(pick(row, aliases["end"]))
    shift_date = parse_date(pick(row, aliases["date"]))
    if shift_date is None and start is not None:
        shift_date = start.date()
    if shift_date is None:
        raise RecordValidationError("shift has no usable date")

    worked_hours = _as_float(pick(row, aliases["worked_hours"]), "worked_hours")
    if (start is None or end is None) and worked_hours is None:
        raise RecordValidationError("shift has neither usable timestamps nor a worked-hours total")

    return _validated(ShiftRecord, {
        "worker_id": _as_id(pick(row, aliases["worker_id"])) or "",
        "worker_name": str(pick(row, aliases["worker_name"]) or "Unknown"),
        "location_id": _as_id(pick(row, aliases["location_id"])) or "",
        "date": shift_date,
        "team_name": str(pick(row, aliases["team_name"]) or ""),
        "start": start,
        "end": end,
        "break_minutes": _as_float(pick(row, aliases["break_minutes"]), "break_minutes") or 0.0,
        "worked_hours": worked_hours,
        "wage_cost": _as_float(pick(row, aliases["wage_cost"]), "wage_cost"),
    })


def normalize_division(value: Any) -> str:
    tag = DIVISION_TAGS.get(str(value or "").strip().lower())
    if tag is None:
        raise RecordValidationError(f"unknown division tag: {value!r}")
    return tag


def normalize_hourly_revenue(row: Mapping[str, Any]) -> HourlyDivisionRevenue:
    aliases = FIELD_ALIASES["hourly_revenue"]
    hour = _as_float(pick(row, aliases["hour"]), "hour")
    if hour is None or not float(hour).is_integer():
        raise RecordValidationError(f"hour bucket must be an integer 0-23, got {hour!r}")
    return _validated(HourlyDivisionRevenue, {
        "location_id": _as_id(pick(row, aliases["location_id"])) or "",
        "date": parse_date(pick(row, aliases["date"])),
        "hour": int(hour),
        "division": normalize_division(pick(row, aliases["division"])),
        "revenue": _as_float(pick(row, aliases["revenue"]), "revenue"),
    })


def normalize_tagged_revenue(row: Mapping[str, Any]) -> WorkerTaggedRevenue:
    aliases = FIELD_ALIASES["tagged_revenue"]
    hour = _as_float(pick(row, aliases["hour"]), "hour")
    return _validated(WorkerTaggedRevenue, {
        "location_id": _as_id(pick(row, aliases["location_id"])) or "",
        "date": parse_date(pick(row, aliases["date"])),
        "hour": int(hour) if hour is not None else None,
        "worker_id": _as_id(pick(row, aliases["worker_id"])),
        "worker_name": str(pick(row, aliases["worker_name"]) or ""),
        "revenue": _as_float(pick(row, aliases["revenue"]), "revenue"),
    })


def normalize_wage(row: Mapping[str, Any]) -> WorkerWage:
    aliases = FIELD_ALIASES["wage"]
    return _validated(WorkerWage, {
        "worker_id": _as_id(pick(row, aliases["worker_id"])) or "",
        "hourly_wage": _as_float(pick(row, aliases["hourly_wage"]), "hourly_wage"),
        "effective_from": parse_date(pick(row, aliases["effective_from"])),
    })


NORMALIZERS: Dict[str, Callable[[Mapping[str, Any]], BaseModel]] = {
    "shift": normalize_shift,
    "hourly_revenue": normalize_hourly_revenue,
    "tagged_revenue": normalize_tagged_revenue,
    "wage": normalize_wage,
}


def normalize_batch(
    rows: Iterable[Mapping[str, Any]],
    kind: str,
) -> Tuple[List[BaseModel], List[RecordRejection]]:
    """
    Normalize a batch of raw rows of one ``kind``.

    Returns ``(records, rejections)``. A bad row is logged and excluded;
    it never aborts the rest of the batch.
    """
    if kind not in NORMALIZERS:
        raise ValueError(f"Unknown record kind {kind!r}; expected one of {sorted(NORMALIZERS)}")
    normalizer = NORMALIZERS[kind]

    records: List[BaseModel] = []
    rejections: List[RecordRejection] = []
    for index, row in enumerate(rows):
        if not isinstance(row, Mapping):
            reason = f"expected an object, got {type(row).__name__}"
        else:
            try:
                records.append(normalizer(row))
                continue
            except RecordValidationError as e:
                reason = str(e)
        rejections.append(RecordRejection(kind=kind, index=index, reason=reason))
        logger.warning(
            "record rejected",
            extra={"kind": kind, "record_index": index, "reason": reason},
        )
    return records, rejections
