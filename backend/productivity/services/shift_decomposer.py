"""
ShiftDecomposer: splits one shift into fractional hours per hour bucket.

    09:15 - 13:45  ->  {9: 0.75, 10: 1.0, 11: 1.0, 12: 1.0, 13: 0.75}

Rules:
  - Both timestamps usable and on the same calendar day: start hour gets
    (60 - start_minute)/60, whole hours in between 1.0, end hour
    end_minute/60 (same hour: (end_minute - start_minute)/60). A shift
    ending exactly at the following midnight still counts as same-day.
  - Break minutes are taken out proportionally across the slots so the map
    sums to the shift's net hours and no slot exceeds 1.0.
  - Missing/unparsable timestamps, or shifts crossing midnight: the total is
    spread evenly over the default window (10:00-18:00, 8 slots). The window
    is widened when the total exceeds one hour per slot.
  - Nothing usable: empty map (the shift contributes zero hours).
"""
import logging
import math
from datetime import datetime
from typing import Dict, Optional

from productivity import config
from productivity.models.input_schema import ShiftRecord

logger = logging.getLogger("productivity-engine.decomposer")


class ShiftDecomposer:

    def __init__(
        self,
        window_start_hour: int = config.FALLBACK_WINDOW_START_HOUR,
        window_slots: int = config.FALLBACK_WINDOW_SLOTS,
        venue_timezone: str = config.VENUE_TIMEZONE,
    ) -> None:
        if not 0 <= window_start_hour <= 23:
            raise ValueError(f"window_start_hour must be 0-23; received {window_start_hour}")
        if not 1 <= window_slots <= config.HOURS_IN_DAY:
            raise ValueError(f"window_slots must be 1-24; received {window_slots}")
        self.window_start_hour = window_start_hour
        self.window_slots = window_slots
        self._tz = None
        if venue_timezone:
            from zoneinfo import ZoneInfo
            self._tz = ZoneInfo(venue_timezone)

    def decompose(self, shift: ShiftRecord) -> Dict[int, float]:
        """Hour (0-23) -> fractional hours worked for one shift."""
        start = self._local(shift.start)
        end = self._local(shift.end)
        if self._is_exact(start, end):
            return self.decompose_interval(start, end, shift.break_minutes)
        return self.estimate(shift.total_hours)

    def decompose_interval(
        self,
        start: datetime,
        end: datetime,
        break_minutes: float = 0.0,
    ) -> Dict[int, float]:
        start_hour, end_hour = start.hour, end.hour
        start_minute = start.minute + start.second / 60.0
        end_minute = end.minute + end.second / 60.0
        if end.date() > start.date():
            # Closing shift ending exactly at midnight
            end_hour, end_minute = config.HOURS_IN_DAY, 0.0

        slots: Dict[int, float] = {}
        if start_hour == end_hour:
            slots[start_hour] = (end_minute - start_minute) / 60.0
        else:
            slots[start_hour] = (60.0 - start_minute) / 60.0
            for hour in range(start_hour + 1, end_hour):
                slots[hour] = 1.0
            slots[end_hour] = end_minute / 60.0

        gross = sum(slots.values())
        if break_minutes > 0 and gross > 0:
            net = max(0.0, gross - break_minutes / 60.0)
            factor = net / gross
            slots = {hour: value * factor for hour, value in slots.items()}

        return {hour: value for hour, value in sorted(slots.items()) if value > 0}

    def estimate(self, total_hours: float) -> Dict[int, float]:
        """Even spread of ``total_hours`` over the fallback window (an approximation)."""
        if total_hours <= 0:
            return {}
        total_hours = min(total_hours, float(config.HOURS_IN_DAY))
        slots = max(self.window_slots, math.ceil(total_hours))
        first = min(self.window_start_hour, config.HOURS_IN_DAY - slots)
        per_slot = total_hours / slots
        return {hour: per_slot for hour in range(first, first + slots)}

    # ------------------------------------------------------------------

    def _local(self, moment: Optional[datetime]) -> Optional[datetime]:
        if moment is None or self._tz is None or moment.tzinfo is None:
            return moment
        return moment.astimezone(self._tz)

    @staticmethod
    def _is_exact(start: Optional[datetime], end: Optional[datetime]) -> bool:
        if start is None or end is None:
            return False
        if (start.tzinfo is None) != (end.tzinfo is None) or end <= start:
            return False
        if end.date() != start.date() and not _is_next_midnight(start, end):
            # Overnight shifts fall back to the estimate
            logger.info(
                "shift crosses midnight; using even-spread estimate",
                extra={"date": start.date()},
            )
            return False
        return True


def _is_next_midnight(start: datetime, end: datetime) -> bool:
    return (
        (end.date() - start.date()).days == 1
        and end.hour == 0 and end.minute == 0 and end.second == 0
    )
