"""
Typed input records for the attribution engine.

Provider payloads (labor scheduling exports, POS aggregates) arrive as loose
JSON with varying field names. record_normalizer maps them onto these models;
anything that fails validation here is rejected at the boundary and never
reaches the allocator.
"""
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from productivity.config import MAX_SHIFT_HOURS

TeamCategory = Literal["Kitchen", "Service", "Management", "Other"]
Division = Literal["Food", "Beverage", "All"]


class ShiftRecord(BaseModel):
    """One worked shift for one worker at one location on one calendar date."""
    model_config = ConfigDict(frozen=True)

    worker_id: str = Field(..., min_length=1)
    worker_name: str = Field("Unknown", description="Display name, also used to match POS waiter tags")
    location_id: str = Field(..., min_length=1)
    date: date
    team_name: str = Field("", description="Raw team name as exported by the scheduling provider")
    start: Optional[datetime] = None      # None when missing or unparsable
    end: Optional[datetime] = None
    break_minutes: float = Field(0.0, ge=0)
    worked_hours: Optional[float] = Field(None, ge=0, le=MAX_SHIFT_HOURS,
                                          description="Provider-declared total, used when timestamps are unusable")
    wage_cost: Optional[float] = Field(None, ge=0)

    @property
    def has_comparable_timestamps(self) -> bool:
        """Both timestamps present and both naive or both timezone-aware."""
        return (
            self.start is not None
            and self.end is not None
            and (self.start.tzinfo is None) == (self.end.tzinfo is None)
        )

    @property
    def total_hours(self) -> float:
        """
        Net hours for the shift: timestamp span minus break when both
        timestamps are usable, otherwise the declared total. Never negative.
        """
        if self.has_comparable_timestamps and self.end > self.start:
            gross = (self.end - self.start).total_seconds() / 3600.0
            if gross <= MAX_SHIFT_HOURS:
                return max(0.0, gross - self.break_minutes / 60.0)
        return max(0.0, self.worked_hours or 0.0)


class HourlyDivisionRevenue(BaseModel):
    """Revenue recognised in one hour bucket for one division at one location."""
    model_config = ConfigDict(frozen=True)

    location_id: str = Field(..., min_length=1)
    date: date
    hour: int = Field(..., ge=0, le=23)
    division: Division
    revenue: float = Field(..., ge=0)


class WorkerTaggedRevenue(BaseModel):
    """POS revenue explicitly attributed to a waiter (absolute revenue source)."""
    model_config = ConfigDict(frozen=True)

    location_id: str = Field(..., min_length=1)
    date: date
    hour: Optional[int] = Field(None, ge=0, le=23)
    worker_id: Optional[str] = None
    worker_name: str = ""
    revenue: float = Field(..., ge=0)

    @model_validator(mode="after")
    def _needs_identity(self) -> "WorkerTaggedRevenue":
        if not self.worker_id and not self.worker_name.strip():
            raise ValueError("tagged revenue row carries neither worker_id nor worker_name")
        return self


class WorkerWage(BaseModel):
    """Hourly wage profile; the most recent effective_from not after the shift date applies."""
    model_config = ConfigDict(frozen=True)

    worker_id: str = Field(..., min_length=1)
    hourly_wage: float = Field(..., gt=0)
    effective_from: Optional[date] = None


class TeamSplit(BaseModel):
    """Fixed kitchen/service split for hybrid teams. Must sum to exactly 1.0."""
    model_config = ConfigDict(frozen=True)

    kitchen: float = Field(..., ge=0, le=1)
    service: float = Field(..., ge=0, le=1)


class TeamMappingEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: TeamCategory = "Other"
    split: Optional[TeamSplit] = None
    display_name: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def _title_case_category(cls, value):
        if isinstance(value, str):
            return value.strip().title()
        return value
