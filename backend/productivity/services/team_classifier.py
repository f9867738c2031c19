"""
Team classification: raw team name -> category (+ optional split ratio).

The mapping table is configuration: loaded once, validated at load time
(split ratios must sum to exactly 1.0) and immutable afterwards. Lookups
that miss fall back to "Other" with no split.
"""
import json
import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from productivity import config
from productivity.models.input_schema import TeamMappingEntry

logger = logging.getLogger("productivity-engine.teams")

_NON_WORD = re.compile(r"[\W_]+", re.UNICODE)


class TeamMappingError(ValueError):
    """The team mapping table is malformed (unknown category, bad split)."""


def normalize_team_name(name: Optional[str]) -> str:
    """Case/punctuation/whitespace-insensitive key: ``" Hulp-Keuken! "`` -> ``"hulp keuken"``."""
    if not name:
        return ""
    return _NON_WORD.sub(" ", name.casefold()).strip()


@dataclass(frozen=True)
class TeamClassification:
    team_key: str          # normalized name
    display_name: str      # sub-team label in the hierarchy
    category: str
    kitchen_ratio: float   # share of hours/cost counted as kitchen
    service_ratio: float   # share counted as service
    is_split: bool = False

    def division_ratios(self) -> Dict[str, float]:
        """Hierarchy division -> ratio of this team's hours and cost placed there."""
        if self.is_split:
            ratios = {"Food": self.kitchen_ratio, "Beverage": self.service_ratio}
            return {division: r for division, r in ratios.items() if r > 0}
        return {config.CATEGORY_DIVISION[self.category]: 1.0}

    def pool_ratios(self) -> Dict[str, float]:
        """Allocation pool -> ratio of hourly hours that share that pool's revenue."""
        if self.is_split:
            ratios = {
                config.ALLOCATION_POOLS["Kitchen"]: self.kitchen_ratio,
                config.ALLOCATION_POOLS["Service"]: self.service_ratio,
            }
            return {pool: r for pool, r in ratios.items() if r > 0}
        pool = config.ALLOCATION_POOLS.get(self.category)
        return {pool: 1.0} if pool else {}

    @property
    def has_service_share(self) -> bool:
        return self.category == "Service" or self.service_ratio > 0.0


class TeamClassifier:
    """Immutable lookup over a validated team mapping table."""

    def __init__(self, entries: Mapping[str, TeamMappingEntry]):
        self._entries = MappingProxyType(dict(entries))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "TeamClassifier":
        """
        Build from ``{team name: {"category": ..., "split": {"kitchen": x, "service": y}}}``.
        Raises TeamMappingError on any invalid row.
        """
        if not isinstance(raw, Mapping):
            raise TeamMappingError("team mapping must be an object keyed by team name")

        entries: Dict[str, TeamMappingEntry] = {}
        for name, value in raw.items():
            key = normalize_team_name(name)
            if not key:
                raise TeamMappingError(f"team mapping contains an empty team name: {name!r}")
            if isinstance(value, str):
                value = {"category": value}
            try:
                entry = TeamMappingEntry(**value)
            except (TypeError, ValidationError) as e:
                raise TeamMappingError(f"invalid mapping for team {name!r}: {e}") from e

            if entry.split is not None:
                total = entry.split.kitchen + entry.split.service
                if abs(total - 1.0) > config.SPLIT_RATIO_TOLERANCE:
                    raise TeamMappingError(
                        f"split ratio for team {name!r} sums to {total}, expected exactly 1.0"
                    )
            if key in entries:
                raise TeamMappingError(f"team {name!r} is mapped twice (normalized key {key!r})")
            entries[key] = entry
        return cls(entries)

    @classmethod
    def from_file(cls, path: str) -> "TeamClassifier":
        with open(path, "r", encoding="utf-8") as f:
            try:
                raw = json.load(f)
            except json.JSONDecodeError as e:
                raise TeamMappingError(f"team mapping file {path} is not valid JSON: {e}") from e
        return cls.from_mapping(raw)

    @classmethod
    def default(cls) -> "TeamClassifier":
        if config.TEAM_MAPPING_FILE:
            return cls.from_file(config.TEAM_MAPPING_FILE)
        return cls.from_mapping(config.DEFAULT_TEAM_MAPPING)

    def classify(self, team_name: Optional[str]) -> TeamClassification:
        key = normalize_team_name(team_name)
        entry = self._entries.get(key)
        display = (team_name or "").strip() or "Unknown"
        if entry is None:
            if key:
                logger.info("unmapped team classified as Other", extra={"reason": key})
            return TeamClassification(key, display, "Other", 0.0, 0.0)

        if entry.split is not None:
            return TeamClassification(
                key, entry.display_name or display, entry.category,
                entry.split.kitchen, entry.split.service, is_split=True,
            )
        if entry.category == "Kitchen":
            kitchen, service = 1.0, 0.0
        elif entry.category == "Service":
            kitchen, service = 0.0, 1.0
        else:
            kitchen, service = 0.0, 0.0
        return TeamClassification(key, entry.display_name or display, entry.category, kitchen, service)

    def __len__(self) -> int:
        return len(self._entries)
