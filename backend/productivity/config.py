"""
Engine configuration: single source of truth for team mapping, allocation
pools, goal thresholds, fallback windows and field aliases.

Import from here in all services rather than hardcoding values.
Environment overrides are read once at import time.
"""
from __future__ import annotations

import os

# ── Logging ────────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON: bool = os.getenv("LOG_FORMAT", "json").lower() != "text"

# ── Optional override files ───────────────────────────────────────────────────
TEAM_MAPPING_FILE: str = os.getenv("PRODUCTIVITY_TEAM_MAPPING_FILE", "")
GOALS_FILE: str = os.getenv("PRODUCTIVITY_GOALS_FILE", "")

# IANA zone, e.g. "Europe/Amsterdam". Empty = use timestamps' own wall clock.
VENUE_TIMEZONE: str = os.getenv("PRODUCTIVITY_VENUE_TIMEZONE", "")


# ── Shift decomposition ───────────────────────────────────────────────────────

# Even-spread estimate used when a shift has hours but no usable timestamps
FALLBACK_WINDOW_START_HOUR: int = 10
FALLBACK_WINDOW_SLOTS: int = 8          # hours 10..17

# A single shift record can never claim more than a full day
MAX_SHIFT_HOURS: float = 24.0

HOURS_IN_DAY: int = 24


# ── Team categories & divisions ───────────────────────────────────────────────

TEAM_CATEGORIES: list[str] = ["Kitchen", "Service", "Management", "Other"]

# Where a category's hours and cost land in the hierarchy
CATEGORY_DIVISION: dict[str, str] = {
    "Kitchen":    "Food",
    "Service":    "Beverage",
    "Management": "Management",
    "Other":      "Other",
}

# Which hourly revenue a category shares in the allocator.
# Front-of-house shares the whole venue output; Management/Other share nothing.
ALLOCATION_POOLS: dict[str, str] = {
    "Kitchen": "Food",
    "Service": "All",
}

# Floor for an hour slot's denominator. 0 = pure proportional split (a lone
# worker takes the whole slot). 1.0 = coverage model: an hour staffed for
# less than one full worker-hour passes the uncovered share to house revenue.
ALLOCATION_MIN_DENOMINATOR: float = float(os.getenv("PRODUCTIVITY_MIN_DENOMINATOR", "0"))

# Divisions with an authoritative revenue source
REVENUE_DIVISIONS: list[str] = ["Food", "Beverage", "All"]

# Display order for divisions in reports
DIVISION_ORDER: dict[str, int] = {"Food": 1, "Beverage": 2, "Management": 3, "Other": 4, "All": 5}

# Raw division tags accepted from the POS feed (case-insensitive)
DIVISION_TAGS: dict[str, str] = {
    "food":     "Food",
    "keuken":   "Food",
    "kitchen":  "Food",
    "beverage": "Beverage",
    "bar":      "Beverage",
    "drinks":   "Beverage",
    "all":      "All",
    "total":    "All",
}


# ── Team mapping ──────────────────────────────────────────────────────────────
# Keys are normalized team names (see team_classifier.normalize_team_name).
# A "split" entry counts the team partly as kitchen, partly as service;
# ratios must sum to exactly 1.0 and are validated when the table is loaded.
DEFAULT_TEAM_MAPPING: dict[str, dict[str, object]] = {
    "keuken":         {"category": "Kitchen"},
    "hulp keuken":    {"category": "Kitchen"},
    "kitchen":        {"category": "Kitchen"},
    "kok":            {"category": "Kitchen"},
    "bediening":      {"category": "Service"},
    "bar":            {"category": "Service"},
    "service":        {"category": "Service"},
    "floor":          {"category": "Service"},
    "runner":         {"category": "Service"},
    "host":           {"category": "Service"},
    "management":     {"category": "Management"},
    "manager":        {"category": "Management"},
    "leidinggevende": {"category": "Management"},
    "afwas":          {"category": "Kitchen", "split": {"kitchen": 0.5, "service": 0.5}},
    "dishwashing":    {"category": "Kitchen", "split": {"kitchen": 0.5, "service": 0.5}},
    "schoonmaak":     {"category": "Other"},
}

SPLIT_RATIO_TOLERANCE: float = 1e-9


# ── Productivity goals ────────────────────────────────────────────────────────
# Revenue per hour: bad < 45 <= not_great < 55 <= ok < 65 <= great
# Labor cost %:     great < 30 <= ok <= 32.5 < bad
GOAL_THRESHOLDS: dict[str, list[float]] = {
    "revenue_per_hour": [45.0, 55.0, 65.0],
    "labor_cost_percentage": [30.0, 32.5],
}

GOAL_LABELS: list[str] = ["bad", "not_great", "ok", "great"]


# ── Field aliases for provider records ────────────────────────────────────────
# Ordered: the first alias holding a non-empty value wins.
# Dotted aliases reach into nested objects (e.g. eitje "extracted" payloads).
FIELD_ALIASES: dict[str, dict[str, list[str]]] = {
    "shift": {
        "worker_id":     ["worker_id", "workerId", "user_id", "userId", "eitjeUserId", "unifiedUserId"],
        "worker_name":   ["worker_name", "workerName", "user_name", "userName", "name"],
        "location_id":   ["location_id", "locationId", "environment_id", "environmentId"],
        "date":          ["date", "work_date", "workDate"],
        "team_name":     ["team_name", "teamName", "team.name", "extracted.teamName"],
        "start":         ["start_time", "startTime", "start", "extracted.start", "extracted.startTime"],
        "end":           ["end_time", "endTime", "end", "extracted.end", "extracted.endTime"],
        "break_minutes": ["break_minutes", "breakMinutes", "break", "extracted.breakMinutes"],
        "worked_hours":  ["worked_hours", "workedHours", "hours", "totalHoursWorked", "hours_worked"],
        "wage_cost":     ["wage_cost", "wageCost", "totalWageCost", "labor_cost"],
    },
    "hourly_revenue": {
        "location_id": ["location_id", "locationId"],
        "date":        ["date", "business_date", "businessDate"],
        "hour":        ["hour", "hour_bucket"],
        "division":    ["division", "mainCategory", "main_category"],
        "revenue":     ["revenue", "totalRevenue", "total_revenue", "revenueIncVat"],
    },
    "tagged_revenue": {
        "location_id": ["location_id", "locationId"],
        "date":        ["date", "business_date"],
        "hour":        ["hour"],
        "worker_id":   ["worker_id", "workerId", "waiterId", "waiter_id"],
        "worker_name": ["worker_name", "waiterName", "waiter_name", "workerName"],
        "revenue":     ["revenue", "totalRevenue", "total_revenue"],
    },
    "wage": {
        "worker_id":      ["worker_id", "workerId", "eitje_user_id", "user_id"],
        "hourly_wage":    ["hourly_wage", "hourlyWage", "wage"],
        "effective_from": ["effective_from", "effectiveFrom"],
    },
}


# ── Pipeline ──────────────────────────────────────────────────────────────────

DEFAULT_MAX_WORKERS: int = int(os.getenv("PRODUCTIVITY_MAX_WORKERS", "1"))

PERIOD_TYPES: list[str] = ["day", "week", "month", "year"]
