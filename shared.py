"""
Shared constants and utilities for the OEE Analytics Engine
============================================================
Single source of truth for downtime categories, downtime types, OEE status
classification, Pareto band sizes, and display formatting helpers used across
analyze.py, export_report.py, and streamlit_app.py.
"""

from dataclasses import dataclass
from enum import Enum


# ---------------------------------------------------------------------------
# Closed downtime vocabularies
# ---------------------------------------------------------------------------
class DowntimeCategory(str, Enum):
    MACHINE_FAILURE = "Machine Failure"
    MATERIAL_SHORTAGE = "Material Shortage"
    PLANNED_MAINTENANCE = "Planned Maintenance"
    CHANGEOVER = "Changeover"
    QUALITY_ISSUE = "Quality Issue"
    LABOR_SHORTAGE = "Labor Shortage"


class DowntimeType(str, Enum):
    PLANNED = "planned"
    UNPLANNED = "unplanned"


# ---------------------------------------------------------------------------
# OEE status bands
# ---------------------------------------------------------------------------
DEFAULT_WORLD_CLASS_OEE = 0.85
DEFAULT_MINIMUM_OEE = 0.65

STATUS_LABELS = {
    "excellent": "World-Class",
    "acceptable": "Acceptable",
    "poor": "Needs Attention",
}

# Pareto bands are drawn by the caller: top 2 critical, ranks 3-4 secondary
PARETO_CATEGORIES = {
    "TOP": 2,
    "SECONDARY": 4,
}

PERIOD_METRICS = ["oee", "availability", "performance", "quality"]


def oee_status(oee, world_class_target, minimum_target):
    """Classify an OEE ratio against the two thresholds."""
    if oee >= world_class_target:
        return "excellent"
    if oee >= minimum_target:
        return "acceptable"
    return "poor"


def oee_status_label(oee, world_class_target, minimum_target):
    return STATUS_LABELS[oee_status(oee, world_class_target, minimum_target)]


def pareto_band(rank):
    """Band for a 1-based Pareto rank. Presentation only."""
    if rank <= PARETO_CATEGORIES["TOP"]:
        return "critical"
    if rank <= PARETO_CATEGORIES["SECONDARY"]:
        return "secondary"
    return "minor"


# ---------------------------------------------------------------------------
# Display formatting
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class FormattedDelta:
    value: str
    sign: str
    is_improvement: bool


def format_oee_percentage(value):
    """0.7438 -> '74.4%'"""
    return f"{value * 100:.1f}%"


def format_delta(delta, is_percentage=False):
    """Signed display string for a period delta.

    Percentages get one decimal and a trailing '%', plain values two decimals.
    """
    sign = "+" if delta > 0 else "-" if delta < 0 else ""
    magnitude = abs(delta)
    if is_percentage:
        value = f"{sign}{magnitude:.1f}%"
    else:
        value = f"{sign}{magnitude:.2f}"
    return FormattedDelta(value=value, sign=sign, is_improvement=delta >= 0)


def format_duration(minutes):
    """Format minutes as '2h 30m' or '45m'."""
    minutes = int(minutes)
    hours, mins = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def unit_name(units, unit_id):
    """Display name for a unit id, falling back to the id itself."""
    for unit in units:
        if unit.id == unit_id:
            return unit.name or unit_id
    return unit_id
