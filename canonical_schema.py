"""Canonical value records and boundary validation for production snapshots.

Everything downstream of ``parse_production_data`` may assume present,
well-typed fields. Raw snapshots come from the UI layer as plain dicts (or a
JSON file), with either camelCase or snake_case keys.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from config import SETTINGS
from shared import DowntimeCategory, DowntimeType

logger = logging.getLogger(__name__)


class MalformedInputError(ValueError):
    """Raised when a production snapshot is missing fields or has bad values."""


# ---------------------------------------------------------------------------
# Value records
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ProductionLine:
    id: str
    name: str
    target_cycle_time: float = 0.0
    description: str = ""


@dataclass(frozen=True)
class ProductionUnit:
    """A shift, or the whole line for a period."""
    id: str
    name: str
    planned_production_time: float
    target_quantity: float
    actual_quantity: float
    good_quantity: float
    defect_quantity: float
    start_time: str = ""
    end_time: str = ""


@dataclass(frozen=True)
class DowntimeEvent:
    id: str
    unit_id: str
    category: DowntimeCategory
    reason: str
    duration_minutes: float
    type: DowntimeType
    start_time: str = ""
    end_time: str = ""


@dataclass(frozen=True)
class OEEMetrics:
    description: str
    total_oee: float
    availability: float
    performance: float
    quality: float


@dataclass(frozen=True)
class DowntimeGroup:
    """Aggregated downtime; percentages are relative to the filter that produced it."""
    category: DowntimeCategory
    total_duration_minutes: float
    event_count: int
    percentage: float
    cumulative_percentage: float
    reason: Optional[str] = None
    unit_id: Optional[str] = None


@dataclass(frozen=True)
class PeriodDelta:
    current: float
    previous: float
    delta: float
    delta_percent: float
    is_improvement: bool


@dataclass(frozen=True)
class Thresholds:
    world_class: float = field(default_factory=lambda: SETTINGS.WORLD_CLASS_TARGET)
    minimum_acceptable: float = field(default_factory=lambda: SETTINGS.MINIMUM_ACCEPTABLE)


@dataclass(frozen=True)
class ProductionMetadata:
    site: str
    department: str
    report_date: str
    thresholds: Thresholds = field(default_factory=Thresholds)


@dataclass(frozen=True)
class ProductionData:
    production_line: ProductionLine
    units: tuple
    downtime_events: tuple
    previous_period: OEEMetrics
    metadata: ProductionMetadata


# ---------------------------------------------------------------------------
# Key normalization
# ---------------------------------------------------------------------------
# Maps normalized keys found in raw snapshots to internal field names.
KEY_TO_INTERNAL = {
    # Snapshot
    "productionline": "production_line",
    "line": "production_line",
    "shifts": "units",
    "units": "units",
    "downtimeevents": "downtime_events",
    "events": "downtime_events",
    "previousperiod": "previous_period",
    "metadata": "metadata",
    # Common
    "id": "id",
    "name": "name",
    "description": "description",
    "starttime": "start_time",
    "endtime": "end_time",
    # Line
    "targetcycletime": "target_cycle_time",
    # Unit
    "plannedproductiontime": "planned_production_time",
    "plannedminutes": "planned_production_time",
    "targetquantity": "target_quantity",
    "targetqty": "target_quantity",
    "actualquantity": "actual_quantity",
    "actualqty": "actual_quantity",
    "goodquantity": "good_quantity",
    "goodqty": "good_quantity",
    "defectquantity": "defect_quantity",
    "defectqty": "defect_quantity",
    # Event
    "shiftid": "unit_id",
    "unitid": "unit_id",
    "category": "category",
    "reason": "reason",
    "durationminutes": "duration_minutes",
    "duration": "duration_minutes",
    "type": "type",
    "downtimetype": "type",
    # Metrics
    "totaloee": "total_oee",
    "oee": "total_oee",
    "availability": "availability",
    "performance": "performance",
    "quality": "quality",
    # Metadata
    "site": "site",
    "department": "department",
    "reportdate": "report_date",
    "worldclassoeetarget": "world_class",
    "worldclasstarget": "world_class",
    "minimumacceptableoee": "minimum_acceptable",
    "minimumacceptable": "minimum_acceptable",
}

_CATEGORY_BY_VALUE = {c.value.lower(): c for c in DowntimeCategory}
_TYPE_BY_VALUE = {t.value: t for t in DowntimeType}
_INT64_MIN = int(np.iinfo(np.int64).min)
_INT64_MAX = int(np.iinfo(np.int64).max)


def normalize_key(name):
    """Normalize a field name for fuzzy matching: 'plannedProductionTime' -> 'plannedproductiontime'."""
    return re.sub(r"[^a-z0-9]+", "", str(name).lower().strip())


def _canonical(record, where):
    if not isinstance(record, dict):
        raise MalformedInputError(f"{where}: expected an object, got {type(record).__name__}")
    out = {}
    for key, value in record.items():
        internal = KEY_TO_INTERNAL.get(normalize_key(key))
        if internal is not None and internal not in out:
            out[internal] = value
    return out


def _require(rec, name, where):
    value = rec.get(name)
    if value is None:
        raise MalformedInputError(f"{where}: missing required field '{name}'")
    return value


def _number(rec, name, where, default=None):
    if rec.get(name) is None and default is not None:
        return default
    value = _require(rec, name, where)
    if isinstance(value, bool):
        raise MalformedInputError(f"{where}: field '{name}' must be numeric, got {value!r}")
    if not isinstance(value, (int, float)):
        try:
            value = float(str(value).strip())
        except ValueError:
            raise MalformedInputError(
                f"{where}: field '{name}' must be numeric, got {value!r}"
            ) from None
    if isinstance(value, int) and not _INT64_MIN <= value <= _INT64_MAX:
        raise MalformedInputError(f"{where}: field '{name}' is out of range, got {value!r}")
    if not np.isfinite(value):
        raise MalformedInputError(f"{where}: field '{name}' must be finite, got {value!r}")
    return value


def _text(rec, name, where, default=None):
    value = rec.get(name)
    if value is None:
        if default is not None:
            return default
        raise MalformedInputError(f"{where}: missing required field '{name}'")
    return str(value).strip()


def _records(rec, name, where):
    value = rec.get(name)
    if value is None:
        raise MalformedInputError(f"{where}: missing required list '{name}'")
    if not isinstance(value, (list, tuple)):
        raise MalformedInputError(f"{where}: '{name}' must be a list, got {type(value).__name__}")
    return list(value)


# ---------------------------------------------------------------------------
# Record parsers
# ---------------------------------------------------------------------------
def parse_line(raw):
    rec = _canonical(raw, "production_line")
    name = _text(rec, "name", "production_line")
    return ProductionLine(
        id=_text(rec, "id", "production_line", default=name),
        name=name,
        target_cycle_time=_number(rec, "target_cycle_time", "production_line", default=0.0),
        description=_text(rec, "description", "production_line", default=""),
    )


def parse_unit(raw, index=0):
    where = f"units[{index}]"
    rec = _canonical(raw, where)
    uid = _text(rec, "id", where)
    where = f"units[{index}] ({uid})"
    return ProductionUnit(
        id=uid,
        name=_text(rec, "name", where),
        planned_production_time=_number(rec, "planned_production_time", where),
        target_quantity=_number(rec, "target_quantity", where),
        actual_quantity=_number(rec, "actual_quantity", where),
        good_quantity=_number(rec, "good_quantity", where),
        defect_quantity=_number(rec, "defect_quantity", where),
        start_time=_text(rec, "start_time", where, default=""),
        end_time=_text(rec, "end_time", where, default=""),
    )


def parse_category(value, where="category"):
    if isinstance(value, DowntimeCategory):
        return value
    category = _CATEGORY_BY_VALUE.get(str(value).strip().lower())
    if category is None:
        allowed = ", ".join(c.value for c in DowntimeCategory)
        raise MalformedInputError(f"{where}: unknown downtime category {value!r} (expected one of: {allowed})")
    return category


def parse_type(value, where="type"):
    if isinstance(value, DowntimeType):
        return value
    dtype = _TYPE_BY_VALUE.get(str(value).strip().lower())
    if dtype is None:
        raise MalformedInputError(f"{where}: unknown downtime type {value!r} (expected 'planned' or 'unplanned')")
    return dtype


def parse_event(raw, index=0):
    where = f"downtime_events[{index}]"
    rec = _canonical(raw, where)
    eid = _text(rec, "id", where)
    where = f"downtime_events[{index}] ({eid})"
    return DowntimeEvent(
        id=eid,
        unit_id=_text(rec, "unit_id", where),
        category=parse_category(_require(rec, "category", where), where),
        reason=_text(rec, "reason", where),
        duration_minutes=_number(rec, "duration_minutes", where),
        type=parse_type(_require(rec, "type", where), where),
        start_time=_text(rec, "start_time", where, default=""),
        end_time=_text(rec, "end_time", where, default=""),
    )


def parse_metrics(raw, where="previous_period"):
    rec = _canonical(raw, where)
    return OEEMetrics(
        description=_text(rec, "description", where, default=""),
        total_oee=_number(rec, "total_oee", where),
        availability=_number(rec, "availability", where),
        performance=_number(rec, "performance", where),
        quality=_number(rec, "quality", where),
    )


def parse_metadata(raw):
    rec = _canonical(raw, "metadata")
    thresholds = Thresholds(
        world_class=_number(rec, "world_class", "metadata", default=SETTINGS.WORLD_CLASS_TARGET),
        minimum_acceptable=_number(rec, "minimum_acceptable", "metadata", default=SETTINGS.MINIMUM_ACCEPTABLE),
    )
    return ProductionMetadata(
        site=_text(rec, "site", "metadata"),
        department=_text(rec, "department", "metadata"),
        report_date=_text(rec, "report_date", "metadata"),
        thresholds=thresholds,
    )


def parse_production_data(raw):
    """Validate a raw snapshot and build an immutable ``ProductionData``.

    Raises MalformedInputError on the first missing or malformed field, before
    any metric is computed.
    """
    if isinstance(raw, ProductionData):
        return raw
    rec = _canonical(raw, "snapshot")

    line = parse_line(_require(rec, "production_line", "snapshot"))
    units = tuple(parse_unit(u, i) for i, u in enumerate(_records(rec, "units", "snapshot")))
    events = tuple(parse_event(e, i) for i, e in enumerate(_records(rec, "downtime_events", "snapshot")))
    previous = parse_metrics(_require(rec, "previous_period", "snapshot"))
    metadata = parse_metadata(_require(rec, "metadata", "snapshot"))

    unit_ids = {u.id for u in units}
    orphans = sorted({e.unit_id for e in events} - unit_ids)
    if orphans:
        logger.warning("Downtime events reference unknown units: %s", ", ".join(orphans))

    logger.info(
        "Parsed snapshot for %s: %d units, %d downtime events",
        line.name, len(units), len(events),
    )
    return ProductionData(
        production_line=line,
        units=units,
        downtime_events=events,
        previous_period=previous,
        metadata=metadata,
    )


def load_production_data(json_path):
    """Read a JSON snapshot from disk and validate it."""
    logger.info("Reading production data: %s", json_path)
    with open(json_path, "r", encoding="utf-8") as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as exc:
            raise MalformedInputError(f"{json_path}: not valid JSON ({exc})") from exc
    return parse_production_data(raw)
