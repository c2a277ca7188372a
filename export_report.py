"""
Report export for the OEE Analytics Engine
==========================================
Builds one fully-computed export document from a production snapshot and
renders it two ways:

  - structured (JSON)       build_export_document / export_to_json
  - flat delimited (CSV)    to_flat_text / export_to_csv

Percentage fields are derived once, in _with_percent, and both renderers
read them from the same document, so the two formats always agree.
"""

import io
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from analyze import (
    compare_periods,
    group_downtime_by_category,
    overall_oee,
    top_reasons,
    unit_oee,
)
from canonical_schema import parse_production_data
from config import SETTINGS
from shared import PERIOD_METRICS, format_oee_percentage, oee_status, oee_status_label

logger = logging.getLogger(__name__)

DELIMITER = ","
QUOTE = '"'

PERIOD_LABELS = {
    "oee": "OEE",
    "availability": "Availability",
    "performance": "Performance",
    "quality": "Quality",
}


@dataclass(frozen=True)
class ExportArtifact:
    filename: str
    content: bytes
    mime_type: str


# ---------------------------------------------------------------------------
# Structured document
# ---------------------------------------------------------------------------
def _with_percent(metrics):
    """Metrics record plus percentage fields, each exactly ratio * 100."""
    return {
        "description": metrics.description,
        "total_oee": metrics.total_oee,
        "availability": metrics.availability,
        "performance": metrics.performance,
        "quality": metrics.quality,
        "total_oee_percent": metrics.total_oee * 100,
        "availability_percent": metrics.availability * 100,
        "performance_percent": metrics.performance * 100,
        "quality_percent": metrics.quality * 100,
    }


def _event_record(event):
    return {
        "id": event.id,
        "unit_id": event.unit_id,
        "category": event.category.value,
        "reason": event.reason,
        "type": event.type.value,
        "start_time": event.start_time,
        "end_time": event.end_time,
        "duration_minutes": event.duration_minutes,
    }


def build_export_document(data, now=None):
    """Compute every exported value from a production snapshot.

    ``data`` may be a ``ProductionData`` or a raw snapshot dict; raw input is
    validated first. ``now`` fixes the export timestamp (defaults to UTC now).
    """
    data = parse_production_data(data)
    now = now or datetime.now(timezone.utc)
    events = data.downtime_events
    thresholds = data.metadata.thresholds

    overall = overall_oee(data.units, events)
    overall_record = _with_percent(overall)
    overall_record["display"] = format_oee_percentage(overall.total_oee)
    overall_record["status"] = oee_status(
        overall.total_oee, thresholds.world_class, thresholds.minimum_acceptable)
    overall_record["status_label"] = oee_status_label(
        overall.total_oee, thresholds.world_class, thresholds.minimum_acceptable)

    units = []
    for unit in data.units:
        units.append({
            "id": unit.id,
            "name": unit.name,
            "start_time": unit.start_time,
            "end_time": unit.end_time,
            "planned_production_time": unit.planned_production_time,
            "target_quantity": unit.target_quantity,
            "actual_quantity": unit.actual_quantity,
            "good_quantity": unit.good_quantity,
            "defect_quantity": unit.defect_quantity,
            "oee": _with_percent(unit_oee(unit, events)),
        })

    reasons = top_reasons(events, limit=SETTINGS.EXPORT_TOP_REASONS, unplanned_only=True)
    categories = group_downtime_by_category(events, unplanned_only=True)
    comparison = compare_periods(overall, data.previous_period)

    return {
        "metadata": {
            "site": data.metadata.site,
            "department": data.metadata.department,
            "report_date": data.metadata.report_date,
            "production_line": data.production_line.name,
            "export_date": now.strftime("%Y-%m-%d"),
            "export_time": now.isoformat(),
            "world_class_target": thresholds.world_class,
            "minimum_acceptable": thresholds.minimum_acceptable,
        },
        "overall_oee": overall_record,
        "units": units,
        "downtime_events": [_event_record(e) for e in events],
        "top_downtime_reasons": [{
            "category": r.category.value,
            "reason": r.reason,
            "unit_id": r.unit_id,
            "total_duration_minutes": r.total_duration_minutes,
            "event_count": r.event_count,
        } for r in reasons],
        "downtime_by_category": [{
            "category": c.category.value,
            "total_duration_minutes": c.total_duration_minutes,
            "event_count": c.event_count,
            "percentage": c.percentage,
            "cumulative_percentage": c.cumulative_percentage,
        } for c in categories],
        "previous_period": _with_percent(data.previous_period),
        "period_comparison": {
            name: {
                "current": d.current,
                "previous": d.previous,
                "delta": d.delta,
                "delta_percent": d.delta_percent,
                "is_improvement": d.is_improvement,
            } for name, d in comparison.items()
        },
    }


# ---------------------------------------------------------------------------
# Flat text
# ---------------------------------------------------------------------------
def csv_escape(value):
    """Quote a field if it contains the delimiter, a quote, or a line break.

    Embedded quotes are doubled. None renders as an empty field.
    """
    if value is None:
        return ""
    text = value if isinstance(value, str) else _number(value)
    if DELIMITER in text or QUOTE in text or "\n" in text or "\r" in text:
        return QUOTE + text.replace(QUOTE, QUOTE * 2) + QUOTE
    return text


def _number(value):
    """Raw quantities: 480.0 -> '480', 12.5 -> '12.5'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _ratio(value):
    return f"{value:.4f}"


def _pct(value):
    return f"{value:.2f}"


def _row(*fields):
    return DELIMITER.join(fields)


def to_flat_text(document):
    """Render an export document as CSV lines, one labeled section per table."""
    meta = document["metadata"]
    overall = document["overall_oee"]
    lines = [
        "OEE Dashboard Export",
        f"Report Date: {meta['report_date']}",
        f"Export Date: {meta['export_date']}",
        f"Site: {meta['site']}",
        f"Department: {meta['department']}",
        f"Production Line: {meta['production_line']}",
        f"Overall OEE: {overall['display']} ({overall['status_label']})",
        "",
    ]

    lines.append("Overall OEE")
    lines.append("Metric,Value,Percentage")
    for label, key in [("Total OEE", "total_oee"), ("Availability", "availability"),
                       ("Performance", "performance"), ("Quality", "quality")]:
        lines.append(_row(label, _ratio(overall[key]), _pct(overall[f"{key}_percent"]) + "%"))
    lines.append("")

    lines.append("Period Comparison")
    lines.append("Metric,Current,Previous,Delta,Delta %")
    for name in PERIOD_METRICS:
        d = document["period_comparison"][name]
        lines.append(_row(
            PERIOD_LABELS[name],
            _ratio(d["current"]),
            _ratio(d["previous"]),
            _ratio(d["delta"]),
            _pct(d["delta_percent"]) + "%",
        ))
    lines.append("")

    lines.append("Units")
    lines.append("Unit Name,Start Time,End Time,Planned Time (min),Target Qty,Actual Qty,"
                 "Good Qty,Defect Qty,OEE %,Availability %,Performance %,Quality %")
    for unit in document["units"]:
        u_oee = unit["oee"]
        lines.append(_row(
            csv_escape(unit["name"]),
            csv_escape(unit["start_time"]),
            csv_escape(unit["end_time"]),
            csv_escape(unit["planned_production_time"]),
            csv_escape(unit["target_quantity"]),
            csv_escape(unit["actual_quantity"]),
            csv_escape(unit["good_quantity"]),
            csv_escape(unit["defect_quantity"]),
            _pct(u_oee["total_oee_percent"]),
            _pct(u_oee["availability_percent"]),
            _pct(u_oee["performance_percent"]),
            _pct(u_oee["quality_percent"]),
        ))
    lines.append("")

    lines.append("Top Downtime Reasons")
    lines.append("Category,Reason,Duration (min),Event Count")
    for r in document["top_downtime_reasons"]:
        lines.append(_row(
            csv_escape(r["category"]),
            csv_escape(r["reason"]),
            csv_escape(r["total_duration_minutes"]),
            csv_escape(r["event_count"]),
        ))
    lines.append("")

    lines.append("Downtime by Category")
    lines.append("Category,Total Duration (min),Event Count,Percentage,Cumulative Percentage")
    for c in document["downtime_by_category"]:
        lines.append(_row(
            csv_escape(c["category"]),
            csv_escape(c["total_duration_minutes"]),
            csv_escape(c["event_count"]),
            _pct(c["percentage"]),
            _pct(c["cumulative_percentage"]),
        ))
    lines.append("")

    lines.append("Downtime Events")
    lines.append("ID,Unit ID,Category,Reason,Type,Start Time,End Time,Duration (min)")
    for e in document["downtime_events"]:
        lines.append(_row(
            csv_escape(e["id"]),
            csv_escape(e["unit_id"]),
            csv_escape(e["category"]),
            csv_escape(e["reason"]),
            csv_escape(e["type"]),
            csv_escape(e["start_time"]),
            csv_escape(e["end_time"]),
            csv_escape(e["duration_minutes"]),
        ))

    return lines


# ---------------------------------------------------------------------------
# Downloadable artifacts
# ---------------------------------------------------------------------------
def _artifact(text, filename, mime_type):
    with io.BytesIO() as buffer:
        buffer.write(text.encode("utf-8"))
        content = buffer.getvalue()
    logger.info("Export ready: %s (%d bytes)", filename, len(content))
    return ExportArtifact(filename=filename, content=content, mime_type=mime_type)


def export_filename(document, ext):
    return f"oee-report-{document['metadata']['report_date']}.{ext}"


def export_to_json(data, filename=None, now=None):
    document = build_export_document(data, now=now)
    text = json.dumps(document, indent=2)
    return _artifact(text, filename or export_filename(document, "json"), "application/json")


def export_to_csv(data, filename=None, now=None):
    document = build_export_document(data, now=now)
    text = "\n".join(to_flat_text(document))
    return _artifact(text, filename or export_filename(document, "csv"), "text/csv;charset=utf-8")
