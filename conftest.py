from datetime import datetime, timezone

import pytest

from canonical_schema import (
    DowntimeEvent,
    OEEMetrics,
    ProductionData,
    ProductionLine,
    ProductionMetadata,
    ProductionUnit,
    Thresholds,
)
from shared import DowntimeCategory, DowntimeType


EXPORT_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_unit(id="u1", name="Morning Shift", planned=480, target=1000,
              actual=900, good=850, defect=50, start="06:00", end="14:00"):
    return ProductionUnit(
        id=id, name=name,
        planned_production_time=planned,
        target_quantity=target,
        actual_quantity=actual,
        good_quantity=good,
        defect_quantity=defect,
        start_time=start, end_time=end,
    )


def make_event(id, unit_id, category, reason, minutes, type=DowntimeType.UNPLANNED):
    return DowntimeEvent(
        id=id, unit_id=unit_id, category=category, reason=reason,
        duration_minutes=minutes, type=type,
    )


@pytest.fixture
def units():
    return [
        make_unit(),
        make_unit(id="u2", name="Afternoon Shift", actual=800, good=780, defect=20,
                  start="14:00", end="22:00"),
    ]


@pytest.fixture
def events():
    return [
        make_event("e1", "u1", DowntimeCategory.MACHINE_FAILURE, "Conveyor jam", 40),
        make_event("e2", "u1", DowntimeCategory.CHANGEOVER, "SKU change", 20, DowntimeType.PLANNED),
        make_event("e3", "u2", DowntimeCategory.MATERIAL_SHORTAGE, "Waiting on cartons", 30),
        make_event("e4", "u2", DowntimeCategory.MACHINE_FAILURE, "Conveyor jam", 10),
        make_event("e5", "u2", DowntimeCategory.QUALITY_ISSUE, "Label misprint", 20),
    ]


@pytest.fixture
def previous_period():
    return OEEMetrics(
        description="Previous Week OEE",
        total_oee=0.68, availability=0.86, performance=0.84, quality=0.94,
    )


@pytest.fixture
def production_data(units, events, previous_period):
    return ProductionData(
        production_line=ProductionLine(id="line-3", name="Packaging Line 3"),
        units=tuple(units),
        downtime_events=tuple(events),
        previous_period=previous_period,
        metadata=ProductionMetadata(
            site="Plant 2",
            department="Packaging",
            report_date="2026-10-16",
            thresholds=Thresholds(world_class=0.85, minimum_acceptable=0.65),
        ),
    )
