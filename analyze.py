"""
OEE + Downtime Analyzer
=======================
Pure computation over an in-memory production snapshot:

  - Metric Calculator   availability / performance / quality / OEE per unit
  - Aggregator          totals-first overall OEE, downtime grouped by
                        category and by (category, reason)
  - Pareto ranking      descending duration, % of total, cumulative %
  - Period comparison   deltas against the previous period

Nothing here mutates caller input or keeps state between calls.
"""

import logging

import pandas as pd

from canonical_schema import DowntimeGroup, OEEMetrics, PeriodDelta
from shared import PERIOD_METRICS, DowntimeCategory, DowntimeType

logger = logging.getLogger(__name__)

_EVENT_COLUMNS = ["id", "unit_id", "category", "reason", "duration_minutes", "type"]


# ---------------------------------------------------------------------------
# Metric Calculator
# ---------------------------------------------------------------------------
def availability(planned_minutes, downtime_minutes):
    """Operating time / planned time, clamped to [0, 1]. Zero planned time -> 0."""
    if planned_minutes == 0:
        return 0.0
    operating = planned_minutes - downtime_minutes
    return max(0.0, min(1.0, operating / planned_minutes))


def performance(actual_quantity, target_quantity):
    """Actual / target, capped at 1. Zero target -> 0.

    Not clamped below 0: a negative actual quantity is the caller's problem
    and comes back as a negative ratio.
    """
    if target_quantity == 0:
        return 0.0
    return min(1.0, actual_quantity / target_quantity)


def quality(good_quantity, actual_quantity):
    """Good / actual. Zero actual -> exactly 0."""
    if actual_quantity == 0:
        return 0.0
    return good_quantity / actual_quantity


def oee(availability_ratio, performance_ratio, quality_ratio):
    return availability_ratio * performance_ratio * quality_ratio


def _metrics(description, planned, downtime, target, actual, good):
    a = availability(planned, downtime)
    p = performance(actual, target)
    q = quality(good, actual)
    return OEEMetrics(
        description=description,
        total_oee=oee(a, p, q),
        availability=a,
        performance=p,
        quality=q,
    )


def unit_oee(unit, downtime_events):
    """OEE for one unit, counting only events that reference it."""
    downtime = sum(e.duration_minutes for e in downtime_events if e.unit_id == unit.id)
    return _metrics(
        f"{unit.name} OEE",
        unit.planned_production_time,
        downtime,
        unit.target_quantity,
        unit.actual_quantity,
        unit.good_quantity,
    )


# ---------------------------------------------------------------------------
# Event filters
# ---------------------------------------------------------------------------
def events_for_unit(downtime_events, unit_id):
    return [e for e in downtime_events if e.unit_id == unit_id]


def events_by_category(downtime_events, category):
    return [e for e in downtime_events if e.category == category]


def events_by_type(downtime_events, downtime_type):
    return [e for e in downtime_events if e.type == downtime_type]


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------
def overall_oee(units, downtime_events):
    """Overall OEE from period totals, not an average of per-unit OEE.

    Downtime is summed over every event regardless of owning unit.
    """
    return _metrics(
        "Overall OEE",
        sum(u.planned_production_time for u in units),
        sum(e.duration_minutes for e in downtime_events),
        sum(u.target_quantity for u in units),
        sum(u.actual_quantity for u in units),
        sum(u.good_quantity for u in units),
    )


def scope_to_unit(units, downtime_events, unit_id=None):
    """Units, metrics and events for one unit id, or for all units when ``unit_id`` is None."""
    if unit_id is None:
        units = list(units)
        return units, overall_oee(units, downtime_events), list(downtime_events)
    unit = next((u for u in units if u.id == unit_id), None)
    if unit is None:
        raise KeyError(f"unknown unit id: {unit_id}")
    return [unit], unit_oee(unit, downtime_events), events_for_unit(downtime_events, unit_id)



def _events_frame(downtime_events, unplanned_only):
    if unplanned_only:
        downtime_events = events_by_type(downtime_events, DowntimeType.UNPLANNED)
    return pd.DataFrame(
        [{
            "id": e.id,
            "unit_id": e.unit_id,
            "category": e.category.value,
            "reason": e.reason,
            "duration_minutes": e.duration_minutes,
            "type": e.type.value,
        } for e in downtime_events],
        columns=_EVENT_COLUMNS,
    )


def _rank(grouped):
    """Sort groups by duration (stable, descending) and add % of total + cumulative %."""
    ranked = grouped.sort_values(
        "total_duration_minutes", ascending=False, kind="stable"
    ).reset_index(drop=True)

    total = ranked["total_duration_minutes"].sum()
    if total > 0:
        ranked["percentage"] = ranked["total_duration_minutes"] / total * 100
    else:
        ranked["percentage"] = 0.0
    ranked["cumulative_percentage"] = ranked["percentage"].cumsum()
    return ranked


def _group(downtime_events, keys, unplanned_only):
    df = _events_frame(downtime_events, unplanned_only)
    if len(df) == 0:
        return None

    # sort=False keeps first-encounter order, which the stable sort preserves on ties
    grouped = (
        df.groupby(keys, sort=False)
        .agg(
            total_duration_minutes=("duration_minutes", "sum"),
            event_count=("id", "count"),
            unit_id=("unit_id", "first"),
        )
        .reset_index()
    )
    return _rank(grouped)


def _to_groups(ranked, with_reason):
    groups = []
    for row in ranked.itertuples(index=False):
        groups.append(DowntimeGroup(
            category=DowntimeCategory(row.category),
            total_duration_minutes=float(row.total_duration_minutes),
            event_count=int(row.event_count),
            percentage=float(row.percentage),
            cumulative_percentage=float(row.cumulative_percentage),
            reason=row.reason if with_reason else None,
            unit_id=row.unit_id if with_reason else None,
        ))
    return groups


def group_downtime_by_category(downtime_events, unplanned_only=True):
    """Pareto of downtime by category. Empty filtered set -> []."""
    ranked = _group(downtime_events, ["category"], unplanned_only)
    if ranked is None:
        logger.debug("No %sdowntime events to group", "unplanned " if unplanned_only else "")
        return []
    return _to_groups(ranked, with_reason=False)


def group_downtime_by_reason(downtime_events, unplanned_only=True):
    """Pareto of downtime by (category, reason).

    Each group keeps the unit of its first contributing event.
    """
    ranked = _group(downtime_events, ["category", "reason"], unplanned_only)
    if ranked is None:
        return []
    return _to_groups(ranked, with_reason=True)


def downtime_frame(groups):
    """DataFrame view of a group sequence, for tables and charts."""
    return pd.DataFrame(
        [{
            "Category": g.category.value,
            "Reason": g.reason,
            "Unit": g.unit_id,
            "Total Minutes": g.total_duration_minutes,
            "Events": g.event_count,
            "% of Total": g.percentage,
            "Cumulative %": g.cumulative_percentage,
        } for g in groups],
        columns=["Category", "Reason", "Unit", "Total Minutes", "Events",
                 "% of Total", "Cumulative %"],
    )


# ---------------------------------------------------------------------------
# Pareto ranking
# ---------------------------------------------------------------------------
def top_reasons(downtime_events, limit=3, unplanned_only=True):
    """Top ``limit`` (category, reason) contributors by summed duration."""
    if limit <= 0:
        return []
    return group_downtime_by_reason(downtime_events, unplanned_only)[:limit]


# ---------------------------------------------------------------------------
# Period comparison
# ---------------------------------------------------------------------------
def period_delta(current, previous, higher_is_better=True):
    """Change from the previous period.

    A zero baseline gives a 0% relative change instead of an error. The
    improvement flag assumes higher is better (true for OEE and its three
    ratios); pass ``higher_is_better=False`` for metrics like downtime minutes.
    """
    delta = current - previous
    delta_percent = (delta / previous) * 100 if previous != 0 else 0.0
    is_improvement = delta >= 0 if higher_is_better else delta <= 0
    return PeriodDelta(
        current=current,
        previous=previous,
        delta=delta,
        delta_percent=delta_percent,
        is_improvement=is_improvement,
    )


def _metric_value(metrics, name):
    return metrics.total_oee if name == "oee" else getattr(metrics, name)


def compare_periods(current, previous):
    """Deltas for OEE, availability, performance and quality."""
    return {
        name: period_delta(_metric_value(current, name), _metric_value(previous, name))
        for name in PERIOD_METRICS
    }
