"""
OEE Dashboard: Web Interface
=============================
Upload a production snapshot (JSON), review OEE and downtime Pareto, and
download the report as JSON or CSV.

Usage:
  streamlit run streamlit_app.py
"""

import json
import os

import altair as alt
import pandas as pd
import streamlit as st

from analyze import (
    compare_periods,
    downtime_frame,
    events_for_unit,
    group_downtime_by_category,
    scope_to_unit,
    top_reasons,
    unit_oee,
)
from canonical_schema import MalformedInputError, parse_production_data
from config import configure_logging
from export_report import export_to_csv, export_to_json
from shared import (
    format_delta,
    format_duration,
    format_oee_percentage,
    oee_status_label,
    pareto_band,
)

configure_logging()

SAMPLE_FILE = os.path.join(os.path.dirname(__file__), "sample_production_data.json")

st.set_page_config(
    page_title="OEE Dashboard",
    page_icon="📊",
    layout="wide",
)

st.title("OEE Dashboard")
st.markdown("Upload a production snapshot. Get OEE, downtime Pareto, and a downloadable report.")

uploaded = st.file_uploader(
    "Production data (JSON)",
    type=["json"],
    help="Production line, shifts, downtime events, previous period and metadata",
)

try:
    if uploaded is not None:
        raw = json.loads(uploaded.getvalue().decode("utf-8"))
    else:
        st.caption("No file uploaded, showing bundled sample data.")
        with open(SAMPLE_FILE, "r", encoding="utf-8") as f:
            raw = json.load(f)
    data = parse_production_data(raw)
except (MalformedInputError, json.JSONDecodeError) as e:
    st.error(f"Could not read production data: {e}")
    st.stop()

thresholds = data.metadata.thresholds
events = list(data.downtime_events)

# --- Unit filter ---
unit_names = {u.id: u.name for u in data.units}
selected_id = st.selectbox(
    "Shift",
    [None] + list(unit_names),
    format_func=lambda uid: "All units" if uid is None else unit_names[uid],
)
units, metrics, scoped_events = scope_to_unit(data.units, events, selected_id)

# --- Headline ---
st.subheader(f"{data.production_line.name} | {data.metadata.report_date}")
c1, c2, c3, c4 = st.columns(4)
comparison = compare_periods(metrics, data.previous_period)
for col, (label, key) in zip(
    [c1, c2, c3, c4],
    [("OEE", "oee"), ("Availability", "availability"),
     ("Performance", "performance"), ("Quality", "quality")],
):
    d = comparison[key]
    col.metric(
        label,
        format_oee_percentage(d.current),
        format_delta(d.delta * 100, is_percentage=True).value,
    )
st.caption(
    f"Status: {oee_status_label(metrics.total_oee, thresholds.world_class, thresholds.minimum_acceptable)} "
    f"(world-class ≥ {thresholds.world_class:.0%}, minimum {thresholds.minimum_acceptable:.0%})"
)

# --- Units ---
st.markdown("---")
st.subheader("Shifts")
unit_rows = []
for u in units:
    m = unit_oee(u, events)
    unit_rows.append({
        "Shift": u.name,
        "Planned (min)": u.planned_production_time,
        "Downtime": format_duration(sum(e.duration_minutes for e in events_for_unit(events, u.id))),
        "OEE %": round(m.total_oee * 100, 1),
        "Availability %": round(m.availability * 100, 1),
        "Performance %": round(m.performance * 100, 1),
        "Quality %": round(m.quality * 100, 1),
    })
st.dataframe(pd.DataFrame(unit_rows), use_container_width=True, hide_index=True)

# --- Pareto ---
st.markdown("---")
st.subheader("Unplanned Downtime Pareto")
categories = group_downtime_by_category(scoped_events, unplanned_only=True)
if not categories:
    st.info("No unplanned downtime recorded for this selection.")
else:
    pareto_df = downtime_frame(categories)
    pareto_df["Band"] = [pareto_band(i + 1) for i in range(len(pareto_df))]
    bars = alt.Chart(pareto_df).mark_bar().encode(
        x=alt.X("Category:N", sort=None, title=None),
        y=alt.Y("Total Minutes:Q", title="Minutes"),
        color=alt.Color("Band:N", scale=alt.Scale(
            domain=["critical", "secondary", "minor"],
            range=["#ef4444", "#eab308", "#3b82f6"],
        )),
        tooltip=["Category", "Total Minutes", "Events",
                 alt.Tooltip("% of Total:Q", format=".1f")],
    )
    line = alt.Chart(pareto_df).mark_line(point=True, color="#1B2A4A").encode(
        x=alt.X("Category:N", sort=None),
        y=alt.Y("Cumulative %:Q", title="Cumulative %", scale=alt.Scale(domain=[0, 100])),
    )
    st.altair_chart(
        alt.layer(bars, line).resolve_scale(y="independent"),
        use_container_width=True,
    )

    st.markdown("**Top downtime reasons**")
    reasons = top_reasons(scoped_events, limit=3, unplanned_only=True)
    st.dataframe(
        downtime_frame(reasons)[["Category", "Reason", "Unit", "Total Minutes", "Events"]],
        use_container_width=True, hide_index=True,
    )

# --- Export ---
st.markdown("---")
st.subheader("Export")
json_artifact = export_to_json(data)
csv_artifact = export_to_csv(data)
e1, e2 = st.columns(2)
with e1:
    st.download_button(
        label=f"Download {json_artifact.filename}",
        data=json_artifact.content,
        file_name=json_artifact.filename,
        mime=json_artifact.mime_type,
        use_container_width=True,
    )
with e2:
    st.download_button(
        label=f"Download {csv_artifact.filename}",
        data=csv_artifact.content,
        file_name=csv_artifact.filename,
        mime=csv_artifact.mime_type,
        use_container_width=True,
    )
