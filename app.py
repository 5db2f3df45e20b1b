import altair as alt
import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from prepdeck.charts import bar_chart, pie_chart
from prepdeck.config import configure_logging, get_settings
from prepdeck.aggregation import filter_rows
from prepdeck.filters import available_values
from prepdeck.metrics_dashboard import compute_dashboard, compute_data_quality
from prepdeck.state import DashboardState, apply_filter, replace_dataset
from prepdeck.workbook import WorkbookParseError, content_token, dataset_columns, parse_workbook, records_to_frame

alt.data_transformers.disable_max_rows()
settings = get_settings()
configure_logging(settings.log_level)


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #2b2b35;margin-bottom: 10px;}
        .app-top-bar .page-sub {color: #9ca3af;font-size: 0.85rem;margin-top: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;}
        .card {border: 1px solid #2b2b35;border-radius: 14px;padding: 14px;
               box-shadow: 0 10px 30px rgba(0,0,0,0.25); margin-bottom: 12px;}
        .card-title {font-weight: 700;font-size: 0.95rem;margin-bottom: 8px;}
        .filter-note {font-size: 0.85rem;opacity: 0.85;text-align: right;padding-top: 28px;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body


def render_page_header(export_df: Optional[pd.DataFrame] = None):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            "<div class='app-top-bar'><div class='page-title'>Culinary Production Dashboard</div>"
            "<div class='page-sub'>Upload the schedule Excel → get KPIs, charts, and a table.</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if export_df is not None and not export_df.empty:
            st.download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name="prep_rows.csv",
                mime="text/csv",
            )


def get_state() -> DashboardState:
    if "dashboard_state" not in st.session_state:
        st.session_state["dashboard_state"] = DashboardState()
    return st.session_state["dashboard_state"]


def handle_upload(uploaded) -> None:
    # Streamlit reruns the script on every interaction; only parse new content.
    data = uploaded.getvalue()
    token = content_token(data)
    if st.session_state.get("_last_upload") == token:
        return
    try:
        rows = parse_workbook(data)
    except WorkbookParseError as exc:
        st.error(f"Could not read {uploaded.name}: {exc}")
        return
    state = get_state()
    st.session_state["dashboard_state"] = replace_dataset(state, rows, generation=state.generation + 1)
    st.session_state["_last_upload"] = token


def render_filters(state: DashboardState, row_count: int) -> DashboardState:
    cols = st.columns([3, 3, 4])
    for col, (dimension, label) in zip(cols, [("event", "Event"), ("producer", "Producer")]):
        options = available_values(dimension, state.dataset, settings.columns)
        current = getattr(state.selection, dimension)
        if current not in options:
            options = options + [current]
        choice = col.selectbox(label, options=options, index=options.index(current), key=f"filter_{dimension}_{state.generation}")
        if choice != current:
            state = apply_filter(state, dimension, choice)
    cols[2].markdown(f"<div class='filter-note'>Showing <b>{row_count}</b> rows</div>", unsafe_allow_html=True)
    return state


def render_kpis(kpis: Dict[str, Any]):
    cols = st.columns(5)
    cols[0].metric("Line Items", f"{kpis['total_lines']:,}")
    cols[1].metric("Total Qty", f"{kpis['total_qty']:,.0f}" if float(kpis["total_qty"]).is_integer() else f"{kpis['total_qty']:,.2f}")
    cols[2].metric("Unique Menu Items", f"{kpis['unique_menu_items']:,}")
    cols[3].metric("Scheduled", f"{kpis['scheduled']:,}", delta=f"Unscheduled: {kpis['unscheduled']}", delta_color="off")
    cols[4].metric("Unassigned Producer", f"{kpis['unassigned_producer']:,}")


def render_chart(title: str, data: List[Dict[str, Any]], empty_msg: str, build):
    with card(title):
        if not data:
            st.info(empty_msg)
            return
        st.altair_chart(build(data), use_container_width=True)


def render_preview(preview: List[Dict[str, Any]], columns: List[str], truncated: bool):
    with card("Data Preview"):
        if not preview:
            st.info("Upload an Excel file to see rows.")
            return
        st.dataframe(records_to_frame(preview, columns), hide_index=True, use_container_width=True)
        st.caption(f"Showing first {settings.preview_rows} rows" if truncated else f"Showing {len(preview)} rows")


# ---------- UI setup ----------
st.set_page_config(page_title="PrepDeck Dashboard", layout="wide")
inject_base_styles()

with st.sidebar:
    st.markdown("### Schedule")
    uploaded = st.file_uploader("Upload .xlsx", type=["xlsx"])
if uploaded is not None:
    handle_upload(uploaded)

state = get_state()
filtered_rows = filter_rows(state.dataset, state.selection, settings.columns)
render_page_header(export_df=records_to_frame(filtered_rows, dataset_columns(state.dataset)) if filtered_rows else None)

new_state = render_filters(state, len(filtered_rows))
if new_state != state:
    st.session_state["dashboard_state"] = new_state
    st.rerun()

payload = compute_dashboard(state.dataset, state.selection, settings=settings)
render_kpis(payload["kpis"])

series = payload["series"]
grid = st.columns(2)
with grid[0]:
    render_chart(
        "Items by Day",
        series["items_by_day"],
        "No day values found (or filtered out).",
        lambda d: bar_chart(d, "day", "count", x_title="Day", y_title="Items", sort_x=True),
    )
with grid[1]:
    render_chart(
        f"Qty by Producer (Top {settings.top_n})",
        series["qty_by_producer"],
        "No producer/qty values found.",
        lambda d: bar_chart(d, "producer", "qty", x_title="Producer", y_title="Qty"),
    )
grid = st.columns(2)
with grid[0]:
    render_chart(
        "Kosher Type Breakdown",
        series["kosher_breakdown"],
        "No kosher type values found.",
        lambda d: pie_chart(d, "name", "value"),
    )
with grid[1]:
    render_chart(
        f"Items by Event (Top {settings.top_n})",
        series["items_by_event"],
        "No event values found.",
        lambda d: bar_chart(d, "event", "count", x_title="Event", y_title="Items"),
    )

render_preview(payload["preview"], payload["columns"], payload["preview_truncated"])

if state.dataset:
    with st.expander("Data quality", expanded=False):
        st.write(compute_data_quality(state.dataset, settings=settings))
