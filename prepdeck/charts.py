from __future__ import annotations

from typing import Any, Dict, List

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()

PIE_COLORS = ["#7c3aed", "#06b6d4", "#22c55e", "#f59e0b", "#ef4444", "#a3a3a3"]


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def bar_chart(data: List[Dict[str, Any]], x: str, y: str, *, x_title: str, y_title: str, sort_x: bool = False) -> alt.Chart:
    df = pd.DataFrame(data, columns=[x, y])
    hover = alt.selection_point(fields=[x], on="mouseover", empty="all")
    # Keep the caller's ordering unless the axis is chronological.
    x_sort = "ascending" if sort_x else None
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X(f"{x}:N", title=x_title, sort=x_sort, axis=alt.Axis(labelAngle=-18, grid=False)),
            y=alt.Y(f"{y}:Q", title=y_title, axis=alt.Axis(format="~s", gridDash=[3, 3], domain=False, ticks=False)),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.6)),
            tooltip=[alt.Tooltip(x, title=x_title), alt.Tooltip(f"{y}:Q", title=y_title, format=",")],
        )
        .add_params(hover)
        .properties(height=320)
    )


def pie_chart(data: List[Dict[str, Any]], name: str, value: str) -> alt.Chart:
    df = pd.DataFrame(data, columns=[name, value])
    return (
        alt.Chart(df)
        .mark_arc(outerRadius=110)
        .encode(
            theta=alt.Theta(f"{value}:Q"),
            color=alt.Color(f"{name}:N", scale=alt.Scale(range=PIE_COLORS), legend=alt.Legend(title=None)),
            tooltip=[alt.Tooltip(name), alt.Tooltip(f"{value}:Q", format=",")],
        )
        .properties(height=320)
    )
