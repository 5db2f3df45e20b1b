from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

from prepdeck.aggregation import (
    Bucket,
    compute_kpis,
    filter_rows,
    items_by_day,
    items_by_event,
    kosher_breakdown,
    qty_by_producer,
    safe_str,
)
from prepdeck.charts import bar_chart, pie_chart, to_vega_spec
from prepdeck.config import Settings, get_settings
from prepdeck.dates import normalize_date
from prepdeck.filters import FILTER_DIMENSIONS, FilterSelection, available_values
from prepdeck.workbook import Record, dataset_columns


def _series(buckets: List[Bucket], key_name: str, value_name: str) -> List[Dict[str, Any]]:
    return [{key_name: b.key, value_name: b.value} for b in buckets]


def compute_dashboard(
    dataset: Sequence[Record],
    selection: FilterSelection,
    *,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    settings = settings or get_settings()
    cols = settings.columns

    rows = filter_rows(dataset, selection, cols)
    kpis = compute_kpis(rows, cols)

    by_day = _series(items_by_day(rows, cols), "day", "count")
    by_producer = _series(qty_by_producer(rows, settings.top_n, cols), "producer", "qty")
    kosher = _series(kosher_breakdown(rows, cols), "name", "value")
    by_event = _series(items_by_event(rows, settings.top_n, cols), "event", "count")

    charts: Dict[str, Any] = {}
    if by_day:
        charts["items_by_day"] = to_vega_spec(bar_chart(by_day, "day", "count", x_title="Day", y_title="Items", sort_x=True))
    if by_producer:
        charts["qty_by_producer"] = to_vega_spec(bar_chart(by_producer, "producer", "qty", x_title="Producer", y_title="Qty"))
    if kosher:
        charts["kosher_breakdown"] = to_vega_spec(pie_chart(kosher, "name", "value"))
    if by_event:
        charts["items_by_event"] = to_vega_spec(bar_chart(by_event, "event", "count", x_title="Event", y_title="Items"))

    return {
        "filters": asdict(selection),
        "options": {name: available_values(name, dataset, cols) for name in FILTER_DIMENSIONS},
        "row_count": len(rows),
        "total_rows": len(dataset),
        "kpis": asdict(kpis),
        "series": {
            "items_by_day": by_day,
            "qty_by_producer": by_producer,
            "kosher_breakdown": kosher,
            "items_by_event": by_event,
        },
        "charts": charts,
        "columns": dataset_columns(dataset),
        "preview": rows[: settings.preview_rows],
        "preview_truncated": len(rows) > settings.preview_rows,
    }


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _is_numeric(value: object) -> bool:
    if isinstance(value, (int, float)):
        return True
    try:
        float(safe_str(value))
    except ValueError:
        return False
    return True


def compute_data_quality(dataset: Sequence[Record], *, settings: Optional[Settings] = None) -> Dict[str, Any]:
    settings = settings or get_settings()
    cols = settings.columns
    columns = dataset_columns(dataset)

    blank_cells = {c: sum(1 for r in dataset if _is_blank(r.get(c))) for c in columns}
    recognized = asdict(cols)
    missing_columns = [header for header in recognized.values() if header not in columns] if columns else []

    bad_dates = 0
    if cols.day in columns:
        bad_dates = sum(1 for r in dataset if not _is_blank(r.get(cols.day)) and normalize_date(r.get(cols.day)) is None)

    bad_qty = 0
    if cols.qty in columns:
        bad_qty = sum(1 for r in dataset if not _is_blank(r.get(cols.qty)) and not _is_numeric(r.get(cols.qty)))

    return {
        "row_counts": {"rows": len(dataset), "columns": len(columns)},
        "recognized_columns": recognized,
        "missing_columns": missing_columns,
        "blank_cells": blank_cells,
        "unparseable_dates": bad_dates,
        "non_numeric_qty": bad_qty,
    }
