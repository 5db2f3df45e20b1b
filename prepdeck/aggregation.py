from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, Hashable, List, Optional, Sequence, Union

import numpy as np

from prepdeck.config import ColumnMap, get_settings
from prepdeck.dates import normalize_date
from prepdeck.filters import FilterSelection, category_value
from prepdeck.workbook import Record


Number = Union[int, float]
KeyFn = Callable[[Record], Hashable]
ValueFn = Callable[[Record], object]

DEFAULT_TOP_N = 12
MISSING_ITEM_LABEL = "—"


@dataclass(frozen=True)
class Bucket:
    key: Hashable
    value: Number


@dataclass(frozen=True)
class KpiSummary:
    total_lines: int = 0
    total_qty: float = 0.0
    unique_menu_items: int = 0
    scheduled: int = 0
    unscheduled: int = 0
    unassigned_producer: int = 0


def safe_str(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def coerce_number(value: object) -> float:
    """Best-effort numeric coercion; anything unusable counts as zero."""
    if value is None:
        return 0.0
    if isinstance(value, (bool, np.bool_)):
        return float(value)
    if isinstance(value, (int, float, np.integer, np.floating)):
        out = float(value)
        return 0.0 if math.isnan(out) else out
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return 0.0
        try:
            out = float(s)
        except ValueError:
            return 0.0
        return 0.0 if math.isnan(out) else out
    return 0.0


def _columns(columns: Optional[ColumnMap]) -> ColumnMap:
    return columns or get_settings().columns


# ---------------- Filtering ----------------
def filter_rows(dataset: Sequence[Record], selection: FilterSelection, columns: Optional[ColumnMap] = None) -> List[Record]:
    active = selection.active()
    if not active:
        return list(dataset)
    return [
        r
        for r in dataset
        if all(category_value(r, name, columns) == value for name, value in active.items())
    ]


# ---------------- Grouping ----------------
def group_count(rows: Sequence[Record], key_fn: KeyFn) -> List[Bucket]:
    counts: Dict[Hashable, int] = {}
    for r in rows:
        key = key_fn(r)
        counts[key] = counts.get(key, 0) + 1
    return [Bucket(key=k, value=v) for k, v in counts.items()]


def group_sum(rows: Sequence[Record], key_fn: KeyFn, value_fn: ValueFn) -> List[Bucket]:
    sums: Dict[Hashable, float] = {}
    for r in rows:
        key = key_fn(r)
        sums[key] = sums.get(key, 0.0) + coerce_number(value_fn(r))
    return [Bucket(key=k, value=v) for k, v in sums.items()]


def top_n(buckets: Sequence[Bucket], n: int = DEFAULT_TOP_N) -> List[Bucket]:
    """Highest-value buckets first; ties keep their first-seen order."""
    ranked = sorted(buckets, key=lambda b: b.value, reverse=True)
    return ranked[: max(0, n)]


# ---------------- KPIs ----------------
def menu_item_key(row: Record, columns: Optional[ColumnMap] = None) -> str:
    cols = _columns(columns)
    return safe_str(row.get(cols.menu_item)) or safe_str(row.get(cols.item)) or MISSING_ITEM_LABEL


def compute_kpis(rows: Sequence[Record], columns: Optional[ColumnMap] = None) -> KpiSummary:
    cols = _columns(columns)
    total_lines = len(rows)
    total_qty = sum(coerce_number(r.get(cols.qty)) for r in rows)
    unique_menu_items = len({menu_item_key(r, cols) for r in rows})
    scheduled = sum(1 for r in rows if normalize_date(r.get(cols.day)) is not None)
    unassigned = sum(1 for r in rows if not safe_str(r.get(cols.producer)))
    return KpiSummary(
        total_lines=total_lines,
        total_qty=float(total_qty),
        unique_menu_items=unique_menu_items,
        scheduled=scheduled,
        unscheduled=total_lines - scheduled,
        unassigned_producer=unassigned,
    )


# ---------------- Chart series ----------------
def items_by_day(rows: Sequence[Record], columns: Optional[ColumnMap] = None) -> List[Bucket]:
    cols = _columns(columns)
    dated = []
    for r in rows:
        day = normalize_date(r.get(cols.day))
        if day is not None:
            dated.append({"day": day})
    buckets = group_count(dated, lambda r: r["day"])
    return sorted(buckets, key=lambda b: b.key)


def qty_by_producer(rows: Sequence[Record], top: int = DEFAULT_TOP_N, columns: Optional[ColumnMap] = None) -> List[Bucket]:
    cols = _columns(columns)
    buckets = group_sum(rows, lambda r: category_value(r, "producer", cols), lambda r: r.get(cols.qty))
    return top_n(buckets, top)


def kosher_breakdown(rows: Sequence[Record], columns: Optional[ColumnMap] = None) -> List[Bucket]:
    cols = _columns(columns)
    buckets = group_count(rows, lambda r: safe_str(r.get(cols.kosher_type)) or "Unknown")
    return sorted(buckets, key=lambda b: b.value, reverse=True)


def items_by_event(rows: Sequence[Record], top: int = DEFAULT_TOP_N, columns: Optional[ColumnMap] = None) -> List[Bucket]:
    cols = _columns(columns)
    buckets = group_count(rows, lambda r: category_value(r, "event", cols))
    return top_n(buckets, top)

