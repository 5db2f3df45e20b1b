from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Sequence

from prepdeck.config import ColumnMap, get_settings
from prepdeck.workbook import Record


ALL = "All"


class UnknownFilterDimension(KeyError):
    pass


@dataclass(frozen=True)
class FilterDimension:
    name: str
    column_attr: str
    fallback: str

    def column(self, columns: Optional[ColumnMap] = None) -> str:
        columns = columns or get_settings().columns
        return getattr(columns, self.column_attr)


FILTER_DIMENSIONS: Dict[str, FilterDimension] = {
    "event": FilterDimension(name="event", column_attr="event", fallback="Unknown"),
    "producer": FilterDimension(name="producer", column_attr="producer", fallback="Unassigned"),
}


@dataclass(frozen=True)
class FilterSelection:
    event: str = ALL
    producer: str = ALL

    def active(self) -> Dict[str, str]:
        """Dimensions narrowed to a specific value."""
        return {name: getattr(self, name) for name in FILTER_DIMENSIONS if getattr(self, name) != ALL}


def get_dimension(dimension: str) -> FilterDimension:
    try:
        return FILTER_DIMENSIONS[dimension]
    except KeyError:
        raise UnknownFilterDimension(dimension) from None


def category_value(row: Record, dimension: str, columns: Optional[ColumnMap] = None) -> str:
    dim = get_dimension(dimension)
    value = row.get(dim.column(columns))
    s = "" if value is None else str(value).strip()
    return s or dim.fallback


def available_values(dimension: str, dataset: Sequence[Record], columns: Optional[ColumnMap] = None) -> List[str]:
    values = {category_value(r, dimension, columns) for r in dataset}
    return [ALL] + sorted(values)


def set_filter(selection: FilterSelection, dimension: str, value: Optional[str]) -> FilterSelection:
    get_dimension(dimension)
    value = (value or "").strip() or ALL
    return replace(selection, **{dimension: value})


def normalize_filters(raw: Optional[Mapping[str, object]]) -> FilterSelection:
    raw = raw or {}
    selection = FilterSelection()
    for name in FILTER_DIMENSIONS:
        v = raw.get(name)
        if v is None:
            continue
        selection = set_filter(selection, name, str(v))
    return selection


def revalidate_selection(
    selection: FilterSelection, dataset: Sequence[Record], columns: Optional[ColumnMap] = None
) -> FilterSelection:
    """Reset dimensions whose selected value is absent from the dataset."""
    out = selection
    for name, value in selection.active().items():
        if value not in available_values(name, dataset, columns):
            out = replace(out, **{name: ALL})
    return out
