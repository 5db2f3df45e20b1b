import datetime as dt
import random

import pytest

from prepdeck.aggregation import (
    Bucket,
    coerce_number,
    compute_kpis,
    filter_rows,
    group_count,
    group_sum,
    items_by_day,
    items_by_event,
    kosher_breakdown,
    menu_item_key,
    qty_by_producer,
    top_n,
)
from prepdeck.filters import FilterSelection, category_value


def _row(event=None, producer=None, day=None, qty=None, menu_item=None, item=None, kosher=None):
    return {
        "Event": event,
        "Producer": producer,
        "Day": day,
        "Qty": qty,
        "Menu Item": menu_item,
        "Item": item,
        "Kosher Type": kosher,
    }


@pytest.fixture()
def dataset():
    return [
        _row("Gala", "Chef A", dt.datetime(2024, 3, 5), 5, "Soup", kosher="Meat"),
        _row("Gala", "Chef B", 45356, 3, "Salad", kosher="Pareve"),
        _row("Brunch", "Chef A", "2024-03-04", "4", "Eggs", kosher="Dairy"),
        _row("Brunch", None, None, "x", None, item="Toast", kosher=None),
        _row(None, "  ", "someday", 1, None, kosher="Meat"),
    ]


@pytest.mark.parametrize(
    "value, expected",
    [(None, 0.0), ("", 0.0), ("x", 0.0), (" 5 ", 5.0), ("2.5", 2.5), (3, 3.0), (float("nan"), 0.0), (True, 1.0), (dt.datetime(2024, 1, 1), 0.0)],
)
def test_coerce_number(value, expected):
    assert coerce_number(value) == expected


def test_quantity_total_ignores_blank_and_text():
    rows = [_row(qty=2), _row(qty=None), _row(qty="x")]
    assert compute_kpis(rows).total_qty == 2


def test_group_sum_by_producer():
    rows = [_row(producer="Chef A", qty=5), _row(producer="Chef A", qty=3)]
    assert group_sum(rows, lambda r: category_value(r, "producer"), lambda r: r["Qty"]) == [Bucket(key="Chef A", value=8.0)]


def test_blank_producer_lands_in_unassigned_bucket():
    rows = [_row(producer="", qty=2), _row(producer="Chef A", qty=1)]
    buckets = qty_by_producer(rows)
    assert Bucket(key="Unassigned", value=2.0) in buckets
    assert compute_kpis(rows).unassigned_producer == 1


def test_filter_rows_all_returns_input_unchanged(dataset):
    out = filter_rows(dataset, FilterSelection())
    assert out == dataset
    assert all(a is b for a, b in zip(out, dataset))


def test_filter_rows_matches_fallback_labels(dataset):
    assert len(filter_rows(dataset, FilterSelection(event="Unknown"))) == 1
    assert len(filter_rows(dataset, FilterSelection(producer="Unassigned"))) == 2
    assert len(filter_rows(dataset, FilterSelection(event="Brunch", producer="Chef A"))) == 1


def test_filter_rows_is_case_sensitive(dataset):
    assert filter_rows(dataset, FilterSelection(event="gala")) == []


def test_stale_selection_yields_no_rows(dataset):
    smaller = dataset[:2]
    assert filter_rows(smaller, FilterSelection(event="Brunch")) == []


def test_grouping_is_order_independent(dataset):
    shuffled = list(dataset)
    random.Random(7).shuffle(shuffled)

    def key(r):
        return category_value(r, "event")

    def as_dict(buckets):
        return {b.key: b.value for b in buckets}

    assert as_dict(group_count(dataset, key)) == as_dict(group_count(shuffled, key))
    assert as_dict(group_sum(dataset, key, lambda r: r["Qty"])) == as_dict(group_sum(shuffled, key, lambda r: r["Qty"]))


def test_group_buckets_keep_first_seen_order(dataset):
    keys = [b.key for b in group_count(dataset, lambda r: category_value(r, "event"))]
    assert keys == ["Gala", "Brunch", "Unknown"]


def test_grouped_sums_partition_the_filtered_rows(dataset):
    rows = filter_rows(dataset, FilterSelection(event="Brunch"))
    buckets = group_sum(rows, lambda r: category_value(r, "producer"), lambda r: r["Qty"])
    assert sum(b.value for b in buckets) == compute_kpis(rows).total_qty == 4


def test_group_keys_are_returned_as_given():
    rows = [{"k": 1}, {"k": "1"}, {"k": None}, {"k": 1}]
    counts = group_count(rows, lambda r: r["k"])
    assert counts == [Bucket(key=1, value=2), Bucket(key="1", value=1), Bucket(key=None, value=1)]
    assert counts[2].key is None

    sums = group_sum([{"k": None, "q": 2}, {"k": "a", "q": 1}, {"k": None, "q": "3"}], lambda r: r["k"], lambda r: r["q"])
    assert sums == [Bucket(key=None, value=5.0), Bucket(key="a", value=1.0)]


def test_group_functions_on_empty_input():
    assert group_count([], lambda r: r) == []
    assert group_sum([], lambda r: r, lambda r: r) == []


def test_top_n_truncates_and_breaks_ties_by_first_seen():
    buckets = [Bucket(key=f"k{i}", value=i % 5) for i in range(20)]
    top = top_n(buckets, 12)
    assert len(top) == 12
    assert [b.value for b in top] == [4, 4, 4, 4, 3, 3, 3, 3, 2, 2, 2, 2]
    assert [b.key for b in top[:4]] == ["k4", "k9", "k14", "k19"]


def test_top_n_returns_everything_when_short():
    buckets = [Bucket(key="a", value=1), Bucket(key="b", value=2)]
    assert top_n(buckets) == [Bucket(key="b", value=2), Bucket(key="a", value=1)]


def test_kpis(dataset):
    kpis = compute_kpis(dataset)
    assert kpis.total_lines == 5
    assert kpis.total_qty == 13
    assert kpis.unique_menu_items == 5
    assert kpis.scheduled == 3
    assert kpis.unscheduled == 2
    assert kpis.unassigned_producer == 2


def test_menu_item_key_fallbacks():
    assert menu_item_key(_row(menu_item="Soup", item="S1")) == "Soup"
    assert menu_item_key(_row(menu_item=" ", item="S1")) == "S1"
    assert menu_item_key(_row()) == "—"


def test_items_by_day_sorted_ascending_and_skips_undated(dataset):
    assert items_by_day(dataset) == [
        Bucket(key="2024-03-04", value=1),
        Bucket(key="2024-03-05", value=2),
    ]


def test_items_by_event_and_kosher_breakdown(dataset):
    assert items_by_event(dataset) == [
        Bucket(key="Gala", value=2),
        Bucket(key="Brunch", value=2),
        Bucket(key="Unknown", value=1),
    ]
    kosher = kosher_breakdown(dataset)
    assert kosher[0] == Bucket(key="Meat", value=2)
    assert Bucket(key="Unknown", value=1) in kosher
    assert sum(b.value for b in kosher) == len(dataset)


def test_high_cardinality_series_capped_at_top_n():
    rows = [_row(event=f"Event {i:02d}", producer=f"Chef {i:02d}", qty=i) for i in range(30)]
    assert len(items_by_event(rows)) == 12
    producers = qty_by_producer(rows)
    assert len(producers) == 12
    assert producers[0] == Bucket(key="Chef 29", value=29.0)
