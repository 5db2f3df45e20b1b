from __future__ import annotations

import datetime as dt
import math
from typing import Optional

import numpy as np
import pandas as pd


# 1900 date system: serial 0 is 1899-12-30 (includes the phantom 1900-02-29).
EXCEL_EPOCH = pd.Timestamp("1899-12-30")
MS_PER_DAY = 86400 * 1000
# pandas resolves these against the wall clock.
RELATIVE_KEYWORDS = frozenset({"now", "today", "yesterday", "tomorrow"})


def excel_serial_to_timestamp(serial: float) -> Optional[pd.Timestamp]:
    """Convert a spreadsheet day serial into a timestamp, or None when out of range."""
    if not math.isfinite(serial):
        return None
    ms = round(serial * MS_PER_DAY)
    try:
        ts = pd.to_datetime(ms, unit="ms", origin=EXCEL_EPOCH)
    except (OverflowError, ValueError):
        return None
    return None if pd.isna(ts) else ts


def _to_timestamp(value: object) -> Optional[pd.Timestamp]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (pd.Timestamp, dt.datetime, np.datetime64)):
        try:
            return pd.Timestamp(value)
        except (OverflowError, ValueError):
            return None
    if isinstance(value, (int, float, np.integer, np.floating)):
        return excel_serial_to_timestamp(float(value))
    if isinstance(value, str):
        s = value.strip()
        if s.lower() in RELATIVE_KEYWORDS:
            return None
        try:
            ts = pd.to_datetime(s, errors="coerce")
        except (OverflowError, ValueError, TypeError):
            return None
        return None if pd.isna(ts) else ts
    return None


def normalize_date(value: object) -> Optional[str]:
    """Normalize a cell value into a ``YYYY-MM-DD`` string.

    Accepts native dates, spreadsheet serial numbers and free-form strings.
    Returns None for blanks and for anything that does not resolve to a
    calendar date; never raises.
    """
    if value is None:
        return None
    if isinstance(value, str) and value == "":
        return None
    if isinstance(value, dt.date) and not isinstance(value, dt.datetime):
        return value.isoformat()
    if not isinstance(value, (str, dt.date, np.datetime64)):
        try:
            if pd.isna(value):
                return None
        except (TypeError, ValueError):
            return None

    ts = _to_timestamp(value)
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC")
    try:
        return ts.date().isoformat()
    except (OverflowError, ValueError):
        return None
