from __future__ import annotations

import datetime as dt
import hashlib
import io
import logging
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd


logger = logging.getLogger(__name__)

Scalar = Union[str, int, float, dt.datetime, None]
Record = Dict[str, Scalar]


class WorkbookParseError(ValueError):
    """Raised when an uploaded blob cannot be read as a spreadsheet."""


ParseError = WorkbookParseError


def to_scalar(value: object) -> Scalar:
    """Convert a pandas/numpy cell value into a plain Python scalar."""
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, np.datetime64):
        ts = pd.Timestamp(value)
        return None if pd.isna(ts) else ts.to_pydatetime()
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, (float, np.floating)):
        f = float(value)
        if np.isnan(f):
            return None
        return int(f) if f.is_integer() else f
    if value is pd.NA or value is pd.NaT:
        return None
    return value  # type: ignore[return-value]


def frame_to_records(df: pd.DataFrame) -> List[Record]:
    """Flatten a sheet frame into header-keyed records.

    Every header appears in every record; blank cells map to None. Rows with
    no values at all are skipped.
    """
    if df.empty:
        return []
    df = df.dropna(how="all")
    columns = [str(c) for c in df.columns]
    return [
        {col: to_scalar(v) for col, v in zip(columns, row)}
        for row in df.itertuples(index=False, name=None)
    ]


def parse_workbook(data: bytes) -> List[Record]:
    """Decode an in-memory spreadsheet into records.

    Only the first sheet is read; any further sheets are ignored. Row 1 holds
    the headers. Raises WorkbookParseError when the bytes are not a readable
    spreadsheet.
    """
    if not data:
        raise WorkbookParseError("Uploaded file is empty.")
    try:
        df = pd.read_excel(
            io.BytesIO(data),
            sheet_name=0,
            header=0,
            keep_default_na=False,
            na_values=[""],
        )
    except Exception as exc:
        logger.warning("workbook decode failed: %s", exc)
        raise WorkbookParseError(f"Could not read spreadsheet: {exc}") from exc

    records = frame_to_records(df)
    logger.info("parsed workbook: %d rows, %d columns", len(records), len(df.columns))
    return records


def content_token(data: bytes) -> str:
    """Fingerprint of an upload, used to tell a re-upload from a rerun."""
    return hashlib.sha256(data).hexdigest()


def dataset_columns(dataset: Sequence[Record]) -> List[str]:
    if not dataset:
        return []
    return list(dataset[0].keys())


def records_to_frame(rows: Sequence[Record], columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    cols = list(columns) if columns is not None else dataset_columns(rows)
    return pd.DataFrame(list(rows), columns=cols)
