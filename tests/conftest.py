import io
import sys
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import pytest
from openpyxl import Workbook

sys.path.append(str(Path(__file__).resolve().parents[1]))

from prepdeck.config import get_settings
from prepdeck.state import reset_session


HEADER = ["Event", "Producer", "Day", "Qty", "Menu Item", "Kosher Type"]


@pytest.fixture(autouse=True)
def reset_state():
    get_settings.cache_clear()
    reset_session()
    yield
    reset_session()
    get_settings.cache_clear()


def build_workbook(
    rows: Iterable[Sequence[object]],
    header: Sequence[str] = HEADER,
    extra_sheets: Optional[List[List[Sequence[object]]]] = None,
) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Schedule"
    ws.append(list(header))
    for row in rows:
        ws.append(list(row))
    for idx, sheet_rows in enumerate(extra_sheets or []):
        extra = wb.create_sheet(f"Extra{idx + 1}")
        for row in sheet_rows:
            extra.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture()
def make_workbook():
    return build_workbook
