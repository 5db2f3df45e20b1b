from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from functools import lru_cache
from typing import Mapping, Optional, Tuple


DEFAULT_CORS_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000")


@dataclass(frozen=True)
class ColumnMap:
    """Spreadsheet headers the aggregation logic recognizes."""

    event: str = "Event"
    producer: str = "Producer"
    day: str = "Day"
    qty: str = "Qty"
    menu_item: str = "Menu Item"
    item: str = "Item"
    kosher_type: str = "Kosher Type"


@dataclass(frozen=True)
class Settings:
    top_n: int = 12
    preview_rows: int = 25
    max_upload_bytes: int = 20 * 1024 * 1024
    cors_origins: Tuple[str, ...] = DEFAULT_CORS_ORIGINS
    log_level: str = "INFO"
    columns: ColumnMap = field(default_factory=ColumnMap)


def _as_positive_int(value: Optional[str], default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        out = int(value)
    except Exception:
        return default
    return max(1, out)


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env

    origins = tuple(o.strip() for o in (env.get("PREPDECK_CORS_ORIGINS") or "").split(",") if o.strip())

    column_overrides = {}
    for f in fields(ColumnMap):
        override = (env.get(f"PREPDECK_COLUMN_{f.name.upper()}") or "").strip()
        if override:
            column_overrides[f.name] = override

    return Settings(
        top_n=_as_positive_int(env.get("PREPDECK_TOP_N"), 12),
        preview_rows=_as_positive_int(env.get("PREPDECK_PREVIEW_ROWS"), 25),
        max_upload_bytes=_as_positive_int(env.get("PREPDECK_MAX_UPLOAD_BYTES"), 20 * 1024 * 1024),
        cors_origins=origins or DEFAULT_CORS_ORIGINS,
        log_level=(env.get("PREPDECK_LOG_LEVEL") or "INFO").strip().upper(),
        columns=ColumnMap(**column_overrides),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
