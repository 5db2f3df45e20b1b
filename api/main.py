from __future__ import annotations

from dataclasses import asdict
import logging
import math

import numpy as np
import pandas as pd
from fastapi import FastAPI, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from fastapi.encoders import jsonable_encoder

from api.schemas import DashboardFiltersModel, FilterUpdateModel, MetaFiltersResponse, UploadResponse
from prepdeck.aggregation import filter_rows
from prepdeck.config import configure_logging, get_settings
from prepdeck.filters import FILTER_DIMENSIONS, UnknownFilterDimension, available_values, normalize_filters
from prepdeck.metrics_dashboard import compute_dashboard, compute_data_quality
from prepdeck.state import get_session
from prepdeck.workbook import WorkbookParseError, dataset_columns, parse_workbook, records_to_frame


configure_logging(get_settings().log_level)

app = FastAPI(title="PrepDeck API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/health")
def health():
    state = get_session().snapshot()
    return _json({"status": "ok", "generation": state.generation, "rows": len(state.dataset)})


@app.post("/upload")
async def upload(file: UploadFile = File(...)):
    session = get_session()
    generation = session.begin_load()
    try:
        data = await file.read()
    finally:
        await file.close()

    limit = get_settings().max_upload_bytes
    if len(data) > limit:
        logger.warning("upload %s rejected: %d bytes over limit %d", file.filename, len(data), limit)
        return _error(413, ValueError(f"Upload exceeds {limit} bytes."))

    try:
        rows = await run_in_threadpool(parse_workbook, data)
    except WorkbookParseError as exc:
        return _error(400, exc)
    except Exception as exc:
        logger.exception("upload failed")
        return _error(500, exc)

    applied = session.complete_load(generation, rows)
    payload = UploadResponse(generation=generation, applied=applied, rows=len(rows), columns=dataset_columns(rows))
    return _json(payload.model_dump())


@app.get("/meta/filters")
def meta_filters():
    try:
        dataset = get_session().snapshot().dataset
        values = {name: available_values(name, dataset, get_settings().columns) for name in FILTER_DIMENSIONS}
        return _json(MetaFiltersResponse(values=values).model_dump())
    except Exception as exc:
        logger.exception("meta_filters failed")
        return _error(500, exc)


@app.get("/filters")
def get_filters():
    return _json(asdict(get_session().snapshot().selection))


@app.put("/filters")
def put_filters(update: FilterUpdateModel):
    try:
        state = get_session().set_filter(update.dimension, update.value)
    except UnknownFilterDimension as exc:
        return JSONResponse(status_code=404, content={"error": f"Unknown filter dimension: {exc.args[0]}", "type": type(exc).__name__})
    return _json(asdict(state.selection))


@app.get("/dashboard")
def dashboard():
    try:
        state = get_session().snapshot()
        return _json(compute_dashboard(state.dataset, state.selection, settings=get_settings()))
    except Exception as exc:
        logger.exception("dashboard failed")
        return _error(500, exc)


@app.post("/dashboard")
def dashboard_with_filters(filters: DashboardFiltersModel):
    try:
        state = get_session().snapshot()
        selection = normalize_filters(filters.model_dump())
        return _json(compute_dashboard(state.dataset, selection, settings=get_settings()))
    except Exception as exc:
        logger.exception("dashboard failed")
        return _error(500, exc)


@app.get("/data-quality")
def data_quality():
    try:
        state = get_session().snapshot()
        return _json(compute_data_quality(state.dataset, settings=get_settings()))
    except Exception as exc:
        logger.exception("data_quality failed")
        return _error(500, exc)


@app.get("/export/rows")
def export_rows():
    state = get_session().snapshot()
    rows = filter_rows(state.dataset, state.selection, get_settings().columns)
    export_df = records_to_frame(rows, dataset_columns(state.dataset))
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": "attachment; filename=prep_rows.csv"})
