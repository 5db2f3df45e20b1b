from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class DashboardFiltersModel(BaseModel):
    event: str = "All"
    producer: str = "All"


class FilterUpdateModel(BaseModel):
    dimension: str
    value: Optional[str] = None


class UploadResponse(BaseModel):
    generation: int
    applied: bool
    rows: int
    columns: List[str] = Field(default_factory=list)


class MetaFiltersResponse(BaseModel):
    values: Dict[str, List[str]]
