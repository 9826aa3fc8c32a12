# FILE: app/schemas/common.py
from __future__ import annotations

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class ApiError(BaseModel):
    msg: str
    code: Optional[str] = None
    # ExceededLimits: {"ITEM_LIMIT": {"<item_id>": "<used>:<limit>"}, ...}
    details: Optional[Any] = None


class PageMeta(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int


class ApiResponse(BaseModel):
    status: bool
    data: Optional[Any] = None
    error: Optional[ApiError] = None
    meta: Optional[PageMeta] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)
