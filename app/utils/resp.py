# FILE: app/utils/resp.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.schemas.common import ApiError, ApiResponse, PageMeta


def ok(
    data: Any = None,
    status_code: int = 200,
    *,
    meta: Optional[PageMeta] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    payload = ApiResponse(status=True, data=data, meta=meta)
    content = jsonable_encoder(payload)
    if meta is None:
        content.pop("meta", None)
    return JSONResponse(status_code=int(status_code), content=content, headers=headers)


def err(
    msg: str,
    status_code: int = 400,
    *,
    code: Optional[str] = None,
    details: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    payload = ApiResponse(status=False, error=ApiError(msg=str(msg), code=code, details=details))
    content = jsonable_encoder(payload)
    content.pop("meta", None)
    return JSONResponse(status_code=int(status_code), content=content, headers=headers)


def page_meta(page: int, per_page: int, total: int) -> PageMeta:
    pages = (total + per_page - 1) // per_page if per_page else 0
    return PageMeta(page=page, per_page=per_page, total=total, total_pages=pages)
