# FILE: opd_pharmacy/api/response.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def ok(
    data: Any = None,
    *,
    message: Optional[str] = None,
    status_code: int = 200,
) -> JSONResponse:
    """
    Standard success wrapper:
    {
      "success": true,
      "message": "..." (optional),
      "data": ...
    }
    """
    payload: Dict[str, Any] = {"success": True}
    if message is not None:
        payload["message"] = message
    payload["data"] = data

    # ✅ jsonable_encoder converts datetime/date/Decimal/Enum/pydantic models to JSON-safe types
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def err(
    msg: str = "Something went wrong",
    *,
    status_code: int = 400,
    code: Optional[str] = None,
    insufficient_stock: Optional[List[str]] = None,
    details: Any = None,
) -> JSONResponse:
    """
    Standard error wrapper:
    {
      "success": false,
      "message": "...",
      "code": "..." (optional),
      "insufficientStock": [...] (shortage only),
      "details": ... (validation only)
    }
    """
    payload: Dict[str, Any] = {"success": False, "message": msg}
    if code:
        payload["code"] = code
    if insufficient_stock is not None:
        payload["insufficientStock"] = insufficient_stock
    if details is not None:
        payload["details"] = details
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))
