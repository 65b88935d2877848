# opd_pharmacy/api/deps.py
from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncGenerator, Optional

from fastapi import Header, HTTPException
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from opd_pharmacy.core.config import settings
from opd_pharmacy.db.session import get_session


# =========================================================
# DB
# =========================================================
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for db in get_session():
        yield db


# =========================================================
# REQUEST CONTEXT
# =========================================================
@dataclass(frozen=True)
class RequestContext:
    hospital_id: int
    user_id: Optional[int] = None


def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def _decode_token(raw_token: str) -> dict:
    try:
        return jwt.decode(raw_token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")


def _as_int(value) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def get_context(authorization: Optional[str] = Header(None)) -> RequestContext:
    """
    Hospital + user for the current request, taken from the bearer token
    (claims: hid = hospital id, sub = user id).
    """
    raw = _extract_bearer(authorization)
    if not raw:
        raise HTTPException(status_code=401, detail="Not authenticated")

    payload = _decode_token(raw)
    hospital_id = _as_int(payload.get("hid"))
    if not hospital_id:
        raise HTTPException(status_code=401, detail="Missing hospital in token")

    return RequestContext(hospital_id=hospital_id, user_id=_as_int(payload.get("sub")))


def page_params(page: int, limit: Optional[int]) -> tuple:
    page = max(page or 1, 1)
    limit = limit or settings.DEFAULT_PAGE_SIZE
    return page, max(min(limit, 100), 1)
