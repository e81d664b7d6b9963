"""The JSON envelope every response of both services is wrapped in.

    {"success": true, "message": "...", "data": {...},
     "worker_id": "worker-1", "timestamp": "2025-01-01T00:00:00.000Z"}

``worker_id`` names the replica that answered; ``data`` is omitted when
there is nothing to return.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from app.core.clock import to_iso, utc_now
from app.core.config import SETTINGS

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool
    message: str
    data: T | None = None
    worker_id: str
    timestamp: str


def envelope(
    message: str,
    data: Any = None,
    *,
    success: bool = True,
) -> dict[str, Any]:
    body: dict[str, Any] = {"success": success, "message": message}
    if data is not None:
        body["data"] = data
    body["worker_id"] = SETTINGS.worker_id
    body["timestamp"] = to_iso(utc_now())
    return body


class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


def pagination(page: int, limit: int, total: int) -> dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": -(-total // limit),
    }
