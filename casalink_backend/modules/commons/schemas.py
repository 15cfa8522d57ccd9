"""Response envelope shared by every route."""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from ...core.utils import utc_now

T = TypeVar("T")


class BaseResponse(BaseModel, Generic[T]):
    """``{success, message, data, error, timestamp}``; failures carry ``error`` and no data."""

    success: bool = True
    message: str | None = None
    data: T | None = None
    error: Any | None = None
    timestamp: datetime = Field(default_factory=utc_now)
