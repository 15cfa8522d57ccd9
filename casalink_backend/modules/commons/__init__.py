"""Common module shared across all modules."""

from .schemas import BaseResponse

__all__ = ["BaseResponse"]
