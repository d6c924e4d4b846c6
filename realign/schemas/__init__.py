"""Pydantic schemas for API request/response."""
from realign.schemas.relabel import ErrorResponse, RelabelRequest, RelabelSegment

__all__ = [
    "ErrorResponse",
    "RelabelRequest",
    "RelabelSegment",
]
