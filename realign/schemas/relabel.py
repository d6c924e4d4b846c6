"""
Schemas for the relabeling service (POST /api/relabel).

Request: the window's segments as (speaker, text) pairs, at least 2.
Response: JSON array of (speaker, text), one per input segment, same order.
The core does not trust the response length; see pipeline.stitcher.
"""
from __future__ import annotations

from pydantic import BaseModel, Field


class RelabelSegment(BaseModel):
    """One (speaker, text) pair, used both in the request and in the window result."""

    speaker: str | None = Field(None, description="Current speaker label; missing = Unknown")
    text: str = Field("", description="Transcribed text of the segment")


class RelabelRequest(BaseModel):
    """Request body for POST /api/relabel."""

    segments: list[RelabelSegment] = Field(..., description="Window segments in conversation order")


class ErrorResponse(BaseModel):
    """Error body returned with 4xx/5xx."""

    error: str
