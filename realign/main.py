"""
FastAPI app: relabeling service for the realignment pipeline.

POST /api/relabel  body {"segments": [{"speaker": str, "text": str}, ...]} (at least 2)
  200 -> [{"speaker": str, "text": str}, ...] as produced by the model, one per input segment
  400 -> {"error": "..."} when fewer than 2 segments are sent
  500 -> {"error": "..."} when every model attempt failed (last attempt's message, raw text included)

Run with: uvicorn realign.main:app
"""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from realign.batching.planner import MIN_WINDOW_SEGMENTS
from realign.schemas.relabel import ErrorResponse, RelabelRequest
from realign.services.relabel_service import RelabelAttemptsExhausted, relabel_segments

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Speaker Relabeling",
    description="Relabel speakers for one window of a transcript with a generative model",
)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.post(
    "/api/relabel",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def relabel(request: RelabelRequest):
    """Relabel one window. Response is positionally aligned to request.segments."""
    if len(request.segments) < MIN_WINDOW_SEGMENTS:
        return JSONResponse(
            status_code=400,
            content={"error": f"Request must include at least {MIN_WINDOW_SEGMENTS} segments."},
        )
    try:
        entries = await relabel_segments(request.segments)
    except RelabelAttemptsExhausted as e:
        logger.error("Relabel failed after %s attempt(s): %s", e.attempts, e)
        return JSONResponse(status_code=500, content={"error": str(e)})
    return JSONResponse(content=entries)
