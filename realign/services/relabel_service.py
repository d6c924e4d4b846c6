"""
Relabeling service: ask a generative model to fix speaker labels for one window.

- Build a plain transcript prompt ("<speaker>: <text>" per line).
- Call an OpenAI-compatible chat-completions endpoint (Together AI by default).
- Extract the JSON array from the reply; retry the whole call on any failure,
  up to RELABEL_MAX_ATTEMPTS with a fixed RELABEL_RETRY_DELAY_SECONDS in between.
- When every attempt fails, raise with the last attempt's message (raw model text included).
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from realign.config import Settings, get_settings
from realign.errors import FormatError, RealignError
from realign.schemas.relabel import RelabelSegment
from realign.segments.models import UNKNOWN_SPEAKER
from realign.services.response_parser import extract_json_array

logger = logging.getLogger(__name__)

_PROMPT_TEMPLATE = """You are a transcription editor. The following conversation has possibly incorrect speaker labels.

Only return a valid JSON array. Do NOT include explanations, comments, or any extra text.
Format: [{{"speaker": "SPEAKER_01", "text": "..."}}, ...]
Return exactly one element per line of the conversation, in the same order.

Conversation:
{conversation}

Realigned:
"""


class RelabelAttemptsExhausted(RealignError):
    """All model attempts failed; message is the last attempt's error."""

    def __init__(self, message: str, attempts: int, raw: str | None = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.raw = raw


def build_prompt(segments: list[RelabelSegment]) -> str:
    conversation = "\n".join(f"{s.speaker or UNKNOWN_SPEAKER}: {s.text}" for s in segments)
    return _PROMPT_TEMPLATE.format(conversation=conversation)


def _message_content(data: Any) -> str:
    """choices[0].message.content, or "" when the reply has another shape."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""


async def call_model(prompt: str, settings: Settings | None = None) -> str:
    """
    One chat-completions call. Returns the assistant text.
    Raises ValueError if the API key is missing; httpx.HTTPStatusError on API errors.
    """
    settings = settings or get_settings()
    api_key = (settings.LLM_API_KEY or "").strip()
    if not api_key:
        raise ValueError("LLM_API_KEY is required for relabeling")

    payload = {
        "model": settings.LLM_MODEL,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": settings.LLM_TEMPERATURE,
    }
    async with httpx.AsyncClient(timeout=settings.LLM_TIMEOUT_SECONDS) as client:
        resp = await client.post(
            settings.LLM_API_URL,
            json=payload,
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
        )
        resp.raise_for_status()
        data = resp.json()
    return _message_content(data)


async def _attempt(prompt: str, settings: Settings) -> list[Any]:
    text = await call_model(prompt, settings)
    result = extract_json_array(text)
    if not result.ok:
        logger.error("Failed to parse AI response (%s). Raw output:\n%s", result.error, result.raw)
        raise FormatError(f"Invalid AI response format: {result.error} Raw output: {result.raw}", raw=result.raw)
    return result.entries


async def relabel_segments(segments: list[RelabelSegment], settings: Settings | None = None) -> list[Any]:
    """
    Relabel one window. Returns the parsed array exactly as the model produced it.
    Raises RelabelAttemptsExhausted after the last failed attempt.
    """
    settings = settings or get_settings()
    max_attempts = max(1, settings.RELABEL_MAX_ATTEMPTS)
    prompt = build_prompt(segments)

    attempt = 1
    while True:
        try:
            return await _attempt(prompt, settings)
        except (FormatError, ValueError, httpx.HTTPError) as e:
            logger.warning("Attempt %s/%s failed: %s", attempt, max_attempts, e)
            if attempt >= max_attempts:
                raise RelabelAttemptsExhausted(str(e), attempts=attempt, raw=getattr(e, "raw", None)) from e
        await asyncio.sleep(settings.RELABEL_RETRY_DELAY_SECONDS)
        attempt += 1
