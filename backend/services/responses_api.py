"""Single POST to an OpenAI-compatible Responses endpoint."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TIMEOUT_SECONDS = 300.0


@dataclass
class ResponsesResult:
    ok: bool
    status_code: int
    detail: dict[str, Any]


def get_base_url() -> str:
    return (os.environ.get("OPENAI_BASE_URL", "").strip() or DEFAULT_BASE_URL).rstrip("/")


def get_timeout_seconds() -> float:
    raw = os.environ.get("OPENAI_TIMEOUT_SECONDS", "").strip()
    try:
        return float(raw) if raw else DEFAULT_TIMEOUT_SECONDS
    except ValueError:
        logger.warning("[responses_api] Ignoring invalid OPENAI_TIMEOUT_SECONDS=%r", raw)
        return DEFAULT_TIMEOUT_SECONDS


def create_response(
    payload: dict[str, Any],
    *,
    api_key: str,
    base_url: str | None = None,
    timeout: float | None = None,
    transport: httpx.BaseTransport | None = None,
) -> ResponsesResult:
    """
    POST payload to {base_url}/responses and return status plus decoded body.

    A body that is not a JSON object decodes to {}. Transport errors
    (timeouts, refused connections) propagate as httpx.HTTPError.
    """
    url = f"{base_url or get_base_url()}/responses"
    with httpx.Client(
        timeout=timeout if timeout is not None else get_timeout_seconds(),
        transport=transport,
    ) as client:
        res = client.post(
            url,
            json=payload,
            headers={"authorization": f"Bearer {api_key}"},
        )
    try:
        detail = res.json()
    except ValueError:
        detail = {}
    if not isinstance(detail, dict):
        detail = {}
    return ResponsesResult(ok=res.is_success, status_code=res.status_code, detail=detail)
