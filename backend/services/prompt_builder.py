"""
Build the generation request from frames + configuration, call the backend,
and parse a best-effort structured prompt out of its free-form text.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Sequence

import httpx

from models.prompt_run import GeneratedPrompt
from services import responses_api
from services.errors import ConfigurationError, UpstreamError, ValidationError
from services.prompt_templates import OUTPUT_SCHEMA_HINT, SYSTEM_INSTRUCTION, template_guide

logger = logging.getLogger(__name__)

MAX_FRAMES = 16
MAX_TAGS = 50
DEFAULT_MODEL = "gpt-5"
DEFAULT_TEMPLATE = "general"
DEFAULT_GOAL = "Create the best prompt based on the contents of this video."
DEFAULT_LANGUAGE = "en"
DEFAULT_STYLE = "concise, clear, ready to copy-paste"
IMAGE_DETAIL = "low"


@dataclass
class GenerationResult:
    prompt: GeneratedPrompt
    raw: dict[str, Any]        # full backend response, kept for audit


def get_api_key() -> str:
    api_key = os.environ.get("OPENAI_API_KEY", "").strip()
    if not api_key:
        raise ConfigurationError("OPENAI_API_KEY is not set.")
    return api_key


def get_model() -> str:
    return os.environ.get("OPENAI_MODEL", "").strip() or DEFAULT_MODEL


def build_instruction_text(template: str, goal: str, language: str, style: str) -> str:
    return "\n".join(
        [
            SYSTEM_INSTRUCTION,
            "",
            f"Prompt goal: {goal}",
            f"Output language: {language}",
            f"Style: {style}",
            "",
            template_guide(template),
            "",
            OUTPUT_SCHEMA_HINT,
        ]
    )


def build_payload(
    frames: Sequence[str],
    *,
    template: str,
    goal: str,
    language: str,
    style: str,
    model: str = DEFAULT_MODEL,
) -> dict[str, Any]:
    """One user message: the instruction text followed by every frame, in order."""
    content: list[dict[str, Any]] = [
        {"type": "input_text", "text": build_instruction_text(template, goal, language, style)},
    ]
    content.extend({"type": "input_image", "image_url": frame, "detail": IMAGE_DETAIL} for frame in frames)
    return {"model": model, "input": [{"role": "user", "content": content}]}


def extract_output_text(detail: dict[str, Any]) -> str:
    output_text = detail.get("output_text")
    if isinstance(output_text, str) and output_text:
        return output_text
    output = detail.get("output")
    if not isinstance(output, list):
        return ""
    chunks = []
    for item in output:
        content = item.get("content") if isinstance(item, dict) else None
        if not isinstance(content, list):
            chunks.append("")
            continue
        chunks.append(
            "".join(str(c.get("text") or "") if isinstance(c, dict) else "" for c in content)
        )
    return "\n".join(chunks)


def find_json_object(text: str) -> str | None:
    """First top-level balanced {...} substring. Braces inside JSON strings are ignored."""
    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _load_object(text: str) -> dict[str, Any]:
    candidate = find_json_object(text) if "{" in text else text
    if candidate is None:
        return {}
    try:
        parsed = json.loads(candidate)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _tag_text(tag: Any) -> str:
    """Strings pass through; other JSON values keep their JSON spelling."""
    return tag if isinstance(tag, str) else json.dumps(tag, ensure_ascii=False)


def _text_field(parsed: dict[str, Any], name: str, default: str) -> str:
    value = parsed.get(name)
    return value if isinstance(value, str) else default


def parse_model_output(text: str) -> GeneratedPrompt:
    """Never raises: missing or malformed fields fall back to defaults, prompt to the raw text."""
    parsed = _load_object(text)
    tags = parsed.get("tags")
    return GeneratedPrompt(
        summary=_text_field(parsed, "summary", ""),
        prompt=_text_field(parsed, "prompt", text),
        negative_prompt=_text_field(parsed, "negative_prompt", ""),
        tags=[_tag_text(tag) for tag in tags][:MAX_TAGS] if isinstance(tags, list) else [],
        notes=_text_field(parsed, "notes", ""),
    )


def validate_frames(frames: Sequence[Any]) -> None:
    if len(frames) == 0:
        raise ValidationError("frames is empty")
    if len(frames) > MAX_FRAMES:
        raise ValidationError(f"at most {MAX_FRAMES} frames")


def generate_prompt(
    frames: Sequence[str],
    *,
    template: str = DEFAULT_TEMPLATE,
    goal: str = DEFAULT_GOAL,
    language: str = DEFAULT_LANGUAGE,
    style: str = DEFAULT_STYLE,
    api_key: str | None = None,
    model: str | None = None,
    transport: httpx.BaseTransport | None = None,
) -> GenerationResult:
    """
    Validate frames, call the generation backend once, and parse its output.

    Raises ValidationError (bad frames, checked before any network call),
    ConfigurationError (no API key) or UpstreamError (non-2xx or unreachable
    backend). Unparseable model output is not an error.
    """
    validate_frames(frames)
    api_key = api_key or get_api_key()
    payload = build_payload(
        frames,
        template=template,
        goal=goal,
        language=language,
        style=style,
        model=model or get_model(),
    )
    logger.info("[prompts] Requesting generation model=%s template=%s frames=%d", payload["model"], template, len(frames))
    try:
        result = responses_api.create_response(payload, api_key=api_key, transport=transport)
    except httpx.HTTPError as exc:
        logger.warning("[prompts] Generation backend unreachable: %s", exc)
        raise UpstreamError("OpenAI request failed", detail=str(exc)) from exc
    if not result.ok:
        logger.warning("[prompts] Generation backend returned %d", result.status_code)
        raise UpstreamError("OpenAI error", detail=result.detail)

    output_text = extract_output_text(result.detail)
    prompt = parse_model_output(output_text)
    logger.info("[prompts] Generation done: tags=%d prompt_chars=%d", len(prompt.tags), len(prompt.prompt))
    return GenerationResult(prompt=prompt, raw=result.detail)
