"""Prompt generation API. POST /api/make-prompt."""

import logging
import math

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from services import prompt_builder
from services.history_store import HistoryStore, get_history_store

router = APIRouter(tags=["prompts"])
logger = logging.getLogger(__name__)

MAX_VIDEO_SIZE = 2**63 - 1  # signed 64-bit INTEGER column


class MakePromptRequest(BaseModel):
    frames: list[str] = Field(default_factory=list)
    template: str | None = None
    goal: str | None = None
    language: str | None = None
    style: str | None = None
    video_key: str | None = None
    video_name: str | None = None
    video_size: float | None = None


class PromptResult(BaseModel):
    summary: str
    prompt: str
    negative_prompt: str
    tags: list[str]
    notes: str


class MakePromptResponse(BaseModel):
    ok: bool = True
    id: int
    result: PromptResult


def _video_size(value: float | None) -> int | None:
    if not value or not math.isfinite(value):
        return None
    size = int(value)
    return size if 0 < size <= MAX_VIDEO_SIZE else None


@router.post("/make-prompt", response_model=MakePromptResponse)
def make_prompt(
    body: MakePromptRequest,
    store: HistoryStore = Depends(get_history_store),
) -> MakePromptResponse:
    """Generate a structured prompt from frames and persist it as a history record."""
    template = body.template or prompt_builder.DEFAULT_TEMPLATE
    goal = body.goal or prompt_builder.DEFAULT_GOAL
    language = body.language or prompt_builder.DEFAULT_LANGUAGE
    style = body.style or prompt_builder.DEFAULT_STYLE
    logger.info("[prompts] POST /api/make-prompt template=%s frames=%d video_key=%s", template, len(body.frames), body.video_key)

    generation = prompt_builder.generate_prompt(
        body.frames,
        template=template,
        goal=goal,
        language=language,
        style=style,
    )
    run_id = store.create(
        template=template,
        generated=generation.prompt,
        raw=generation.raw,
        goal=goal,
        language=language,
        style=style,
        frames_count=len(body.frames),
        video_key=body.video_key or None,
        video_name=body.video_name or None,
        video_size=_video_size(body.video_size),
    )
    return MakePromptResponse(id=run_id, result=PromptResult(**generation.prompt.as_dict()))
