"""Create / list / get / delete over persisted prompt runs. Records are never updated."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import Depends
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from models.prompt_run import GeneratedPrompt, PromptRun
from services.database import get_session

logger = logging.getLogger(__name__)

MIN_LIMIT = 1
MAX_LIMIT = 100
MAX_OFFSET = 10_000


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class HistoryStore:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(
        self,
        *,
        template: str,
        generated: GeneratedPrompt,
        raw: dict[str, Any],
        goal: str | None = None,
        language: str | None = None,
        style: str | None = None,
        frames_count: int | None = None,
        video_key: str | None = None,
        video_name: str | None = None,
        video_size: int | None = None,
    ) -> int:
        """Insert one run and return its sequential id."""
        run = PromptRun(
            video_key=video_key,
            video_name=video_name,
            video_size=video_size,
            template=template,
            goal=goal,
            language=language,
            style=style,
            frames_count=frames_count,
            summary=generated.summary,
            prompt=generated.prompt,
            negative_prompt=generated.negative_prompt,
            tags_json=json.dumps(generated.tags),
            notes=generated.notes,
            raw_json=json.dumps(raw),
        )
        self._session.add(run)
        self._session.commit()
        logger.info("[history] Created run id=%s template=%s", run.id, template)
        return run.id

    def list_page(self, limit: int = 20, offset: int = 0) -> list[PromptRun]:
        """Newest first; limit is clamped to [1, 100] and offset to [0, 10000]."""
        stmt = (
            select(PromptRun)
            .order_by(PromptRun.created_at.desc(), PromptRun.id.desc())
            .limit(clamp(limit, MIN_LIMIT, MAX_LIMIT))
            .offset(clamp(offset, 0, MAX_OFFSET))
        )
        return list(self._session.scalars(stmt))

    def get(self, run_id: int) -> PromptRun | None:
        return self._session.get(PromptRun, run_id)

    def delete(self, run_id: int) -> int:
        """Number of rows removed; 0 for an unknown id."""
        result = self._session.execute(delete(PromptRun).where(PromptRun.id == run_id))
        self._session.commit()
        if result.rowcount:
            logger.info("[history] Deleted run id=%s", run_id)
        return result.rowcount


def get_history_store(session: Session = Depends(get_session)) -> HistoryStore:
    return HistoryStore(session)
