"""History REST API over persisted prompt runs."""

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from routes.params import to_int
from services import gcs
from services.errors import NotFoundError, ValidationError
from services.history_store import MAX_LIMIT, MAX_OFFSET, MIN_LIMIT, HistoryStore, clamp, get_history_store

router = APIRouter(prefix="/history", tags=["history"])
logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20


class HistoryListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    video_key: str | None = None
    video_name: str | None = None
    template: str
    goal: str | None = None
    language: str | None = None
    style: str | None = None
    frames_count: int | None = None
    summary: str | None = None
    prompt: str | None = None
    negative_prompt: str | None = None
    tags: list[Any]
    notes: str | None = None
    created_at: datetime


class HistoryItem(HistoryListItem):
    video_size: int | None = None
    raw_json: str | None = None


class HistoryListResponse(BaseModel):
    ok: bool = True
    items: list[HistoryListItem]
    limit: int
    offset: int


class HistoryItemResponse(BaseModel):
    ok: bool = True
    item: HistoryItem


class HistoryDeleteResponse(BaseModel):
    ok: bool = True
    deleted: bool = True


class VideoUrlResponse(BaseModel):
    ok: bool = True
    url: str


def _parse_id(raw: str) -> int:
    run_id = to_int(raw, 0)
    if run_id < 1:
        raise ValidationError("Invalid id")
    return run_id


@router.get("", response_model=HistoryListResponse)
def list_history(
    limit: str | None = Query(None),
    offset: str | None = Query(None),
    store: HistoryStore = Depends(get_history_store),
) -> HistoryListResponse:
    """Newest first, paged."""
    page_limit = clamp(to_int(limit, DEFAULT_LIMIT), MIN_LIMIT, MAX_LIMIT)
    page_offset = clamp(to_int(offset, 0), 0, MAX_OFFSET)
    runs = store.list_page(page_limit, page_offset)
    logger.info("[history] GET /api/history limit=%d offset=%d -> %d items", page_limit, page_offset, len(runs))
    return HistoryListResponse(
        items=[HistoryListItem.model_validate(run) for run in runs],
        limit=page_limit,
        offset=page_offset,
    )


@router.get("/{run_id}", response_model=HistoryItemResponse)
def get_history_item(run_id: str, store: HistoryStore = Depends(get_history_store)) -> HistoryItemResponse:
    run = store.get(_parse_id(run_id))
    if run is None:
        raise NotFoundError("Not found")
    return HistoryItemResponse(item=HistoryItem.model_validate(run))


@router.delete("/{run_id}", response_model=HistoryDeleteResponse)
def delete_history_item(run_id: str, store: HistoryStore = Depends(get_history_store)) -> HistoryDeleteResponse:
    if store.delete(_parse_id(run_id)) == 0:
        raise NotFoundError("Not found")
    return HistoryDeleteResponse()


@router.get("/{run_id}/video-url", response_model=VideoUrlResponse)
def get_video_url(run_id: str, store: HistoryStore = Depends(get_history_store)) -> VideoUrlResponse:
    """Short-lived signed download URL for the video a run was generated from."""
    run = store.get(_parse_id(run_id))
    if run is None:
        raise NotFoundError("Not found")
    if not run.video_key:
        raise NotFoundError("No video stored for this item")
    return VideoUrlResponse(url=gcs.generate_signed_url(run.video_key))
