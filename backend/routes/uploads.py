"""Multipart upload REST API: start, part, complete, abort."""

import logging
import os
import tempfile
from typing import Any

from fastapi import APIRouter, Query, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from routes.params import to_int
from services import upload_coordinator

router = APIRouter(prefix="/upload", tags=["uploads"])
logger = logging.getLogger(__name__)


class UploadStartRequest(BaseModel):
    filename: str | None = None
    size: float | None = None


class UploadStartResponse(BaseModel):
    ok: bool = True
    key: str
    uploadId: str
    partSize: int


class UploadPartResponse(BaseModel):
    ok: bool = True
    etag: str
    partNumber: int


class UploadCompleteRequest(BaseModel):
    key: str | None = None
    uploadId: str | None = None
    parts: list[Any] = Field(default_factory=list)


class UploadCompleteResponse(BaseModel):
    ok: bool = True
    key: str


class UploadAbortRequest(BaseModel):
    key: str | None = None
    uploadId: str | None = None


class UploadAbortResponse(BaseModel):
    ok: bool = True
    aborted: bool = True


@router.post("/start", response_model=UploadStartResponse)
def start_upload(body: UploadStartRequest) -> UploadStartResponse:
    """Validate size/extension and open a multipart session."""
    logger.info("[uploads] POST /api/upload/start filename=%r size=%s", body.filename, body.size)
    session = upload_coordinator.begin_upload(body.filename, body.size)
    return UploadStartResponse(key=session.key, uploadId=session.upload_id, partSize=session.part_size)


@router.put("/part", response_model=UploadPartResponse)
async def upload_part(
    request: Request,
    key: str = Query(""),
    upload_id: str = Query("", alias="uploadId"),
    part_number: str | None = Query(None, alias="partNumber"),
) -> UploadPartResponse:
    """Write the raw request body as one part of the session."""
    number = to_int(part_number, 0)
    upload_coordinator.check_part_target(key, upload_id, number)

    spool = tempfile.NamedTemporaryFile(prefix="upload-part-", suffix=".bin", delete=False)
    try:
        size = 0
        try:
            async for chunk in request.stream():
                await run_in_threadpool(spool.write, chunk)
                size += len(chunk)
        finally:
            await run_in_threadpool(spool.close)
        part = await run_in_threadpool(
            upload_coordinator.put_part, key, upload_id, number, spool.name, size
        )
    finally:
        os.unlink(spool.name)
    logger.info("[uploads] PUT /api/upload/part key=%s partNumber=%d bytes=%d", key, number, size)
    return UploadPartResponse(etag=part.etag, partNumber=part.part_number)


@router.post("/complete", response_model=UploadCompleteResponse)
def complete_upload(body: UploadCompleteRequest) -> UploadCompleteResponse:
    logger.info("[uploads] POST /api/upload/complete key=%s parts=%d", body.key, len(body.parts))
    key = upload_coordinator.complete_upload(body.key, body.uploadId, body.parts)
    return UploadCompleteResponse(key=key)


@router.post("/abort", response_model=UploadAbortResponse)
def abort_upload(body: UploadAbortRequest) -> UploadAbortResponse:
    logger.info("[uploads] POST /api/upload/abort key=%s", body.key)
    upload_coordinator.abort_upload(body.key, body.uploadId)
    return UploadAbortResponse()
