"""Three-phase multipart upload protocol (begin / put_part / complete) over GCS."""

from __future__ import annotations

import logging
import math
import re
import uuid
from typing import Any, Iterable

from models.upload import CompletedPart, UploadSession
from services import gcs
from services.errors import ValidationError

logger = logging.getLogger(__name__)

MIB = 1024 * 1024
MIN_UPLOAD_SIZE = 10 * MIB
PART_SIZE = 5 * MIB
VIDEO_CONTENT_TYPE = "video/mp4"
VIDEO_EXTENSION = ".mp4"
DEFAULT_FILENAME = "video.mp4"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.\-]+", re.ASCII)


def safe_filename(name: str | None) -> str:
    base = (name or DEFAULT_FILENAME).strip()
    return _UNSAFE_FILENAME_CHARS.sub("_", base)


def make_video_key(filename: str) -> str:
    return f"uploads/{uuid.uuid4()}/{safe_filename(filename)}"


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def begin_upload(filename: str | None, size: Any) -> UploadSession:
    """Validate the announced file and open a multipart session for it."""
    filename = filename or DEFAULT_FILENAME
    total = _to_float(size)
    if not math.isfinite(total) or total < MIN_UPLOAD_SIZE:
        raise ValidationError("File must be at least 10MB.")
    if not filename.lower().endswith(VIDEO_EXTENSION):
        raise ValidationError("Format must be .mp4")

    key = make_video_key(filename)
    upload_id = gcs.start_multipart_upload(key, content_type=VIDEO_CONTENT_TYPE)
    logger.info("[uploads] Session opened key=%s size=%d", key, int(total))
    return UploadSession(key=key, upload_id=upload_id, part_size=PART_SIZE)


def _require_session(key: str | None, upload_id: str | None) -> None:
    if not key or not upload_id:
        raise ValidationError("Missing key/uploadId")


def check_part_target(key: str | None, upload_id: str | None, part_number: int) -> None:
    if not key or not upload_id or part_number < 1:
        raise ValidationError("Missing key/uploadId/partNumber")


def put_part(key: str | None, upload_id: str | None, part_number: int, path: str, size: int) -> CompletedPart:
    """Write one part from a local file. Order across calls is not enforced."""
    check_part_target(key, upload_id, part_number)
    etag = gcs.upload_part(key, upload_id, part_number, path, size)
    return CompletedPart(part_number=part_number, etag=etag)


def _part_number(value: Any) -> int | None:
    number = _to_float(value)
    if not math.isfinite(number) or number < 1 or not number.is_integer():
        return None
    return int(number)


def normalize_parts(raw_parts: Iterable[Any]) -> list[CompletedPart]:
    """
    Keep entries with an integral partNumber >= 1 and a non-empty etag.

    Accepts dicts ({"partNumber", "etag"}) or CompletedPart instances. A part
    number listed twice keeps its last etag; the result is sorted by number.
    """
    by_number: dict[int, str] = {}
    for raw in raw_parts:
        if isinstance(raw, CompletedPart):
            number, etag = _part_number(raw.part_number), raw.etag
        elif isinstance(raw, dict):
            number, etag = _part_number(raw.get("partNumber")), raw.get("etag")
        else:
            continue
        etag = str(etag or "")
        if number is None or not etag:
            continue
        by_number[number] = etag
    return [CompletedPart(part_number=n, etag=by_number[n]) for n in sorted(by_number)]


def complete_upload(key: str | None, upload_id: str | None, raw_parts: list[Any] | None) -> str:
    """Finalize the session. Nothing is sent to the backend unless at least one part is valid."""
    if not key or not upload_id or not raw_parts:
        raise ValidationError("Missing key/uploadId/parts")
    parts = normalize_parts(raw_parts)
    if not parts:
        raise ValidationError("Invalid parts")
    gcs.complete_multipart_upload(key, upload_id, [(p.part_number, p.etag) for p in parts])
    logger.info("[uploads] Session completed key=%s parts=%d", key, len(parts))
    return key


def abort_upload(key: str | None, upload_id: str | None) -> None:
    """Release an opened session that will never be completed."""
    _require_session(key, upload_id)
    gcs.abort_multipart_upload(key, upload_id)
    logger.info("[uploads] Session aborted key=%s", key)
