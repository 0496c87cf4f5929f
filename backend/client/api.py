"""HTTP client for the Prompt Maker API, including the sequential multipart upload loop."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Sequence

import httpx

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "http://localhost:8000"
DEFAULT_TIMEOUT_SECONDS = 600.0

# (part_number, bytes_sent_so_far, total_bytes)
UploadProgressCallback = Callable[[int, int, int], None]


class ApiError(RuntimeError):
    def __init__(self, message: str, *, status_code: int, payload: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


def get_api_base() -> str:
    return os.environ.get("PROMPT_MAKER_API", "").strip() or DEFAULT_API_BASE


class PromptMakerClient:
    """
    Thin wrapper over the JSON API. Every call raises ApiError on a non-2xx
    status or an `ok: false` body.

    Pass `http` to reuse a configured httpx.Client (e.g. FastAPI's TestClient).
    """

    def __init__(self, base_url: str | None = None, *, http: httpx.Client | None = None) -> None:
        self._base_url = (base_url if base_url is not None else get_api_base()).rstrip("/")
        self._http = http or httpx.Client(timeout=DEFAULT_TIMEOUT_SECONDS)
        self._owns_http = http is None

    def __enter__(self) -> PromptMakerClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        res = self._http.request(method, f"{self._base_url}{path}", **kwargs)
        try:
            body = res.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        if res.is_error or not body.get("ok"):
            message = str(body.get("error") or f"{method} {path} failed with HTTP {res.status_code}")
            raise ApiError(message, status_code=res.status_code, payload=body)
        return body

    # --- uploads ---

    def start_upload(self, filename: str, size: int) -> dict[str, Any]:
        return self._request("POST", "/api/upload/start", json={"filename": filename, "size": size})

    def upload_part(self, key: str, upload_id: str, part_number: int, chunk: bytes) -> str:
        body = self._request(
            "PUT",
            "/api/upload/part",
            params={"key": key, "uploadId": upload_id, "partNumber": part_number},
            content=chunk,
        )
        return str(body.get("etag") or "").replace('"', "")

    def complete_upload(self, key: str, upload_id: str, parts: Sequence[dict[str, Any]]) -> str:
        body = self._request(
            "POST",
            "/api/upload/complete",
            json={"key": key, "uploadId": upload_id, "parts": list(parts)},
        )
        return str(body["key"])

    def abort_upload(self, key: str, upload_id: str) -> None:
        self._request("POST", "/api/upload/abort", json={"key": key, "uploadId": upload_id})

    def upload_video(self, path: str | Path, *, on_progress: UploadProgressCallback | None = None) -> str:
        """
        Upload a file front-to-back, one part at a time, and return its storage key.

        No retries: the first failing part aborts the session and re-raises.
        """
        path = Path(path)
        total = path.stat().st_size
        started = self.start_upload(path.name, total)
        key, upload_id, part_size = started["key"], started["uploadId"], int(started["partSize"])
        logger.info("[client] Upload started key=%s uploadId=%s partSize=%d", key, upload_id, part_size)

        parts: list[dict[str, Any]] = []
        sent = 0
        try:
            with path.open("rb") as fh:
                part_number = 1
                while chunk := fh.read(part_size):
                    etag = self.upload_part(key, upload_id, part_number, chunk)
                    parts.append({"partNumber": part_number, "etag": etag})
                    sent += len(chunk)
                    logger.info("[client] Uploaded part %d (%d bytes)", part_number, len(chunk))
                    if on_progress is not None:
                        on_progress(part_number, sent, total)
                    part_number += 1
        except (ApiError, httpx.HTTPError):
            logger.warning("[client] Upload of %s failed after %d parts; aborting session", path.name, len(parts))
            try:
                self.abort_upload(key, upload_id)
            except (ApiError, httpx.HTTPError) as exc:
                logger.warning("[client] Abort failed for key=%s: %s", key, exc)
            raise

        parts.sort(key=lambda p: p["partNumber"])
        key = self.complete_upload(key, upload_id, parts)
        logger.info("[client] Upload complete key=%s", key)
        return key

    # --- prompts ---

    def make_prompt(
        self,
        frames: Sequence[str],
        *,
        template: str | None = None,
        goal: str | None = None,
        language: str | None = None,
        style: str | None = None,
        video_key: str | None = None,
        video_name: str | None = None,
        video_size: int | None = None,
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            "/api/make-prompt",
            json={
                "frames": list(frames),
                "template": template,
                "goal": goal,
                "language": language,
                "style": style,
                "video_key": video_key,
                "video_name": video_name,
                "video_size": video_size,
            },
        )

    # --- history ---

    def list_history(self, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self._request("GET", "/api/history", params={"limit": limit, "offset": offset})["items"]

    def get_history(self, run_id: int) -> dict[str, Any]:
        return self._request("GET", f"/api/history/{run_id}")["item"]

    def delete_history(self, run_id: int) -> None:
        self._request("DELETE", f"/api/history/{run_id}")

    def video_url(self, run_id: int) -> str:
        return self._request("GET", f"/api/history/{run_id}/video-url")["url"]
