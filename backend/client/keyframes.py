"""
Keyframe selection: sample evenly spaced candidate frames from a video, score each
by pixel difference against the previous candidate, then keep a time-spread set
of the most different ones.

Decoding is local to the client; the server never sees the video pixels.
"""

from __future__ import annotations

import base64
import io
import logging
import math
from typing import IO, Callable, Sequence

import av
import numpy as np
from av import VideoFrame
from av.error import FFmpegError
from PIL import Image

from models.frames import CandidateFrame

logger = logging.getLogger(__name__)

DEFAULT_PICK_COUNT = 8
DEFAULT_CANDIDATE_COUNT = 16
SCORE_SIZE = 64            # scoring sample is SCORE_SIZE x SCORE_SIZE RGB
TARGET_WIDTH = 512         # output frames are scaled to this width
JPEG_QUALITY = 72
EDGE_MARGIN = 0.02         # skip the first and last 2% of the video
SEEK_TOLERANCE = 1e-3      # seconds

ProgressCallback = Callable[[int, int, CandidateFrame], None]


class InvalidVideoError(ValueError):
    pass


def candidate_timestamps(duration: float, count: int) -> list[float]:
    """`count` timestamps evenly spread over the interior 96% of the video."""
    span = 1.0 - 2 * EDGE_MARGIN
    return [duration * (EDGE_MARGIN + span * (i / max(1, count - 1))) for i in range(count)]


def diversity_score(previous: np.ndarray | None, current: np.ndarray) -> float:
    """
    Sum of absolute R, G and B differences between two equally sized samples.

    The first candidate has nothing to compare against and scores math.inf so
    it is always eligible.
    """
    if previous is None:
        return math.inf
    a = previous[..., :3].astype(np.int32)
    b = current[..., :3].astype(np.int32)
    return float(np.abs(b - a).sum())


def min_spacing(duration: float, pick_count: int) -> float:
    return duration / (pick_count + 1) * 0.5


def pick_diverse(
    candidates: Sequence[CandidateFrame],
    duration: float,
    pick_count: int,
) -> list[CandidateFrame]:
    """
    Greedy pick by descending score with a minimum time gap, then fill any
    remaining slots by score alone. Returned in presentation (time) order.
    """
    ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
    gap = min_spacing(duration, pick_count)

    picked: list[CandidateFrame] = []
    for candidate in ranked:
        if len(picked) >= pick_count:
            break
        if all(abs(p.timestamp - candidate.timestamp) >= gap for p in picked):
            picked.append(candidate)

    # Spacing was too strict: relax it so the count is met whenever possible.
    chosen = {id(p) for p in picked}
    for candidate in ranked:
        if len(picked) >= pick_count:
            break
        if id(candidate) not in chosen:
            picked.append(candidate)
            chosen.add(id(candidate))

    return sorted(picked, key=lambda c: c.timestamp)


def output_size(width: int, height: int, target_width: int = TARGET_WIDTH) -> tuple[int, int]:
    """Scale to target_width, keeping the aspect ratio."""
    if width <= 0 or height <= 0:
        return target_width, target_width
    return target_width, max(1, round(height * target_width / width))


def encode_jpeg_data_url(image: Image.Image, *, quality: int = JPEG_QUALITY) -> str:
    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    return "data:image/jpeg;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


class VideoSampler:
    """Seek-and-decode access to single frames of the first video stream."""

    def __init__(self, source: str | IO[bytes]) -> None:
        try:
            self._container = av.open(source)
        except FFmpegError as exc:
            raise InvalidVideoError(f"Could not open video: {exc}") from exc
        if not self._container.streams.video:
            self._container.close()
            raise InvalidVideoError("No video stream found.")
        self._stream = self._container.streams.video[0]

    def __enter__(self) -> VideoSampler:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._container.close()

    @property
    def duration(self) -> float:
        """Seconds; NaN when neither the stream nor the container reports it."""
        stream = self._stream
        if stream.duration is not None and stream.time_base is not None:
            return float(stream.duration * stream.time_base)
        if self._container.duration is not None:
            return self._container.duration / av.time_base
        return math.nan

    @property
    def size(self) -> tuple[int, int]:
        ctx = self._stream.codec_context
        return int(ctx.width or 0), int(ctx.height or 0)

    def frame_at(self, timestamp: float) -> VideoFrame:
        """First decoded frame at or after timestamp (the last frame if the video ends first)."""
        stream = self._stream
        if stream.time_base is not None:
            self._container.seek(int(timestamp / stream.time_base), stream=stream)
        else:
            self._container.seek(int(timestamp * av.time_base))
        last: VideoFrame | None = None
        for frame in self._container.decode(stream):
            last = frame
            if frame.time is None or frame.time + SEEK_TOLERANCE >= timestamp:
                return frame
        if last is None:
            raise InvalidVideoError(f"No frame could be decoded at t={timestamp:.2f}s")
        return last


def select_keyframes(
    source: str | IO[bytes],
    pick_count: int = DEFAULT_PICK_COUNT,
    candidate_count: int = DEFAULT_CANDIDATE_COUNT,
    *,
    target_width: int = TARGET_WIDTH,
    jpeg_quality: int = JPEG_QUALITY,
    on_progress: ProgressCallback | None = None,
) -> list[CandidateFrame]:
    """
    Decode `source`, score `candidate_count` sampled frames and return
    min(pick_count, candidate_count) of them as JPEG data URLs in time order.

    Each call re-opens and re-decodes the source.
    """
    if pick_count < 1 or candidate_count < 1:
        raise ValueError("pick_count and candidate_count must be >= 1")

    with VideoSampler(source) as sampler:
        duration = sampler.duration
        if not math.isfinite(duration) or duration <= 0:
            raise InvalidVideoError("Video duration is not valid.")
        width, height = sampler.size
        logger.info("[keyframes] duration=%.2fs size=%dx%d candidates=%d pick=%d", duration, width, height, candidate_count, pick_count)

        timestamps = candidate_timestamps(duration, candidate_count)
        candidates: list[CandidateFrame] = []
        previous: np.ndarray | None = None
        for index, timestamp in enumerate(timestamps):
            frame = sampler.frame_at(timestamp)
            sample = frame.reformat(width=SCORE_SIZE, height=SCORE_SIZE, format="rgb24").to_ndarray()
            score = diversity_score(previous, sample)
            previous = sample

            out_w, out_h = output_size(width or frame.width, height or frame.height, target_width)
            image = frame.reformat(width=out_w, height=out_h, format="rgb24").to_image()
            candidate = CandidateFrame(
                timestamp=timestamp,
                score=score,
                data_url=encode_jpeg_data_url(image, quality=jpeg_quality),
            )
            candidates.append(candidate)
            if on_progress is not None:
                on_progress(index, len(timestamps), candidate)

    picked = pick_diverse(candidates, duration, pick_count)
    logger.info("[keyframes] Selected %d frames at %s", len(picked), ", ".join(f"{c.timestamp:.2f}s" for c in picked))
    return picked
