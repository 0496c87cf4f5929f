from collections.abc import Callable, Iterator
from pathlib import Path

import av
import numpy as np
import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from app.main import app
from models.prompt_run import Base
from services.database import get_session


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def db_engine() -> Iterator[Engine]:
    """Fresh in-memory SQLite shared by every connection of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def override_db_session(db_engine: Engine) -> Iterator[None]:
    def _session() -> Iterator[Session]:
        with Session(db_engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session
    yield
    app.dependency_overrides.pop(get_session, None)


SEGMENT_COLORS = [(220, 30, 30), (30, 200, 40), (20, 40, 220), (240, 240, 240), (10, 10, 10)]


@pytest.fixture
def make_video(tmp_path: Path) -> Callable[..., Path]:
    """Encode a small mp4 whose color changes every second."""

    def _make(
        name: str = "clip.mp4",
        *,
        seconds: int = 5,
        fps: int = 10,
        width: int = 128,
        height: int = 96,
    ) -> Path:
        path = tmp_path / name
        container = av.open(str(path), "w")
        stream = container.add_stream("mpeg4", rate=fps)
        stream.width = width
        stream.height = height
        stream.pix_fmt = "yuv420p"
        for i in range(seconds * fps):
            rgb = np.zeros((height, width, 3), dtype=np.uint8)
            rgb[:] = SEGMENT_COLORS[(i // fps) % len(SEGMENT_COLORS)]
            frame = av.VideoFrame.from_ndarray(rgb, format="rgb24")
            frame.pts = i
            for packet in stream.encode(frame):
                container.mux(packet)
        for packet in stream.encode():
            container.mux(packet)
        container.close()
        return path

    return _make
