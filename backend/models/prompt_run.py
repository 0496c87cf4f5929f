import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

TEMPLATE_NAMES = ("general", "sdxl", "midjourney", "video")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


@dataclass
class GeneratedPrompt:
    summary: str = ""
    prompt: str = ""
    negative_prompt: str = ""
    tags: list[str] = field(default_factory=list)
    notes: str = ""

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class PromptRun(Base):
    """One persisted generation plus the configuration that produced it."""

    __tablename__ = "prompt_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    video_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    video_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    video_size: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Stored as sent; unknown names only fall back to "general" at generation time.
    template: Mapped[str] = mapped_column(Text, nullable=False)
    goal: Mapped[str | None] = mapped_column(Text, nullable=True)
    language: Mapped[str | None] = mapped_column(Text, nullable=True)
    style: Mapped[str | None] = mapped_column(Text, nullable=True)
    frames_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    negative_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    raw_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    @property
    def tags(self) -> list[Any]:
        try:
            tags = json.loads(self.tags_json or "[]")
        except ValueError:
            return []
        return tags if isinstance(tags, list) else []
