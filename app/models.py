"""Database models for submitted applications."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Application(Base):
    __tablename__ = "applications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    job_slug: Mapped[str] = mapped_column(String(120), index=True)

    name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str] = mapped_column(String(320))
    age: Mapped[int | None] = mapped_column(Integer)
    country: Mapped[str | None] = mapped_column(String(120))
    state: Mapped[str | None] = mapped_column(String(120))
    whatsapp: Mapped[str | None] = mapped_column(String(60))

    qualification: Mapped[str | None] = mapped_column(String(120))
    qualification_other: Mapped[str | None] = mapped_column(String(200))
    degree_name: Mapped[str | None] = mapped_column(String(200))
    heard_from: Mapped[str | None] = mapped_column(String(120))
    heard_from_other: Mapped[str | None] = mapped_column(String(200))
    motivation: Mapped[str] = mapped_column(Text, nullable=False)

    resume_path: Mapped[str | None] = mapped_column(String(255))
    cover_letter_path: Mapped[str | None] = mapped_column(String(255))
    project_summary_path: Mapped[str | None] = mapped_column(String(255))

    experiences: Mapped[list[dict]] = mapped_column(JSON, default=list)
    custom_answers: Mapped[dict] = mapped_column(JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
