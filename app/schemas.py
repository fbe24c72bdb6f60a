"""Pydantic schemas shared across services."""
from __future__ import annotations

from pydantic import BaseModel, Field

from app.exceptions import ErrorCategory, SubmissionError


class ExperienceEntry(BaseModel):
    role: str = ""
    org: str = ""
    dates: str = ""
    summary: str = ""


class ApplicationRecord(BaseModel):
    """Flattened application as it is written to the ``applications`` table."""

    job_slug: str
    name: str
    email: str
    age: int | None = None
    country: str | None = None
    state: str | None = None
    whatsapp: str | None = None
    qualification: str | None = None
    qualification_other: str | None = None
    degree_name: str | None = None
    heard_from: str | None = None
    heard_from_other: str | None = None
    motivation: str
    resume_path: str | None = None
    cover_letter_path: str | None = None
    project_summary_path: str | None = None
    experiences: list[ExperienceEntry] = Field(default_factory=list)
    # Open-ended answers to posting-specific questions; keys are not fixed.
    custom_answers: dict[str, str] = Field(default_factory=dict)


class SubmissionResult(BaseModel):
    ok: bool
    error: str | None = None
    category: ErrorCategory | None = Field(default=None, exclude=True)

    @classmethod
    def success(cls) -> SubmissionResult:
        return cls(ok=True)

    @classmethod
    def failure(cls, exc: SubmissionError) -> SubmissionResult:
        return cls(ok=False, error=exc.message, category=exc.category)

    @property
    def status_code(self) -> int:
        return self.category.status_code if self.category else 200

    def body(self) -> dict[str, object]:
        return self.model_dump(exclude_none=True)


class SlotSummary(BaseModel):
    field: str
    label: str


class PostingSummary(BaseModel):
    slug: str
    title: str
    required_attachments: list[SlotSummary]
    optional_attachments: list[SlotSummary]
