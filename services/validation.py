"""Validation gates and data shaping for application forms.

Everything here is pure: functions read a :class:`FormPayload` and either
return shaped data or raise :class:`SubmissionRejected` with a message
meant for the applicant.
"""
from __future__ import annotations

import math
import re

from app.exceptions import SubmissionRejected
from app.postings import (
    ALWAYS_REQUIRED,
    FIELD_LABELS,
    HEARD_FROM_CHOICES,
    OTHER,
    AttachmentSlot,
    PostingConfig,
    get_posting,
)
from app.schemas import ExperienceEntry
from services.forms import PDF_MEDIA_TYPE, FormPayload, UploadedFile

MAX_EXPERIENCE_ROWS = 3
MOTIVATION_FIELD = "q1"
CUSTOM_ANSWER_PREFIX = "utm_"

TEXT_FIELDS = (
    *ALWAYS_REQUIRED,
    "age",
    "country",
    "state",
    "whatsapp",
    "qualification",
    "qualification_other",
    "degree_name",
    "heard_from",
    "heard_from_other",
    "consent",
)

_UNSAFE_NAME_CHARS = re.compile(r"[^a-z0-9_-]+")


def field_values(payload: FormPayload, posting: PostingConfig) -> dict[str, str]:
    """Trimmed values for the standard fields, keyed by their stored names."""

    values = {name: payload.text(name) for name in TEXT_FIELDS}
    values["motivation"] = payload.text(MOTIVATION_FIELD) or (posting.motivation_default or "")
    return values


def _missing(names) -> SubmissionRejected:
    labels = ", ".join(FIELD_LABELS[name] for name in names)
    return SubmissionRejected(f"Missing required fields: {labels}")


def resolve_posting(payload: FormPayload) -> PostingConfig:
    slug = payload.text("job_slug")
    if not slug:
        raise _missing([name for name in ALWAYS_REQUIRED if not payload.text(name)])
    posting = get_posting(slug)
    if posting is None:
        raise SubmissionRejected("Unknown job posting", detail=slug)
    return posting


def check_required_fields(values: dict[str, str], posting: PostingConfig) -> None:
    required = [*ALWAYS_REQUIRED, *sorted(posting.required_fields, key=list(FIELD_LABELS).index)]
    missing = [name for name in required if not values.get(name)]
    if missing:
        raise _missing(missing)


def check_choices(values: dict[str, str], posting: PostingConfig) -> None:
    """Enumerated fields must hold a known choice, and "Other" needs its text box."""

    qualification = values.get("qualification", "")
    if qualification and qualification not in posting.qualification_choices:
        raise SubmissionRejected("Please choose a valid qualification.")
    if qualification == OTHER and not values.get("qualification_other"):
        raise SubmissionRejected("Please specify your qualification in the “If Other, specify” field.")

    heard_from = values.get("heard_from", "")
    if heard_from and heard_from not in HEARD_FROM_CHOICES:
        raise SubmissionRejected("Please choose how you heard about this role.")
    if heard_from == OTHER and not values.get("heard_from_other"):
        raise SubmissionRejected(
            "Please specify how you heard about this role in the “If Other, specify” field."
        )


def is_pdf(upload: UploadedFile) -> bool:
    # Either signal is enough; browsers do not always send a reliable type.
    media_type = upload.content_type.split(";")[0].strip().lower()
    return media_type == PDF_MEDIA_TYPE or upload.filename.lower().endswith(".pdf")


def _format_limit(max_bytes: int) -> str:
    if max_bytes % (1024 * 1024) == 0:
        return f"{max_bytes // (1024 * 1024)} MB"
    return f"{max_bytes // 1024} KB"


def check_attachment(upload: UploadedFile | None, slot: AttachmentSlot, *, required: bool, max_bytes: int) -> None:
    if upload is None:
        if required:
            raise SubmissionRejected(f"{slot.label} is required.")
        return
    if not is_pdf(upload):
        raise SubmissionRejected(f"{slot.label}: please upload a PDF file.")
    if upload.size > max_bytes:
        raise SubmissionRejected(f"{slot.label}: file must be under {_format_limit(max_bytes)}.")


def check_attachments(
    payload: FormPayload, posting: PostingConfig, *, max_bytes: int
) -> list[tuple[AttachmentSlot, UploadedFile]]:
    """Validate every slot the posting accepts, first failure wins.

    Returns the uploads to persist, in slot order.
    """

    accepted = []
    for slot, required in posting.slots():
        upload = payload.file(slot.field)
        check_attachment(upload, slot, required=required, max_bytes=max_bytes)
        if upload is not None:
            accepted.append((slot, upload))
    return accepted


def normalize_experiences(payload: FormPayload, rows: int = MAX_EXPERIENCE_ROWS) -> list[ExperienceEntry]:
    experiences = []
    for index in range(1, rows + 1):
        entry = ExperienceEntry(
            role=payload.text(f"exp{index}_role"),
            org=payload.text(f"exp{index}_org"),
            dates=payload.text(f"exp{index}_dates"),
            summary=payload.text(f"exp{index}_summary"),
        )
        if entry.role or entry.org or entry.summary:
            experiences.append(entry)
    return experiences


def parse_age(value: str) -> int | None:
    try:
        age = float(value)
    except ValueError:
        return None
    if not math.isfinite(age) or age <= 0:
        return None
    return int(age)


def collect_custom_answers(payload: FormPayload, posting: PostingConfig) -> dict[str, str]:
    answers = {key: payload.text(key) for key in posting.extra_questions if payload.text(key)}
    for key in payload.fields:
        if key.startswith(CUSTOM_ANSWER_PREFIX) and payload.text(key):
            answers[key] = payload.text(key)
    return answers


def sanitize_name(name: str) -> str:
    """Lower-case ``name`` and squeeze it into ``[a-z0-9_-]``, at most 60 characters."""

    name = name.strip()
    if not name:
        return "applicant"
    return _UNSAFE_NAME_CHARS.sub("_", name.lower())[:60]


def attachment_path(folder: str, applicant_name: str, timestamp_ms: int) -> str:
    return f"{folder}/{timestamp_ms}_{sanitize_name(applicant_name)}.pdf"
