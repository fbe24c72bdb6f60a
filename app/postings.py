"""Job postings and the fields each one requires.

Every posting shares one submission pipeline; what differs between them
is captured here rather than in separate handlers.
"""
from __future__ import annotations

from dataclasses import dataclass

from app.schemas import PostingSummary, SlotSummary


@dataclass(frozen=True)
class AttachmentSlot:
    field: str
    label: str
    folder: str
    column: str


RESUME = AttachmentSlot("resume", "Résumé / CV", "resumes", "resume_path")
COVER_LETTER = AttachmentSlot("cover_letter", "Cover Letter", "covers", "cover_letter_path")
PROJECT_SUMMARY = AttachmentSlot("project_summary", "1-Page Project Summary", "projects", "project_summary_path")

# Declaration order is the order slots are validated and uploaded in.
SLOTS: tuple[AttachmentSlot, ...] = (RESUME, COVER_LETTER, PROJECT_SUMMARY)

ALWAYS_REQUIRED = ("job_slug", "name", "email")

STANDARD_FIELDS = frozenset(
    {
        "age",
        "country",
        "state",
        "whatsapp",
        "qualification",
        "degree_name",
        "heard_from",
        "motivation",
        "consent",
    }
)

FIELD_LABELS = {
    "job_slug": "Job posting",
    "name": "Full name",
    "email": "Email",
    "age": "Age",
    "country": "Country",
    "state": "State",
    "whatsapp": "WhatsApp",
    "qualification": "Qualification",
    "degree_name": "Degree name",
    "heard_from": "How you heard about this role",
    "motivation": "Motivation",
    "consent": "Consent",
}

OTHER = "Other"

UNIVERSITY_QUALIFICATIONS = (
    "Bachelors pursuing",
    "Bachelors graduate",
    "Masters pursuing",
    "Masters graduate",
    "PhD pursuing",
    "PhD graduate",
    OTHER,
)

SCHOOL_QUALIFICATIONS = (
    "High school (Class 12)",
    "Bachelors pursuing",
    "Bachelors graduate",
    OTHER,
)

HEARD_FROM_CHOICES = (
    "LinkedIn",
    "Twitter",
    "Facebook",
    "Instagram",
    "WhatsApp",
    "RocketiQ website",
    "Friend",
    OTHER,
)


@dataclass(frozen=True)
class PostingConfig:
    slug: str
    title: str
    required_fields: frozenset[str] = STANDARD_FIELDS
    required_slots: tuple[AttachmentSlot, ...] = (RESUME,)
    optional_slots: tuple[AttachmentSlot, ...] = ()
    qualification_choices: tuple[str, ...] = UNIVERSITY_QUALIFICATIONS
    # Stored when the posting's form has no motivation question at all.
    motivation_default: str | None = None
    extra_questions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        unknown = self.required_fields - STANDARD_FIELDS
        if unknown:
            raise ValueError(f"{self.slug}: unknown required fields {sorted(unknown)}")
        overlap = set(self.required_slots) & set(self.optional_slots)
        if overlap:
            raise ValueError(f"{self.slug}: slots both required and optional: {sorted(s.field for s in overlap)}")

    def slots(self) -> list[tuple[AttachmentSlot, bool]]:
        """Slots this posting accepts in declaration order, paired with whether they are required."""

        return [
            (slot, slot in self.required_slots)
            for slot in SLOTS
            if slot in self.required_slots or slot in self.optional_slots
        ]

    def summary(self) -> PostingSummary:
        return PostingSummary(
            slug=self.slug,
            title=self.title,
            required_attachments=[SlotSummary(field=s.field, label=s.label) for s in self.required_slots],
            optional_attachments=[SlotSummary(field=s.field, label=s.label) for s in self.optional_slots],
        )


POSTINGS: dict[str, PostingConfig] = {
    posting.slug: posting
    for posting in (
        PostingConfig(
            slug="business-operations-associate",
            title="Business Operations Associate",
            required_slots=(RESUME, COVER_LETTER, PROJECT_SUMMARY),
        ),
        PostingConfig(
            slug="business-operations-intern",
            title="Business Operations Intern",
            qualification_choices=SCHOOL_QUALIFICATIONS,
        ),
        PostingConfig(
            slug="business-operations-manager",
            title="Business Operations Manager",
            required_slots=(RESUME, COVER_LETTER, PROJECT_SUMMARY),
        ),
        PostingConfig(
            slug="graphic-designer-intern",
            title="Graphic Designer Intern",
            required_slots=(RESUME, COVER_LETTER, PROJECT_SUMMARY),
        ),
        PostingConfig(
            slug="principal-research-program-manager",
            title="Principal Research Program Manager",
            required_slots=(RESUME, PROJECT_SUMMARY),
            optional_slots=(COVER_LETTER,),
        ),
        PostingConfig(
            slug="research-projects-developer-intern",
            title="Research Projects Developer Intern",
            optional_slots=(COVER_LETTER, PROJECT_SUMMARY),
        ),
    )
}


def get_posting(slug: str) -> PostingConfig | None:
    return POSTINGS.get(slug)
