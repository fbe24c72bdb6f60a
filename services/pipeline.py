"""Application submission pipeline.

A submission passes through a fixed sequence of gates:

1. human verification (Turnstile)
2. required fields for the posting
3. enumerated choices and their "Other" text boxes
4. attachments (presence, PDF, size)
5. experience rows are trimmed and blank rows dropped
6. attachments are uploaded
7. one application row is inserted

The first gate that fails ends the run. Nothing is written to storage or
the database before every validation gate has passed. If the insert
fails after uploads succeeded, the uploaded files stay where they are;
``services.reconcile`` can find them later.
"""
from __future__ import annotations

import time
from collections.abc import Callable, Mapping

import structlog

from app.config import Settings
from app.exceptions import (
    ErrorCategory,
    InternalError,
    PersistenceError,
    SubmissionError,
    SubmissionRejected,
)
from app.schemas import ApplicationRecord, SubmissionResult
from services.forms import TOKEN_FIELD, FormPayload, client_ip
from services.repository import ApplicationRepository
from services.storage import AttachmentStorage, upload_all
from services.validation import (
    attachment_path,
    check_attachments,
    check_choices,
    check_required_fields,
    collect_custom_answers,
    field_values,
    normalize_experiences,
    parse_age,
    resolve_posting,
)
from services.verification import HumanVerifier

logger = structlog.get_logger()


class SubmissionPipeline:
    """Validate one application form and persist it."""

    def __init__(
        self,
        settings: Settings,
        *,
        verifier: HumanVerifier,
        storage: AttachmentStorage,
        repository: ApplicationRepository,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.verifier = verifier
        self.storage = storage
        self.repository = repository
        self.clock = clock

    async def process(self, payload: FormPayload, headers: Mapping[str, str]) -> SubmissionResult:
        job_slug = payload.text("job_slug")
        try:
            record_id = await self._run(payload, headers)
        except SubmissionError as exc:
            self._log_failure(exc, job_slug)
            return SubmissionResult.failure(exc)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error while processing application", job_slug=job_slug)
            return SubmissionResult.failure(InternalError(repr(exc)))

        logger.info("Application stored", job_slug=job_slug, application_id=record_id)
        return SubmissionResult.success()

    async def _run(self, payload: FormPayload, headers: Mapping[str, str]) -> str:
        token = payload.text(TOKEN_FIELD)
        if not token:
            raise SubmissionRejected("Turnstile token missing")
        await self.verifier.verify(token, client_ip(headers))

        posting = resolve_posting(payload)
        values = field_values(payload, posting)
        check_required_fields(values, posting)
        check_choices(values, posting)
        accepted = check_attachments(payload, posting, max_bytes=self.settings.max_attachment_bytes)

        experiences = normalize_experiences(payload)

        self.storage.ensure_configured()
        timestamp_ms = int(self.clock() * 1000)
        planned = [
            (slot, attachment_path(slot.folder, values["name"], timestamp_ms), upload)
            for slot, upload in accepted
        ]
        await upload_all(
            self.storage,
            [(path, upload.data) for _, path, upload in planned],
            timeout=self.settings.storage_timeout_seconds,
        )
        paths = {slot.column: path for slot, path, _ in planned}

        record = ApplicationRecord(
            job_slug=posting.slug,
            name=values["name"],
            email=values["email"],
            age=parse_age(values["age"]),
            country=values["country"] or None,
            state=values["state"] or None,
            whatsapp=values["whatsapp"] or None,
            qualification=values["qualification"] or None,
            qualification_other=values["qualification_other"] or None,
            degree_name=values["degree_name"] or None,
            heard_from=values["heard_from"] or None,
            heard_from_other=values["heard_from_other"] or None,
            motivation=values["motivation"],
            experiences=experiences,
            custom_answers=collect_custom_answers(payload, posting),
            **paths,
        )
        try:
            return await self.repository.insert(record)
        except PersistenceError:
            logger.error("Insert failed after upload, attachments left orphaned", paths=sorted(paths.values()))
            raise

    @staticmethod
    def _log_failure(exc: SubmissionError, job_slug: str) -> None:
        if exc.category is ErrorCategory.CLIENT_VALIDATION:
            logger.info("Application rejected", job_slug=job_slug, reason=exc.message, detail=exc.detail)
        else:
            logger.error(
                "Application failed",
                job_slug=job_slug,
                category=exc.category.value,
                detail=exc.detail,
            )
