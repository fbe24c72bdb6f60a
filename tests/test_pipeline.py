"""End-to-end tests for the submission pipeline."""

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.exceptions import ErrorCategory, MisconfigurationError, SubmissionRejected, UpstreamServiceError
from app.models import Application
from services.pipeline import SubmissionPipeline
from services.repository import ApplicationRepository
from tests.factories import FIXED_NOW, FakeVerifier, make_payload, pdf

HEADERS = {"x-forwarded-for": "203.0.113.7"}


async def _count_rows(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(Application))


class BrokenRepository(ApplicationRepository):
    async def _insert(self, record):
        raise OperationalError("INSERT INTO applications", {}, Exception("disk I/O error"))


class TestSuccessfulSubmission:
    async def test_valid_submission_is_stored(self, pipeline, storage, verifier, session_factory, settings):
        result = await pipeline.process(make_payload(exp1_role="Intern", exp1_org="Acme"), HEADERS)

        assert result.ok is True
        assert result.body() == {"ok": True}
        assert result.status_code == 200
        assert verifier.calls == [("token-123", "203.0.113.7")]

        expected_path = f"resumes/{int(FIXED_NOW * 1000)}_jane_doe.pdf"
        assert storage.uploaded == [expected_path]
        assert (settings.storage_directory / expected_path).read_bytes().startswith(b"%PDF")

        async with session_factory() as session:
            rows = (await session.execute(select(Application))).scalars().all()
        assert len(rows) == 1
        row = rows[0]
        assert row.job_slug == "research-projects-developer-intern"
        assert row.motivation == "I like building research tools."
        assert row.age == 24
        assert row.resume_path == expected_path
        assert row.cover_letter_path is None
        assert row.qualification_other is None
        assert row.experiences == [{"role": "Intern", "org": "Acme", "dates": "", "summary": ""}]
        assert row.custom_answers == {}

    async def test_all_slots_uploaded_to_their_folders(self, pipeline, storage, session_factory):
        payload = make_payload(
            job_slug="business-operations-associate",
            files={"resume": pdf(), "cover_letter": pdf("cover.pdf"), "project_summary": pdf("summary.pdf")},
        )
        result = await pipeline.process(payload, HEADERS)

        assert result.ok
        assert sorted(path.split("/")[0] for path in storage.uploaded) == ["covers", "projects", "resumes"]
        assert await _count_rows(session_factory) == 1


class TestHumanVerification:
    async def test_missing_token_never_calls_verifier(self, pipeline, verifier, storage, session_factory):
        result = await pipeline.process(make_payload(**{"cf-turnstile-response": "  "}), HEADERS)

        assert result.ok is False
        assert result.error == "Turnstile token missing"
        assert result.status_code == 400
        assert verifier.calls == []
        assert storage.uploaded == []
        assert await _count_rows(session_factory) == 0

    async def test_rejected_token(self, settings, storage, repository, session_factory):
        verifier = FakeVerifier(error=SubmissionRejected("Turnstile verification failed"))
        pipeline = SubmissionPipeline(settings, verifier=verifier, storage=storage, repository=repository)

        result = await pipeline.process(make_payload(), HEADERS)

        assert result.body() == {"ok": False, "error": "Turnstile verification failed"}
        assert result.status_code == 400
        assert storage.uploaded == []
        assert await _count_rows(session_factory) == 0

    async def test_verification_runs_before_field_checks(self, settings, storage, repository):
        verifier = FakeVerifier(error=SubmissionRejected("Turnstile verification failed"))
        pipeline = SubmissionPipeline(settings, verifier=verifier, storage=storage, repository=repository)

        result = await pipeline.process(make_payload(email=""), HEADERS)

        assert result.error == "Turnstile verification failed"

    async def test_missing_secret_is_server_error(self, settings, storage, repository):
        verifier = FakeVerifier(error=MisconfigurationError("TURNSTILE_SECRET_KEY is not set"))
        pipeline = SubmissionPipeline(settings, verifier=verifier, storage=storage, repository=repository)

        result = await pipeline.process(make_payload(), HEADERS)

        assert result.category is ErrorCategory.SERVER_MISCONFIGURATION
        assert result.status_code == 500
        assert result.error == "Server misconfiguration"

    async def test_verifier_outage_hides_detail(self, settings, storage, repository):
        verifier = FakeVerifier(error=UpstreamServiceError("ConnectError('boom')"))
        pipeline = SubmissionPipeline(settings, verifier=verifier, storage=storage, repository=repository)

        result = await pipeline.process(make_payload(), HEADERS)

        assert result.body() == {"ok": False, "error": "Server error"}
        assert result.category is ErrorCategory.UPSTREAM_FAILURE


class TestValidationGates:
    async def test_other_qualification_needs_text(self, pipeline, storage):
        result = await pipeline.process(make_payload(qualification="Other", qualification_other="  "), HEADERS)

        assert result.status_code == 400
        assert "qualification" in result.error
        assert storage.uploaded == []

    async def test_missing_fields(self, pipeline, storage):
        result = await pipeline.process(make_payload(name="", whatsapp=""), HEADERS)

        assert result.error == "Missing required fields: Full name, WhatsApp"
        assert storage.uploaded == []

    async def test_oversized_resume_uploads_nothing(self, pipeline, storage, session_factory):
        payload = make_payload(files={"resume": pdf(size=3 * 1024 * 1024)})

        result = await pipeline.process(payload, HEADERS)

        assert result.body() == {"ok": False, "error": "Résumé / CV: file must be under 2 MB."}
        assert result.status_code == 400
        assert storage.uploaded == []
        assert await _count_rows(session_factory) == 0

    async def test_late_slot_failure_uploads_nothing(self, pipeline, storage):
        payload = make_payload(
            job_slug="graphic-designer-intern",
            files={"resume": pdf(), "cover_letter": pdf("cover.pdf"), "project_summary": pdf(size=3 * 1024 * 1024)},
        )

        result = await pipeline.process(payload, HEADERS)

        assert result.error == "1-Page Project Summary: file must be under 2 MB."
        assert storage.uploaded == []


class TestPersistenceFailure:
    async def test_insert_failure_leaves_upload_in_place(self, settings, verifier, storage, session_factory):
        pipeline = SubmissionPipeline(
            settings,
            verifier=verifier,
            storage=storage,
            repository=BrokenRepository(session_factory),
            clock=lambda: FIXED_NOW,
        )

        result = await pipeline.process(make_payload(), HEADERS)

        assert result.body() == {"ok": False, "error": "Server error"}
        assert result.status_code == 500
        assert result.category is ErrorCategory.PERSISTENCE_FAILURE
        assert len(storage.uploaded) == 1
        assert (settings.storage_directory / storage.uploaded[0]).exists()
        assert await _count_rows(session_factory) == 0

    async def test_unexpected_error_is_generic(self, settings, verifier, storage, repository):
        class ExplodingStorage(type(storage)):
            async def upload(self, path, data, content_type="application/pdf"):
                raise RuntimeError("unexpected")

        pipeline = SubmissionPipeline(
            settings, verifier=verifier, storage=ExplodingStorage(settings), repository=repository
        )

        result = await pipeline.process(make_payload(), HEADERS)

        assert result.body() == {"ok": False, "error": "Server error"}
        assert result.category is ErrorCategory.INTERNAL_ERROR


class TestManagerPosting:
    async def test_empty_motivation_is_rejected(self, pipeline, storage, session_factory):
        payload = make_payload(
            job_slug="business-operations-manager",
            q1="",
            files={"resume": pdf(), "cover_letter": pdf("cover.pdf"), "project_summary": pdf("summary.pdf")},
        )

        result = await pipeline.process(payload, HEADERS)

        assert result.body() == {"ok": False, "error": "Missing required fields: Motivation"}
        assert result.status_code == 400
        assert storage.uploaded == []
        assert await _count_rows(session_factory) == 0
