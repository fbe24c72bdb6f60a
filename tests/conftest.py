"""Shared fixtures for the careers test suite."""
from __future__ import annotations

import pytest

from app.config import Settings
from app.database import build_engine, build_sessionmaker, init_models
from services.pipeline import SubmissionPipeline
from services.repository import ApplicationRepository
from tests.factories import FIXED_NOW, FakeVerifier, RecordingStorage


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'careers.db'}",
        storage_directory=tmp_path / "attachments",
        turnstile_secret_key="test-secret",
    )


@pytest.fixture
async def engine(settings):
    engine = build_engine(settings)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
def repository(session_factory):
    return ApplicationRepository(session_factory)


@pytest.fixture
def storage(settings):
    return RecordingStorage(settings)


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def pipeline(settings, verifier, storage, repository):
    return SubmissionPipeline(
        settings,
        verifier=verifier,
        storage=storage,
        repository=repository,
        clock=lambda: FIXED_NOW,
    )
