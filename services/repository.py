"""Persistence for submitted applications."""
from __future__ import annotations

import asyncio

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.exceptions import PersistenceError
from app.models import Application
from app.schemas import ApplicationRecord


class ApplicationRepository:
    """Write application records through a session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], *, timeout: float = 10.0) -> None:
        self.session_factory = session_factory
        self.timeout = timeout

    async def insert(self, record: ApplicationRecord) -> str:
        """Insert one row in a single transaction and return its id."""

        try:
            return await asyncio.wait_for(self._insert(record), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise PersistenceError(f"Database insert timed out after {self.timeout}s") from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Database insert failed: {exc}") from exc

    async def _insert(self, record: ApplicationRecord) -> str:
        async with self.session_factory() as session:
            row = Application(**record.model_dump())
            session.add(row)
            await session.commit()
            return row.id

    async def referenced_paths(self) -> set[str]:
        stmt = select(Application.resume_path, Application.cover_letter_path, Application.project_summary_path)
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return {path for row in result.all() for path in row if path}
