from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlmodel import SQLModel, select

from ..contracts import Subject
from ..exceptions import NotFound
from .models import DriverProfile


class SubjectDB:
    """Async driver directory backed by SQLModel tables."""

    def __init__(self, database_url: str) -> None:
        connect_args = (
            {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        )
        self.engine = create_async_engine(
            database_url, echo=False, future=True, connect_args=connect_args
        )
        self._initialized = False

    async def init_db(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        self._initialized = True

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if not self._initialized:
            await self.init_db()
        async with AsyncSession(self.engine) as session:
            yield session

    async def add_subject(self, subject: Subject) -> DriverProfile:
        """Insert or replace the stored record for ``subject``."""
        async with self.session() as session:
            row = await session.get(DriverProfile, subject.id)
            if row is None:
                row = DriverProfile(id=subject.id, profile=subject.model_dump(mode="json"))
            else:
                row.profile = subject.model_dump(mode="json")
                row.updated_at = datetime.utcnow()
            session.add(row)
            await session.commit()
            await session.refresh(row)
        return row

    async def get_profile(self, subject_id: str) -> DriverProfile:
        async with self.session() as session:
            row = await session.get(DriverProfile, subject_id)
        if row is None:
            raise NotFound(f"Driver {subject_id} not found")
        return row

    async def get_subject(self, subject_id: str) -> Subject:
        row = await self.get_profile(subject_id)
        return Subject.model_validate(row.profile)

    async def update_onboarding_status(self, subject_id: str, status: str) -> None:
        async with self.session() as session:
            row = await session.get(DriverProfile, subject_id)
            if row is None:
                raise NotFound(f"Driver {subject_id} not found")
            row.onboarding_status = status
            row.onboarding_updated_at = datetime.utcnow()
            row.updated_at = row.onboarding_updated_at
            session.add(row)
            await session.commit()

    async def close(self) -> None:
        # pooled connections are bound to the running event loop
        await self.engine.dispose()

    async def list_subjects(self) -> list[DriverProfile]:
        async with self.session() as session:
            result = await session.execute(select(DriverProfile))
            return list(result.scalars().all())
