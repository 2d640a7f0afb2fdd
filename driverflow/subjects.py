"""Subject sources: where workflows fetch fresh driver records from."""

from __future__ import annotations

from typing import Dict, Optional, Protocol

from .config import DriverflowConfig, load_config
from .constants import MEMORY_URL
from .contracts import Subject
from .db import SubjectDB
from .exceptions import NotFound


class SubjectSource(Protocol):
    """Protocol for driver profile lookups."""

    async def add_subject(self, subject: Subject) -> None:
        """Insert or replace the stored record for ``subject``."""

    async def get_subject(self, subject_id: str) -> Subject:
        """Return the current record for ``subject_id`` or raise ``NotFound``."""

    async def update_onboarding_status(self, subject_id: str, status: str) -> None:
        """Record the onboarding status on the driver profile."""

    async def close(self) -> None:
        """Release connections held by the source; it stays usable afterwards."""


class InMemorySubjectSource(SubjectSource):
    """Keep driver records in local memory.

    Useful for tests; records vanish with the process.
    """

    def __init__(self, subjects: Optional[Dict[str, Subject]] = None) -> None:
        self._subjects: Dict[str, Subject] = dict(subjects or {})
        self.onboarding_status: Dict[str, str] = {}

    async def add_subject(self, subject: Subject) -> None:
        self._subjects[subject.id] = subject

    async def get_subject(self, subject_id: str) -> Subject:
        subject = self._subjects.get(subject_id)
        if subject is None:
            raise NotFound(f"Driver {subject_id} not found")
        return subject.model_copy(deep=True)

    async def update_onboarding_status(self, subject_id: str, status: str) -> None:
        if subject_id not in self._subjects:
            raise NotFound(f"Driver {subject_id} not found")
        self.onboarding_status[subject_id] = status

    async def close(self) -> None:
        return None


_source_instance: SubjectSource | None = None


def open_subject_source(subjects_url: str) -> SubjectSource:
    """``memory://`` for a process-local source, else a SQLAlchemy async URL."""
    if subjects_url == MEMORY_URL:
        return InMemorySubjectSource()
    return SubjectDB(subjects_url)


def get_subject_source(config: Optional[DriverflowConfig] = None) -> SubjectSource:
    """Return the driver source for this process.

    Opened once from ``config.subjects_url`` (default: the SQLite file
    ``drivers.db``) and reused by later calls without ``config``.
    """
    global _source_instance
    if config is None and _source_instance is not None:
        return _source_instance

    config = config or load_config()
    _source_instance = open_subject_source(config.subjects_url)
    return _source_instance
