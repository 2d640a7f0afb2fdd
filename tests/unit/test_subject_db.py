import pytest

from driverflow.config import load_config
from driverflow.db import SubjectDB
from driverflow.exceptions import NotFound
from driverflow.subjects import InMemorySubjectSource, get_subject_source


@pytest.mark.asyncio
async def test_subject_db_lifecycle(tmp_path, subject):
    db = SubjectDB(f"sqlite+aiosqlite:///{tmp_path / 'drivers.db'}")
    await db.init_db()

    await db.add_subject(subject)
    loaded = await db.get_subject(subject.id)
    assert loaded == subject

    await db.update_onboarding_status(subject.id, "submitted")
    profile = await db.get_profile(subject.id)
    assert profile.onboarding_status == "submitted"
    assert profile.onboarding_updated_at is not None

    changed = subject.model_copy(update={"email": "new@example.com"})
    await db.add_subject(changed)
    assert (await db.get_subject(subject.id)).email == "new@example.com"
    assert [p.id for p in await db.list_subjects()] == [subject.id]


@pytest.mark.asyncio
async def test_subject_db_missing_driver(tmp_path):
    db = SubjectDB(f"sqlite+aiosqlite:///{tmp_path / 'drivers.db'}")
    with pytest.raises(NotFound, match="Driver ghost not found"):
        await db.get_subject("ghost")
    with pytest.raises(NotFound):
        await db.update_onboarding_status("ghost", "submitted")


@pytest.mark.asyncio
async def test_in_memory_source_returns_copies(subjects, subject):
    fetched = await subjects.get_subject(subject.id)
    fetched.personal_info.first_name = "Changed"
    assert (await subjects.get_subject(subject.id)).personal_info.first_name == "Jane"
    with pytest.raises(NotFound):
        await subjects.get_subject("ghost")


def test_get_subject_source_selects_backend(tmp_path, monkeypatch):
    source = get_subject_source()
    assert isinstance(source, SubjectDB)
    assert get_subject_source() is source

    monkeypatch.setenv("DRIVERFLOW_SUBJECTS_URL", "memory://")
    assert isinstance(get_subject_source(load_config()), InMemorySubjectSource)
