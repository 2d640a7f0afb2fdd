"""Provider that records onboarding progress on the driver profile."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..contracts import Subject

if TYPE_CHECKING:
    from ..subjects import SubjectSource

SUBMITTED = "submitted"


class ProfileSyncProvider:
    """Mark the driver's profile as submitted for onboarding."""

    name = "database"
    label = "Database update"

    def __init__(self, subjects: "SubjectSource") -> None:
        self._subjects = subjects

    async def invoke(self, subject: Subject) -> dict:
        await self._subjects.update_onboarding_status(subject.id, SUBMITTED)
        return {"subjectId": subject.id, "onboardingStatus": SUBMITTED, "updated": True}
