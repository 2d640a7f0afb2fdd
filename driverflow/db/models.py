from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class DriverProfile(SQLModel, table=True):
    """Stored driver record; ``profile`` holds the serialized subject."""

    id: str = Field(primary_key=True)
    profile: dict = Field(sa_column=Column(JSON))
    onboarding_status: Optional[str] = None
    onboarding_updated_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
