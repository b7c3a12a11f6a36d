"""Local, unauthenticated user profile."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class UserProfile(BaseModel):
    """Name and email recorded when the user signs in locally."""

    name: str
    email: str
    login_timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
