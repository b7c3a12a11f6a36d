"""Local sign-in record.

The profile only personalises the client; nothing is authenticated and
nothing leaves the machine.
"""

from __future__ import annotations

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from ..models.user_profile import UserProfile
from ..utils.error_handler import PersistenceError, ValidationError, handle_persistence_error
from .storage import USER_PROFILE_KEY, KeyValueStorage


class ProfileStore:
    def __init__(self, storage: KeyValueStorage, *, key: str = USER_PROFILE_KEY) -> None:
        self._storage = storage
        self._key = key
        self._profile: UserProfile | None = self._read()

    def current(self) -> UserProfile | None:
        return self._profile

    @property
    def signed_in(self) -> bool:
        return self._profile is not None

    def login(self, name: str, email: str) -> UserProfile:
        """Record a profile; both fields are required after trimming."""
        name, email = name.strip(), email.strip()
        if not name or not email:
            raise ValidationError("Name and email are required")
        profile = UserProfile(name=name, email=email)
        self._profile = profile
        self._write(profile.model_dump_json())
        logger.info("Signed in locally as {}", name)
        return profile

    def logout(self) -> None:
        self._profile = None
        self._remove()
        logger.info("Signed out")

    def _read(self) -> UserProfile | None:
        try:
            raw = self._storage.get(self._key)
        except PersistenceError as exc:
            logger.warning("Failed to read user profile: {}", exc)
            return None
        if not raw:
            return None
        try:
            return UserProfile.model_validate_json(raw)
        except PydanticValidationError as exc:
            logger.warning("Ignoring unreadable user profile: {}", exc)
            return None

    @handle_persistence_error
    def _write(self, raw: str) -> None:
        self._storage.set(self._key, raw)

    @handle_persistence_error
    def _remove(self) -> None:
        self._storage.remove(self._key)
