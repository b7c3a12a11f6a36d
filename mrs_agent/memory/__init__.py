"""Memory package containing the durable session and profile stores."""

from .profile_store import ProfileStore  # noqa: F401
from .session_store import SessionStore  # noqa: F401
from .storage import InMemoryStorage, JsonFileStorage, KeyValueStorage  # noqa: F401
