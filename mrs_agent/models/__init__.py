"""Expose commonly used model classes at the package level.

Importing these classes here allows consumers to write concise imports like::

    from mrs_agent.models import Entry, Session, CompletionRequest

These names refer to the underlying Pydantic models defined in their
respective modules.
"""

from .completion import CompletionMessage, CompletionRequest  # noqa: F401
from .entry import Attachment, Entry  # noqa: F401
from .enums import ConversationState, EntryKind, MessageRole  # noqa: F401
from .session import DEFAULT_TITLE, Session, SessionSummary  # noqa: F401
from .user_profile import UserProfile  # noqa: F401
