"""Controllers that presentation layers call into."""

from .conversation_controller import ConversationController  # noqa: F401
