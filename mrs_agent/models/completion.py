"""Request models for the chat-completion API."""

from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel, Field

from .entry import Entry
from .enums import MessageRole


class CompletionMessage(BaseModel):
    """One role-tagged fragment of a completion request."""

    role: MessageRole
    content: str


class CompletionRequest(BaseModel):
    """Ordered messages sent to the remote model.

    The first message is the fixed system instruction, followed by the
    conversation history and finally the new user content.  Model
    selection and sampling parameters are added by the client.
    """

    messages: list[CompletionMessage] = Field(..., min_length=1)

    @classmethod
    def from_history(
        cls,
        system_prompt: str,
        history: Iterable[Entry],
        user_content: str,
    ) -> "CompletionRequest":
        """Translate stored entries into a request.

        Entries without content (an assistant placeholder that never
        received a chunk) are left out.
        """
        messages = [CompletionMessage(role=MessageRole.SYSTEM, content=system_prompt)]
        messages.extend(
            CompletionMessage(role=entry.role, content=entry.content)
            for entry in history
            if entry.content
        )
        messages.append(CompletionMessage(role=MessageRole.USER, content=user_content))
        return cls(messages=messages)

    def to_payload(self) -> list[dict[str, str]]:
        return [message.model_dump(mode="json") for message in self.messages]
