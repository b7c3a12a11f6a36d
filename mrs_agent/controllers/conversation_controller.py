"""Controller for the active conversation.

The controller owns the entries of the conversation on screen.  It
appends what the user sends, drives the streaming completion that
produces the assistant's reply, derives the session title and schedules
debounced writes of the session through the :class:`SessionStore`.

Only one completion may be in flight at a time.  The controller does
not queue or reject overlapping sends; callers disable their send
affordance while :attr:`ConversationController.state` is
``AWAITING_COMPLETION``.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable

from loguru import logger

from ..config.app_config import AppConfig, get_app_config
from ..memory.session_store import SessionStore
from ..models.completion import CompletionRequest
from ..models.entry import Attachment, Entry
from ..models.enums import ConversationState, EntryKind, MessageRole
from ..models.session import DEFAULT_TITLE, Session
from ..prompts.replies import (
    VOICE_ACKNOWLEDGEMENT,
    ReplySelector,
    error_reply,
    file_acknowledgement,
    make_reply_selector,
    sticker_reply,
)
from ..prompts.system import SYSTEM_PROMPT
from ..services.llm_service import LLMService
from ..utils.error_handler import ChatError, ValidationError
from ..utils.helpers import IdGenerator, contains_code, derive_title, format_file_size, is_supported_file
from ..utils.scheduler import DebouncedTask

VOICE_PLACEHOLDER = "🎤 Voice message"
VOICE_TITLE = "Voice conversation"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ConversationController:
    """Coordinates user entries, streamed replies and session persistence.

    Parameters
    ----------
    llm_service: LLMService
        Streams completions from the remote model.
    session_store: SessionStore
        Durable session collection; the only writer of persisted state.
    app_config: AppConfig, optional
        Limits and delays; loaded from the environment when omitted.
    reply_selector: callable, optional
        Picks one sticker reply template.  Pass a seeded selector from
        :func:`make_reply_selector` for reproducible replies.
    on_update: callable, optional
        Called with the controller after every change so a presentation
        layer can re-render.
    """

    def __init__(
        self,
        llm_service: LLMService,
        session_store: SessionStore,
        *,
        app_config: AppConfig | None = None,
        system_prompt: str = SYSTEM_PROMPT,
        reply_selector: ReplySelector | None = None,
        clock: Callable[[], datetime] = _utc_now,
        on_update: Callable[["ConversationController"], None] | None = None,
    ) -> None:
        self.app_config = app_config or get_app_config()
        self.llm_service = llm_service
        self.session_store = session_store
        self._system_prompt = system_prompt
        self._select_reply = reply_selector or make_reply_selector()
        self._clock = clock
        self._on_update = on_update
        self._ids = IdGenerator()

        self._entries: list[Entry] = []
        self._title = DEFAULT_TITLE
        self._active_session_id: str | None = None
        self._created_at: datetime | None = None
        self._state = ConversationState.IDLE
        # Bumped whenever the conversation on screen is replaced, so late
        # results of an earlier conversation are dropped.
        self._generation = 0

        self._persist_task = DebouncedTask(self._persist_active, self.app_config.persist_debounce_seconds)

    # ------------------------------------------------------------------
    # Read-only views

    @property
    def entries(self) -> list[Entry]:
        return [entry.model_copy(deep=True) for entry in self._entries]

    @property
    def title(self) -> str:
        return self._title

    @property
    def active_session_id(self) -> str | None:
        return self._active_session_id

    @property
    def state(self) -> ConversationState:
        return self._state

    @property
    def is_typing(self) -> bool:
        return self._state is ConversationState.AWAITING_COMPLETION

    @property
    def persist_pending(self) -> bool:
        return self._persist_task.pending

    # ------------------------------------------------------------------
    # Sending

    async def send_text(self, content: str) -> Entry | None:
        """Send typed text and stream the assistant's reply.

        Returns the final assistant entry: the streamed reply, or the
        error entry when the completion failed.

        Raises
        ------
        ValidationError
            If ``content`` is blank or longer than ``max_message_length``.
        """
        self._validate_text(content)
        self._warn_if_busy()
        entry = self._new_entry(MessageRole.USER, EntryKind.TEXT, content)
        self._append_user(entry, derive_title(content, self.app_config.title_word_limit))
        return await self._run_completion(content)

    async def send_sticker(self, glyph: str) -> Entry | None:
        """Send a sticker; answered with a canned reply, not the model."""
        glyph = glyph.strip()
        if not glyph:
            raise ValidationError("Sticker must not be empty")
        entry = self._new_entry(MessageRole.USER, EntryKind.STICKER, glyph)
        self._append_user(entry, f"Sticker conversation {glyph}")
        return await self._acknowledge(sticker_reply(glyph, self._select_reply))

    async def send_voice(self, audio: Attachment, transcript: str | None = None) -> Entry | None:
        """Send a voice recording with an optional transcript.

        A non-empty transcript is validated like typed text and answered by
        the model, with the voice entry as the user turn.  Without one the
        recording is acknowledged with a canned reply.
        """
        spoken = transcript if transcript and transcript.strip() else None
        if spoken is not None:
            self._validate_text(spoken)
            self._warn_if_busy()

        entry = self._new_entry(
            MessageRole.USER,
            EntryKind.VOICE,
            spoken or VOICE_PLACEHOLDER,
            attachment=audio,
            transcript=spoken,
        )
        title = derive_title(spoken, self.app_config.title_word_limit) if spoken else VOICE_TITLE
        self._append_user(entry, title)

        if spoken is not None:
            return await self._run_completion(spoken)
        return await self._acknowledge(VOICE_ACKNOWLEDGEMENT)

    async def send_file(self, file: Attachment, preview: str | None = None) -> Entry | None:
        """Share a file; only its metadata is recorded and acknowledged.

        ``preview`` (for example an image data URL) replaces the
        attachment's ``uri`` when given.
        """
        self._validate_file(file)
        attachment = file.model_copy(update={"uri": preview or file.uri})
        entry = self._new_entry(
            MessageRole.USER,
            EntryKind.FILE,
            f"📎 Shared a file: {file.name}",
            attachment=attachment,
        )
        self._append_user(entry, f"File: {file.name}")
        return await self._acknowledge(file_acknowledgement(file.name or ""))

    # ------------------------------------------------------------------
    # Session lifecycle

    def clear(self) -> None:
        """Start a new conversation; persisted sessions are kept."""
        self._persist_task.flush()
        self._reset()
        logger.info("Cleared active conversation")

    def load_session(self, session_id: str) -> None:
        """Replace the active conversation with a stored session.

        Raises
        ------
        NotFoundError
            If the store has no such session; the active conversation is
            left as it was.
        """
        self._persist_task.flush()
        session = self.session_store.load(session_id)
        self._generation += 1
        self._entries = list(session.entries)
        self._title = session.title
        self._active_session_id = session.id
        self._created_at = session.created_at
        self._state = ConversationState.IDLE
        logger.info("Loaded session {} ({} entries)", session.id, session.entry_count)
        self._notify()

    def delete_session(self, session_id: str) -> None:
        """Delete a stored session; deleting the active one clears it."""
        if session_id == self._active_session_id:
            self._persist_task.cancel()
            self.session_store.delete(session_id)
            self._reset()
            logger.info("Deleted active session {}", session_id)
            return
        self.session_store.delete(session_id)

    def flush(self) -> None:
        """Write a pending debounced save immediately."""
        self._persist_task.flush()

    # ------------------------------------------------------------------
    # Internals

    async def _run_completion(self, user_content: str) -> Entry | None:
        generation = self._generation
        # History is everything before the user entry just appended.
        request = CompletionRequest.from_history(self._system_prompt, self._entries[:-1], user_content)

        assistant = self._new_entry(MessageRole.ASSISTANT, EntryKind.TEXT, "", is_streaming=True)
        self._entries.append(assistant)
        self._state = ConversationState.AWAITING_COMPLETION
        self._touch()

        def on_chunk(text: str) -> None:
            assistant.content += text
            assistant.contains_code = contains_code(assistant.content)
            if generation == self._generation:
                self._touch()

        try:
            await self.llm_service.stream_completion(request, on_chunk)
        except asyncio.CancelledError:
            assistant.is_streaming = False
            self._remove_entry(assistant)
            raise
        except Exception as exc:
            if isinstance(exc, ChatError):
                logger.error("Completion failed: {}", exc)
            else:
                logger.exception("Unexpected error while streaming a completion")
            assistant.is_streaming = False
            if generation != self._generation:
                return None
            if not assistant.content:
                self._remove_entry(assistant)
            failure = self._new_entry(MessageRole.ASSISTANT, EntryKind.TEXT, error_reply(str(exc)))
            self._entries.append(failure)
            return failure
        else:
            assistant.is_streaming = False
            return assistant if generation == self._generation else None
        finally:
            if generation == self._generation:
                self._state = ConversationState.IDLE
                self._touch()

    async def _acknowledge(self, text: str) -> Entry | None:
        generation = self._generation
        await asyncio.sleep(self.app_config.reply_delay_seconds)
        if generation != self._generation:
            return None
        reply = self._new_entry(MessageRole.ASSISTANT, EntryKind.TEXT, text)
        self._entries.append(reply)
        self._touch()
        return reply

    def _append_user(self, entry: Entry, title: str) -> None:
        if not self._entries:
            self._title = title
            self._created_at = entry.timestamp
        self._entries.append(entry)
        logger.info("Appended {} entry to {!r}", entry.kind.value, self._title)
        self._touch()

    def _new_entry(self, role: MessageRole, kind: EntryKind, content: str, **fields: object) -> Entry:
        return Entry(id=self._ids(), role=role, kind=kind, content=content, timestamp=self._clock(), **fields)

    def _remove_entry(self, entry: Entry) -> None:
        self._entries = [item for item in self._entries if item is not entry]

    def _reset(self) -> None:
        self._generation += 1
        self._entries = []
        self._title = DEFAULT_TITLE
        self._active_session_id = None
        self._created_at = None
        self._state = ConversationState.IDLE
        self._notify()

    def _touch(self) -> None:
        if self._entries:
            self._persist_task.arm()
        self._notify()

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self)

    def _persist_active(self) -> None:
        entries = [entry.model_copy(deep=True) for entry in self._entries if not entry.is_streaming]
        if not entries:
            return
        now = self._clock()
        if self._active_session_id is None:
            self._active_session_id = self._ids()
        if self._created_at is None:
            self._created_at = now
        session = Session(
            id=self._active_session_id,
            title=self._title,
            entries=entries,
            created_at=self._created_at,
            updated_at=now,
        )
        self.session_store.save(session)

    def _validate_text(self, content: str) -> None:
        if not content or not content.strip():
            raise ValidationError("Please enter a message")
        limit = self.app_config.max_message_length
        if len(content) > limit:
            raise ValidationError(f"Message is too long (max {limit} characters)")

    def _validate_file(self, file: Attachment) -> None:
        if not file.name or not file.name.strip():
            raise ValidationError("File name is required")
        limit = self.app_config.max_file_size
        if file.size is not None and file.size > limit:
            raise ValidationError(f"File size must be less than {format_file_size(limit)}")
        if not is_supported_file(file.name, file.mime_type):
            raise ValidationError(
                "File type not supported. Please upload images, documents, or code files."
            )

    def _warn_if_busy(self) -> None:
        if self._state is ConversationState.AWAITING_COMPLETION:
            logger.warning("Send started while a completion is still in flight")
