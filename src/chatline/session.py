"""Conversation state for a single chat client.

A turn moves through ``IDLE -> SUBMITTING -> STREAMING -> COMMITTED | FAILED``
and back to ``IDLE``. At most one turn is outstanding: ``submit()`` while a
turn is running is ignored rather than queued, and the typed input is kept so
it can be sent once the running turn resolves.

Renderers read state through the properties or ``snapshot()`` and are
notified through ``subscribe()`` after every applied chunk. They must not
mutate the session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from chatline.decoder import ChunkDecoder, decode_stream
from chatline.errors import ChatError, SessionBusyError
from chatline.events import (
    AssistantDeltaEvent,
    Event,
    EventCallback,
    EventEmitter,
    SessionResetEvent,
    ToolEndEvent,
    ToolStartEvent,
    TurnCommittedEvent,
    TurnFailedEvent,
    TurnStartedEvent,
)
from chatline.models import (
    DoneChunk,
    ErrorChunk,
    Message,
    Role,
    StreamChunk,
    TextChunk,
    ToolEndChunk,
    ToolStartChunk,
)
from chatline.transport import ChatTransport

logger = logging.getLogger(__name__)

PARAGRAPH_BREAK = "\n\n"
ERROR_PREFIX = "Error: "


class TurnPhase(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    STREAMING = "streaming"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass(frozen=True)
class TurnOutcome:
    message: Message
    committed: bool
    error: str | None = None
    ended_without_done: bool = False

    @property
    def failed(self) -> bool:
        return not self.committed


@dataclass(frozen=True)
class SessionSnapshot:
    messages: tuple[Message, ...]
    accumulator: str
    active_tool: str | None
    loading: bool
    input_buffer: str
    phase: TurnPhase


class ChatSession:
    def __init__(
        self,
        transport: ChatTransport | None = None,
        emitter: EventEmitter | None = None,
    ):
        self.transport = transport or ChatTransport()
        self.emitter = emitter or EventEmitter()

        self._messages: list[Message] = []
        self._next_id = 0
        self._input_buffer = ""
        self._loading = False
        self._accumulator = ""
        self._active_tool: str | None = None
        self._phase = TurnPhase.IDLE

    # -- read-only state --

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def next_id(self) -> int:
        return self._next_id

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def accumulator(self) -> str:
        return self._accumulator

    @property
    def active_tool(self) -> str | None:
        return self._active_tool

    @property
    def phase(self) -> TurnPhase:
        return self._phase

    @property
    def input_buffer(self) -> str:
        return self._input_buffer

    @input_buffer.setter
    def input_buffer(self, value: str) -> None:
        self._input_buffer = value

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            messages=self.messages,
            accumulator=self._accumulator,
            active_tool=self._active_tool,
            loading=self._loading,
            input_buffer=self._input_buffer,
            phase=self._phase,
        )

    def subscribe(self, callback: EventCallback) -> EventCallback:
        return self.emitter.subscribe(callback)

    def unsubscribe(self, callback: EventCallback) -> None:
        self.emitter.unsubscribe(callback)

    def can_submit(self, text: str | None = None) -> bool:
        content = self._input_buffer if text is None else text
        return bool(content.strip()) and not self._loading and self._phase is TurnPhase.IDLE

    # -- turn lifecycle --

    def submit(self, text: str | None = None) -> TurnOutcome | None:
        """Run one turn to completion.

        ``text`` defaults to the input buffer, which is cleared when used.
        Returns ``None`` without touching any state when the input is blank
        or a turn is already outstanding.
        """
        if not self.can_submit(text):
            logger.debug("Ignoring submit (loading=%s, phase=%s)", self._loading, self._phase.value)
            return None

        if text is None:
            text = self._input_buffer
            self._input_buffer = ""
        # Lone surrogates cannot be encoded and would poison every later request.
        text = text.encode("utf-8", "replace").decode("utf-8")

        self._phase = TurnPhase.SUBMITTING
        self._accumulator = ""
        history = tuple(self._messages)
        user_message = self._append(Role.USER, text)
        self._loading = True
        logger.info("Turn started (message_id=%d, history=%d)", user_message.id, len(history))

        try:
            self._emit(TurnStartedEvent(message_id=user_message.id, content=text))
            return self._run_turn(text, history)
        except ChatError as e:
            if not self._loading:
                raise
            logger.warning("Turn failed: %s", e)
            return self._fail(str(e))
        except BaseException as e:
            # Resolve the turn before letting the exception through.
            if self._loading:
                self._fail(str(e) or e.__class__.__name__, notify=False)
            raise

    def _run_turn(self, text: str, history: tuple[Message, ...]) -> TurnOutcome:
        decoder = ChunkDecoder()
        with self.transport.open_stream(text, history) as body:
            self._phase = TurnPhase.STREAMING
            for chunk in decode_stream(body, decoder):
                outcome = self._apply(chunk)
                if outcome is not None:
                    return outcome

        logger.warning("Stream ended without a done frame; committing partial reply")
        return self._commit(ended_without_done=True)

    def _apply(self, chunk: StreamChunk) -> TurnOutcome | None:
        if isinstance(chunk, TextChunk):
            self._accumulator += chunk.content
            self._emit(AssistantDeltaEvent(text=chunk.content))
        elif isinstance(chunk, ToolStartChunk):
            self._active_tool = chunk.name
            self._emit(ToolStartEvent(name=chunk.name))
        elif isinstance(chunk, ToolEndChunk):
            self._active_tool = None
            # Appended even when nothing was streamed before the tool ran.
            self._accumulator += PARAGRAPH_BREAK
            self._emit(ToolEndEvent(name=chunk.name))
        elif isinstance(chunk, DoneChunk):
            return self._commit()
        elif isinstance(chunk, ErrorChunk):
            logger.warning("Server reported an error: %s", chunk.message)
            return self._fail(chunk.message)
        return None

    def _commit(self, ended_without_done: bool = False) -> TurnOutcome:
        message = self._append(Role.ASSISTANT, self._accumulator)
        self._end_turn(TurnPhase.COMMITTED)
        logger.info("Turn committed (message_id=%d, chars=%d)", message.id, len(message.content))
        try:
            self._emit(
                TurnCommittedEvent(
                    message_id=message.id,
                    content=message.content,
                    ended_without_done=ended_without_done,
                )
            )
        finally:
            self._phase = TurnPhase.IDLE
        return TurnOutcome(
            message=message, committed=True, ended_without_done=ended_without_done
        )

    def _fail(self, error: str, notify: bool = True) -> TurnOutcome:
        message = self._append(Role.ASSISTANT, f"{ERROR_PREFIX}{error}")
        self._end_turn(TurnPhase.FAILED)
        try:
            if notify:
                self._emit(TurnFailedEvent(message_id=message.id, error=error))
        finally:
            self._phase = TurnPhase.IDLE
        return TurnOutcome(message=message, committed=False, error=error)

    def _end_turn(self, phase: TurnPhase) -> None:
        self._accumulator = ""
        self._active_tool = None
        self._loading = False
        self._phase = phase

    def _append(self, role: Role, content: str) -> Message:
        message = Message(id=self._next_id, role=role, content=content)
        self._next_id += 1
        self._messages.append(message)
        return message

    def _emit(self, event: Event) -> None:
        self.emitter.emit(event)

    # -- whole-session operations --

    def reset(self) -> None:
        """Drop the conversation. Ids keep increasing across resets."""
        if self._loading:
            raise SessionBusyError("cannot reset while a turn is outstanding")
        self._messages.clear()
        self._accumulator = ""
        self._active_tool = None
        self._phase = TurnPhase.IDLE
        logger.info("Session reset")
        self._emit(SessionResetEvent())
