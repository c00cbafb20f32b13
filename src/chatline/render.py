import sys
from typing import TextIO

from chatline.events import (
    AssistantDeltaEvent,
    Event,
    SessionResetEvent,
    ToolEndEvent,
    ToolStartEvent,
    TurnCommittedEvent,
    TurnFailedEvent,
    TurnStartedEvent,
)
from chatline.models import Message, Role
from chatline.session import ChatSession


def tool_indicator(name: str) -> str:
    return f"Using {name}..."


def format_message(message: Message) -> str:
    if message.role is Role.USER:
        return f"🧑 You: {message.content}"
    return f"🤖 Assistant: {message.content}"


class TerminalRenderer:
    """Prints a session's streamed replies as they arrive."""

    def __init__(self, session: ChatSession, out: TextIO | None = None):
        self.session = session
        self.out = out or sys.stdout
        self._header_printed = False

    def attach(self) -> None:
        self.session.subscribe(self.on_event)

    def detach(self) -> None:
        self.session.unsubscribe(self.on_event)

    def on_event(self, event: Event) -> None:
        if isinstance(event, TurnStartedEvent):
            self._header_printed = False
            return

        if isinstance(event, AssistantDeltaEvent):
            self._ensure_header()
            self._write(event.text)
            return

        if isinstance(event, ToolStartEvent):
            self._ensure_header()
            self._write(f"\n🔧 {tool_indicator(event.name)}\n")
            return

        if isinstance(event, ToolEndEvent):
            self._write("\n\n")
            return

        if isinstance(event, TurnCommittedEvent):
            self._write("\n")
            return

        if isinstance(event, TurnFailedEvent):
            self._write(f"\n❌ Error: {event.error}\n")
            return

        if isinstance(event, SessionResetEvent):
            self._write("✅ Cleared conversation\n")

    def print_history(self) -> None:
        messages = self.session.messages
        if not messages:
            self._write("No messages yet\n")
            return
        for message in messages:
            self._write(format_message(message) + "\n")

    def _ensure_header(self) -> None:
        if not self._header_printed:
            self._write("\n🤖 Assistant: ")
            self._header_printed = True

    def _write(self, text: str) -> None:
        self.out.write(text)
        self.out.flush()
