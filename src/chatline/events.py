from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, TypeAlias


@dataclass(frozen=True, slots=True)
class TurnStartedEvent:
    message_id: int
    content: str


@dataclass(frozen=True, slots=True)
class AssistantDeltaEvent:
    text: str


@dataclass(frozen=True, slots=True)
class ToolStartEvent:
    name: str


@dataclass(frozen=True, slots=True)
class ToolEndEvent:
    name: str


@dataclass(frozen=True, slots=True)
class TurnCommittedEvent:
    message_id: int
    content: str
    ended_without_done: bool = False


@dataclass(frozen=True, slots=True)
class TurnFailedEvent:
    message_id: int
    error: str


@dataclass(frozen=True, slots=True)
class SessionResetEvent:
    pass


Event: TypeAlias = (
    TurnStartedEvent
    | AssistantDeltaEvent
    | ToolStartEvent
    | ToolEndEvent
    | TurnCommittedEvent
    | TurnFailedEvent
    | SessionResetEvent
)
EventCallback: TypeAlias = Callable[[Event], None]


class EventEmitter:
    def __init__(self, callback: EventCallback | None = None):
        self._callbacks: list[EventCallback] = []
        if callback is not None:
            self._callbacks.append(callback)

    def subscribe(self, callback: EventCallback) -> EventCallback:
        self._callbacks.append(callback)
        return callback

    def unsubscribe(self, callback: EventCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def emit(self, event: Event) -> None:
        for callback in list(self._callbacks):
            callback(event)
