from chatline.config import ClientConfig
from chatline.errors import (
    ChatEnvironmentError,
    ChatError,
    HttpError,
    RequestError,
    TransportError,
)
from chatline.models import Message, Role
from chatline.session import ChatSession, TurnOutcome, TurnPhase
from chatline.transport import ChatTransport

__all__ = [
    "ChatEnvironmentError",
    "ChatError",
    "ChatSession",
    "ChatTransport",
    "ClientConfig",
    "HttpError",
    "Message",
    "RequestError",
    "Role",
    "TransportError",
    "TurnOutcome",
    "TurnPhase",
]
