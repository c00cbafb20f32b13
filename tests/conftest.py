import json
from typing import Callable

import httpx
import pytest

from chatline.config import ClientConfig
from chatline.session import ChatSession
from chatline.transport import ChatTransport

TEST_ENDPOINT = "https://chat.test/chat"


def frame(payload: dict) -> bytes:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n".encode("utf-8")


def frames(*payloads: dict) -> bytes:
    return b"".join(frame(p) for p in payloads)


class RecordingHandler:
    """MockTransport handler that records requests and replays a canned body."""

    def __init__(self, body: bytes | list[bytes] = b"", status_code: int = 200):
        self.body = body
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.body, list):
            content = iter(self.body)
        else:
            content = iter([self.body])
        return httpx.Response(self.status_code, content=content)

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(endpoint=TEST_ENDPOINT)


@pytest.fixture
def make_transport(config) -> Callable[..., ChatTransport]:
    def _make(handler) -> ChatTransport:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        return ChatTransport(config, client=client)

    return _make


@pytest.fixture
def make_session(make_transport) -> Callable[..., tuple[ChatSession, RecordingHandler]]:
    def _make(body: bytes | list[bytes] = b"", status_code: int = 200):
        handler = RecordingHandler(body, status_code)
        return ChatSession(make_transport(handler)), handler

    return _make
