import logging
from contextlib import contextmanager
from typing import Iterator, Sequence

import httpx
from pydantic import ValidationError

from chatline.config import ClientConfig
from chatline.errors import ChatEnvironmentError, HttpError, RequestError, TransportError
from chatline.models import ChatRequest, Message

logger = logging.getLogger(__name__)


class ChatTransport:
    """Issues one streaming POST per turn against the chat endpoint.

    No retries: every failure is terminal for the turn and surfaces as a
    ``ChatError`` subclass.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        client: httpx.Client | None = None,
    ):
        self.config = config or ClientConfig()
        self._client = client
        self._closed = False

    @property
    def client(self) -> httpx.Client:
        if self._closed:
            raise ChatEnvironmentError("transport is closed")
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.config.httpx_timeout(),
                headers={"User-Agent": self.config.user_agent},
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._closed = True

    def __enter__(self) -> "ChatTransport":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def build_request(self, message: str, history: Sequence[Message]) -> httpx.Request:
        try:
            body = ChatRequest(message=message, history=list(history)).to_json()
        except (ValidationError, TypeError, ValueError) as e:
            raise RequestError(f"could not serialize request: {e}") from e

        try:
            return self.client.build_request(
                "POST",
                self.config.endpoint,
                content=body.encode("utf-8"),
                headers={"Content-Type": "application/json"},
            )
        except httpx.InvalidURL as e:
            raise RequestError(f"invalid endpoint {self.config.endpoint!r}: {e}") from e

    @contextmanager
    def open_stream(self, message: str, history: Sequence[Message]) -> Iterator[Iterator[bytes]]:
        request = self.build_request(message, history)
        logger.debug("POST %s (history=%d)", request.url, len(history))

        try:
            response = self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise TransportError(e) from e

        try:
            if not response.is_success:
                logger.warning("Chat endpoint returned HTTP %d", response.status_code)
                raise HttpError(response.status_code)
            yield self._iter_body(response)
        finally:
            response.close()

    @staticmethod
    def _iter_body(response: httpx.Response) -> Iterator[bytes]:
        try:
            yield from response.iter_bytes()
        except httpx.HTTPError as e:
            raise TransportError(e) from e
