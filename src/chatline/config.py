import os
import logging
from dataclasses import dataclass, field
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://api.wxve.io/chat"


class ConfigError(Exception):
    pass


def get_optional_env(name: str, default: str) -> str:
    return os.environ.get(name, default)


def get_optional_float_env(name: str) -> float | None:
    value = os.environ.get(name)
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        raise ConfigError(f"Environment variable {name} must be a number, got {value!r}")


@dataclass
class ClientConfig:
    endpoint: str = field(
        default_factory=lambda: get_optional_env("CHATLINE_ENDPOINT", DEFAULT_ENDPOINT)
    )
    # None means wait forever, matching a browser fetch with no abort signal.
    connect_timeout: float | None = None
    read_timeout: float | None = None
    user_agent: str = field(
        default_factory=lambda: get_optional_env("CHATLINE_USER_AGENT", "chatline/0.1")
    )

    @classmethod
    def from_env(cls) -> "ClientConfig":
        return cls(
            connect_timeout=get_optional_float_env("CHATLINE_CONNECT_TIMEOUT"),
            read_timeout=get_optional_float_env("CHATLINE_READ_TIMEOUT"),
        )

    def validate(self) -> None:
        parsed = urlparse(self.endpoint)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"endpoint must be an http(s) URL, got {self.endpoint!r}")
        if self.connect_timeout is not None and self.connect_timeout <= 0:
            raise ConfigError("connect_timeout must be > 0 when set")
        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ConfigError("read_timeout must be > 0 when set")
        logger.debug("Configuration validated successfully")

    def httpx_timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            None, connect=self.connect_timeout, read=self.read_timeout
        )
