from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone

from dotenv import load_dotenv

from chatline.config import ClientConfig, ConfigError
from chatline.render import TerminalRenderer
from chatline.runtime.repl import ChatREPL
from chatline.session import ChatSession
from chatline.transport import ChatTransport


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        payload = {
            "ts": ts,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(verbose: bool = False, quiet: bool = False, log_format: str = "text") -> None:
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    if log_format == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=level, handlers=[handler])
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def main() -> int:
    load_dotenv()
    return _main(sys.argv[1:])


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--endpoint", default=None, help="Chat endpoint URL")
    parser.add_argument("--read-timeout", type=float, default=None, help="Seconds to wait for stream data (default: no limit)")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("-q", "--quiet", action="store_true")
    parser.add_argument("--log-format", default="text", choices=["text", "json"])


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chatline", description="chatline - streaming chat client")
    subparsers = parser.add_subparsers(dest="command", required=False)

    chat = subparsers.add_parser("chat", help="Start interactive chat REPL")
    chat.add_argument("--message", "-m", help="First message to send")
    _add_common_args(chat)

    ask = subparsers.add_parser("ask", help="Send one message and print the reply")
    ask.add_argument("message")
    _add_common_args(ask)

    return parser


def _build_config(args: argparse.Namespace) -> ClientConfig:
    config = ClientConfig.from_env()
    if args.endpoint:
        config.endpoint = args.endpoint
    if args.read_timeout is not None:
        config.read_timeout = args.read_timeout
    config.validate()
    return config


def _main(argv: list[str]) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv or ["chat"])

    cmd = args.command or "chat"
    setup_logging(args.verbose, args.quiet, args.log_format)

    try:
        config = _build_config(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    with ChatTransport(config) as transport:
        session = ChatSession(transport)
        renderer = TerminalRenderer(session)
        renderer.attach()

        if cmd == "ask":
            return _cmd_ask(session, args.message)
        if cmd == "chat":
            ChatREPL(session, renderer).run(initial_message=args.message)
            return 0

    parser.print_help(sys.stderr)
    return 2


def _cmd_ask(session: ChatSession, message: str) -> int:
    outcome = session.submit(message)
    if outcome is None:
        print("Error: message is empty", file=sys.stderr)
        return 2
    return 1 if outcome.failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
