"""
Command line entry point: ``octetpost post URL``.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .client import AsyncPostClient
from .core.errors import OctetpostError
from .core.lifecycle import initialize, shutdown
from .core.settings import Settings
from .core.testmode import set_test_commands_enabled


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="octetpost",
        description="POST an opaque binary payload and print the response body.",
    )
    sub = parser.add_subparsers(dest="command")
    p = sub.add_parser("post", help="POST a payload to URL")
    p.add_argument("url")
    p.add_argument(
        "--data-file",
        help="Read the payload from this file instead of stdin",
    )
    p.add_argument("--output", help="Write the response body to this file")
    p.add_argument(
        "--allow-http",
        action="store_true",
        help="Test mode: permit plain HTTP URLs",
    )
    p.add_argument("--connect-timeout", type=float, dest="connect_timeout")
    p.add_argument("--timeout", type=float, dest="total_timeout")
    return parser


def _load_settings(args: argparse.Namespace) -> Settings:
    settings = Settings()
    overrides: dict[str, float] = {}
    if args.connect_timeout is not None:
        overrides["connect_timeout_seconds"] = args.connect_timeout
    if args.total_timeout is not None:
        overrides["total_timeout_seconds"] = args.total_timeout
    if overrides:
        transfer = settings.transfer.model_validate(
            {**settings.transfer.model_dump(), **overrides}
        )
        settings = settings.model_copy(update={"transfer": transfer})
    return settings


def _post(args: argparse.Namespace) -> int:
    if args.data_file:
        payload = Path(args.data_file).read_bytes()
    else:
        payload = sys.stdin.buffer.read()
    if args.allow_http:
        set_test_commands_enabled(True)

    initialize()
    try:
        with AsyncPostClient(settings=_load_settings(args)) as client:
            body = client.post_async(args.url, payload).result()
    finally:
        shutdown()

    if args.output:
        Path(args.output).write_bytes(body)
    else:
        sys.stdout.buffer.write(body)
        sys.stdout.buffer.flush()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command != "post":
        parser.print_help(sys.stderr)
        return 2
    try:
        return _post(args)
    except (OctetpostError, OSError, ValueError) as e:
        sys.stderr.write(f"octetpost: {e}\n")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
