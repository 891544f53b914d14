"""Command-line entry point.

Usage::

    postforward [--dry-run] [--path PATH] [--rp-header NAME]
                [--sendmail-path PATH] [--srs-addr HOST:PORT]
                [--] [sendmail args...]

Typical Postfix ``master.cf`` entry::

    postforward unix - n n - - pipe
      flags=FR user=nobody argv=/usr/local/bin/postforward -- ${recipient}

Exit codes follow <sysexits.h> so Postfix can tell bounces from retries.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from typing import BinaryIO, NoReturn

import structlog
from pydantic import ValidationError

from .config import PostforwardConfig, SrsConfig
from .errors import ConfigurationError, DataError, TempFailure
from .logging import setup_logging
from .pipeline import Postforward

logger = structlog.get_logger()

EX_OK = 0
# The input data was incorrect in some way.
EX_DATAERR = 65
# Temporary failure; the mail system should retry later.
EX_TEMPFAIL = 75


class _ArgumentParser(argparse.ArgumentParser):
    # argparse exits with status 2 on bad usage, which Postfix treats as a
    # permanent failure.
    def error(self, message: str) -> NoReturn:
        raise ConfigurationError(f"{self.prog}: {message}")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="postforward",
        description="Rewrite the envelope sender through SRS and reinject mail via sendmail.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="show what would be done, don't actually forward mail",
    )
    parser.add_argument(
        "--path",
        help="override $PATH with this value when executing binaries",
    )
    parser.add_argument(
        "--rp-header",
        help="header name containing the return-path (MAIL FROM) value (default: Return-Path)",
    )
    parser.add_argument(
        "--sendmail-path",
        help="path to the sendmail binary (default: sendmail)",
    )
    parser.add_argument(
        "--srs-addr",
        help="TCP address for SRS lookups (default: localhost:10001)",
    )
    parser.add_argument(
        "--srs-timeout",
        type=float,
        help="seconds to wait for the SRS lookup service (default: no timeout)",
    )
    parser.add_argument("--log-level", help="diagnostic log level (default: WARNING)")
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=None,
        help="write diagnostics as JSON lines",
    )
    parser.add_argument(
        "sendmail_args",
        nargs=argparse.REMAINDER,
        help="extra arguments passed to sendmail verbatim",
    )
    return parser


def load_config(args: argparse.Namespace) -> PostforwardConfig:
    """Build the configuration; flags take precedence over the environment."""
    sendmail_args = list(args.sendmail_args)
    if sendmail_args[:1] == ["--"]:
        sendmail_args = sendmail_args[1:]

    srs_overrides = {
        "addr": args.srs_addr,
        "timeout_seconds": args.srs_timeout,
    }
    overrides = {
        "dry_run": args.dry_run,
        "path": args.path,
        "rp_header": args.rp_header,
        "sendmail_path": args.sendmail_path,
        "sendmail_args": sendmail_args or None,
        "log_level": args.log_level,
        "log_json": args.log_json,
    }

    try:
        srs = SrsConfig(**{k: v for k, v in srs_overrides.items() if v is not None})
        return PostforwardConfig(
            srs=srs,
            **{k: v for k, v in overrides.items() if v is not None},
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def main(
    argv: Sequence[str] | None = None,
    *,
    stdin: BinaryIO | None = None,
    stdout: BinaryIO | None = None,
) -> int:
    """Forward one message and return the process exit status."""
    try:
        config = load_config(build_parser().parse_args(argv))
    except ConfigurationError as exc:
        setup_logging()
        logger.error("postforward_failed", error=str(exc))
        return EX_TEMPFAIL

    setup_logging(json=config.log_json, level=config.log_level)

    try:
        Postforward(config).process(
            stdin if stdin is not None else sys.stdin.buffer,
            stdout if stdout is not None else sys.stdout.buffer,
        )
    except DataError as exc:
        logger.error("postforward_failed", error=str(exc), status=EX_DATAERR)
        return EX_DATAERR
    except TempFailure as exc:
        logger.error("postforward_failed", error=str(exc), status=EX_TEMPFAIL)
        return EX_TEMPFAIL
    except Exception:
        logger.exception("postforward_unexpected_error", status=EX_TEMPFAIL)
        return EX_TEMPFAIL

    return EX_OK


def run() -> None:
    sys.exit(main())
