"""The forwarding pipeline: capture, resolve, rewrite, reinject."""

from __future__ import annotations

import email.message
import io
import re
import shlex
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import BinaryIO

import structlog

from .capture import capture_headers
from .config import PostforwardConfig
from .delivery import Sendmail
from .errors import DataError, InputReadError
from .hostname import get_hostname
from .rewriter import rewrite_headers
from .srs import SrsClient

logger = structlog.get_logger()

FORWARDED_SUFFIX = " (forwarded)"
UNKNOWN_FROM = "unknown" + FORWARDED_SUFFIX

CHUNK_SIZE = 64 * 1024

_DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTH_NAMES = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)
_FOLD_RE = re.compile(r"\r?\n[ \t]+")


def format_date(moment: datetime) -> str:
    """Format *moment* like ``Mon, 2 Jan 2006 15:04:05 -0700``.

    Day and month names are always English, whatever the locale.
    """
    return (
        f"{_DAY_NAMES[moment.weekday()]}, {moment.day} {_MONTH_NAMES[moment.month - 1]} "
        f"{moment:%Y %H:%M:%S %z}"
    )


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _header_value(headers: email.message.Message, name: str) -> str:
    # raw_items() skips compat32's sanitizing, so 8-bit bytes survive as
    # surrogate escapes.
    wanted = name.lower()
    for key, value in headers.raw_items():
        if key.lower() == wanted:
            return _FOLD_RE.sub(" ", value).strip()
    return ""


def _strip_brackets(address: str) -> str:
    if address.startswith("<"):
        address = address[1:]
    if address.endswith(">"):
        address = address[:-1]
    return address


@dataclass
class Envelope:
    """Sender details pulled from the message headers."""

    original_return_path: str
    return_path: str
    from_name: str


def extract_envelope(headers: email.message.Message, rp_header: str = "Return-Path") -> Envelope:
    """Read the return-path and display name out of *headers*.

    Raises :class:`DataError` when the return-path header is missing.
    """
    original = _header_value(headers, rp_header)
    if not original:
        raise DataError("Parse error: Missing return-path header in message")

    from_name = _header_value(headers, "From")
    if from_name:
        from_name += FORWARDED_SUFFIX
    else:
        from_name = UNKNOWN_FROM

    return Envelope(
        original_return_path=original,
        return_path=_strip_brackets(original),
        from_name=from_name,
    )


@dataclass
class ForwardedMessage:
    """Rewritten header prefix followed by the untouched rest of the input."""

    prefix: bytes
    remainder: BinaryIO

    def chunks(self, size: int = CHUNK_SIZE) -> Iterator[bytes]:
        if self.prefix:
            yield self.prefix
        while True:
            try:
                chunk = self.remainder.read(size)
            except OSError as exc:
                raise InputReadError(
                    f"Unexpected error occurred while reading input: {exc}"
                ) from exc
            if not chunk:
                return
            yield chunk

    def write_to(self, sink: BinaryIO) -> None:
        for chunk in self.chunks():
            sink.write(chunk)


class Postforward:
    """Forwards one message from *infile* to sendmail.

    Collaborators default to the real implementations built from *config*;
    tests pass their own.
    """

    def __init__(
        self,
        config: PostforwardConfig,
        *,
        resolver: SrsClient | None = None,
        sendmail: Sendmail | None = None,
        hostname: Callable[[], str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        env = config.environment()
        self.config = config
        self._resolver = resolver or SrsClient(config.srs)
        self._sendmail = sendmail or Sendmail(
            config.sendmail_path,
            config.sendmail_args,
            env=env,
        )
        self._hostname = hostname or partial(get_hostname, env)
        self._clock = clock or _local_now

    def compose_headers(self, envelope: Envelope) -> list[str]:
        """Headers inserted at the top of the forwarded message."""
        return [
            f"Received: by {self._hostname()} (Postforward); {format_date(self._clock())}",
            f"X-Original-Return-Path: {envelope.original_return_path}",
        ]

    def process(self, infile: BinaryIO, outfile: BinaryIO) -> None:
        """Run the whole pipeline for the message on *infile*.

        In dry-run mode the sendmail command and the message are written to
        *outfile* instead of being delivered.
        """
        captured = capture_headers(infile)
        envelope = extract_envelope(captured.headers, self.config.rp_header)
        logger.info(
            "message_captured",
            return_path=envelope.return_path,
            header_bytes=len(captured.raw_prefix),
        )

        sender = self._resolver.lookup(envelope.return_path)
        headers = self.compose_headers(envelope)

        prefix = rewrite_headers(io.BytesIO(captured.raw_prefix), headers).getvalue()
        message = ForwardedMessage(prefix=prefix, remainder=captured.remainder)

        if self.config.dry_run:
            self._preview(sender, envelope.from_name, message, outfile)
            return

        self._sendmail.deliver(sender, envelope.from_name, message.chunks())
        logger.info("message_forwarded", sender=sender, original=envelope.return_path)

    def _preview(
        self,
        sender: str,
        full_name: str,
        message: ForwardedMessage,
        outfile: BinaryIO,
    ) -> None:
        args = shlex.join(self._sendmail.args(sender, full_name))
        outfile.write(
            f"Would call {self._sendmail.path} with args: {args}\n".encode("utf-8", "surrogateescape")
        )
        outfile.write(b"Would pipe the following data into sendmail:\n\n")
        message.write_to(outfile)
        outfile.flush()
