"""Header capture for single-pass message processing.

stdin can only be read once.  :func:`capture_headers` reads the header
section through a :class:`TeeReader` that both feeds the header parser and
keeps a copy of every raw byte.  The captured bytes are later rewritten and
sent ahead of the remainder of the stream, which is never touched here.
"""

from __future__ import annotations

import email.errors
import email.feedparser
import email.message
from dataclasses import dataclass
from typing import BinaryIO

from .errors import InputReadError, MessageParseError

BLANK_LINES = (b"\n", b"\r\n")

# Defects meaning the header section itself is unusable.
FATAL_DEFECTS = (
    email.errors.MissingHeaderBodySeparatorDefect,
    email.errors.FirstHeaderLineIsContinuationDefect,
)


class TeeReader:
    """Read-through wrapper that records every byte it returns."""

    def __init__(self, source: BinaryIO) -> None:
        self._source = source
        self._captured = bytearray()

    @property
    def captured(self) -> bytes:
        return bytes(self._captured)

    def readline(self, size: int = -1) -> bytes:
        line = self._source.readline(size)
        self._captured += line
        return line


@dataclass
class CapturedMessage:
    """Result of the capture phase."""

    headers: email.message.Message
    raw_prefix: bytes
    remainder: BinaryIO


def capture_headers(stream: BinaryIO) -> CapturedMessage:
    """Parse the header section of *stream*, stopping at the first blank line.

    The blank separator line is part of ``raw_prefix``; ``remainder`` is
    *stream* itself, positioned at the first body byte.
    """
    tee = TeeReader(stream)
    parser = email.feedparser.BytesFeedParser()

    while True:
        try:
            line = tee.readline()
        except OSError as exc:
            raise InputReadError(f"Unexpected error occurred while reading input: {exc}") from exc
        if not line:
            break
        parser.feed(line)
        if line in BLANK_LINES:
            break

    raw_prefix = tee.captured
    if not raw_prefix:
        raise MessageParseError("Parse error: empty message")

    headers = parser.close()
    for defect in headers.defects:
        if isinstance(defect, FATAL_DEFECTS):
            raise MessageParseError(f"Parse error: malformed header section ({type(defect).__name__})")

    return CapturedMessage(headers=headers, raw_prefix=raw_prefix, remainder=stream)
