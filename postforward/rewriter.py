"""Header rewriting for forwarded messages.

Strips the ``From sender time_stamp`` envelope line that Postfix prepends
when delivering through ``pipe(8)`` with the ``F`` flag, removes the
``From:`` header and inserts synthesized headers at the top.

The Return-Path header is left intact; Postfix's cleanup daemon replaces
it on reinjection.
"""

from __future__ import annotations

import io
from collections.abc import Sequence
from typing import BinaryIO

from .errors import InputReadError

ENVELOPE_PREFIX = b"From "
FROM_HEADER_PREFIX = b"From: "

CRLF = b"\r\n"
LF = b"\n"


def guess_line_ending(line: bytes) -> bytes:
    """Return the line ending to use for lines inserted before *line*.

    Mirrors Postfix's sendmail(1), which decides whether to strip CRs by
    looking at the first input line only.
    """
    if line.endswith(CRLF):
        return CRLF
    return LF


def rewrite_headers(source: BinaryIO, headers: Sequence[str]) -> io.BytesIO:
    """Read *source* to the end and return the rewritten bytes.

    *headers* are written first, in order, each terminated with the line
    ending of the first input line.  A first line starting with
    ``From `` is dropped, as is any line starting with ``From: ``.
    Everything else is copied verbatim.
    """
    out = io.BytesIO()
    line_number = 0

    while True:
        try:
            line = source.readline()
        except OSError as exc:
            raise InputReadError(
                f"Unexpected error occurred while reading input: {exc}"
            ) from exc
        line_number += 1

        if line_number == 1:
            line_ending = guess_line_ending(line)
            for header in headers:
                out.write(header.encode("utf-8", "surrogateescape"))
                out.write(line_ending)
            if line.startswith(ENVELOPE_PREFIX):
                continue

        if not line:
            break
        if line.startswith(FROM_HEADER_PREFIX):
            continue
        out.write(line)

    out.seek(0)
    return out
