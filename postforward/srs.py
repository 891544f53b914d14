"""SRS address lookups over the Postfix ``tcp_table`` protocol.

The client sends ``get <key>`` and reads back a single coded reply line::

    200 SRS0=HHH=TT=example.com=alice@forwarder.example
    500 not found

200 carries the rewritten address.  500 means the service has nothing to
substitute, so the key is used unchanged.  Any other code is an error.
"""

from __future__ import annotations

import socket

import structlog

from .config import SrsConfig
from .errors import LookupProtocolError, MalformedResponseError, SrsConnectionError

logger = structlog.get_logger()

MAX_LINE_LENGTH = 4096

CODE_OK = 200
CODE_NOT_FOUND = 500


def parse_code_line(line: str) -> tuple[int, str]:
    """Split a reply line into ``(code, message)``."""
    if len(line) < 4 or line[3] not in " -":
        raise MalformedResponseError(f"srs: short response: {line!r}")
    if line[3] == "-":
        raise MalformedResponseError(f"srs: unexpected multi-line response: {line!r}")
    if not line[:3].isdigit() or int(line[:3]) < 100:
        raise MalformedResponseError(f"srs: invalid response code: {line!r}")
    return int(line[:3]), line[4:]


class SrsClient:
    """Blocking lookup client; one connection per lookup."""

    def __init__(self, config: SrsConfig) -> None:
        self._config = config

    def lookup(self, key: str) -> str:
        """Resolve *key* to its SRS-rewritten form.

        Returns *key* itself when the service answers 500.  Raises
        :class:`SrsConnectionError`, :class:`MalformedResponseError` or
        :class:`LookupProtocolError` otherwise.
        """
        code, message = parse_code_line(self._request(f"get {key}"))

        if code == CODE_OK:
            logger.debug("srs_lookup_ok", key=key, result=message)
            return message
        if code == CODE_NOT_FOUND:
            logger.warning("srs_lookup_miss", key=key, code=code, message=message)
            return key
        raise LookupProtocolError(code, message)

    def _request(self, command: str) -> str:
        """Send *command* and return the reply line without its terminator."""
        try:
            with socket.create_connection(
                self._config.endpoint,
                timeout=self._config.timeout_seconds,
            ) as sock, sock.makefile("rwb") as stream:
                stream.write(command.encode("utf-8", "surrogateescape") + b"\r\n")
                stream.flush()
                raw = stream.readline(MAX_LINE_LENGTH)
        except OSError as exc:
            raise SrsConnectionError(
                f"srs: lookup via {self._config.addr} failed: {exc}"
            ) from exc

        if not raw.endswith(b"\n"):
            if len(raw) >= MAX_LINE_LENGTH:
                raise MalformedResponseError("srs: response line too long")
            raise SrsConnectionError(
                f"srs: connection to {self._config.addr} closed before a full response"
            )

        try:
            return raw.rstrip(b"\r\n").decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedResponseError(f"srs: response is not valid UTF-8: {raw!r}") from exc
