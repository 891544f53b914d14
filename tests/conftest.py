"""Shared test fixtures for the postforward test suite."""

from __future__ import annotations

import io
from datetime import datetime, timedelta, timezone

import pytest

from postforward.config import PostforwardConfig, SrsConfig


@pytest.fixture
def srs_config() -> SrsConfig:
    return SrsConfig(addr="srs.test:10001")


@pytest.fixture
def config(srs_config: SrsConfig) -> PostforwardConfig:
    return PostforwardConfig(
        rp_header="Return-Path",
        sendmail_path="/usr/sbin/sendmail",
        srs=srs_config,
    )


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 6, 2, 9, 5, 7, tzinfo=timezone(timedelta(hours=2)))


# ------------------------------------------------------------------
# Sample messages
# ------------------------------------------------------------------


def _build_message(
    *,
    line_ending: str = "\r\n",
    envelope: str | None = "From x@y.com Mon Jan  1 12:00:00 2024",
    return_path: str | None = "<x@y.com>",
    from_addr: str | None = "Alice <a@b>",
    subject: str = "hi",
    body: str = "body",
) -> bytes:
    """Build a raw message the way Postfix pipe(8) hands it over."""
    lines = []
    if envelope is not None:
        lines.append(envelope)
    if return_path is not None:
        lines.append(f"Return-Path: {return_path}")
    if from_addr is not None:
        lines.append(f"From: {from_addr}")
    lines.append(f"Subject: {subject}")
    lines.append("")
    return (line_ending.join(lines) + line_ending + body).encode()


@pytest.fixture
def crlf_message() -> bytes:
    return _build_message()


@pytest.fixture
def lf_message() -> bytes:
    return _build_message(line_ending="\n")


# ------------------------------------------------------------------
# Fake lookup service connection
# ------------------------------------------------------------------


class FakeConnection:
    """Stands in for the socket returned by ``socket.create_connection``."""

    def __init__(self, response: bytes) -> None:
        self.response = response
        self.sent = b""
        self.closed = False

    def __enter__(self) -> FakeConnection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.closed = True

    def makefile(self, mode: str) -> FakeStream:
        return FakeStream(self)


class FakeStream(io.BytesIO):
    """Reads come from the canned response, writes are recorded."""

    def __init__(self, conn: FakeConnection) -> None:
        super().__init__(conn.response)
        self._conn = conn

    def write(self, data: bytes) -> int:  # type: ignore[override]
        self._conn.sent += bytes(data)
        return len(data)

    def flush(self) -> None:
        pass


class FailingReader(io.BytesIO):
    """Returns its content, then fails the next read with an I/O error."""

    def readline(self, size: int | None = -1) -> bytes:
        line = super().readline(size)
        if not line:
            raise OSError("Input/output error")
        return line

    def read(self, size: int | None = -1) -> bytes:
        data = super().read(size)
        if not data:
            raise OSError("Input/output error")
        return data
