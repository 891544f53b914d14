"""Postforward configuration loaded from environment variables.

Uses pydantic-settings so every field can be set through the environment
of the Postfix ``pipe(8)`` service; command-line flags override both (see
:mod:`postforward.cli`).
"""

from __future__ import annotations

import logging
import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


def split_host_port(addr: str) -> tuple[str, int]:
    """Split ``host:port`` (or ``[v6addr]:port``) into its parts."""
    host, sep, port = addr.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"invalid address {addr!r}, expected host:port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        raise ValueError(f"invalid address {addr!r}, IPv6 hosts must be bracketed")
    number = int(port)
    if not 0 < number < 65536:
        raise ValueError(f"invalid port in address {addr!r}")
    return host, number


class SrsConfig(BaseSettings):
    """SRS lookup service settings."""

    model_config = {"env_prefix": "SRS_"}

    addr: str = Field(
        default="localhost:10001",
        description="TCP address (host:port) for SRS lookups",
    )
    timeout_seconds: float | None = Field(
        default=None,
        description="Socket timeout for lookups; unset blocks indefinitely",
    )

    @field_validator("addr")
    @classmethod
    def _check_addr(cls, value: str) -> str:
        split_host_port(value)
        return value

    @field_validator("timeout_seconds")
    @classmethod
    def _check_timeout(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            raise ValueError("timeout must be positive")
        return value

    @property
    def endpoint(self) -> tuple[str, int]:
        return split_host_port(self.addr)


class PostforwardConfig(BaseSettings):
    """Root configuration for one postforward run."""

    model_config = {"env_prefix": "POSTFORWARD_"}

    dry_run: bool = Field(
        default=False,
        description="Show what would be done, don't actually forward mail",
    )
    path: str | None = Field(
        default=None,
        description="Override $PATH with this value when executing binaries",
    )
    rp_header: str = Field(
        default="Return-Path",
        min_length=1,
        description="Header name containing the return-path (MAIL FROM) value",
    )
    sendmail_path: str = Field(
        default="sendmail",
        min_length=1,
        description="Path to the sendmail binary",
    )
    sendmail_args: list[str] = Field(
        default_factory=list,
        description="Extra arguments appended verbatim to the sendmail command",
    )
    log_level: str = Field(default="WARNING", description="Log level")
    log_json: bool = Field(default=False, description="Use JSON log output")

    srs: SrsConfig = Field(default_factory=SrsConfig)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        if not isinstance(logging.getLevelName(value.upper()), int):
            raise ValueError(f"unknown log level {value!r}")
        return value.upper()

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str | None) -> str | None:
        if value is not None and "\0" in value:
            raise ValueError("PATH override must not contain NUL bytes")
        return value

    def environment(self) -> dict[str, str]:
        """Return the environment for child processes.

        The PATH override is applied to a copy; ``os.environ`` is left alone.
        """
        env = dict(os.environ)
        if self.path:
            env["PATH"] = self.path
        return env
