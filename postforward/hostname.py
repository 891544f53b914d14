"""Hostname lookup for the Received header."""

from __future__ import annotations

import socket
import subprocess
from collections.abc import Mapping

import structlog

logger = structlog.get_logger()

POSTCONF_COMMAND = ("postconf", "-h", "myhostname")


def get_hostname(env: Mapping[str, str] | None = None) -> str:
    """Return Postfix's ``myhostname``, falling back to the system hostname.

    *env* is the environment ``postconf`` runs with, so a PATH override
    applies to it as well.
    """
    try:
        result = subprocess.run(
            POSTCONF_COMMAND,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        logger.warning("postconf_hostname_failed", error=str(exc))
        return socket.gethostname()

    return result.stdout.decode("utf-8", "surrogateescape").strip()
