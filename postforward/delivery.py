"""Reinjection of the rewritten message through sendmail(1)."""

from __future__ import annotations

import contextlib
import subprocess
from collections.abc import Iterable, Mapping, Sequence

import structlog

from .errors import DeliveryError, InputReadError

logger = structlog.get_logger()


class Sendmail:
    """Runs sendmail with the forwarded message on its stdin.

    stdout and stderr are inherited so sendmail's own diagnostics end up
    wherever ours do.
    """

    def __init__(
        self,
        path: str = "sendmail",
        extra_args: Sequence[str] = (),
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.path = path
        self.extra_args = list(extra_args)
        self._env = env

    def args(self, sender: str, full_name: str) -> list[str]:
        """Arguments after the binary name.

        ``-i`` keeps a lone ``.`` line from ending the message, ``-f`` sets
        the envelope sender and ``-F`` the full name.
        """
        return ["-i", "-f", sender, "-F", full_name, *self.extra_args]

    def command(self, sender: str, full_name: str) -> list[str]:
        return [self.path, *self.args(sender, full_name)]

    def deliver(self, sender: str, full_name: str, data: Iterable[bytes]) -> None:
        """Start sendmail and stream *data* into it.

        The child is killed if *data* cannot be produced in full, so a
        truncated message is never queued.
        """
        command = self.command(sender, full_name)
        try:
            proc = subprocess.Popen(command, stdin=subprocess.PIPE, env=self._env)
        except OSError as exc:
            raise DeliveryError(f"Error delivering message to sendmail: {exc}") from exc

        with proc:
            assert proc.stdin is not None
            try:
                for chunk in data:
                    proc.stdin.write(chunk)
                proc.stdin.close()
            except InputReadError:
                self._abort(proc)
                raise
            except OSError as exc:
                self._abort(proc)
                raise DeliveryError(
                    f"Error delivering message to sendmail: {exc}"
                ) from exc

        if proc.returncode != 0:
            raise DeliveryError(
                f"Error delivering message to sendmail: exit status {proc.returncode}",
                returncode=proc.returncode,
            )
        logger.debug("sendmail_finished", command=command)

    @staticmethod
    def _abort(proc: subprocess.Popen) -> None:
        proc.kill()
        # Buffered bytes can't reach a dead child; closing here keeps
        # Popen.__exit__ from raising a second BrokenPipeError.
        assert proc.stdin is not None
        with contextlib.suppress(OSError):
            proc.stdin.close()
