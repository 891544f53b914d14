"""Exception hierarchy.

Every failure belongs to one of two kinds.  :class:`DataError` means the
message itself is at fault and retrying will not help; :class:`TempFailure`
means the mail system should try again later.  Components only raise; the
mapping to process exit codes lives in :mod:`postforward.cli`.
"""

from __future__ import annotations


class PostforwardError(Exception):
    """Base class for all postforward errors."""


class DataError(PostforwardError):
    """The input message is malformed or lacks required headers."""


class MessageParseError(DataError):
    """The header section of the message could not be parsed."""


class TempFailure(PostforwardError):
    """A transient failure; the message should be retried later."""


class ConfigurationError(TempFailure):
    """Invalid settings supplied on the command line or in the environment."""


class InputReadError(TempFailure):
    """Reading the input message failed before end of stream."""


class SrsError(TempFailure):
    """Base class for SRS lookup failures."""


class SrsConnectionError(SrsError):
    """The lookup service could not be reached or dropped the connection."""


class MalformedResponseError(SrsError):
    """The lookup service sent a reply that is not a single coded line."""


class LookupProtocolError(SrsError):
    """The lookup service answered with an unexpected status code."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"srs: unexpected returncode {code} ({message})")
        self.code = code
        self.message = message


class DeliveryError(TempFailure):
    """Handing the message to sendmail failed."""

    def __init__(self, message: str, *, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode
