"""Postforward: SRS-rewriting mail forwarder for Postfix.

Public API re-exported here for convenience::

    from postforward import Postforward, PostforwardConfig, rewrite_headers
"""

from .capture import CapturedMessage, TeeReader, capture_headers
from .config import PostforwardConfig, SrsConfig
from .delivery import Sendmail
from .errors import (
    ConfigurationError,
    DataError,
    DeliveryError,
    InputReadError,
    LookupProtocolError,
    MalformedResponseError,
    MessageParseError,
    PostforwardError,
    SrsConnectionError,
    SrsError,
    TempFailure,
)
from .hostname import get_hostname
from .logging import setup_logging
from .pipeline import Envelope, ForwardedMessage, Postforward, extract_envelope, format_date
from .rewriter import guess_line_ending, rewrite_headers
from .srs import SrsClient

__all__ = [
    "CapturedMessage",
    "ConfigurationError",
    "DataError",
    "DeliveryError",
    "Envelope",
    "ForwardedMessage",
    "InputReadError",
    "LookupProtocolError",
    "MalformedResponseError",
    "MessageParseError",
    "Postforward",
    "PostforwardConfig",
    "PostforwardError",
    "Sendmail",
    "SrsClient",
    "SrsConfig",
    "SrsConnectionError",
    "SrsError",
    "TeeReader",
    "TempFailure",
    "capture_headers",
    "extract_envelope",
    "format_date",
    "get_hostname",
    "guess_line_ending",
    "rewrite_headers",
    "setup_logging",
]
