"""Tests for postforward.hostname."""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

from structlog.testing import capture_logs

from postforward.hostname import get_hostname


class TestGetHostname:
    def test_uses_postconf(self):
        result = MagicMock(stdout=b"mx.example.com\n")
        with patch("postforward.hostname.subprocess.run", return_value=result) as mock_run:
            assert get_hostname({"PATH": "/usr/sbin"}) == "mx.example.com"
        args, kwargs = mock_run.call_args
        assert list(args[0]) == ["postconf", "-h", "myhostname"]
        assert kwargs["env"] == {"PATH": "/usr/sbin"}
        assert kwargs["check"] is True

    def test_falls_back_when_postconf_missing(self):
        with (
            patch(
                "postforward.hostname.subprocess.run",
                side_effect=FileNotFoundError("postconf"),
            ),
            patch("postforward.hostname.socket.gethostname", return_value="box.local"),
            capture_logs() as logs,
        ):
            assert get_hostname() == "box.local"
        assert logs[0]["event"] == "postconf_hostname_failed"
        assert logs[0]["log_level"] == "warning"

    def test_falls_back_on_nonzero_exit(self):
        with (
            patch(
                "postforward.hostname.subprocess.run",
                side_effect=subprocess.CalledProcessError(1, ["postconf"]),
            ),
            patch("postforward.hostname.socket.gethostname", return_value="box.local"),
        ):
            assert get_hostname() == "box.local"
