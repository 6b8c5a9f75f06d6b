#!/usr/bin/env python3
"""Tests for the restart-on-failure supervisor."""
from unittest.mock import patch

import pytest
from tenacity import stop_after_attempt

from conftest import FakeClipboard
from wlclipsync.clipboard import ClipboardError
from wlclipsync.discovery import DiscoveryError
from wlclipsync.supervisor import run_supervisor
from wlclipsync.sync_constants import RESTART_DELAY


@pytest.fixture
def restart_delays() -> list[float]:
    """Delays the supervisor asked to sleep between restarts."""
    return []


@pytest.fixture
def fast_supervisor(restart_delays):
    """run_supervisor limited to three attempts, recording restart delays."""
    return run_supervisor.retry_with(
        stop=stop_after_attempt(3), sleep=restart_delays.append, reraise=True
    )


def test_rediscovers_after_backend_error(fast_supervisor, restart_delays) -> None:
    """Each failed run starts over from a fresh discovery."""
    runs = [[FakeClipboard("Wayland"), FakeClipboard("X11")] for _ in range(3)]

    with patch("wlclipsync.supervisor.discover_clipboards", side_effect=runs) as discover, \
            patch("wlclipsync.supervisor.keep_synced",
                  side_effect=ClipboardError("session lost")):
        with pytest.raises(ClipboardError):
            fast_supervisor()

    assert discover.call_count == 3
    assert all(clipboard.closed for run in runs for clipboard in run)
    assert restart_delays == [RESTART_DELAY, RESTART_DELAY]


def test_logs_error_before_restart(fast_supervisor, caplog) -> None:
    with patch("wlclipsync.supervisor.discover_clipboards", return_value=[]), \
            patch("wlclipsync.supervisor.keep_synced",
                  side_effect=ClipboardError("pipe closed")):
        with pytest.raises(ClipboardError):
            fast_supervisor()

    assert "Error while syncing clipboards: pipe closed" in caplog.text


def test_discovery_failure_not_retried(fast_supervisor, restart_delays) -> None:
    """A host without a backend is not retried forever."""
    with patch("wlclipsync.supervisor.discover_clipboards",
               side_effect=DiscoveryError("Could not get X11 clipboard")) as discover:
        with pytest.raises(DiscoveryError):
            fast_supervisor()

    assert discover.call_count == 1
    assert restart_delays == []


def test_passes_poll_interval(fast_supervisor) -> None:
    clipboards = [FakeClipboard("Wayland"), FakeClipboard("X11")]
    with patch("wlclipsync.supervisor.discover_clipboards", return_value=clipboards), \
            patch("wlclipsync.supervisor.keep_synced",
                  side_effect=KeyboardInterrupt()) as keep_synced:
        with pytest.raises(KeyboardInterrupt):
            fast_supervisor(0.5)

    keep_synced.assert_called_once_with(clipboards, 0.5)
    assert all(clipboard.closed for clipboard in clipboards)
