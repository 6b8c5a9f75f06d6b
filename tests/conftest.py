#!/usr/bin/env python3
"""Pytest fixtures for wlclipsync tests.

Provides in-memory clipboard backends for synchronizer tests and an
Xvfb virtual display for tests that need a real X server.
"""

import os
import shutil
import subprocess
import time
from collections.abc import Generator

import pytest

from wlclipsync.clipboard import ClipboardError
from wlclipsync.contents import ClipboardContents


def has_display() -> bool:
    """Return True if an X11 display is reachable."""
    if not os.environ.get("DISPLAY"):
        return False
    try:
        from Xlib.display import Display

        Display().close()
    except Exception:
        return False
    return True


class FakeClipboard:
    """In-memory clipboard backend recording every write.

    Attributes:
        name: Value returned by identify().
        value: Current clipboard contents.
        sets: Every value passed to set(), in order.
        fail_after: Raise ClipboardError after this many get() calls.
    """

    def __init__(self, name: str, contents: bytes = b"", fail_after: int | None = None):
        self.name = name
        self.session = None
        self.value = ClipboardContents(contents)
        self.sets: list[ClipboardContents] = []
        self.gets = 0
        self.fail_after = fail_after
        self.closed = False

    def identify(self) -> str:
        return self.name

    def __str__(self) -> str:
        return self.name

    def get(self) -> ClipboardContents:
        self.gets += 1
        if self.fail_after is not None and self.gets > self.fail_after:
            raise ClipboardError(f"{self.name} session lost")
        return self.value

    def set(self, value: ClipboardContents) -> None:
        self.sets.append(value)
        self.value = value

    def close(self) -> None:
        self.closed = True

    def external_write(self, contents: bytes) -> None:
        """Simulate another application copying to this clipboard."""
        self.value = ClipboardContents(contents)


@pytest.fixture
def wayland() -> FakeClipboard:
    return FakeClipboard("Wayland")


@pytest.fixture
def x11() -> FakeClipboard:
    return FakeClipboard("X11")


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Replace time.sleep in the sync loop, recording requested delays."""
    delays: list[float] = []
    monkeypatch.setattr("wlclipsync.sync.time.sleep", delays.append)
    return delays


@pytest.fixture
def xvfb_display() -> Generator[str | None, None, None]:
    """Start Xvfb virtual display if available, yield DISPLAY string.

    Returns None if Xvfb is not available. Tests using this fixture
    should skip if the value is None.
    """
    if shutil.which("Xvfb") is None:
        yield None
        return

    display = ":99"
    proc = subprocess.Popen(
        ["Xvfb", display, "-screen", "0", "1024x768x24"],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    try:
        time.sleep(0.5)
        if proc.poll() is not None:
            yield None
            return
        old_display = os.environ.get("DISPLAY")
        os.environ["DISPLAY"] = display
        yield display
        if old_display is not None:
            os.environ["DISPLAY"] = old_display
        elif "DISPLAY" in os.environ:
            del os.environ["DISPLAY"]
    finally:
        proc.terminate()
        proc.wait()
