#!/usr/bin/env python3
"""Wayland clipboard access through wl-clipboard.

This module wraps the ``wl-paste`` and ``wl-copy`` tools behind the
Clipboard interface. The compositor socket is handed to each child process
through its own environment, so the session a handle is bound to never
leaks into the rest of the process.

wl-copy forks a background process that keeps serving the copied bytes to
other clients after it returns, which is what lets set() hand over
ownership of the data without blocking the synchronizer.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess

from wlclipsync.clipboard import ClipboardError
from wlclipsync.contents import ClipboardContents

logger = logging.getLogger(__name__)

# Timeout in seconds for a single wl-paste/wl-copy invocation.
COMMAND_TIMEOUT: float = 2.0

# Text mime types we are willing to read, most preferred first.
TEXT_MIME_TYPES: tuple[str, ...] = (
    "text/plain;charset=utf-8",
    "text/plain",
    "UTF8_STRING",
    "STRING",
    "TEXT",
)

# wl-paste error messages that only mean "there is nothing to paste".
EMPTY_CLIPBOARD_MESSAGES: tuple[str, ...] = (
    "nothing is copied",
    "no selection",
    "no suitable type",
    "no seats",
)


class WaylandClipboard:
    """Clipboard adapter for one Wayland compositor socket.

    Args:
        socket_name: Socket to connect to (e.g. ``wayland-1``), or None to
            use whatever WAYLAND_DISPLAY the process inherited.

    Raises:
        ClipboardError: If wl-paste or wl-copy is not installed.
    """

    def __init__(self, socket_name: str | None = None) -> None:
        for tool in ("wl-paste", "wl-copy"):
            if shutil.which(tool) is None:
                raise ClipboardError(f"{tool} not found in PATH")
        self.session = socket_name
        self._env = dict(os.environ)
        if socket_name is not None:
            self._env["WAYLAND_DISPLAY"] = socket_name

    def identify(self) -> str:
        return "Wayland"

    def __str__(self) -> str:
        return self.identify()

    def get(self) -> ClipboardContents:
        """Read the current clipboard as text.

        Returns:
            The clipboard contents, or an empty value if the clipboard is
            empty, has no seat, or offers no text type.

        Raises:
            ClipboardError: If the compositor cannot be reached.
        """
        offered = self._run_paste(["--list-types"])
        if offered is None:
            return ClipboardContents()

        mime_type = choose_text_mime_type(offered.decode("utf-8", "replace").splitlines())
        if mime_type is None:
            logger.debug("Wayland clipboard offers no text type")
            return ClipboardContents()

        data = self._run_paste(["--no-newline", "--type", mime_type])
        if data is None:
            return ClipboardContents()
        return ClipboardContents(data, mime_type)

    def set(self, value: ClipboardContents) -> None:
        """Copy ``value`` to the Wayland clipboard.

        Raises:
            ClipboardError: If wl-copy fails to take the selection.
        """
        # Output stays on DEVNULL: the forked owner inherits these handles
        # and would keep a pipe open for as long as it serves the data.
        try:
            result = subprocess.run(
                ["wl-copy", "--type", value.mime_type],
                input=value.contents,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                env=self._env,
                timeout=COMMAND_TIMEOUT,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise ClipboardError(f"wl-copy failed: {e}") from e

        if result.returncode != 0:
            raise ClipboardError(f"wl-copy exited with status {result.returncode}")
        logger.debug("Copied %d bytes to Wayland clipboard", len(value.contents))

    def close(self) -> None:
        """Nothing to release; each operation runs its own process."""

    def _run_paste(self, args: list[str]) -> bytes | None:
        """Run wl-paste and drain its output.

        Returns:
            stdout bytes, or None if wl-paste reported an empty clipboard.

        Raises:
            ClipboardError: On any other failure.
        """
        try:
            result = subprocess.run(
                ["wl-paste", *args],
                capture_output=True,
                env=self._env,
                timeout=COMMAND_TIMEOUT,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.debug("wl-paste timed out after %s seconds", COMMAND_TIMEOUT)
            return None
        except (OSError, subprocess.SubprocessError) as e:
            raise ClipboardError(f"wl-paste failed: {e}") from e

        if result.returncode == 0:
            return result.stdout

        message = result.stderr.decode("utf-8", "replace").strip()
        if is_empty_clipboard_message(message):
            logger.debug("Wayland clipboard empty: %s", message)
            return None
        raise ClipboardError(f"wl-paste failed: {message or result.returncode}")


def choose_text_mime_type(offered: list[str]) -> str | None:
    """Pick the preferred text mime type from those offered.

    Args:
        offered: Mime types listed by ``wl-paste --list-types``.

    Returns:
        The first entry of TEXT_MIME_TYPES that is offered, then any other
        ``text/plain`` variant, or None if nothing textual is offered.
    """
    offered = [mime.strip() for mime in offered if mime.strip()]
    for mime_type in TEXT_MIME_TYPES:
        if mime_type in offered:
            return mime_type
    for mime_type in offered:
        if mime_type.startswith("text/plain"):
            return mime_type
    return None


def is_empty_clipboard_message(message: str) -> bool:
    """Return True if a wl-paste error only means the clipboard is empty."""
    lowered = message.lower()
    return any(marker in lowered for marker in EMPTY_CLIPBOARD_MESSAGES)
