#!/usr/bin/env python3
"""Clipboard contents value object.

A ClipboardContents pairs the raw clipboard bytes with the mime type they
were read or written as. Values are created fresh on every read and compared
by their bytes only when detecting changes.
"""

from __future__ import annotations

from dataclasses import dataclass

# Mime type used when a backend does not report one.
DEFAULT_MIME_TYPE: str = "text/plain"


@dataclass(frozen=True)
class ClipboardContents:
    """Immutable clipboard value.

    Attributes:
        contents: Raw clipboard bytes. Empty means nothing is available.
        mime_type: Label describing the format of ``contents``.
    """

    contents: bytes = b""
    mime_type: str = DEFAULT_MIME_TYPE

    def is_empty(self) -> bool:
        """Return True if there is nothing in the clipboard."""
        return len(self.contents) == 0

    def same_contents(self, other: ClipboardContents) -> bool:
        """Compare raw bytes only, ignoring the mime type label."""
        return self.contents == other.contents


DEFAULT_CONTENTS = ClipboardContents()
