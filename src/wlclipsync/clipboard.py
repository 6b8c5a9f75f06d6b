#!/usr/bin/env python3
"""Clipboard backend adapter contract.

Every backend (Wayland, X11) is wrapped behind the same small capability
set so the synchronizer never needs to know which one it is talking to:

- get(): read the current contents; "nothing there" is an empty value
- set(): replace the contents
- identify(): stable display name used in logs

Anything that is not an expected empty state is raised as ClipboardError.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable

    from wlclipsync.contents import ClipboardContents

logger = logging.getLogger(__name__)


class ClipboardError(Exception):
    """Raised when a clipboard backend fails (session lost, I/O error)."""


class Clipboard(Protocol):
    """Uniform interface over one live clipboard session."""

    session: str | None

    def get(self) -> ClipboardContents: ...

    def set(self, value: ClipboardContents) -> None: ...

    def identify(self) -> str: ...

    def close(self) -> None: ...


def close_clipboards(clipboards: Iterable[Clipboard]) -> None:
    """Release every handle, ignoring backends that are already gone.

    Args:
        clipboards: Handles from a finished or failed synchronizer run.
    """
    for clipboard in clipboards:
        logger.debug("Closing %s clipboard", clipboard)
        with suppress(ClipboardError):
            clipboard.close()
