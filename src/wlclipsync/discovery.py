#!/usr/bin/env python3
"""Backend discovery.

Finds one working clipboard session per backend type. The inherited
environment is tried first; if that fails, every candidate session
identifier is passed to the adapter in turn until one answers a probe
read. The process environment itself is never modified.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from typing import TYPE_CHECKING, Callable

from wlclipsync.clipboard import ClipboardError
from wlclipsync.sync_constants import SESSION_CANDIDATES
from wlclipsync.wayland_clipboard import WaylandClipboard
from wlclipsync.x11_clipboard import X11Clipboard

if TYPE_CHECKING:
    from collections.abc import Iterable

    from wlclipsync.clipboard import Clipboard

logger = logging.getLogger(__name__)

ClipboardFactory = Callable[["str | None"], "Clipboard"]


class DiscoveryError(Exception):
    """Raised when no working session exists for a backend type."""


def wayland_candidates() -> list[str]:
    return [f"wayland-{i}" for i in range(SESSION_CANDIDATES)]


def x11_candidates() -> list[str]:
    return [f":{i}" for i in range(SESSION_CANDIDATES)]


def probe_clipboard(factory: ClipboardFactory, session: str | None) -> Clipboard:
    """Construct a handle and check that it can read its clipboard.

    Args:
        factory: Adapter class or callable taking a session identifier.
        session: Session to bind to, or None for the inherited one.

    Returns:
        A handle whose probe read succeeded.

    Raises:
        ClipboardError: If construction or the probe read fails. The
            handle is closed before the error propagates.
    """
    clipboard = factory(session)
    try:
        clipboard.get()
    except ClipboardError:
        with suppress(ClipboardError):
            clipboard.close()
        raise
    return clipboard


def discover_clipboard(
    factory: ClipboardFactory, candidates: Iterable[str], name: str
) -> Clipboard:
    """Find a working session for one backend type.

    Args:
        factory: Adapter class or callable taking a session identifier.
        candidates: Session identifiers to try after the inherited one.
        name: Backend name for log and error messages.

    Returns:
        The first handle whose probe succeeded.

    Raises:
        DiscoveryError: If neither the inherited session nor any
            candidate works.
    """
    try:
        return probe_clipboard(factory, None)
    except ClipboardError as e:
        logger.debug("%s clipboard not available from environment: %s", name, e)

    logger.info("%s display not found in environment. Attempting to detect display...", name)
    for session in candidates:
        try:
            clipboard = probe_clipboard(factory, session)
        except ClipboardError as e:
            logger.debug("%s session %s unavailable: %s", name, session, e)
            continue
        logger.info("Found %s clipboard on %s", name, session)
        return clipboard

    raise DiscoveryError(f"Could not get {name} clipboard")


def discover_clipboards() -> list[Clipboard]:
    """Find the Wayland and X11 clipboards, in that order.

    Raises:
        DiscoveryError: If either backend cannot be found. Handles found
            before the failure are closed.
    """
    wayland = discover_clipboard(WaylandClipboard, wayland_candidates(), "Wayland")
    try:
        x11 = discover_clipboard(X11Clipboard, x11_candidates(), "X11")
    except DiscoveryError:
        wayland.close()
        raise

    logger.info("Clipboards found!")
    return [wayland, x11]
