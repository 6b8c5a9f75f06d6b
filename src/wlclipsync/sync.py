#!/usr/bin/env python3
"""Clipboard synchronization loop.

A run has two phases:

1. Reconciliation: the first non-empty clipboard in discovery order seeds
   every other backend, so all of them start out identical.
2. Steady state: backends are polled in a fixed order against a baseline,
   the last value known to be on every backend. The first backend whose
   contents differ wins; its value is written to every other backend and
   becomes the new baseline.

Because every backend holds the baseline after a broadcast, reading back
what we just wrote never looks like a change, which is what prevents echo
loops. Empty reads never count as a change.

Backend errors are not handled here; they end the run and reach the
supervisor.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from wlclipsync.contents import DEFAULT_CONTENTS
from wlclipsync.sync_constants import CHECK_INTERVAL, PASS_INTERVAL

if TYPE_CHECKING:
    from collections.abc import Sequence

    from wlclipsync.clipboard import Clipboard
    from wlclipsync.contents import ClipboardContents

logger = logging.getLogger(__name__)


def reconcile(clipboards: Sequence[Clipboard]) -> ClipboardContents:
    """Make every backend hold the same initial value.

    Args:
        clipboards: Backends in discovery order.

    Returns:
        The seed value, now present on every backend.
    """
    values = [clipboard.get() for clipboard in clipboards]
    seed = next((value for value in values if not value.is_empty()), DEFAULT_CONTENTS)
    logger.debug("Initial clipboard value: %d bytes", len(seed.contents))

    for clipboard, value in zip(clipboards, values):
        if not value.same_contents(seed):
            clipboard.set(seed)
    return seed


def sync_pass(
    clipboards: Sequence[Clipboard],
    baseline: ClipboardContents,
    check_interval: float = CHECK_INTERVAL,
) -> tuple[Clipboard, ClipboardContents] | None:
    """Poll every backend once, in order.

    Args:
        clipboards: Backends in discovery order.
        baseline: The value currently mirrored on every backend.
        check_interval: Seconds to sleep between two backend checks.

    Returns:
        The first backend whose non-empty contents differ from the
        baseline, with its value, or None if nothing changed.
    """
    for index, clipboard in enumerate(clipboards):
        if index > 0:
            time.sleep(check_interval)
        value = clipboard.get()
        if value.is_empty() or value.same_contents(baseline):
            continue
        return clipboard, value
    return None


def wait_for_change(
    clipboards: Sequence[Clipboard],
    baseline: ClipboardContents,
    pass_interval: float = PASS_INTERVAL,
) -> tuple[Clipboard, ClipboardContents]:
    """Poll until some backend holds a new value.

    Returns:
        The backend that changed and its new value.
    """
    while True:
        change = sync_pass(clipboards, baseline)
        if change is not None:
            return change
        time.sleep(pass_interval)


def propagate(
    source: Clipboard, value: ClipboardContents, clipboards: Sequence[Clipboard]
) -> None:
    """Write ``value`` to every backend except the one it came from."""
    for clipboard in clipboards:
        if clipboard is not source:
            clipboard.set(value)


def keep_synced(clipboards: Sequence[Clipboard], pass_interval: float = PASS_INTERVAL) -> None:
    """Reconcile, then mirror changes between backends until one fails.

    Args:
        clipboards: Backends in discovery order.
        pass_interval: Seconds to sleep between polling passes.

    Raises:
        ClipboardError: From any backend; this function never returns
            normally.
    """
    baseline = reconcile(clipboards)
    while True:
        source, value = wait_for_change(clipboards, baseline, pass_interval)
        logger.info("Clipboard updated from the %s clipboard", source)
        propagate(source, value, clipboards)
        baseline = value
        time.sleep(pass_interval)
