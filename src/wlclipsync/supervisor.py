#!/usr/bin/env python3
"""Supervisor for the discovery and synchronization pipeline.

Runs discovery followed by synchronization, restarting both from scratch
whenever a backend fails. Restarts use tenacity with a fixed delay and no
attempt limit. Discovery failures are not retried: without a clipboard on
both sides there is nothing to synchronize.
"""

from __future__ import annotations

import logging

from tenacity import retry, retry_if_exception_type, stop_never, wait_fixed

from wlclipsync.clipboard import ClipboardError, close_clipboards
from wlclipsync.discovery import discover_clipboards
from wlclipsync.sync import keep_synced
from wlclipsync.sync_constants import PASS_INTERVAL, RESTART_DELAY

logger = logging.getLogger(__name__)


@retry(
    wait=wait_fixed(RESTART_DELAY),
    retry=retry_if_exception_type(ClipboardError),
    stop=stop_never,
)
def run_supervisor(pass_interval: float = PASS_INTERVAL) -> None:
    """Discover clipboards and keep them synced, restarting on failure.

    Each attempt discovers fresh handles; handles from a failed attempt
    are closed and never reused.

    Args:
        pass_interval: Seconds to sleep between polling passes.

    Raises:
        DiscoveryError: If a backend cannot be found. Not retried.

    Note:
        This function never returns normally.
    """
    clipboards = discover_clipboards()
    try:
        keep_synced(clipboards, pass_interval)
    except ClipboardError as e:
        logger.error("Error while syncing clipboards: %s", e)
        raise
    finally:
        close_clipboards(clipboards)
