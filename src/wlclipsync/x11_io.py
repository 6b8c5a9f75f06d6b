#!/usr/bin/env python3
"""X11 selection reading.

This module implements the requesting side of the X11 selection protocol
with python-xlib: ask the owner to convert CLIPBOARD into a text target,
wait for its SelectionNotify, and read the resulting property. Large
transfers arrive through the INCR protocol and are drained chunk by chunk
before returning.

Everything here blocks the calling thread. Events that arrive while waiting
and are not the one being waited for are passed to a callback so the caller
can keep answering requests for selections it owns.
"""

from __future__ import annotations

import logging
import select
import time
from typing import TYPE_CHECKING, Callable

from Xlib import X

if TYPE_CHECKING:
    from Xlib.display import Display
    from Xlib.protocol.rq import Event
    from Xlib.xobject.drawable import Window

logger = logging.getLogger(__name__)

# Timeout in seconds for each reply from the selection owner, so an
# unresponsive owner cannot stall synchronization.
CLIPBOARD_TIMEOUT: float = 2.0


class SelectionTimeoutError(Exception):
    """Raised when the selection owner does not answer in time."""


def wait_for_event(
    display: Display,
    matches: Callable[[Event], bool],
    handle_other: Callable[[Event], None],
    timeout: float = CLIPBOARD_TIMEOUT,
) -> Event:
    """Read events until one satisfies ``matches``.

    Args:
        display: The X11 display connection.
        matches: Predicate selecting the event to return.
        handle_other: Called with every other event read meanwhile.
        timeout: Seconds to wait before giving up.

    Returns:
        The first matching event.

    Raises:
        SelectionTimeoutError: If no matching event arrives within timeout.
    """
    deadline = time.monotonic() + timeout
    while True:
        while display.pending_events() > 0:
            event = display.next_event()
            if matches(event):
                return event
            handle_other(event)
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise SelectionTimeoutError(f"No reply within {timeout} seconds")
        select.select([display], [], [], remaining)


def read_selection(
    display: Display,
    window: Window,
    selection_atom: int,
    target_atom: int,
    prop_atom: int,
    incr_atom: int,
    handle_other: Callable[[Event], None],
) -> bytes | None:
    """Convert a selection to ``target_atom`` and return its bytes.

    Args:
        display: The X11 display connection.
        window: Our window, which receives the converted data.
        selection_atom: The selection to read (CLIPBOARD).
        target_atom: The requested target (UTF8_STRING or STRING).
        prop_atom: Property on ``window`` used for the transfer.
        incr_atom: The INCR atom, marking incremental transfers.
        handle_other: Called with unrelated events read while waiting.

    Returns:
        Content bytes, or None if the owner refused the conversion.

    Raises:
        SelectionTimeoutError: If the owner does not answer in time.
    """
    window.convert_selection(selection_atom, target_atom, prop_atom, X.CurrentTime)
    display.flush()

    notify = wait_for_event(
        display,
        lambda event: event.type == X.SelectionNotify
        and event.selection == selection_atom
        and event.target == target_atom,
        handle_other,
    )
    if notify.property == X.NONE:
        logger.debug("Selection owner refused target %s", target_atom)
        return None

    prop = _take_property(display, window, prop_atom)
    if prop is None:
        return None
    if prop.property_type == incr_atom:
        logger.debug("Receiving selection via INCR")
        return _read_incr(display, window, prop_atom, handle_other)
    return _property_bytes(prop)


def _read_incr(
    display: Display,
    window: Window,
    prop_atom: int,
    handle_other: Callable[[Event], None],
) -> bytes:
    """Collect INCR chunks until the zero-length terminator.

    Deleting the INCR property (done by the caller) tells the owner to
    write the first chunk; every later delete asks for the next one.
    """
    chunks: list[bytes] = []
    while True:
        wait_for_event(
            display,
            lambda event: event.type == X.PropertyNotify
            and event.atom == prop_atom
            and event.state == X.PropertyNewValue,
            handle_other,
        )
        prop = _take_property(display, window, prop_atom)
        chunk = b"" if prop is None else _property_bytes(prop)
        if not chunk:
            logger.debug("INCR receive complete: %d chunks", len(chunks))
            return b"".join(chunks)
        chunks.append(chunk)


def _take_property(display: Display, window: Window, prop_atom: int):
    """Read and delete a property from our window."""
    prop = window.get_full_property(prop_atom, X.AnyPropertyType)
    window.delete_property(prop_atom)
    display.flush()
    return prop


def _property_bytes(prop) -> bytes:
    data = prop.value
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)
