#!/usr/bin/env python3
"""X11 clipboard adapter.

Each X11Clipboard opens its own python-xlib connection to one display and
a hidden 1x1 window used both to receive converted selections and to own
CLIPBOARD after set(). Owning a selection means answering other clients'
requests for it; the adapter does that every time it is called, so a handle
keeps serving its data as long as the synchronizer keeps polling it.

A handle is not safe for concurrent use. The synchronizer only ever issues
one call at a time.
"""

from __future__ import annotations

import logging
import select
from typing import TYPE_CHECKING

from Xlib import X, Xatom
from Xlib.display import Display
from Xlib.error import ConnectionClosedError, DisplayError, XError

from wlclipsync.clipboard import ClipboardError
from wlclipsync.contents import DEFAULT_MIME_TYPE, ClipboardContents
from wlclipsync.x11_io import SelectionTimeoutError, read_selection
from wlclipsync.x11_selection import (
    INCR_WAIT_INTERVAL,
    cancel_incr_sends,
    cleanup_stale_incr_sends,
    handle_property_delete,
    handle_requestor_destroyed,
    handle_selection_request,
)

if TYPE_CHECKING:
    from Xlib.protocol.rq import Event
    from Xlib.xobject.drawable import Window

    from wlclipsync.x11_selection import PendingIncrSends

logger = logging.getLogger(__name__)

# Failures of the X connection itself, all treated as a lost session
X11_ERRORS = (DisplayError, ConnectionClosedError, XError, OSError)

# Property on our window that receives converted selections
TRANSFER_PROPERTY: str = "WLCLIPSYNC_SEL"


def create_hidden_window(display: Display) -> Window:
    """Create a 1x1 unmapped window for clipboard ownership.

    Args:
        display: The X11 display connection.

    Returns:
        A Window that reports its own property changes.
    """
    screen = display.screen()
    return screen.root.create_window(
        0, 0, 1, 1, 0, screen.root_depth, event_mask=X.PropertyChangeMask,
    )


class X11Clipboard:
    """Clipboard adapter for the CLIPBOARD selection of one X display.

    Args:
        display_name: Display to open (e.g. ``:1``), or None to use the
            DISPLAY the process inherited.

    Raises:
        ClipboardError: If the display cannot be opened.
    """

    def __init__(self, display_name: str | None = None) -> None:
        self.session = display_name
        try:
            self._display = Display(display_name)
        except X11_ERRORS as e:
            raise ClipboardError(
                f"Failed to connect to X11 display {display_name or '(inherited)'}: {e}"
            ) from e

        try:
            self._window = create_hidden_window(self._display)
            self._clipboard_atom = self._display.intern_atom("CLIPBOARD")
            self._read_targets = (self._display.intern_atom("UTF8_STRING"), Xatom.STRING)
            self._prop_atom = self._display.intern_atom(TRANSFER_PROPERTY)
            self._incr_atom = self._display.intern_atom("INCR")
        except X11_ERRORS as e:
            self._display.close()
            raise ClipboardError(f"Failed to set up X11 clipboard window: {e}") from e

        self._owned: ClipboardContents | None = None
        self._pending_incr_sends: PendingIncrSends = {}
        self._closed = False

    def identify(self) -> str:
        return "X11"

    def __str__(self) -> str:
        return self.identify()

    def get(self) -> ClipboardContents:
        """Read the current CLIPBOARD selection as text.

        Returns:
            The selection contents, or an empty value if nobody owns the
            selection, the owner offers no text, or it does not answer.

        Raises:
            ClipboardError: If the X connection fails.
        """
        try:
            self.process_pending_events()
            owner = self._display.get_selection_owner(self._clipboard_atom)
            if owner == X.NONE:
                logger.debug("No X11 clipboard owner")
                return ClipboardContents()
            if owner == self._window:
                return self._owned or ClipboardContents()
            return self._read_from_owner()
        except X11_ERRORS as e:
            raise ClipboardError(f"X11 clipboard read failed: {e}") from e

    def set(self, value: ClipboardContents) -> None:
        """Take CLIPBOARD ownership and serve ``value`` from now on.

        Raises:
            ClipboardError: If ownership cannot be acquired.
        """
        try:
            self.process_pending_events()
            self._owned = value
            self._window.set_selection_owner(self._clipboard_atom, X.CurrentTime)
            self._display.flush()
            owner = self._display.get_selection_owner(self._clipboard_atom)
        except X11_ERRORS as e:
            raise ClipboardError(f"X11 clipboard write failed: {e}") from e

        if owner != self._window:
            self._owned = None
            raise ClipboardError("Failed to acquire X11 clipboard ownership")
        logger.debug("Own X11 clipboard with %d bytes", len(value.contents))

    def close(self) -> None:
        """Close the display connection, giving up any owned selection."""
        if self._closed:
            return
        self._closed = True
        self._owned = None
        self._pending_incr_sends.clear()
        try:
            self._display.close()
        except X11_ERRORS as e:
            raise ClipboardError(f"Failed to close X11 display: {e}") from e

    def process_pending_events(self) -> None:
        """Handle queued events, then finish any INCR sends in progress.

        INCR requestors ask for each chunk with a separate event, so while a
        transfer is pending we keep waiting on the display instead of
        returning to the synchronizer. A requestor that stops asking is
        dropped after INCR_SEND_TIMEOUT.
        """
        self._handle_queued_events()
        while self._pending_incr_sends:
            select.select([self._display], [], [], INCR_WAIT_INTERVAL)
            self._handle_queued_events()

    def _handle_queued_events(self) -> None:
        while self._display.pending_events() > 0:
            self._handle_event(self._display.next_event())
        cleanup_stale_incr_sends(self._display, self._pending_incr_sends)

    def _read_from_owner(self) -> ClipboardContents:
        for target in self._read_targets:
            try:
                data = read_selection(
                    self._display,
                    self._window,
                    self._clipboard_atom,
                    target,
                    self._prop_atom,
                    self._incr_atom,
                    self._handle_event,
                )
            except SelectionTimeoutError as e:
                logger.debug("X11 clipboard owner did not answer: %s", e)
                return ClipboardContents()
            if data is not None:
                return ClipboardContents(data, DEFAULT_MIME_TYPE)
        return ClipboardContents()

    def _handle_event(self, event: Event) -> None:
        if event.type == X.SelectionRequest:
            owned = self._owned if event.selection == self._clipboard_atom else None
            handle_selection_request(
                self._display, event, owned, self._pending_incr_sends
            )
        elif event.type == X.SelectionClear:
            if event.selection == self._clipboard_atom:
                logger.debug("Lost X11 clipboard ownership")
                self._owned = None
                cancel_incr_sends(self._display, self._pending_incr_sends)
        elif event.type == X.PropertyNotify:
            if event.state == X.PropertyDelete:
                handle_property_delete(self._display, event, self._pending_incr_sends)
        elif event.type == X.DestroyNotify:
            handle_requestor_destroyed(self._display, event, self._pending_incr_sends)
