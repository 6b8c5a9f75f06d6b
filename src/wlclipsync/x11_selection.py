#!/usr/bin/env python3
"""X11 selection serving.

When the X11 adapter owns CLIPBOARD, other clients read it by sending
SelectionRequest events. This module answers them: TARGETS lists what we
offer, text targets get the owned bytes, and everything else is refused.

Content too large for a single ChangeProperty request is sent with the
INCR protocol: we write an INCR marker, then one chunk each time the
requestor deletes the property, finishing with a zero-length chunk.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from Xlib import X, Xatom
from Xlib.protocol.event import SelectionNotify

if TYPE_CHECKING:
    from Xlib.display import Display
    from Xlib.protocol.event import SelectionRequest
    from Xlib.protocol.rq import Event
    from Xlib.xobject.drawable import Window

    from wlclipsync.contents import ClipboardContents

logger = logging.getLogger(__name__)

# Fraction of the server's maximum request size used for a single property
INCR_SAFETY_MARGIN: float = 0.9

# Chunk size for INCR transfers
INCR_CHUNK_SIZE: int = 65536

# Seconds without progress after which an INCR transfer is abandoned
INCR_SEND_TIMEOUT: float = 30.0

# Seconds to wait for the next requestor event while INCR sends are pending
INCR_WAIT_INTERVAL: float = 0.1

# Targets answered with the owned bytes
TEXT_TARGET_NAMES: tuple[str, ...] = (
    "UTF8_STRING",
    "STRING",
    "TEXT",
    "text/plain",
    "text/plain;charset=utf-8",
)


@dataclass
class IncrSendState:
    """An in-progress INCR transfer to one requestor property.

    Attributes:
        requestor: The window receiving the data.
        property_atom: The requestor's property the chunks are written to.
        target_atom: The target type the chunks are written as.
        content: The full content being sent.
        offset: Position of the next chunk in ``content``.
        last_activity: time.monotonic() when the transfer started or last
            sent a chunk.
        completion_sent: True once the zero-length chunk was written.
    """

    requestor: Window
    property_atom: int
    target_atom: int
    content: bytes
    offset: int = 0
    last_activity: float = 0.0
    completion_sent: bool = False


PendingIncrSends = dict[tuple[int, int], IncrSendState]


def text_targets(display: Display, value: ClipboardContents) -> list[int]:
    """Return the target atoms served with the owned bytes."""
    names = list(TEXT_TARGET_NAMES)
    if value.mime_type not in names:
        names.append(value.mime_type)
    return [display.intern_atom(name) for name in names]


def handle_selection_request(
    display: Display,
    event: SelectionRequest,
    value: ClipboardContents | None,
    pending_incr_sends: PendingIncrSends,
) -> None:
    """Answer a SelectionRequest for a selection we may own.

    Args:
        display: The X11 display connection.
        event: The SelectionRequest event.
        value: The contents we own, or None to refuse the request.
        pending_incr_sends: In-progress INCR transfers, keyed by
            (requestor window id, property atom).
    """
    # Obsolete clients leave property unset and expect the target name
    prop = event.property if event.property != X.NONE else event.target
    targets_atom = display.intern_atom("TARGETS")

    if value is None:
        prop = X.NONE
    elif event.target == targets_atom:
        targets = [targets_atom, *text_targets(display, value)]
        event.requestor.change_property(prop, Xatom.ATOM, 32, targets)
    elif event.target in text_targets(display, value):
        if needs_incr_transfer(value.contents, display):
            _initiate_incr_send(display, event, prop, value.contents, pending_incr_sends)
        else:
            event.requestor.change_property(prop, event.target, 8, value.contents)
    else:
        logger.debug("Refusing unsupported target %s", event.target)
        prop = X.NONE

    send_selection_notify(display, event, prop)


def send_selection_notify(display: Display, event: SelectionRequest, prop: int) -> None:
    """Tell the requestor where the data is, or X.NONE on refusal."""
    event.requestor.send_event(
        SelectionNotify(
            time=event.time,
            requestor=event.requestor.id,
            selection=event.selection,
            target=event.target,
            property=prop,
        ),
        event_mask=0,
    )
    display.flush()


def get_max_property_size(display: Display) -> int:
    # max_request_length is in 4-byte units
    return int(display.info.max_request_length * 4 * INCR_SAFETY_MARGIN)


def needs_incr_transfer(content: bytes, display: Display) -> bool:
    return len(content) > get_max_property_size(display)


def _initiate_incr_send(
    display: Display,
    event: SelectionRequest,
    prop: int,
    content: bytes,
    pending_incr_sends: PendingIncrSends,
) -> None:
    """Write the INCR marker and start tracking the transfer.

    The caller sends the SelectionNotify; chunks follow as the requestor
    deletes the property.
    """
    event.requestor.change_attributes(
        event_mask=X.PropertyChangeMask | X.StructureNotifyMask
    )
    incr_atom = display.intern_atom("INCR")
    event.requestor.change_property(prop, incr_atom, 32, [len(content)])
    pending_incr_sends[(event.requestor.id, prop)] = IncrSendState(
        requestor=event.requestor,
        property_atom=prop,
        target_atom=event.target,
        content=content,
        last_activity=time.monotonic(),
    )
    logger.debug("Initiated INCR send: requestor=%s size=%s",
        event.requestor.id, len(content))


def handle_property_delete(
    display: Display, event: Event, pending_incr_sends: PendingIncrSends
) -> None:
    """Send the next INCR chunk after the requestor consumed the last one."""
    transfer_key = (event.window.id, event.atom)
    state = pending_incr_sends.get(transfer_key)
    if state is None:
        return
    if state.completion_sent:
        logger.debug("INCR send complete: %s", transfer_key)
        _finish_incr_send(display, transfer_key, pending_incr_sends)
        return

    chunk = state.content[state.offset:state.offset + INCR_CHUNK_SIZE]
    state.requestor.change_property(state.property_atom, state.target_atom, 8, chunk)
    display.flush()
    state.offset += len(chunk)
    state.last_activity = time.monotonic()
    if not chunk:
        state.completion_sent = True


def handle_requestor_destroyed(
    display: Display, event: Event, pending_incr_sends: PendingIncrSends
) -> None:
    """Drop transfers whose requestor window went away."""
    for key in [key for key in pending_incr_sends if key[0] == event.window.id]:
        logger.debug("INCR send: requestor window destroyed: %s", key)
        del pending_incr_sends[key]


def cleanup_stale_incr_sends(
    display: Display, pending_incr_sends: PendingIncrSends
) -> None:
    """Abandon transfers whose requestor stopped asking for chunks."""
    now = time.monotonic()
    for key, state in list(pending_incr_sends.items()):
        if now - state.last_activity > INCR_SEND_TIMEOUT:
            logger.warning("INCR send stalled for %.1f seconds: %s",
                now - state.last_activity, key)
            _finish_incr_send(display, key, pending_incr_sends)


def cancel_incr_sends(display: Display, pending_incr_sends: PendingIncrSends) -> None:
    """Abandon every transfer, e.g. after losing selection ownership."""
    for key in list(pending_incr_sends):
        _finish_incr_send(display, key, pending_incr_sends)


def _finish_incr_send(
    display: Display,
    transfer_key: tuple[int, int],
    pending_incr_sends: PendingIncrSends,
) -> None:
    """Forget a transfer, unsubscribing from its window if it was the last one."""
    state = pending_incr_sends.pop(transfer_key)
    if not any(key[0] == transfer_key[0] for key in pending_incr_sends):
        state.requestor.change_attributes(event_mask=0)
        display.flush()
