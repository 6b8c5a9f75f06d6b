#!/usr/bin/env python3
"""Tests for the clipboard synchronization loop."""
import pytest

from conftest import FakeClipboard
from wlclipsync.clipboard import ClipboardError
from wlclipsync.contents import DEFAULT_CONTENTS, ClipboardContents
from wlclipsync.sync import keep_synced, propagate, reconcile, sync_pass, wait_for_change


class TestReconcile:
    """Tests for startup reconciliation."""

    def test_seeds_empty_backend_from_non_empty_one(self, wayland, x11) -> None:
        """Wayland="" and X11="hello" both end up holding "hello"."""
        x11.external_write(b"hello")

        seed = reconcile([wayland, x11])

        assert seed.contents == b"hello"
        assert wayland.value.contents == b"hello"
        assert x11.sets == []

    def test_first_backend_wins_tie_break(self, wayland, x11) -> None:
        """Differing non-empty values seed from the first backend."""
        wayland.external_write(b"from wayland")
        x11.external_write(b"from x11")

        seed = reconcile([wayland, x11])

        assert seed.contents == b"from wayland"
        assert x11.value.contents == b"from wayland"
        assert wayland.sets == []

    def test_all_empty_seeds_default(self, wayland, x11) -> None:
        """With nothing anywhere the seed is the shared empty value."""
        seed = reconcile([wayland, x11])

        assert seed == DEFAULT_CONTENTS
        assert wayland.sets == []
        assert x11.sets == []

    def test_second_reconcile_writes_nothing(self, wayland, x11) -> None:
        """Reconciliation is idempotent once backends agree."""
        wayland.external_write(b"same")
        reconcile([wayland, x11])
        writes = len(wayland.sets) + len(x11.sets)

        reconcile([wayland, x11])

        assert len(wayland.sets) + len(x11.sets) == writes

    def test_agreement_ignores_mime_type(self, wayland, x11) -> None:
        """Backends with equal bytes but different labels already agree."""
        wayland.value = ClipboardContents(b"text", "text/plain;charset=utf-8")
        x11.value = ClipboardContents(b"text", "text/plain")

        reconcile([wayland, x11])

        assert wayland.sets == []
        assert x11.sets == []

    def test_read_error_propagates(self, x11) -> None:
        """Hard errors abort reconciliation."""
        broken = FakeClipboard("Wayland", fail_after=0)
        with pytest.raises(ClipboardError):
            reconcile([broken, x11])


class TestSyncPass:
    """Tests for a single polling pass."""

    def test_no_change_returns_none(self, wayland, x11, no_sleep) -> None:
        """Backends matching the baseline report no change."""
        baseline = ClipboardContents(b"hello")
        wayland.value = baseline
        x11.value = baseline

        assert sync_pass([wayland, x11], baseline) is None

    def test_detects_changed_backend(self, wayland, x11, no_sleep) -> None:
        """A backend differing from the baseline is returned with its value."""
        baseline = ClipboardContents(b"hello")
        wayland.value = baseline
        x11.external_write(b"world")

        source, value = sync_pass([wayland, x11], baseline)

        assert source is x11
        assert value.contents == b"world"

    def test_first_difference_wins(self, wayland, x11, no_sleep) -> None:
        """When both changed, the first backend in order is chosen."""
        baseline = ClipboardContents(b"hello")
        wayland.external_write(b"one")
        x11.external_write(b"two")

        source, value = sync_pass([wayland, x11], baseline)

        assert source is wayland
        assert value.contents == b"one"
        assert x11.gets == 0

    def test_empty_read_is_not_a_change(self, wayland, x11, no_sleep) -> None:
        """An empty backend never overrides a non-empty baseline."""
        baseline = ClipboardContents(b"hello")
        x11.value = baseline

        assert sync_pass([wayland, x11], baseline) is None

    def test_sleeps_between_checks(self, wayland, x11, no_sleep) -> None:
        """One check interval is slept between the two backends."""
        sync_pass([wayland, x11], DEFAULT_CONTENTS, check_interval=0.5)

        assert no_sleep == [0.5]


class TestPropagate:
    """Tests for broadcasting a new value."""

    def test_sets_every_other_backend_once(self, wayland, x11) -> None:
        """The source backend is not written back to."""
        value = ClipboardContents(b"world")

        propagate(wayland, value, [wayland, x11])

        assert wayland.sets == []
        assert x11.sets == [value]

    def test_no_echo_after_broadcast(self, wayland, x11, no_sleep) -> None:
        """After a broadcast, the next pass finds nothing new."""
        value = ClipboardContents(b"world")
        wayland.external_write(b"world")

        propagate(wayland, value, [wayland, x11])

        assert sync_pass([wayland, x11], value) is None


class TestWaitForChange:
    """Tests for polling until a change appears."""

    def test_sleeps_between_passes(self, wayland, x11, no_sleep) -> None:
        """Passes without a change are separated by the pass interval."""
        baseline = ClipboardContents(b"hello")
        wayland.value = baseline
        x11.value = baseline
        calls = 0

        def change_on_third_get() -> ClipboardContents:
            nonlocal calls
            calls += 1
            return ClipboardContents(b"new") if calls == 3 else baseline

        wayland.get = change_on_third_get

        source, value = wait_for_change([wayland, x11], baseline, pass_interval=0.7)

        assert source is wayland
        assert value.contents == b"new"
        assert no_sleep.count(0.7) == 2


class TestKeepSynced:
    """Tests for the full reconcile-then-mirror run."""

    def test_scenario_hello_world(self, no_sleep) -> None:
        """Seed from X11, then mirror a later Wayland copy to X11 once."""
        wayland = FakeClipboard("Wayland", fail_after=4)
        x11 = FakeClipboard("X11", b"hello")
        original_get = wayland.get

        def get_then_copy() -> ClipboardContents:
            value = original_get()
            if wayland.gets == 2:
                # user copies in a Wayland application after startup
                wayland.external_write(b"world")
                return wayland.value
            return value

        wayland.get = get_then_copy

        with pytest.raises(ClipboardError):
            keep_synced([wayland, x11], pass_interval=0)

        assert [value.contents for value in wayland.sets] == [b"hello"]
        assert [value.contents for value in x11.sets] == [b"world"]

    def test_backend_error_ends_run(self, wayland, no_sleep) -> None:
        """A failing backend raises out of keep_synced."""
        x11 = FakeClipboard("X11", b"hello", fail_after=2)

        with pytest.raises(ClipboardError, match="X11 session lost"):
            keep_synced([wayland, x11])
