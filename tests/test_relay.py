"""Tests for the event relay and window channels."""
import threading

import pytest

from notewell.exceptions import ErrorCode, RelayError
from notewell.services.relay import (
    DeleteNote,
    Event,
    EventRelay,
    FocusNote,
    GetNoteTitle,
    GetSearchText,
    SetNoteMark,
    Signal,
)


class TestEmit:
    def test_handlers_fire_in_registration_order(self, relay):
        calls = []
        relay.on(Event.FOCUS_NOTE, lambda m: calls.append(("first", m.note_id)))
        relay.on(Event.FOCUS_NOTE, lambda m: calls.append(("second", m.note_id)))

        assert relay.emit(FocusNote("n1")) is True
        assert calls == [("first", "n1"), ("second", "n1")]

    def test_message_without_subscriber_is_dropped(self, relay):
        assert relay.emit(FocusNote("n1")) is False
        assert relay.request(GetSearchText()) is None

    def test_request_needs_callback(self, relay):
        with pytest.raises(RelayError) as exc_info:
            relay.emit(GetNoteTitle("n1"))
        assert exc_info.value.code == ErrorCode.RELAY_MISSING_CALLBACK

    def test_notification_rejects_callback(self, relay):
        with pytest.raises(RelayError) as exc_info:
            relay.emit(DeleteNote("n1"), callback=print)
        assert exc_info.value.code == ErrorCode.RELAY_UNEXPECTED_CALLBACK

    def test_request_returns_answer(self, relay):
        relay.on(Event.GET_NOTE_TITLE, lambda m, cb: cb(f"title of {m.note_id}"))
        assert relay.request(GetNoteTitle("n1")) == "title of n1"

    def test_remove_listener(self, relay):
        calls = []
        handler = calls.append
        relay.on(Event.SET_NOTE_MARK, handler)
        relay.remove_listener(Event.SET_NOTE_MARK, handler)
        relay.remove_listener(Event.SET_NOTE_MARK, handler)

        relay.emit(SetNoteMark("n1", True))
        assert calls == []
        assert relay.listener_count(Event.SET_NOTE_MARK) == 0

    def test_messages_are_immutable(self):
        message = SetNoteMark("n1", True)
        with pytest.raises(Exception):
            message.is_marked = False


class TestChannels:
    def test_post_is_delivered_on_dispatch(self, relay):
        received = []
        relay.on(Event.FOCUS_NOTE, received.append)
        channel = relay.open_channel("window-1")

        channel.post(FocusNote("n1"))
        assert received == []
        assert channel.pending() == 1

        assert relay.dispatch_pending() == 1
        assert [m.note_id for m in received] == ["n1"]

    def test_full_channel_raises(self, relay):
        channel = relay.open_channel("window-1", maxsize=1)
        channel.post(FocusNote("n1"))
        with pytest.raises(RelayError) as exc_info:
            channel.post(FocusNote("n2"), timeout=0.01)
        assert exc_info.value.code == ErrorCode.RELAY_CHANNEL_FULL

    def test_failing_handler_does_not_stop_dispatch(self, relay):
        received = []

        def broken(message):
            raise RuntimeError("boom")

        relay.on(Event.FOCUS_NOTE, broken)
        relay.on(Event.DELETE_NOTE, received.append)
        channel = relay.open_channel("window-1")
        channel.post(FocusNote("n1"))
        channel.post(DeleteNote("n1"))

        assert relay.dispatch_pending() == 2
        assert [m.note_id for m in received] == ["n1"]

    def test_call_blocks_until_coordinator_answers(self, relay):
        relay.on(Event.GET_NOTE_TITLE, lambda m, cb: cb("Answer"))
        channel = relay.open_channel("window-1")
        stop = threading.Event()
        coordinator = threading.Thread(target=relay.serve, args=(stop, 0.01))
        coordinator.start()
        try:
            assert channel.call(GetNoteTitle("n1"), timeout=5) == "Answer"
        finally:
            stop.set()
            coordinator.join(timeout=5)

    def test_call_times_out_when_dropped(self, relay):
        channel = relay.open_channel("window-1")
        stop = threading.Event()
        coordinator = threading.Thread(target=relay.serve, args=(stop, 0.01))
        coordinator.start()
        try:
            with pytest.raises(RelayError) as exc_info:
                channel.call(GetNoteTitle("n1"), timeout=0.2)
            assert exc_info.value.code == ErrorCode.RELAY_TIMEOUT
        finally:
            stop.set()
            coordinator.join(timeout=5)

    def test_closed_channel_is_not_drained(self, relay):
        channel = relay.open_channel("window-1")
        channel.post(FocusNote("n1"))
        relay.close_channel(channel)
        assert relay.dispatch_pending() == 0


class TestSignal:
    def test_failing_receiver_does_not_stop_others(self):
        signal = Signal("changed")
        calls = []

        def broken(*args):
            raise RuntimeError("boom")

        signal.connect(broken)
        signal.connect(calls.append)
        signal.emit("x")
        assert calls == ["x"]

    def test_connect_is_idempotent(self):
        signal = Signal("changed")
        calls = []
        signal.connect(calls.append)
        signal.connect(calls.append)
        signal.emit(1)
        assert calls == [1]
        assert len(signal) == 1
