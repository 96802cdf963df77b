"""Event relay: typed publish/subscribe between note windows and the coordinator.

Every window can reach the relay. Messages are a closed set of kinds, one
frozen dataclass per kind carrying exactly the fields that kind needs.
Requests expect exactly one subscriber to answer through a callback;
notifications are fire-and-forget.

Windows that live on other threads do not call the relay directly. They
post into their own bounded RelayChannel, and the coordinator thread
drains the channels with dispatch_pending() or serve(). All handlers
therefore run on the coordinator thread, which is the only one allowed to
mutate the stores.
"""

import logging
import queue
import threading
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, List, Optional, Tuple

from notewell.config import config
from notewell.exceptions import ErrorCode, RelayError

logger = logging.getLogger(__name__)


class Event(str, Enum):
    """Closed vocabulary of relay messages."""

    OPEN_NOTE_WINDOW = "open-note-window"
    PRINT = "print"
    PRINT_PDF_READY = "print-pdf-ready"
    GET_NOTE_TITLE = "get-note-title"
    SET_NOTE_TITLE = "set-note-title"
    GET_NOTE_TEXT = "get-note-text"
    SET_NOTE_TEXT = "set-note-text"
    GET_NOTE_DETAILS = "get-note-details"
    GET_NOTEBOOKS = "get-notebooks"
    SET_NOTE_OPEN = "set-note-open"
    SET_NOTE_MARK = "set-note-mark"
    SET_NOTEBOOK = "set-notebook"
    DELETE_NOTE = "delete-note"
    NOTE_MARK_CHANGED = "note-mark-changed"
    NOTEBOOK_CHANGED = "notebook-changed"
    FOCUS_NOTE = "focus-note"
    CLOSE_NOTE = "close-note"
    GET_SEARCH_TEXT = "get-search-text"


@dataclass(frozen=True)
class Message:
    """Base of every relay message."""

    event: ClassVar[Event]


@dataclass(frozen=True)
class Request(Message):
    """A message answered by exactly one subscriber through a callback."""


@dataclass(frozen=True)
class Notification(Message):
    """A fire-and-forget message."""


# --- Notifications -----------------------------------------------------------

@dataclass(frozen=True)
class OpenNoteWindow(Notification):
    event: ClassVar[Event] = Event.OPEN_NOTE_WINDOW
    note_id: str
    note_path: str


@dataclass(frozen=True)
class Print(Notification):
    event: ClassVar[Event] = Event.PRINT
    content: str


@dataclass(frozen=True)
class PrintPdfReady(Notification):
    event: ClassVar[Event] = Event.PRINT_PDF_READY
    pdf_path: str


@dataclass(frozen=True)
class SetNoteOpen(Notification):
    event: ClassVar[Event] = Event.SET_NOTE_OPEN
    note_id: str
    is_open: bool


@dataclass(frozen=True)
class SetNoteMark(Notification):
    event: ClassVar[Event] = Event.SET_NOTE_MARK
    note_id: str
    is_marked: bool


@dataclass(frozen=True)
class DeleteNote(Notification):
    event: ClassVar[Event] = Event.DELETE_NOTE
    note_id: str


@dataclass(frozen=True)
class NoteMarkChanged(Notification):
    event: ClassVar[Event] = Event.NOTE_MARK_CHANGED
    note_id: str
    is_marked: bool


@dataclass(frozen=True)
class NotebookChanged(Notification):
    event: ClassVar[Event] = Event.NOTEBOOK_CHANGED
    note_id: str
    notebook_name: str


@dataclass(frozen=True)
class FocusNote(Notification):
    event: ClassVar[Event] = Event.FOCUS_NOTE
    note_id: str


@dataclass(frozen=True)
class CloseNote(Notification):
    event: ClassVar[Event] = Event.CLOSE_NOTE
    note_id: str


# --- Requests ----------------------------------------------------------------

@dataclass(frozen=True)
class GetNoteTitle(Request):
    """Answered with the note title, or None if the note is gone."""
    event: ClassVar[Event] = Event.GET_NOTE_TITLE
    note_id: str


@dataclass(frozen=True)
class SetNoteTitle(Request):
    """Answered with a NoteOperationResult."""
    event: ClassVar[Event] = Event.SET_NOTE_TITLE
    note_id: str
    initial_title: str
    final_title: str


@dataclass(frozen=True)
class GetNoteText(Request):
    """Answered with the plain text of the note, or None."""
    event: ClassVar[Event] = Event.GET_NOTE_TEXT
    note_id: str


@dataclass(frozen=True)
class SetNoteText(Request):
    """Answered with an Operation."""
    event: ClassVar[Event] = Event.SET_NOTE_TEXT
    note_id: str
    text: str


@dataclass(frozen=True)
class GetNoteDetails(Request):
    """Answered with a NoteDetailsResult, or None."""
    event: ClassVar[Event] = Event.GET_NOTE_DETAILS
    note_id: str


@dataclass(frozen=True)
class GetNotebooks(Request):
    """Answered with the list of notebooks a note can be moved to."""
    event: ClassVar[Event] = Event.GET_NOTEBOOKS


@dataclass(frozen=True)
class SetNotebook(Request):
    """Answered with a BatchResult."""
    event: ClassVar[Event] = Event.SET_NOTEBOOK
    notebook_id: str
    note_ids: Tuple[str, ...]


@dataclass(frozen=True)
class GetSearchText(Request):
    """Answered with the active search query."""
    event: ClassVar[Event] = Event.GET_SEARCH_TEXT


Callback = Callable[[Any], None]
Handler = Callable[..., None]


def _validate(message: Message, callback: Optional[Callback]) -> None:
    if not isinstance(message, Message) or not hasattr(type(message), "event"):
        raise RelayError(f"Not a relay message: {message!r}", code=ErrorCode.VALIDATION_FAILED)
    if isinstance(message, Request) and callback is None:
        raise RelayError(
            f"Request '{message.event.value}' needs a callback",
            event=message.event.value,
            code=ErrorCode.RELAY_MISSING_CALLBACK,
        )
    if isinstance(message, Notification) and callback is not None:
        raise RelayError(
            f"Notification '{message.event.value}' takes no callback",
            event=message.event.value,
            code=ErrorCode.RELAY_UNEXPECTED_CALLBACK,
        )


@dataclass(frozen=True)
class _Envelope:
    message: Message
    callback: Optional[Callback]


class Signal:
    """In-process observer list for local change notifications."""

    def __init__(self, name: str):
        self.name = name
        self._receivers: List[Callable[..., None]] = []
        self._lock = threading.Lock()

    def connect(self, receiver: Callable[..., None]) -> None:
        with self._lock:
            if receiver not in self._receivers:
                self._receivers.append(receiver)

    def disconnect(self, receiver: Callable[..., None]) -> None:
        with self._lock:
            if receiver in self._receivers:
                self._receivers.remove(receiver)

    def emit(self, *args: Any) -> None:
        """Call every receiver. A failing receiver doesn't stop the others."""
        with self._lock:
            receivers = list(self._receivers)
        for receiver in receivers:
            try:
                receiver(*args)
            except Exception as e:
                logger.error(f"Receiver of signal '{self.name}' failed: {e}", exc_info=True)

    def __len__(self) -> int:
        return len(self._receivers)


class EventRelay:
    """Process-wide publish/subscribe bus.

    Handlers for one event fire in registration order. A message nobody
    subscribes to is dropped without error; there is no retry.
    Notification handlers are called with the message; request handlers
    with the message and the callback.
    """

    def __init__(self):
        self._handlers: Dict[Event, List[Handler]] = defaultdict(list)
        self._lock = threading.RLock()
        self._channels: List["RelayChannel"] = []
        self._wakeup = threading.Event()

    def on(self, event: Event, handler: Handler) -> None:
        with self._lock:
            self._handlers[event].append(handler)

    def remove_listener(self, event: Event, handler: Handler) -> None:
        """Remove one registration of handler. Unknown handlers are ignored."""
        with self._lock:
            handlers = self._handlers.get(event)
            if handlers and handler in handlers:
                handlers.remove(handler)

    def listener_count(self, event: Event) -> int:
        with self._lock:
            return len(self._handlers.get(event, ()))

    def emit(self, message: Message, callback: Optional[Callback] = None) -> bool:
        """Deliver message to every current subscriber of its event.

        Returns:
            False if the message was dropped because nobody listens.

        Raises:
            RelayError: If a request has no callback or a notification has one.
        """
        _validate(message, callback)
        with self._lock:
            handlers = list(self._handlers.get(message.event, ()))

        if not handlers:
            logger.debug(f"Dropped '{message.event.value}': no subscriber")
            return False

        for handler in handlers:
            if isinstance(message, Request):
                handler(message, callback)
            else:
                handler(message)
        return True

    def request(self, message: Request) -> Any:
        """Emit a request on the calling thread and return the answer.

        Returns None when the request was dropped or nobody answered.
        """
        answers: List[Any] = []
        self.emit(message, answers.append)
        return answers[0] if answers else None

    # =========================================================================
    # Window channels
    # =========================================================================

    def open_channel(self, name: str, maxsize: Optional[int] = None) -> "RelayChannel":
        """Open the bounded channel a window uses to reach the coordinator."""
        channel = RelayChannel(self, name, maxsize or config.relay_channel_size)
        with self._lock:
            self._channels.append(channel)
        logger.debug(f"Opened relay channel '{name}'")
        return channel

    def close_channel(self, channel: "RelayChannel") -> None:
        with self._lock:
            if channel in self._channels:
                self._channels.remove(channel)
        logger.debug(f"Closed relay channel '{channel.name}'")

    def dispatch_pending(self) -> int:
        """Deliver everything waiting in the channels. Coordinator thread only.

        A failing handler is logged and doesn't stop the remaining messages.

        Returns:
            Number of messages taken off the channels.
        """
        with self._lock:
            channels = list(self._channels)

        dispatched = 0
        for channel in channels:
            for envelope in channel._drain():
                dispatched += 1
                try:
                    self.emit(envelope.message, envelope.callback)
                except Exception as e:
                    logger.error(
                        f"Handler for '{envelope.message.event.value}' from "
                        f"channel '{channel.name}' failed: {e}",
                        exc_info=True,
                    )
        return dispatched

    def serve(self, stop: threading.Event, poll_interval: float = 0.5) -> None:
        """Run the coordinator loop until stop is set."""
        logger.info("Relay coordinator started")
        while not stop.is_set():
            self._wakeup.wait(poll_interval)
            self._wakeup.clear()
            self.dispatch_pending()
        self.dispatch_pending()
        logger.info("Relay coordinator stopped")


class RelayChannel:
    """Bounded queue through which one window talks to the coordinator."""

    def __init__(self, relay: EventRelay, name: str, maxsize: int):
        self.relay = relay
        self.name = name
        self._queue: "queue.Queue[_Envelope]" = queue.Queue(maxsize=maxsize)

    def post(
        self,
        message: Message,
        callback: Optional[Callback] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """Queue a message for the coordinator.

        Raises:
            RelayError: If the message is malformed or the channel stays full.
        """
        _validate(message, callback)
        try:
            self._queue.put(_Envelope(message, callback), timeout=timeout)
        except queue.Full as e:
            raise RelayError(
                f"Relay channel '{self.name}' is full",
                event=message.event.value,
                code=ErrorCode.RELAY_CHANNEL_FULL,
            ) from e
        self.relay._wakeup.set()

    def call(self, message: Request, timeout: Optional[float] = None) -> Any:
        """Post a request and block until the coordinator answers.

        Raises:
            RelayError: If no answer arrives in time (including dropped requests).
        """
        timeout = timeout if timeout is not None else config.initialize_timeout
        answered = threading.Event()
        answers: List[Any] = []

        def reply(value: Any) -> None:
            answers.append(value)
            answered.set()

        self.post(message, reply, timeout=timeout)
        if not answered.wait(timeout):
            raise RelayError(
                f"No answer to '{message.event.value}' within {timeout}s",
                event=message.event.value,
                code=ErrorCode.RELAY_TIMEOUT,
            )
        return answers[0]

    def pending(self) -> int:
        return self._queue.qsize()

    def _drain(self) -> List[_Envelope]:
        envelopes = []
        while True:
            try:
                envelopes.append(self._queue.get_nowait())
            except queue.Empty:
                return envelopes
