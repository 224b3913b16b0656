"""
Transient UI state for the download client.

The button and the message line are driven from one place so that the
"button comes back in every outcome" and "messages never stack" rules are
easy to check.
"""

import enum
import threading
import time

ERROR_TIMEOUT = 5.0
SUCCESS_TIMEOUT = 3.0


class UIState(enum.Enum):
    IDLE = 'idle'
    BUSY = 'busy'
    SHOWING_MESSAGE = 'showing_message'


class TimerScheduler:
    """call_later() backed by threading.Timer."""

    def call_later(self, delay, callback):
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class Message:
    def __init__(self, kind, text, deadline):
        self.kind = kind
        self.text = text
        self.deadline = deadline

    def __repr__(self):
        return f"Message({self.kind!r}, {self.text!r})"


class MessageBoard:
    """
    Shows one message at a time and hides it after a timeout.

    `sink` receives the rendering calls: show(kind, text) and hide().
    Showing a new message replaces the old one and cancels its pending hide,
    so at most one callback is ever scheduled.
    """

    def __init__(self, sink=None, scheduler=None, clock=time.monotonic):
        self.sink = sink
        self.scheduler = scheduler or TimerScheduler()
        self.clock = clock
        self.current = None
        self._pending = None
        # hide() timers fire on their own thread
        self._lock = threading.Lock()

    def show(self, kind, text, timeout):
        with self._lock:
            self._cancel_pending()
            message = Message(kind, text, self.clock() + timeout)
            self.current = message
            if self.sink is not None:
                self.sink.show(kind, text)
            self._pending = self.scheduler.call_later(timeout, lambda: self._expire(message))

    def error(self, text):
        self.show('error', text, ERROR_TIMEOUT)

    def success(self, text):
        self.show('success', text, SUCCESS_TIMEOUT)

    def hide(self):
        with self._lock:
            self._hide()

    def _expire(self, message):
        # A timer that lost the race with a newer show() must not clear it
        with self._lock:
            if self.current is message:
                self._hide()

    def _hide(self):
        self._cancel_pending()
        if self.current is None:
            return
        self.current = None
        if self.sink is not None:
            self.sink.hide()

    def _cancel_pending(self):
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None


class DownloadControls:
    """Button plus message board, tracked as a single UIState."""

    BUSY_LABEL = '⏳ Downloading...'

    def __init__(self, button, messages):
        self.button = button
        self.messages = messages
        self._label = None
        self.busy = False

    @property
    def state(self):
        if self.busy:
            return UIState.BUSY
        if self.messages.current is not None:
            return UIState.SHOWING_MESSAGE
        return UIState.IDLE

    def begin(self):
        self._label = self.button.text
        self.button.disabled = True
        self.button.text = self.BUSY_LABEL
        self.busy = True

    def end(self):
        self.button.disabled = False
        if self._label is not None:
            self.button.text = self._label
        self._label = None
        self.busy = False
