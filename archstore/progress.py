"""
Progress notification sinks
A sink receives named progress events from the coordinator and from the
stream-reading threads, so every implementation must be thread-safe.
"""

import threading
from typing import Callable, List, Optional, Tuple
from PyQt5.QtCore import QObject, pyqtSignal

from archstore.models import ProgressEvent


class ProgressSink:
    """Receives progress events on a named channel"""

    def emit(self, channel: str, event: ProgressEvent):
        raise NotImplementedError


class NullSink(ProgressSink):
    def emit(self, channel: str, event: ProgressEvent):
        pass


class CallbackSink(ProgressSink):
    """Forwards every event to a callback, one at a time"""

    def __init__(self, callback: Callable[[str, ProgressEvent], None]):
        self._callback = callback
        self._lock = threading.Lock()

    def emit(self, channel: str, event: ProgressEvent):
        with self._lock:
            self._callback(channel, event)


class RecordingSink(ProgressSink):
    """Keeps every event in memory"""

    def __init__(self):
        self._events: List[Tuple[str, ProgressEvent]] = []
        self._lock = threading.Lock()

    def emit(self, channel: str, event: ProgressEvent):
        with self._lock:
            self._events.append((channel, event))

    def events(self, channel: Optional[str] = None) -> List[ProgressEvent]:
        with self._lock:
            return [event for ch, event in self._events if channel is None or ch == channel]

    def messages(self, channel: Optional[str] = None) -> List[str]:
        return [event.message for event in self.events(channel)]

    def terminal_events(self, channel: Optional[str] = None) -> List[ProgressEvent]:
        return [event for event in self.events(channel) if event.completed]


class QtProgressSink(QObject):
    """Delivers events to the GUI thread through a Qt signal

    Signals emitted from worker threads are queued onto the receiver's thread.
    """
    progress = pyqtSignal(str, int, str, bool)  # channel, percentage, message, completed

    def emit(self, channel: str, event: ProgressEvent):
        self.progress.emit(channel, event.percentage, event.message, event.completed)


class ProgressReporter:
    """Binds a sink to one channel for the duration of one operation

    At most one terminal (completed) event is ever emitted; later terminal
    reports are dropped.
    """

    def __init__(self, sink: Optional[ProgressSink], channel: str):
        self.sink = sink if sink is not None else NullSink()
        self.channel = channel
        self._finished = False
        self._lock = threading.Lock()

    @property
    def finished(self) -> bool:
        return self._finished

    def report(self, percentage: int, message: str):
        if self._finished:
            return
        self.sink.emit(self.channel, ProgressEvent(percentage, message, False))

    def succeed(self, message: str):
        self._finish(ProgressEvent(100, message, True))

    def complete(self, percentage: int, message: str):
        """Terminal event with an explicit percentage (warnings end at 100 too)"""
        self._finish(ProgressEvent(percentage, message, True))

    def fail(self, message: str):
        self._finish(ProgressEvent(0, message, True))

    def _finish(self, event: ProgressEvent):
        with self._lock:
            if self._finished:
                return
            self._finished = True
        self.sink.emit(self.channel, event)
