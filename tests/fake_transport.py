"""In-memory DebugTransport for tests — no USB hardware needed."""

from __future__ import annotations

import queue
import threading
import time

from usb_billboard.constants import TRANSFER_TIMEOUT_MS
from usb_billboard.device_base import DebugTransport


class FakeTransport(DebugTransport):
    """Records every request and replays scripted replies.

    ``replies`` maps bRequest → list of replies, consumed in order.
    A reply may be bytes, an exception instance (raised), or a callable
    taking the request.  When a list runs dry ``default`` is returned.
    """

    def __init__(self, replies=None, default=b"", delay: float = 0.0):
        self.requests = []
        self._replies = {k: list(v) for k, v in (replies or {}).items()}
        self._default = default
        self._delay = delay
        self._lock = threading.Lock()
        self.close_count = 0

    def transfer(self, request, timeout=TRANSFER_TIMEOUT_MS):
        with self._lock:
            self.requests.append(request)
            pending = self._replies.get(request.request)
            reply = pending.pop(0) if pending else self._default
        if self._delay:
            time.sleep(self._delay)
        if callable(reply):
            reply = reply(request)
        if isinstance(reply, BaseException):
            raise reply
        return bytes(reply)

    def close(self):
        self.close_count += 1

    @property
    def is_open(self):
        return self.close_count == 0

    def sent(self, code):
        """Requests issued with bRequest == *code*, in order."""
        with self._lock:
            return [r for r in self.requests if r.request == code]


class ScriptedInput:
    """stdin stand-in: readline() blocks until a line is fed or closed."""

    def __init__(self, lines=()):
        self._q = queue.Queue()
        for line in lines:
            self._q.put(line)

    def feed(self, line: str) -> None:
        self._q.put(line)

    def close(self) -> None:
        self._q.put("")

    def readline(self) -> str:
        return self._q.get()


def wait_for(predicate, timeout: float = 2.0, interval: float = 0.005) -> bool:
    """Poll *predicate* until true or *timeout* elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
