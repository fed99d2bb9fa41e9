import collections
import threading

import pytest


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, t=100.0):
        self.t = t

    def __call__(self):
        return self.t

    def advance(self, seconds):
        self.t += seconds


class ScriptedSource:
    """
    Datagram source that replays queued datagrams.

    Returns None (timeout) when the queue is empty and raises OSError once
    closed, like a real socket closed during shutdown.
    """

    def __init__(self, port=0, host="127.0.0.1"):
        self.port = port or 40000
        self.host = host
        self.queue = collections.deque()
        self.closed = False
        self.opened = False
        self.fail_with = None
        self.cond = threading.Condition()

    def push(self, *datagrams):
        with self.cond:
            self.queue.extend(datagrams)
            self.cond.notify_all()

    def open(self):
        self.opened = True
        return self

    def receive(self, timeout_ms):
        with self.cond:
            if self.closed:
                raise OSError("closed")
            if self.fail_with is not None:
                raise self.fail_with
            if not self.queue:
                self.cond.wait(timeout_ms / 1000.0)
            if self.closed:
                raise OSError("closed")
            if not self.queue:
                return None
            return self.queue.popleft()

    def close(self):
        with self.cond:
            self.closed = True
            self.cond.notify_all()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scripted_source():
    return ScriptedSource()
