"""
context.py
-----------
Cancellation and deadline signal threaded through every blocking call:
- Detector HTTP requests
- wpprobe subprocess invocations
- Doctor network checks
"""

import threading
import time

from wphunter.core.errors import ScanCancelled


class ScanContext:
    def __init__(self, timeout=None):
        self._cancelled = threading.Event()
        self.deadline = None
        if timeout is not None:
            self.deadline = time.monotonic() + timeout

    def cancel(self):
        self._cancelled.set()

    def expired(self):
        return self.deadline is not None and time.monotonic() >= self.deadline

    @property
    def cancelled(self):
        return self._cancelled.is_set() or self.expired()

    def error(self, results=None):
        if self._cancelled.is_set():
            return ScanCancelled("context canceled", results=results)
        return ScanCancelled("context deadline exceeded", results=results)

    def check(self, results=None):
        """Raise ScanCancelled if the context is done."""
        if self.cancelled:
            raise self.error(results)

    def remaining(self, default=None):
        """Seconds left before the deadline, capped at ``default``."""
        if self.deadline is None:
            return default
        left = max(self.deadline - time.monotonic(), 0.0)
        if default is None:
            return left
        return min(left, default)

    def wait(self, seconds):
        """Sleep up to ``seconds``; returns True if cancelled meanwhile."""
        return self._cancelled.wait(seconds) or self.expired()
