"""
Caller deadlines for blocking operations.

A :class:`Deadline` bounds how long a job poll or an iterator drain may occupy
its caller. It combines a wall-clock expiry, measured on the monotonic clock,
with a cancellation token that another thread may trigger at any time.
"""

import threading
import time


class Deadline(object):

    """A point in time after which an operation must give up.

    :param timeout: Seconds from now until the deadline expires. None means
                    the deadline never expires on its own, but it can still
                    be cancelled.
    :type timeout: float, optional
    :param cancel_event: Event used as cancellation token. A new one is
                         created if not given.
    :type cancel_event: :class:`threading.Event`, optional

    """

    def __init__(self, timeout=None, cancel_event=None):
        if timeout is not None and timeout < 0:
            raise ValueError("timeout must not be negative")
        self._expires_at = None
        if timeout is not None:
            self._expires_at = time.monotonic() + timeout
        self._cancelled = cancel_event or threading.Event()

    @classmethod
    def after(cls, seconds):
        """Return a deadline expiring the given number of seconds from now."""
        return cls(timeout=seconds)

    @classmethod
    def resolve(cls, deadline=None, timeout=None):
        """Return deadline if given, else a new deadline from timeout."""
        if deadline is not None:
            return deadline
        return cls(timeout=timeout)

    @property
    def cancelled(self):
        return self._cancelled.is_set()

    def cancel(self):
        """Cancel the deadline; blocked sleeps wake up immediately."""
        self._cancelled.set()

    def remaining(self):
        """Return the seconds left, or None if the deadline has no expiry."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self):
        if self.cancelled:
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def clamp(self, timeout):
        """Return timeout limited to the time remaining before expiry.

        :param timeout: A per-request timeout in seconds, or None.

        """
        remaining = self.remaining()
        if remaining is None:
            return timeout
        if timeout is None:
            return remaining
        return min(timeout, remaining)

    def sleep(self, seconds):
        """Sleep for seconds, waking early on cancellation or expiry.

        :returns: True if the full sleep elapsed and the deadline is still
                  live, else False.
        :rtype: bool

        """
        self._cancelled.wait(self.clamp(seconds))
        return not self.expired()

    def __repr__(self):
        return "Deadline(remaining={0!r}, cancelled={1!r})".format(
            self.remaining(), self.cancelled)
