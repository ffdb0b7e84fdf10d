"""
Request/Response Correlation
============================

A Customer publishes a request to a shared inbox and then blocks until
the reply for THAT request shows up on its personal inbox. Other replies
(late answers to an earlier request that already timed out) must not
wake it.

PendingReply is a once-resolved promise:

    pending = PendingReply(request_id)
    publish(request)
    reply = pending.wait(timeout=30)     # consumer thread calls resolve()

The wait is a condition wait on a checked predicate, so a reply that
arrives before wait() starts is not lost.
"""

import threading
from typing import Any, Optional

from ..exceptions import RequestTimedOut


class PendingReply:
    """Single-slot reply holder for one in-flight request."""

    def __init__(self, request_id: str):
        self.request_id = request_id
        self._condition = threading.Condition()
        self._resolved = False
        self._abandoned = False
        self._value: Any = None

    @property
    def done(self) -> bool:
        with self._condition:
            return self._resolved

    def resolve(self, value: Any) -> bool:
        """
        Deliver the reply.

        Returns False if the slot was already resolved or the waiter gave
        up, in which case the value is discarded.
        """
        with self._condition:
            if self._resolved or self._abandoned:
                return False
            self._value = value
            self._resolved = True
            self._condition.notify_all()
            return True

    def wait(self, timeout: Optional[float] = None) -> Any:
        """
        Block until resolved.

        Args:
            timeout: Seconds to wait, None waits forever

        Raises:
            RequestTimedOut: If no reply arrived in time. The slot is
                abandoned so a late resolve() is ignored.
        """
        with self._condition:
            if not self._condition.wait_for(lambda: self._resolved, timeout=timeout):
                self._abandoned = True
                raise RequestTimedOut(
                    f"No reply to request {self.request_id} within {timeout}s",
                    request_id=self.request_id,
                    timeout=timeout,
                )
            return self._value
