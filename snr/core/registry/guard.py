"""
Reentrancy guard - call-scoped mutual exclusion for registry operations.

The guard is an ordinary flag owned by the registry. It is set for the whole
duration of a guarded call and cleared on exit, whether the call succeeds or
fails. A guarded call that starts while the flag is set (typically a
receiver hook calling back into the registry during a transfer) fails
immediately with ReentrantCall; it never waits.

Calls from other threads are serialized by a re-entrant lock taken before
the flag is checked, so a second thread queues behind the running call
instead of being mistaken for a re-entry.
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from snr.core.registry.errors import ReentrantCall
from snr.utils.logger import get_logger

logger = get_logger("registry.guard")


class ReentrancyGuard:
    """
    Attributes:
        entered: True while a guarded call is running
        operation: Name of the running operation, if any
    """

    def __init__(self):
        self._serial = threading.RLock()
        self.entered = False
        self.operation: Optional[str] = None

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        """
        Hold the guard for the duration of `operation`.

        Raises:
            ReentrantCall: the guard is already held by this thread
        """
        with self._serial:
            if self.entered:
                logger.warning(f"Reentrant {operation} rejected during {self.operation}")
                raise ReentrantCall(operation)
            self.entered = True
            self.operation = operation
            try:
                yield
            finally:
                self.entered = False
                self.operation = None
