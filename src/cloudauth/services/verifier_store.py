"""Single-slot holders for in-flight authorization secrets.

A flow keeps its code verifier here between ``start`` and ``exchange``.
There is exactly one slot: starting a second flow overwrites the first
flow's verifier, so at most one authorization attempt may be in flight per
store.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from cloudauth.models.errors import LockError

logger = logging.getLogger(__name__)


class SingleSlot:
    """Lock-guarded slot holding zero or one string.

    Critical sections are single assignments and never span an ``await``.
    If one is interrupted mid-update the slot is marked poisoned; reads then
    raise ``LockError`` until the next ``set`` restores a known value.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: str | None = None
        self._poisoned = False

    @contextmanager
    def _guard(self, *, recover: bool = False) -> Iterator[None]:
        with self._lock:
            if self._poisoned and not recover:
                raise LockError(
                    f"{type(self).__name__} was poisoned by an aborted update"
                )
            try:
                yield
            except BaseException:
                self._poisoned = True
                raise
            self._poisoned = False

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    def set(self, value: str) -> None:
        """Store ``value``, replacing whatever was there."""
        with self._guard(recover=True):
            self._value = value

    def take(self) -> str | None:
        """Return the stored value and empty the slot in one step."""
        with self._guard():
            value, self._value = self._value, None
        return value

    def peek(self) -> str | None:
        """Return the stored value without clearing it."""
        with self._guard():
            return self._value

    def discard(self, value: str) -> bool:
        """Clear the slot only if it still holds ``value``.

        Returns:
            True if the slot was cleared
        """
        with self._guard():
            if self._value != value:
                return False
            self._value = None
            return True

    def clear(self) -> None:
        with self._guard(recover=True):
            self._value = None


class VerifierStore(SingleSlot):
    """Holds the PKCE code verifier of the one pending authorization."""

    def set(self, value: str) -> None:
        with self._guard(recover=True):
            replaced = self._value is not None
            self._value = value
        if replaced:
            logger.info("Pending authorization replaced by a new flow")
