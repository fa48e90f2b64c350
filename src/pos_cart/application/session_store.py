"""Session State Store — the in-memory carts, keyed by operator.

One store is created by the composition root and handed to everything
that needs a cart.  Each operator gets one re-entrant lock; holding it is
what serializes restores, mutations and finalization for that operator.
"""

from __future__ import annotations

import threading

from pos_cart.domain.model.session import Session
from pos_cart.domain.model.value_objects import DEFAULT_CURRENCY


class SessionStore:

    def __init__(self, currency: str = DEFAULT_CURRENCY) -> None:
        self._currency = currency
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def get(self, operator_id: str) -> Session:
        """Return the operator's session, creating an unloaded one if needed."""
        with self._guard:
            session = self._sessions.get(operator_id)
            if session is None:
                session = Session(operator_id=operator_id, currency=self._currency)
                self._sessions[operator_id] = session
            return session

    def lock(self, operator_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(operator_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[operator_id] = lock
            return lock

    def discard(self, operator_id: str) -> None:
        """Forget the operator's in-memory cart and lock (e.g. on logout).

        Waits for any change in flight for that operator to finish first.
        """
        with self.lock(operator_id):
            with self._guard:
                self._sessions.pop(operator_id, None)
                self._locks.pop(operator_id, None)
