"""
Auth state notifications.

A small observer: subscribe() returns an unsubscribe callable, and publish()
calls every handler synchronously in subscription order.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthState:
    is_authenticated: bool = False
    user_id: Optional[str] = None


Handler = Callable[[AuthState], None]


class AuthEventBus:
    def __init__(self):
        self._handlers: List[Handler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        with self._lock:
            self._handlers.append(handler)

        def unsubscribe():
            with self._lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe

    def publish(self, state: AuthState) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(state)
            except Exception as e:
                # Handlers are isolated: a failing one does not stop the rest
                logger.error(f"Auth listener {handler!r} failed: {e}", exc_info=True)

    def __len__(self):
        return len(self._handlers)
