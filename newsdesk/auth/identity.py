"""
Identity provider.

Authentication itself happens elsewhere; this only remembers which user id
is signed in, announces changes on the AuthEventBus, and falls back to a
per-device id so bookmarks work for anonymous readers. Ids are opaque.
"""

import logging
import uuid
from typing import Optional

from newsdesk.auth.events import AuthEventBus, AuthState

logger = logging.getLogger(__name__)


def generate_device_id() -> str:
    return f"device-{uuid.uuid4().hex}"


class IdentityProvider:
    def __init__(self, events: Optional[AuthEventBus] = None, device_id: Optional[str] = None):
        self.events = events or AuthEventBus()
        self.device_id = device_id or generate_device_id()
        self._state = AuthState()

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def current_user_id(self) -> Optional[str]:
        return self._state.user_id

    def current_owner_id(self) -> str:
        """Key used to scope bookmarks: the user id, or the device id when signed out."""
        return self._state.user_id or self.device_id

    def sign_in(self, user_id: str) -> AuthState:
        if not user_id or not str(user_id).strip():
            raise ValueError("user_id is required")
        self._state = AuthState(is_authenticated=True, user_id=str(user_id))
        logger.info(f"Signed in user {self._state.user_id}")
        self.events.publish(self._state)
        return self._state

    def sign_out(self) -> AuthState:
        self._state = AuthState()
        self.events.publish(self._state)
        return self._state
