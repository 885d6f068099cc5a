from newsdesk.auth.events import AuthEventBus, AuthState
from newsdesk.auth.identity import IdentityProvider, generate_device_id

__all__ = ['AuthEventBus', 'AuthState', 'IdentityProvider', 'generate_device_id']
