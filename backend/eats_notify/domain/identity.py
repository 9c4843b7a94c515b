"""Observable current-user identity."""
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[str]], Awaitable[None]]


class CurrentUser:
    """Holds the authenticated user id (None when signed out) and notifies listeners on change."""

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id
        self._listeners: list[IdentityListener] = []

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    def add_listener(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def set(self, user_id: Optional[str]) -> None:
        """Change identity and await every listener in registration order."""
        if user_id == self._user_id:
            return
        self._user_id = user_id
        for listener in list(self._listeners):
            await listener(user_id)
