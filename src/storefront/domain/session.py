"""
Auth session - Login state, token persistence and role derivation.

Created once by the application and handed to every component that
needs it. Components observe authentication transitions through
subscribe() instead of reading ambient state.
"""

import logging
from collections.abc import Callable
from typing import Optional

from .exceptions import RequestError
from .models import ActionResult, UserSnapshot
from .ports import AuthAPI, Notifier, TokenStore

logger = logging.getLogger(__name__)

AuthListener = Callable[[bool], None]


class AuthSession:
    """
    Holds the bearer token and user snapshot for the current user.

    ``epoch`` increments on every authentication transition so that
    callers can tell whether a response was issued under the session
    that is current when it arrives.
    """

    def __init__(self, api: AuthAPI, store: TokenStore, notifier: Notifier) -> None:
        self._api = api
        self._store = store
        self._notifier = notifier
        self._listeners: list[AuthListener] = []
        self.token: Optional[str] = None
        self.user: Optional[UserSnapshot] = None
        self.is_authenticated = False
        self.epoch = 0

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.is_admin

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """
        Register a callback for authentication transitions.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def restore(self) -> bool:
        """
        Resume a persisted session, confirming it with the backend.

        Returns:
            True if the stored token is still valid
        """
        token, user = self._store.load()
        if not token:
            return False

        self.token = token
        self.user = UserSnapshot.from_dict(user) if user else None
        try:
            fresh_user = await self._api.get_me()
        except RequestError as e:
            logger.info("Stored session rejected: %s", e.message)
            self._drop_credentials()
            self._set_authenticated(False)
            return False

        self.update_user(fresh_user)
        self._set_authenticated(True)
        return True

    async def login(self, email: str, password: str) -> ActionResult:
        """Authenticate with email and password."""
        try:
            payload = await self._api.login(email, password)
        except RequestError as e:
            message = e.message or "Login failed"
            self._notifier.error(message)
            return ActionResult.failed(e, message)

        self.establish(payload.token, payload.user)
        return ActionResult.ok("Login successful", value=payload.user)

    def establish(self, token: str, user: UserSnapshot) -> None:
        """Persist a freshly issued token and mark the session authenticated."""
        self.token = token
        self.user = user
        self._store.save(token, user.to_dict())
        logger.info("Session established for user %s", user.id)
        self._set_authenticated(True)

    async def logout(self) -> None:
        """Log out; the server call is best effort."""
        if self.token:
            try:
                await self._api.logout()
            except RequestError as e:
                logger.warning("Logout request failed: %s", e.message)

        self._drop_credentials()
        self._set_authenticated(False)
        self._notifier.success("Logged out successfully")

    def invalidate(self) -> None:
        """Forget credentials after the backend answered 401."""
        if self.token is None and not self.is_authenticated:
            return
        logger.info("Session invalidated by backend")
        self._drop_credentials()
        self._set_authenticated(False)

    def update_user(self, user: UserSnapshot) -> None:
        self.user = user
        if self.token:
            self._store.save(self.token, user.to_dict())

    def _drop_credentials(self) -> None:
        self.token = None
        self.user = None
        self._store.clear()

    def _set_authenticated(self, value: bool) -> None:
        if value == self.is_authenticated:
            return
        self.is_authenticated = value
        self.epoch += 1
        for listener in list(self._listeners):
            listener(value)
