"""Offline identity provider for dev mode."""

import logging
from typing import Callable

from notedash.core.session import AuthProvider, Identity, SignInResult

logger = logging.getLogger(__name__)

DEV_IDENTITY = Identity(
    owner_key="mock-user-123",
    display_name="Dev Mode User",
    email="dev@example.com",
)

_SIGNED_IN_KEY = "dev_signed_in"


class DevIdentityProvider:
    """
    Identity provider that signs in a fixed local user without a network.

    Implements IdentityProvider protocol. Used when no real identity backend
    is configured. Pass storage to remember the signed-in state across runs.
    """

    def __init__(
        self,
        identity: Identity = DEV_IDENTITY,
        credential: str | None = None,
        storage=None,
    ):
        self.identity = identity
        self.credential = credential
        self._storage = storage
        self._listeners: list[Callable[[Identity | None], None]] = []
        self._current: Identity | None = None
        if storage is not None and storage.get(_SIGNED_IN_KEY):
            self._current = identity

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._current)

    async def sign_in_interactive(self, provider: AuthProvider, scopes: list[str]) -> SignInResult:
        logger.info(f"Dev sign-in via {provider.value} as {self.identity.display_name}")
        self._current = self.identity
        if self._storage is not None:
            self._storage.set(_SIGNED_IN_KEY, "1")
        self._notify()
        credential = self.credential if provider.grants_credential and scopes else None
        return SignInResult(identity=self.identity, credential=credential)

    async def sign_out(self) -> None:
        self._current = None
        if self._storage is not None:
            self._storage.remove(_SIGNED_IN_KEY)
        self._notify()

    def on_identity_change(self, callback: Callable[[Identity | None], None]) -> Callable[[], None]:
        self._listeners.append(callback)
        callback(self._current)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe
