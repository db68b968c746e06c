"""Session state - the signed-in identity and the integration credential."""

import logging
from typing import Callable

from .core.errors import AuthCancelled, IdentityProviderError, NotedashError
from .core.session import AuthProvider, Identity
from .ports import IdentityProvider, KeyValueStore

logger = logging.getLogger(__name__)

CREDENTIAL_KEY = "google_token"


class SessionState:
    """
    Holds who is signed in and the optional bearer credential.

    One instance per app context; pass it to whatever needs it. The identity
    follows the provider's identity-change notifications; the credential is
    persisted in client-local storage so it survives restarts.
    """

    def __init__(self, identity_provider: IdentityProvider, storage: KeyValueStore):
        self._provider = identity_provider
        self._storage = storage
        self._identity: Identity | None = None
        self._credential: str | None = None
        self._listeners: list[Callable[["SessionState"], None]] = []
        self._unsubscribe = identity_provider.on_identity_change(self._on_identity_change)

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def owner_key(self) -> str | None:
        return self._identity.owner_key if self._identity else None

    @property
    def credential(self) -> str | None:
        return self._credential

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    def on_change(self, callback: Callable[["SessionState"], None]) -> Callable[[], None]:
        """Register a listener fired after identity or credential changes."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _on_identity_change(self, identity: Identity | None) -> None:
        if identity == self._identity:
            return
        self._identity = identity
        if identity is None:
            self._set_credential(None)
        elif self._credential is None:
            self._credential = self._storage.get(CREDENTIAL_KEY)
        self._notify()

    def _set_credential(self, credential: str | None) -> None:
        self._credential = credential
        if credential:
            self._storage.set(CREDENTIAL_KEY, credential)
        else:
            self._storage.remove(CREDENTIAL_KEY)

    def restore(self) -> None:
        """Pick up a credential persisted by a previous run."""
        if self._identity is not None and self._credential is None:
            stored = self._storage.get(CREDENTIAL_KEY)
            if stored:
                self._credential = stored
                self._notify()

    async def sign_in(self, provider: AuthProvider) -> Identity | None:
        """
        Run the provider's sign-in flow.

        Returns the identity, or None if the user cancelled. Provider failures
        raise IdentityProviderError and are not retried.
        """
        try:
            result = await self._provider.sign_in_interactive(provider, provider.scopes())
        except AuthCancelled:
            logger.info(f"{provider.value} sign-in cancelled")
            return None
        except NotedashError:
            raise
        except Exception as e:
            raise IdentityProviderError(str(e)) from e

        self._identity = result.identity
        if result.credential:
            self._set_credential(result.credential)
        logger.info(f"Signed in as {result.identity.display_name} via {provider.value}")
        self._notify()
        return result.identity

    async def reconnect(self) -> str | None:
        """Re-run Google consent for the integration scopes. Returns the new credential."""
        try:
            result = await self._provider.sign_in_interactive(
                AuthProvider.GOOGLE, AuthProvider.GOOGLE.scopes()
            )
        except AuthCancelled:
            logger.info("Reconnect cancelled")
            return None
        except NotedashError:
            raise
        except Exception as e:
            raise IdentityProviderError(str(e)) from e

        self._identity = result.identity
        self._set_credential(result.credential)
        self._notify()
        return result.credential

    async def sign_out(self) -> None:
        """Forget identity and credential. Always succeeds for the caller."""
        self._identity = None
        self._set_credential(None)
        self._notify()
        try:
            await self._provider.sign_out()
        except Exception as e:
            logger.warning(f"Provider sign-out failed: {e}")

    def close(self) -> None:
        self._unsubscribe()
        self._listeners.clear()
