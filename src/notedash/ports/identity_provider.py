"""Identity provider interface."""

from typing import Callable, Protocol

from notedash.core.session import AuthProvider, Identity, SignInResult


class IdentityProvider(Protocol):
    """Interface for interactive sign-in with any identity backend."""

    async def sign_in_interactive(self, provider: AuthProvider, scopes: list[str]) -> SignInResult:
        """Run the sign-in flow. Raises AuthCancelled if the user backs out."""
        ...

    async def sign_out(self) -> None:
        """End the provider session."""
        ...

    def on_identity_change(self, callback: Callable[[Identity | None], None]) -> Callable[[], None]:
        """
        Register a listener for identity changes.

        The callback fires immediately with the current identity (None when
        signed out), then on every change. Returns an unsubscribe callable.
        """
        ...
