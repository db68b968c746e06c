"""Google sign-in adapter (installed-app OAuth flow)."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Callable

import requests

from notedash.core.errors import AuthCancelled, IdentityProviderError
from notedash.core.session import AuthProvider, Identity, SignInResult

logger = logging.getLogger(__name__)

IDENTITY_SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]
USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


class GoogleIdentityProvider:
    """
    Signs the user in with Google and asks for read-only workspace scopes.

    Implements IdentityProvider protocol. The signed-in identity is kept in
    identity.json under token_dir so it survives restarts; the access token
    itself is handed to the caller and never stored here.
    """

    def __init__(self, client_secret_file: str, token_dir: Path | str, timeout: int = 10):
        self.client_secret_file = client_secret_file
        self.timeout = timeout
        self._identity_path = Path(token_dir).expanduser() / "identity.json"
        self._listeners: list[Callable[[Identity | None], None]] = []

    def _load_identity(self) -> Identity | None:
        if not self._identity_path.exists():
            return None
        try:
            data = json.loads(self._identity_path.read_text())
            return Identity(
                owner_key=data["owner_key"],
                display_name=data.get("display_name", ""),
                avatar_url=data.get("avatar_url"),
                email=data.get("email"),
            )
        except (json.JSONDecodeError, KeyError) as e:
            logger.warning(f"Ignoring unreadable identity file: {e}")
            return None

    def _save_identity(self, identity: Identity) -> None:
        self._identity_path.parent.mkdir(parents=True, exist_ok=True)
        self._identity_path.write_text(
            json.dumps(
                {
                    "owner_key": identity.owner_key,
                    "display_name": identity.display_name,
                    "avatar_url": identity.avatar_url,
                    "email": identity.email,
                }
            )
        )
        self._identity_path.chmod(0o600)

    def _notify(self, identity: Identity | None) -> None:
        for listener in list(self._listeners):
            listener(identity)

    def _run_flow(self, scopes: list[str]):
        """Run the consent flow in a local browser. Blocking."""
        from google_auth_oauthlib.flow import InstalledAppFlow
        from oauthlib.oauth2.rfc6749.errors import AccessDeniedError

        if not self.client_secret_file:
            raise IdentityProviderError("No client secret file configured")

        secret_path = Path(self.client_secret_file).expanduser()
        if not secret_path.exists():
            raise IdentityProviderError(f"Client secret file not found: {secret_path}")

        flow = InstalledAppFlow.from_client_secrets_file(str(secret_path), scopes)
        try:
            return flow.run_local_server(port=0, prompt="consent")
        except AccessDeniedError as e:
            raise AuthCancelled("Consent was denied") from e
        except Exception as e:
            raise IdentityProviderError(f"Google sign-in failed: {e}") from e

    def _fetch_identity(self, token: str) -> Identity:
        """Resolve the signed-in user from the OpenID userinfo endpoint. Blocking."""
        try:
            resp = requests.get(
                USERINFO_URL,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise IdentityProviderError(f"Failed to load Google profile: {e}") from e

        if not data.get("sub"):
            raise IdentityProviderError("Google profile has no subject id")
        return Identity(
            owner_key=data["sub"],
            display_name=data.get("name") or data.get("email") or "",
            avatar_url=data.get("picture"),
            email=data.get("email"),
        )

    async def sign_in_interactive(self, provider: AuthProvider, scopes: list[str]) -> SignInResult:
        if provider is not AuthProvider.GOOGLE:
            raise IdentityProviderError(f"{provider.value} sign-in is not available in this client")

        creds = await asyncio.to_thread(self._run_flow, IDENTITY_SCOPES + list(scopes))
        identity = await asyncio.to_thread(self._fetch_identity, creds.token)
        self._save_identity(identity)
        self._notify(identity)
        return SignInResult(identity=identity, credential=creds.token if scopes else None)

    async def sign_out(self) -> None:
        self._identity_path.unlink(missing_ok=True)
        self._notify(None)

    def on_identity_change(self, callback: Callable[[Identity | None], None]) -> Callable[[], None]:
        self._listeners.append(callback)
        callback(self._load_identity())

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe
