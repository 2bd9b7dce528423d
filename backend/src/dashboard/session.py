"""Session provider: who is signed in, and how to sign in or out."""
import logging
from urllib.parse import urlencode

import httpx

from dashboard.config import DashboardSettings
from dashboard.models import UserIdentity

logger = logging.getLogger(__name__)

# Friendly provider names mapped to Auth0 connection names
AUTH0_CONNECTIONS = {
    "google": "google-oauth2",
    "github": "github",
}


class SessionProvider:
    """
    Resolves the signed-in user through the API's /users/me endpoint.

    The bearer token travels on `client`; signing out strips it, after which
    every lookup reports no user. In development mode the API accepts
    requests without a token, so a fresh provider is always signed in there.
    """

    def __init__(self, client: httpx.AsyncClient, settings: DashboardSettings) -> None:
        self._client = client
        self._settings = settings
        self._signed_out = False

    async def get_current_user(self) -> UserIdentity | None:
        """Return the current identity, or None when there is no valid session."""
        if self._signed_out:
            return None
        try:
            response = await self._client.get("/users/me")
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code not in (401, 403):
                logger.warning("Could not resolve current user: %s", e)
            return None
        except httpx.HTTPError as e:
            logger.warning("Could not resolve current user: %s", e)
            return None
        try:
            data = response.json()
            return UserIdentity(id=data["id"], email=data.get("email"))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Unexpected /users/me response: %s", e)
            return None

    async def sign_out(self) -> None:
        """End the local session by dropping the bearer token."""
        self._client.headers.pop("Authorization", None)
        self._signed_out = True
        logger.info("Signed out")

    def sign_in_with_provider(self, provider_name: str) -> str:
        """
        Build the URL that starts sign-in with an external identity provider.

        The caller redirects the user there; the identity provider sends them
        back to the dashboard afterwards. Without Auth0 configured (local
        development) the dashboard URL itself is returned.
        """
        if not self._settings.auth0_domain:
            return self._settings.dashboard_url
        params = {
            "response_type": "code",
            "client_id": self._settings.auth0_client_id,
            "redirect_uri": self._settings.dashboard_url,
            "scope": "openid profile email",
            "connection": AUTH0_CONNECTIONS.get(provider_name, provider_name),
        }
        if self._settings.auth0_audience:
            params["audience"] = self._settings.auth0_audience
        return f"https://{self._settings.auth0_domain}/authorize?{urlencode(params)}"

    @property
    def entry_url(self) -> str:
        """Where signed-out users are sent."""
        return self._settings.entry_url

    @property
    def logout_url(self) -> str:
        """Where to send the user after signing out."""
        if not self._settings.auth0_domain:
            return self._settings.entry_url
        params = {
            "client_id": self._settings.auth0_client_id,
            "returnTo": self._settings.entry_url,
        }
        return f"https://{self._settings.auth0_domain}/v2/logout?{urlencode(params)}"
