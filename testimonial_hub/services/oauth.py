"""Delegated sign-in with Google and GitHub OAuth."""

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from testimonial_hub.config import Settings
from testimonial_hub.errors import AuthorizationError, NotFoundError, UpstreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderConfig:
    """Endpoints and credentials of one OAuth provider."""

    name: str
    authorize_url: str
    token_url: str
    userinfo_url: str
    scope: str
    client_id: str | None
    client_secret: str | None

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass
class OAuthProfile:
    """Identity fields returned by a provider."""

    email: str
    name: str | None = None
    image: str | None = None
    email_verified: bool = True


GITHUB_EMAILS_URL = "https://api.github.com/user/emails"


def build_providers(settings: Settings) -> dict[str, ProviderConfig]:
    """Build the provider table from settings."""
    return {
        "google": ProviderConfig(
            name="google",
            authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
            token_url="https://oauth2.googleapis.com/token",
            userinfo_url="https://openidconnect.googleapis.com/v1/userinfo",
            scope="openid email profile",
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
        ),
        "github": ProviderConfig(
            name="github",
            authorize_url="https://github.com/login/oauth/authorize",
            token_url="https://github.com/login/oauth/access_token",
            userinfo_url="https://api.github.com/user",
            scope="read:user user:email",
            client_id=settings.github_client_id,
            client_secret=settings.github_client_secret,
        ),
    }


class OAuthService:
    """Runs the authorization-code flow against a configured provider."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.providers = build_providers(settings)
        self.redirect_base_url = settings.oauth_redirect_base_url.rstrip("/")
        self._transport = transport
        self._timeout = timeout

    def get_provider(self, name: str) -> ProviderConfig:
        """Look up a provider.

        Raises:
            NotFoundError: If the provider is unknown or has no credentials.
        """
        provider = self.providers.get(name)
        if provider is None or not provider.is_configured:
            raise NotFoundError(f"OAuth provider '{name}' is not available")
        return provider

    def redirect_uri(self, name: str) -> str:
        return f"{self.redirect_base_url}/api/v1/auth/oauth/{name}/callback"

    def authorization_url(self, name: str, state: str) -> str:
        """URL of the provider consent page for this application."""
        provider = self.get_provider(name)
        params = {
            "client_id": provider.client_id,
            "redirect_uri": self.redirect_uri(name),
            "response_type": "code",
            "scope": provider.scope,
            "state": state,
        }
        return f"{provider.authorize_url}?{urlencode(params)}"

    async def fetch_profile(self, name: str, code: str) -> OAuthProfile:
        """Exchange an authorization code and fetch the signed-in user's profile.

        Raises:
            UpstreamError: If the provider fails or returns no email address.
            AuthorizationError: If the provider reports the email as unverified.
        """
        provider = self.get_provider(name)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                access_token = await self._exchange_code(client, provider, code)
                headers = {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}

                response = await client.get(provider.userinfo_url, headers=headers)
                response.raise_for_status()
                info = response.json()

                if provider.name == "github":
                    profile = await self._github_profile(client, headers, info)
                else:
                    profile = OAuthProfile(
                        email=info.get("email") or "",
                        name=info.get("name"),
                        image=info.get("picture"),
                        email_verified=info.get("email_verified") not in (False, "false"),
                    )
        except (httpx.HTTPError, ValueError) as e:
            logger.error("OAuth exchange with %s failed: %s", provider.name, e)
            raise UpstreamError(f"Sign-in with {provider.name} failed") from e

        if not profile.email:
            logger.error("OAuth provider %s returned no email address", provider.name)
            raise UpstreamError(f"{provider.name} did not share an email address")
        if not profile.email_verified:
            logger.warning("OAuth provider %s reported an unverified email", provider.name)
            raise AuthorizationError(f"{provider.name} account email is not verified")
        return profile

    async def _exchange_code(
        self, client: httpx.AsyncClient, provider: ProviderConfig, code: str
    ) -> str:
        response = await client.post(
            provider.token_url,
            data={
                "client_id": provider.client_id,
                "client_secret": provider.client_secret,
                "code": code,
                "redirect_uri": self.redirect_uri(provider.name),
                "grant_type": "authorization_code",
            },
            headers={"Accept": "application/json"},
        )
        response.raise_for_status()
        access_token = response.json().get("access_token")
        if not access_token:
            raise UpstreamError(f"Sign-in with {provider.name} failed")
        return access_token

    async def _github_profile(
        self, client: httpx.AsyncClient, headers: dict[str, str], info: dict
    ) -> OAuthProfile:
        email = info.get("email")
        if not email:
            # Private emails are only exposed through the emails endpoint
            response = await client.get(GITHUB_EMAILS_URL, headers=headers)
            response.raise_for_status()
            for entry in response.json():
                if entry.get("primary") and entry.get("verified"):
                    email = entry.get("email")
                    break
        return OAuthProfile(
            email=email or "",
            name=info.get("name") or info.get("login"),
            image=info.get("avatar_url"),
        )
