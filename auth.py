"""OAuth refresh-token authentication against the EVE SSO."""

import asyncio
import time
from dataclasses import dataclass

import httpx
from pydantic import BaseModel, Field, ValidationError
from rich.console import Console

from core.config import Config, EsiSettings
from core.exceptions import (
    AuthError,
    MalformedTokenResponse,
    TokenExchangeFailed,
    TokenVerificationFailed,
)

console = Console()

TOKEN_PATH = "/oauth/token"  # Deliberately the v1 endpoint, not /v2/oauth/token
VERIFY_PATH = "/oauth/verify"

# Refresh this long before the SSO-reported expiry.
REFRESH_MARGIN_SECONDS = 60


class AccessToken(BaseModel):
    access_token: str = Field(min_length=1)
    refresh_token: str = ""
    token_type: str = "Bearer"
    expires_in: int = 0
    acquired_at: float = Field(default_factory=time.time)
    character_id: int | None = None

    @property
    def expires_at(self) -> float:
        return self.acquired_at + self.expires_in

    @property
    def authorization(self) -> str:
        return f"{self.token_type} {self.access_token}"


class EsiAuthService:
    """Exchange the configured refresh token for a verified access token."""

    def __init__(self, settings: EsiSettings, client: httpx.AsyncClient):
        self._settings = settings
        self._client = client

    async def acquire_token(self) -> AccessToken:
        """Run the refresh-token grant and verify the resulting token.

        Every call performs the full exchange; see TokenCache for reuse.
        """
        token = await self._exchange()
        character_id = await self._verify(token)
        return token.model_copy(update={"character_id": character_id})

    async def _exchange(self) -> AccessToken:
        try:
            response = await self._client.post(
                TOKEN_PATH,
                data={
                    "grant_type": "refresh_token",
                    "client_id": self._settings.client_id,
                    "client_secret": self._settings.client_secret,
                    "refresh_token": self._settings.character_refresh_token,
                },
            )
        except httpx.RequestError as e:
            raise TokenExchangeFailed(f"Token request failed: {e!r}") from e

        if not response.is_success:
            raise TokenExchangeFailed(f"Token endpoint returned {response.status_code}")

        try:
            return AccessToken.model_validate_json(response.content)
        except ValidationError as e:
            raise MalformedTokenResponse(f"Unreadable token response: {e}") from e

    async def _verify(self, token: AccessToken) -> int | None:
        """Check the token is usable; return the character it belongs to."""
        try:
            response = await self._client.get(
                VERIFY_PATH,
                headers={"Authorization": token.authorization},
            )
        except httpx.RequestError as e:
            raise TokenVerificationFailed(f"Verify request failed: {e!r}") from e

        if not response.is_success:
            raise TokenVerificationFailed(f"Verify endpoint returned {response.status_code}")

        try:
            character_id = response.json().get("CharacterID")
        except (ValueError, AttributeError):
            return None
        return character_id if isinstance(character_id, int) else None


@dataclass(frozen=True)
class CachedToken:
    token: str
    character_id: int
    expires_at: float

    def is_fresh(self, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return self.expires_at - REFRESH_MARGIN_SECONDS > now


class TokenCache:
    """Hold the single upstream identity's token between requests.

    Concurrent misses wait on one refresh instead of each running the
    exchange; the stored token is visible to the next caller immediately.
    """

    def __init__(self, provider: EsiAuthService, default_character_id: int):
        self._provider = provider
        self._default_character_id = default_character_id
        self._cached: CachedToken | None = None
        self._lock = asyncio.Lock()

    @property
    def cached(self) -> CachedToken | None:
        return self._cached

    async def get_token(self) -> str:
        cached = self._cached
        if cached and cached.is_fresh():
            return cached.token

        async with self._lock:
            cached = self._cached
            if cached and cached.is_fresh():
                return cached.token

            token = await self._provider.acquire_token()
            self._cached = CachedToken(
                token=token.access_token,
                character_id=token.character_id or self._default_character_id,
                expires_at=token.expires_at,
            )
            return token.access_token

    def invalidate(self) -> None:
        self._cached = None


class UncachedTokenSource:
    """Run the full exchange for every request."""

    def __init__(self, provider: EsiAuthService):
        self._provider = provider

    async def get_token(self) -> str:
        token = await self._provider.acquire_token()
        return token.access_token


def build_token_source(
    settings: EsiSettings, client: httpx.AsyncClient
) -> TokenCache | UncachedTokenSource:
    """Create the token source selected by esi.cache_tokens."""
    provider = EsiAuthService(settings, client)
    if settings.cache_tokens:
        return TokenCache(provider, settings.character_id)
    return UncachedTokenSource(provider)


async def check_auth(config: Config) -> bool:
    """Run one exchange against the SSO and report the result."""
    async with httpx.AsyncClient(base_url=config.esi.sso_url, timeout=30.0) as client:
        try:
            token = await EsiAuthService(config.esi, client).acquire_token()
        except AuthError as e:
            console.print(f"[red]Token exchange failed:[/red] {type(e).__name__}: {e}")
            return False

    character = token.character_id or config.esi.character_id
    console.print(
        f"[green]Authenticated[/green] as character {character} "
        f"(expires {time.ctime(token.expires_at)})"
    )
    if token.character_id and token.character_id != config.esi.character_id:
        console.print(
            f"[yellow]Warning:[/yellow] token belongs to {token.character_id}, "
            f"config says {config.esi.character_id}"
        )
    return True
