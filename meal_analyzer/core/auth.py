"""Caller identity resolution against the hosted auth platform (Supabase Auth)."""

import logging
from typing import Protocol

import httpx

from meal_analyzer.core.config import AnalyzerConfig

logger = logging.getLogger(__name__)


class IdentityResolver(Protocol):
    async def resolve(self, access_token: str | None) -> str | None: ...


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None


class SupabaseIdentityResolver:
    """Resolve an access token to a user id with ``GET /auth/v1/user``.

    Any failure (missing token, rejected token, auth service unreachable)
    resolves to no identity; the caller turns that into a 401.
    """

    def __init__(self, base_url: str, api_key: str, config: AnalyzerConfig):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.config = config

    async def resolve(self, access_token: str | None) -> str | None:
        if not access_token:
            return None

        url = f"{self.base_url}/auth/v1/user"
        timeout = httpx.Timeout(self.config.timeout_s, connect=self.config.connect_timeout_s)
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.get(
                    url,
                    headers={"apikey": self.api_key, "Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Auth service unreachable at {url}: {e}")
            return None

        if response.status_code != 200:
            logger.info("Access token rejected by auth service (HTTP %d)", response.status_code)
            return None

        try:
            user_id = response.json().get("id")
        except (ValueError, AttributeError):
            logger.error("Auth service returned an unexpected response structure")
            return None
        return user_id if isinstance(user_id, str) and user_id else None


class StaticIdentityResolver:
    """Map fixed tokens to user ids. Useful for local development and tests."""

    def __init__(self, tokens: dict[str, str]):
        self.tokens = dict(tokens)

    async def resolve(self, access_token: str | None) -> str | None:
        if not access_token:
            return None
        return self.tokens.get(access_token)
