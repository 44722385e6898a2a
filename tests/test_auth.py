"""Tests for bearer token parsing and identity resolution."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from meal_analyzer import AnalyzerConfig
from meal_analyzer.core.auth import StaticIdentityResolver, SupabaseIdentityResolver, bearer_token

USER_ID = "0b6c5b8e-3f5a-4a43-9a4c-2f1f7f5f6c11"


@pytest.mark.parametrize(
    "header,expected",
    [
        ("Bearer abc.def", "abc.def"),
        ("Bearer   padded  ", "padded"),
        ("Bearer ", None),
        ("Basic dXNlcjpwYXNz", None),
        ("", None),
        (None, None),
    ],
)
def test_bearer_token(header, expected):
    assert bearer_token(header) == expected


@pytest.fixture
def resolver():
    return SupabaseIdentityResolver("https://project.supabase.co/", "anon", AnalyzerConfig())


@pytest.mark.asyncio
async def test_supabase_resolves_user_id(resolver):
    mock_get = AsyncMock(return_value=httpx.Response(200, json={"id": USER_ID, "email": "a@b.c"}))

    with patch("httpx.AsyncClient.get", mock_get):
        assert await resolver.resolve("jwt") == USER_ID

    assert mock_get.call_args[0][0] == "https://project.supabase.co/auth/v1/user"
    headers = mock_get.call_args[1]["headers"]
    assert headers == {"apikey": "anon", "Authorization": "Bearer jwt"}


@pytest.mark.asyncio
async def test_supabase_rejected_token(resolver):
    with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=httpx.Response(401)):
        assert await resolver.resolve("expired") is None


@pytest.mark.asyncio
async def test_supabase_unreachable(resolver):
    with patch("httpx.AsyncClient.get", new_callable=AsyncMock, side_effect=httpx.ConnectError("dns")):
        assert await resolver.resolve("jwt") is None


@pytest.mark.asyncio
async def test_supabase_no_token_skips_request(resolver):
    with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
        assert await resolver.resolve(None) is None
    mock_get.assert_not_called()


@pytest.mark.asyncio
async def test_static_resolver():
    resolver = StaticIdentityResolver({"token-1": USER_ID})
    assert await resolver.resolve("token-1") == USER_ID
    assert await resolver.resolve("token-2") is None
    assert await resolver.resolve(None) is None
