"""Tests for service middleware and caller identity helpers."""

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from app.config import Settings
from app.security import (
    MaxBodySizeMiddleware,
    RequestIDMiddleware,
    get_identity_resolver,
    resolve_caller,
)
from meal_analyzer import ConfigurationError
from meal_analyzer.core.auth import StaticIdentityResolver, SupabaseIdentityResolver
from meal_analyzer.core.logging import request_id_var


# ---------------------------------------------------------------------------
# Helpers - minimal FastAPI apps with specific middleware for isolation
# ---------------------------------------------------------------------------

def _make_app_with_body_limit(max_bytes: int) -> FastAPI:
    test_app = FastAPI()
    test_app.add_middleware(MaxBodySizeMiddleware, max_bytes=max_bytes)

    @test_app.post("/v1/analyze/audio")
    async def audio(request: Request):
        await request.body()
        return {"result": "ok"}

    @test_app.post("/v1/analyze/image")
    async def image(request: Request):
        await request.body()
        return {"result": "ok"}

    @test_app.post("/v1/analyze/text")
    async def text(request: Request):
        await request.body()
        return {"result": "ok"}

    return test_app


def _make_app_with_request_id() -> FastAPI:
    test_app = FastAPI()
    test_app.add_middleware(RequestIDMiddleware)

    @test_app.get("/health")
    async def health():
        return {"ok": True, "rid": request_id_var.get()}

    return test_app


# ---------------------------------------------------------------------------
# Max Body Size Middleware Tests
# ---------------------------------------------------------------------------

class TestMaxBodySizeMiddleware:
    """Tests for upload size limits."""

    def test_small_audio_upload_allowed(self):
        client = TestClient(_make_app_with_body_limit(1024))
        resp = client.post("/v1/analyze/audio", content=b"x" * 100)
        assert resp.status_code == 200

    def test_oversized_upload_returns_413(self):
        client = TestClient(_make_app_with_body_limit(100))
        resp = client.post("/v1/analyze/audio", content=b"x" * 200)
        assert resp.status_code == 413
        data = resp.json()
        assert data["error"]["type"] == "request_too_large"
        assert "100 bytes" in data["error"]["message"]

    def test_text_endpoint_not_limited(self):
        client = TestClient(_make_app_with_body_limit(100))
        resp = client.post("/v1/analyze/text", content=b"x" * 200)
        assert resp.status_code == 200

    def test_image_endpoint_not_limited(self):
        client = TestClient(_make_app_with_body_limit(100))
        resp = client.post("/v1/analyze/image", content=b"x" * 200)
        assert resp.status_code == 200


# ---------------------------------------------------------------------------
# Request ID Middleware Tests
# ---------------------------------------------------------------------------

class TestRequestIDMiddleware:
    """Tests for request ID generation."""

    def test_response_has_request_id_header(self):
        client = TestClient(_make_app_with_request_id())
        resp = client.get("/health")
        assert resp.status_code == 200
        rid = resp.headers["X-Request-ID"]
        assert len(rid) == 12
        assert resp.json()["rid"] == rid

    def test_request_ids_are_unique(self):
        client = TestClient(_make_app_with_request_id())
        ids = {client.get("/health").headers["X-Request-ID"] for _ in range(5)}
        assert len(ids) == 5


# ---------------------------------------------------------------------------
# Identity resolution
# ---------------------------------------------------------------------------

class TestIdentity:

    def test_resolver_requires_supabase(self):
        settings = Settings(_env_file=None, openai_api_key="sk")
        with pytest.raises(ConfigurationError):
            get_identity_resolver(settings)

    def test_resolver_built_from_settings(self):
        settings = Settings(
            _env_file=None,
            openai_api_key="sk",
            supabase_url="https://project.supabase.co",
            supabase_anon_key="anon",
        )
        resolver = get_identity_resolver(settings)
        assert isinstance(resolver, SupabaseIdentityResolver)
        assert resolver.base_url == "https://project.supabase.co"

    @pytest.mark.asyncio
    async def test_resolve_caller_uses_bearer_token(self):
        resolver = StaticIdentityResolver({"jwt": "user-1"})
        scope = {"type": "http", "headers": [(b"authorization", b"Bearer jwt")]}
        assert await resolve_caller(Request(scope), resolver) == "user-1"

    @pytest.mark.asyncio
    async def test_resolve_caller_without_header(self):
        resolver = StaticIdentityResolver({"jwt": "user-1"})
        assert await resolve_caller(Request({"type": "http", "headers": []}), resolver) is None
