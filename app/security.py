"""Request ID, upload size limits, and caller identity resolution."""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.config import Settings
from meal_analyzer import ConfigurationError
from meal_analyzer.core.auth import IdentityResolver, SupabaseIdentityResolver, bearer_token
from meal_analyzer.core.logging import generate_request_id, request_id_var

logger = logging.getLogger(__name__)

UPLOAD_PATHS = frozenset({"/v1/analyze/audio"})


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a unique request ID to every request and log request lifecycle."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = generate_request_id()
        request.state.request_id = rid
        token = request_id_var.set(rid)
        start = time.perf_counter()
        try:
            logger.info("%s %s", request.method, request.url.path)
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.info(
                "%s %s -> %s (%.0f ms)",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
            )
            response.headers["X-Request-ID"] = rid
            return response
        finally:
            request_id_var.reset(token)


class MaxBodySizeMiddleware(BaseHTTPMiddleware):
    """Reject uploads whose Content-Length exceeds a configured limit.

    Only enforced on POST requests to the audio analysis endpoint.
    """

    def __init__(self, app, max_bytes: int) -> None:  # noqa: ANN001
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "POST" and request.url.path in UPLOAD_PATHS:
            content_length = request.headers.get("content-length")
            if content_length is not None and content_length.isdigit():
                if int(content_length) > self.max_bytes:
                    return JSONResponse(
                        status_code=413,
                        content={
                            "error": {
                                "type": "request_too_large",
                                "message": f"Request body exceeds maximum allowed size ({self.max_bytes} bytes)",
                            }
                        },
                    )

        return await call_next(request)


def get_identity_resolver(settings: Settings) -> IdentityResolver:
    """Build the resolver that maps bearer tokens to user ids.

    Raises:
        ConfigurationError: If the auth platform is not configured
    """
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise ConfigurationError(
            "SUPABASE_URL and SUPABASE_ANON_KEY are required to authenticate callers"
        )
    return SupabaseIdentityResolver(
        settings.supabase_url,
        settings.supabase_anon_key,
        settings.to_analyzer_config(),
    )


async def resolve_caller(request: Request, resolver: IdentityResolver) -> str | None:
    """Return the authenticated user id for this request, or None."""
    token = bearer_token(request.headers.get("authorization"))
    if token is None:
        logger.info("Request has no bearer token")
        return None
    return await resolver.resolve(token)
