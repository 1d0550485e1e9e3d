"""FastAPI proxy for the Anthropic Messages API.

Endpoints:
- GET /health
- GET /
- POST /api/generate  { "prompt": "..." }
"""
from __future__ import annotations
import asyncio
import contextlib
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from prompt_proxy import __version__
from prompt_proxy.common.errors import (
    AdmissionDenied,
    BodyTooLarge,
    ConfigurationMissing,
    ProxyError,
    ValidationFailed,
)
from prompt_proxy.common.logging_setup import setup_logging
from prompt_proxy.common.schema import (
    MAX_PROMPT_CHARS,
    GenerateIn,
    GenerateOut,
    HealthOut,
    ServiceInfo,
)
from prompt_proxy.common.settings import Settings, load_settings
from prompt_proxy.serve.origin_guard import make_origin_guard
from prompt_proxy.serve.rate_limiter import RateLimiter, run_sweeper
from prompt_proxy.serve.upstream import UpstreamClient

LOGGER = logging.getLogger("promptproxy.app")

SERVICE_NAME = "prompt-proxy"


def _error_body(message: str, detail: Optional[str], settings: Settings) -> dict[str, Any]:
    body: dict[str, Any] = {"error": message}
    if detail and not settings.is_production:
        body["message"] = detail
    return body


def _client_ip(request: Request, settings: Settings) -> str:
    if settings.trust_proxy:
        forwarded = request.headers.get("x-forwarded-for", "")
        # Rightmost hop is the one our proxy appended; the rest is client-supplied
        last_hop = forwarded.split(",")[-1].strip()
        if last_hop:
            return last_hop
    return request.client.host if request.client else "unknown"


async def _read_body(request: Request, limit: int) -> bytes:
    """Read the request body, giving up once more than `limit` bytes arrive."""
    received = bytearray()
    async for chunk in request.stream():
        received += chunk
        if len(received) > limit:
            LOGGER.warning("Rejected body over %s bytes on %s", limit, request.url.path)
            raise BodyTooLarge("Request body too large")
    return bytes(received)


def _parse_prompt(raw: bytes) -> str:
    """Validate the generate body and return the prompt."""
    if not raw.strip():
        raise ValidationFailed("Prompt is required")
    try:
        body = GenerateIn.model_validate_json(raw)
    except ValidationError as e:
        raise ValidationFailed("Invalid request body", detail=str(e)) from e
    if not body.prompt:
        raise ValidationFailed("Prompt is required")
    if len(body.prompt) > MAX_PROMPT_CHARS:
        raise ValidationFailed(f"Prompt exceeds maximum length of {MAX_PROMPT_CHARS} characters")
    return body.prompt


def create_app(
    settings: Optional[Settings] = None,
    rate_limiter: Optional[RateLimiter] = None,
    upstream: Optional[UpstreamClient] = None,
) -> FastAPI:
    """
    Build the proxy application.

    Args:
        settings: Runtime configuration; read from the environment when omitted.
        rate_limiter: Admission gate shared by all requests and the sweep task.
        upstream: Messages API client; built from settings when omitted.
    """
    settings = settings or load_settings()
    limiter = rate_limiter or RateLimiter()
    if upstream is None and settings.api_key:
        upstream = UpstreamClient.from_settings(settings, settings.api_key)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        if not settings.api_key:
            LOGGER.error("ANTHROPIC_API_KEY is not set; /api/generate will fail until it is configured")
        LOGGER.info(
            "Allowed origins: %s | environment: %s",
            ", ".join(settings.allowed_origins),
            settings.environment,
        )
        sweeper = asyncio.create_task(run_sweeper(limiter))
        app.state.sweeper = sweeper
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper

    app = FastAPI(title="Prompt Proxy", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.rate_limiter = limiter
    app.state.upstream = upstream
    app.state.sweeper = None

    # Last added runs first: origin guard, body size, CORS headers, then the
    # catch-all, which sits inside CORS so 500s still carry CORS headers.
    @app.middleware("http")
    async def catch_uncaught(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            LOGGER.exception("Unhandled error on %s", request.url.path)
            return JSONResponse(_error_body("Internal server error", str(exc), settings), status_code=500)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > settings.max_body_bytes:
            LOGGER.warning("Rejected %s byte body on %s", length, request.url.path)
            err = BodyTooLarge("Request body too large")
            return JSONResponse(_error_body(err.message, None, settings), status_code=err.status_code)
        return await call_next(request)

    app.middleware("http")(make_origin_guard(settings.allowed_origins))

    @app.exception_handler(ProxyError)
    async def handle_proxy_error(request: Request, exc: ProxyError) -> JSONResponse:
        return JSONResponse(_error_body(exc.message, exc.detail, settings), status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = "Not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse({"error": message}, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(_error_body("Invalid request body", str(exc), settings), status_code=400)

    @app.get("/health", response_model=HealthOut)
    def health() -> HealthOut:
        return HealthOut(
            status="ok",
            message="Proxy server is running",
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    @app.get("/", response_model=ServiceInfo)
    def index() -> ServiceInfo:
        return ServiceInfo(
            name=SERVICE_NAME,
            version=__version__,
            endpoints={
                "health": "GET /health",
                "generate": "POST /api/generate",
            },
        )

    @app.post("/api/generate", response_model=GenerateOut)
    async def generate(request: Request) -> GenerateOut:
        state = request.app.state
        raw = await _read_body(request, state.settings.max_body_bytes)
        if not state.settings.api_key or state.upstream is None:
            LOGGER.error("Generate request refused: ANTHROPIC_API_KEY is not configured")
            raise ConfigurationMissing("API key not configured on server")

        prompt = _parse_prompt(raw)

        client_ip = _client_ip(request, state.settings)
        if not state.rate_limiter.admit(client_ip):
            LOGGER.warning("Rate limit exceeded for %s", client_ip)
            raise AdmissionDenied("Too many requests, please try again later.")

        # Blocking httpx call; keep it off the event loop
        text = await run_in_threadpool(state.upstream.generate, prompt)
        return GenerateOut(text=text)

    return app


_settings = load_settings()
setup_logging(_settings.log_level)
app = create_app(_settings)
