"""
FastAPI web application for the Gemini move relay.

Exposes a single route, /api/gemini-move, that accepts either a FEN position
or a caller-written prompt, forwards it to Gemini with the server's API key,
and returns the result. Browsers call it cross-origin, so every response
carries permissive CORS headers and OPTIONS preflights are answered directly.

Architecture notes:
- Async endpoint: the only work is waiting on the upstream call and the
  backoff sleep, so requests interleave on the event loop without threads.
- One httpx.AsyncClient per process, opened and closed by the lifespan
  handler. It carries the per-attempt timeout.
- The body is read by hand rather than declared as a pydantic parameter so
  that malformed or incomplete bodies answer 400 (not FastAPI's 422) with
  the same error shape as every other failure.
- Stateless per request: nothing is kept between calls.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from relay.config import RelaySettings, get_settings
from relay.constants import CORS_HEADERS
from relay.errors import BadRequest, RelayError, TransportError
from relay.gemini import FenRequest, parse_relay_request
from relay.relay import ResilientRelay

# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

logging.basicConfig(level=logging.INFO)
_log = logging.getLogger(__name__)

# httpx logs full request URLs at INFO, and the API key rides in the query.
logging.getLogger("httpx").setLevel(logging.WARNING)

RELAY_PATH = "/api/gemini-move"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    async with httpx.AsyncClient(timeout=settings.timeout_s) as client:
        app.state.http_client = client
        _log.info(
            "Relay ready: model=%s max_attempts=%d timeout=%.1fs key=%s",
            settings.default_model,
            settings.max_attempts,
            settings.timeout_s,
            "set" if settings.api_key else "MISSING",
        )
        yield


app = FastAPI(title="Gemini Move Relay", version="1.0.0", lifespan=lifespan)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_relay(
    settings: RelaySettings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> ResilientRelay:
    return ResilientRelay(settings, client)


# ---------------------------------------------------------------------------
# Middleware and error mapping
# ---------------------------------------------------------------------------


@app.middleware("http")
async def add_cors_headers(request: Request, call_next) -> Response:
    """Attach the CORS headers to every response, errors included."""
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Map a classified relay failure to its status code and JSON body."""
    if exc.status_code >= 500:
        _log.error("%s on %s: %s", exc.kind, request.url.path, exc.message)
    else:
        _log.info("%s on %s: %s", exc.kind, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ---------------------------------------------------------------------------
# API routes
# ---------------------------------------------------------------------------


@app.post(RELAY_PATH)
async def gemini_move(request: Request, relay: ResilientRelay = Depends(get_relay)) -> JSONResponse:
    """
    Relay a move request to Gemini.

    Body shapes:
        {"fen": "...", "model": "..."?}  -> {"move": "<SAN>"}
        {"prompt": "...", "model": "..."} -> upstream JSON, unmodified

    Raises:
        BadRequest (400):              Invalid JSON or missing fields.
        ConfigError (500):             Server has no API key.
        TransientUpstreamFailure (502): Gemini kept failing.
        UpstreamError (502):           Gemini answered without a move.
        TransportError (500):          Anything unexpected.
    """
    try:
        body = await request.json()
    except ValueError as exc:
        raise BadRequest("Invalid JSON request body.") from exc

    relay_request = parse_relay_request(body)

    try:
        result = await relay.relay(relay_request)
    except RelayError:
        raise
    except Exception as exc:
        _log.exception("Unexpected relay failure")
        raise TransportError(str(exc) or type(exc).__name__) from exc

    if isinstance(relay_request, FenRequest):
        return JSONResponse({"move": result.text})
    return JSONResponse(result.raw)


@app.options(RELAY_PATH, include_in_schema=False)
async def gemini_move_preflight() -> Response:
    """Answer CORS preflight with 200 and no body."""
    return Response(status_code=200)


@app.api_route(RELAY_PATH, methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def gemini_move_not_allowed() -> JSONResponse:
    return JSONResponse(
        status_code=405,
        content={"error": "Method Not Allowed. Use POST."},
        headers={"Allow": "POST, OPTIONS"},
    )
