from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from fastapi.staticfiles import StaticFiles
from starlette.background import BackgroundTask

from pwagen_backend.capture import PlaywrightRenderer
from pwagen_backend.config import (
    CAPTURE_TIMEOUT_SECONDS,
    CHROMIUM_ARGS,
    LOG_LEVEL,
    MAX_CONCURRENT_CAPTURES,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_WINDOW_SECONDS,
    STREAM_CHUNK_BYTES,
    WORKSPACES_ROOT,
)
from pwagen_backend.errors import InvalidNameError, PipelineError, ValidationError
from pwagen_backend.middleware import SECURITY_HEADERS, FixedWindowRateLimiter
from pwagen_backend.pipeline import (
    GenerationRequest,
    build_bundle,
    content_disposition,
    stream_archive,
    validate_request,
)
from pwagen_backend.workspace import purge_stale_workspaces, release_workspace


BASE_DIR = Path(__file__).resolve().parent
STATIC_DIR = BASE_DIR / "static"

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

MISSING_FIELDS_BODY = {"error": "Missing required fields"}
INVALID_NAME_BODY = {"error": "Invalid app name"}
INTERNAL_ERROR_BODY = {"error": "Internal server error"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    WORKSPACES_ROOT.mkdir(parents=True, exist_ok=True)
    # Only entries older than STALE_AFTER_SECONDS; sibling workers may share the root.
    purged = purge_stale_workspaces(WORKSPACES_ROOT)
    if purged:
        logger.info("Purged %d stale workspace entries", purged)

    app.state.workspaces_root = WORKSPACES_ROOT
    app.state.capture_timeout = CAPTURE_TIMEOUT_SECONDS
    app.state.renderer = PlaywrightRenderer(
        max_concurrent=MAX_CONCURRENT_CAPTURES,
        launch_args=CHROMIUM_ARGS,
    )
    app.state.rate_limiter = FixedWindowRateLimiter(
        max_requests=RATE_LIMIT_MAX_REQUESTS,
        window_seconds=RATE_LIMIT_WINDOW_SECONDS,
    )
    yield


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def _rate_limit(request: Request, call_next):
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return await call_next(request)

    client_ip = request.client.host if request.client else "unknown"
    decision = limiter.hit(client_ip)
    if not decision.allowed:
        headers = decision.headers()
        headers["Retry-After"] = headers["RateLimit-Reset"]
        return JSONResponse({"error": "Too many requests"}, status_code=429, headers=headers)

    response = await call_next(request)
    response.headers.update(decision.headers())
    return response


@app.middleware("http")
async def _security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


@app.exception_handler(RequestValidationError)
async def _malformed_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Non-JSON bodies and wrongly typed fields get the same shape as missing ones.
    return JSONResponse(MISSING_FIELDS_BODY, status_code=400)


@app.post("/generate-app")
async def generate_app(payload: GenerationRequest, request: Request) -> Response:
    """Capture websiteUrl, wrap it in an installable app shell and return it as a ZIP."""
    try:
        validated = validate_request(payload)
    except ValidationError:
        return JSONResponse(MISSING_FIELDS_BODY, status_code=400)

    state = request.app.state
    try:
        ws = await build_bundle(
            validated,
            state.renderer,
            state.capture_timeout,
            root=state.workspaces_root,
        )
    except InvalidNameError as exc:
        logger.warning("Rejected app name [%s]: %s", exc.kind, exc, extra={"pipeline_error": exc.to_dict()})
        return JSONResponse(INVALID_NAME_BODY, status_code=400)
    except PipelineError as exc:
        logger.error("App generation failed [%s]: %s", exc.kind, exc, extra={"pipeline_error": exc.to_dict()})
        return JSONResponse(INTERNAL_ERROR_BODY, status_code=500)
    except Exception:
        logger.exception("Unexpected error while generating app")
        return JSONResponse(INTERNAL_ERROR_BODY, status_code=500)

    headers = {
        "Content-Disposition": content_disposition(ws.download_name),
        "Cache-Control": "no-store",
    }
    return StreamingResponse(
        stream_archive(ws, STREAM_CHUNK_BYTES),
        media_type="application/zip",
        headers=headers,
        # Covers a body that was never iterated; release is idempotent.
        background=BackgroundTask(release_workspace, ws),
    )


# Upload form at "/". Mounted last so API routes take precedence.
app.mount("/", StaticFiles(directory=str(STATIC_DIR), html=True), name="static")


if __name__ == "__main__":
    # Convenience: python server.py
    import uvicorn

    port = int(os.environ.get("PORT", "3000"))
    uvicorn.run("server:app", host="127.0.0.1", port=port, reload=False)
