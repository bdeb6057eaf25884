"""Request orchestration: validate -> allocate -> capture -> synthesize -> zip -> stream.

Workspace release is tied to the request's exit paths:
- build_bundle releases on any failure (errors and cancellation) before re-raising
- stream_archive releases in `finally` once the body is sent or aborted
- the response also carries a background release for a body that never started
"""
from __future__ import annotations

import asyncio
import logging
import re
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional
from urllib.parse import quote

from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from .bundle import synthesize_bundle
from .capture import PageRenderer
from .errors import TransferError, ValidationError
from .workspace import Workspace, allocate_workspace, release_workspace
from .zip_utils import create_zip_archive


logger = logging.getLogger(__name__)


class GenerationRequest(BaseModel):
    # Optional in the schema so absence maps to our 400 shape, not a 422.
    appName: Optional[str] = None
    websiteUrl: Optional[str] = None


@dataclass(frozen=True)
class ValidatedRequest:
    app_name: str
    website_url: str


def validate_request(payload: GenerationRequest) -> ValidatedRequest:
    app_name = (payload.appName or "").strip()
    website_url = (payload.websiteUrl or "").strip()
    if not app_name or not website_url:
        raise ValidationError("Missing required fields")
    return ValidatedRequest(app_name=app_name, website_url=website_url)


async def _release(ws: Workspace) -> None:
    try:
        await run_in_threadpool(release_workspace, ws)
    except BaseException:
        # Cancelled while waiting on the thread; finish inline so nothing is left behind.
        release_workspace(ws)
        raise


async def build_bundle(
    request: ValidatedRequest,
    renderer: PageRenderer,
    timeout: float,
    root: Path | None = None,
    icons_dir: Path | None = None,
) -> Workspace:
    """Run the pipeline up to a finished archive on disk.

    On success the caller owns the returned workspace and must release it.
    """
    ws = allocate_workspace(request.app_name, root=root)
    try:
        page = await renderer.capture(request.website_url, timeout)
        await run_in_threadpool(synthesize_bundle, ws.root, ws.app_name, page, icons_dir)
        await run_in_threadpool(create_zip_archive, ws.root, ws.archive_path)
    except Exception:
        await _release(ws)
        raise
    except BaseException:
        # Cancellation: any further await in a cancelled scope is interrupted
        # again, so release synchronously.
        release_workspace(ws)
        raise
    logger.info("Built bundle %s from %s", ws.workspace_id, request.website_url)
    return ws


async def stream_archive(ws: Workspace, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield the archive in chunks, then delete every artifact."""
    interrupted = True
    try:
        fh = await run_in_threadpool(ws.archive_path.open, "rb")
        try:
            while True:
                chunk = await run_in_threadpool(fh.read, chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            fh.close()
        interrupted = False
    except asyncio.CancelledError:
        logger.info("Client went away while streaming %s", ws.workspace_id)
        raise
    except Exception as exc:
        interrupted = False
        error = TransferError("Streaming aborted", workspace=ws.workspace_id, cause=str(exc))
        logger.error("%s", error, extra={"pipeline_error": error.to_dict()})
        raise error from exc
    finally:
        # Cancelled or closed generators cannot reliably await.
        if interrupted:
            release_workspace(ws)
        else:
            await _release(ws)


_NON_FILENAME_ASCII_RE = re.compile(r'[^\x20-\x7e]|["\\]')


def ascii_filename(filename: str, default: str = "app.zip") -> str:
    """Best-effort ASCII rendition for clients without RFC 5987 support."""
    decomposed = unicodedata.normalize("NFKD", filename)
    plain = _NON_FILENAME_ASCII_RE.sub("", decomposed.encode("ascii", "ignore").decode("ascii")).strip()
    if not plain or plain.startswith("."):
        return default
    return plain


def content_disposition(filename: str) -> str:
    if filename.isascii() and quote(filename, safe=" ") == filename:
        return f'attachment; filename="{filename}"'
    return f"attachment; filename=\"{ascii_filename(filename)}\"; filename*=utf-8''{quote(filename)}"
