from __future__ import annotations

import logging
import shutil
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from . import config
from .security import looks_like_workspace_name, safe_join, sanitize_app_name


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Workspace:
    app_name: str  # sanitized
    workspace_id: str
    root: Path
    archive_path: Path

    @property
    def download_name(self) -> str:
        return f"{self.app_name}.zip"


def allocate_workspace(app_name: str, root: Path | None = None) -> Workspace:
    """Create a fresh directory named <sanitized-name>-<uuid4>.

    Raises InvalidNameError when the name sanitizes to nothing. The directory
    is created with exist_ok=False, so a collision fails loudly instead of
    sharing a workspace.
    """
    base = (root or config.WORKSPACES_ROOT).resolve()
    base.mkdir(parents=True, exist_ok=True)

    safe_name = sanitize_app_name(app_name)
    workspace_id = f"{safe_name}-{uuid.uuid4()}"
    ws_root = safe_join(base, workspace_id)
    ws = Workspace(
        app_name=safe_name,
        workspace_id=workspace_id,
        root=ws_root,
        archive_path=safe_join(base, f"{workspace_id}.zip"),
    )
    ws_root.mkdir(parents=False, exist_ok=False)
    logger.debug("Allocated workspace %s", workspace_id)
    return ws


def release_workspace(ws: Workspace) -> None:
    """Delete the workspace directory and its archive.

    Safe to call any number of times. Failures are logged and swallowed so a
    cleanup problem never masks the error that triggered it.
    """
    try:
        if ws.root.exists():
            shutil.rmtree(ws.root)
    except OSError as exc:
        logger.warning("Failed to remove workspace %s: %s", ws.workspace_id, exc)

    try:
        ws.archive_path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Failed to remove archive for %s: %s", ws.workspace_id, exc)


def purge_stale_workspaces(root: Path | None = None, max_age: float | None = None) -> int:
    """Remove leftovers of a previous process (crash, kill -9).

    Only touches entries that look like ours: "<name>-<uuid4>" directories and
    "<name>-<uuid4>.zip" files, and only once their mtime is older than
    max_age seconds. Several workers may share the root, so anything younger
    can still belong to an in-flight request. Returns the number of removed
    entries.
    """
    base = root or config.WORKSPACES_ROOT
    if max_age is None:
        max_age = config.STALE_AFTER_SECONDS
    if not base.exists():
        return 0

    cutoff = time.time() - max(0.0, max_age)
    removed = 0
    for child in base.iterdir():
        if not looks_like_workspace_name(child.name):
            continue
        try:
            if child.stat().st_mtime > cutoff:
                continue
            if child.is_dir():
                shutil.rmtree(child)
            else:
                child.unlink()
        except OSError as exc:
            logger.warning("Failed to purge stale entry %s: %s", child.name, exc)
            continue
        removed += 1
    return removed
