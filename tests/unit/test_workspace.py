"""
test_workspace.py - workspace allocation, release and stale purge.
"""

import os
import time
import uuid
from pathlib import Path
from unittest.mock import patch

import pytest

from pwagen_backend.errors import InvalidNameError
from pwagen_backend.workspace import allocate_workspace, purge_stale_workspaces, release_workspace


class TestAllocateWorkspace:
    def test_creates_named_directory(self, workspaces_root: Path):
        ws = allocate_workspace("My App", root=workspaces_root)

        assert ws.root.is_dir()
        assert ws.root.parent == workspaces_root.resolve()
        assert ws.app_name == "My App"
        assert ws.download_name == "My App.zip"
        prefix, _, token = ws.workspace_id.partition("-")
        assert prefix == "My App"
        assert uuid.UUID(token).version == 4

    def test_archive_sits_beside_directory(self, workspaces_root: Path):
        ws = allocate_workspace("demo", root=workspaces_root)

        assert ws.archive_path.parent == ws.root.parent
        assert ws.archive_path.name == f"{ws.workspace_id}.zip"
        assert not ws.archive_path.exists()

    def test_sanitizes_hostile_name(self, workspaces_root: Path):
        ws = allocate_workspace("../../etc/passwd", root=workspaces_root)

        assert ws.root.parent == workspaces_root.resolve()
        assert "/" not in ws.workspace_id
        assert ".." not in ws.app_name

    def test_identical_names_never_collide(self, workspaces_root: Path):
        spaces = [allocate_workspace("Same Name", root=workspaces_root) for _ in range(20)]

        assert len({ws.root for ws in spaces}) == 20
        assert len({ws.archive_path for ws in spaces}) == 20

    def test_invalid_name_creates_nothing(self, workspaces_root: Path, entries):
        with pytest.raises(InvalidNameError):
            allocate_workspace("..", root=workspaces_root)

        assert entries(workspaces_root) == []

    def test_creates_missing_root(self, tmp_path: Path):
        root = tmp_path / "nested" / "root"

        ws = allocate_workspace("x", root=root)

        assert ws.root.is_dir()


class TestReleaseWorkspace:
    def test_removes_directory_and_archive(self, workspaces_root: Path, entries):
        ws = allocate_workspace("demo", root=workspaces_root)
        (ws.root / "index.html").write_text("<p>hi</p>", encoding="utf-8")
        ws.archive_path.write_bytes(b"PK")

        release_workspace(ws)

        assert entries(workspaces_root) == []

    def test_idempotent(self, workspaces_root: Path, entries):
        ws = allocate_workspace("demo", root=workspaces_root)

        release_workspace(ws)
        release_workspace(ws)

        assert entries(workspaces_root) == []

    def test_failure_is_logged_not_raised(self, workspaces_root: Path, caplog):
        ws = allocate_workspace("demo", root=workspaces_root)

        with patch("pwagen_backend.workspace.shutil.rmtree", side_effect=PermissionError("denied")):
            release_workspace(ws)

        assert "Failed to remove workspace" in caplog.text


def _age(path: Path, seconds: float) -> None:
    then = time.time() - seconds
    os.utime(path, (then, then))


class TestPurgeStaleWorkspaces:
    def test_removes_only_old_workspace_entries(self, workspaces_root: Path, entries):
        stale = allocate_workspace("old", root=workspaces_root)
        stale.archive_path.write_bytes(b"PK")
        (workspaces_root / "keep-me").mkdir()
        (workspaces_root / "notes.zip").write_bytes(b"PK")
        for path in workspaces_root.iterdir():
            _age(path, 7200)

        removed = purge_stale_workspaces(workspaces_root, max_age=3600)

        assert removed == 2
        assert entries(workspaces_root) == ["keep-me", "notes.zip"]

    def test_fresh_workspace_survives(self, workspaces_root: Path):
        old = allocate_workspace("old", root=workspaces_root)
        _age(old.root, 7200)
        live = allocate_workspace("live", root=workspaces_root)
        live.archive_path.write_bytes(b"PK")

        removed = purge_stale_workspaces(workspaces_root, max_age=3600)

        assert removed == 1
        assert not old.root.exists()
        assert live.root.is_dir()
        assert live.archive_path.is_file()

    def test_default_age_comes_from_config(self, workspaces_root: Path):
        ws = allocate_workspace("demo", root=workspaces_root)
        _age(ws.root, 120)

        with patch("pwagen_backend.workspace.config.STALE_AFTER_SECONDS", 3600):
            assert purge_stale_workspaces(workspaces_root) == 0
        with patch("pwagen_backend.workspace.config.STALE_AFTER_SECONDS", 60):
            assert purge_stale_workspaces(workspaces_root) == 1

    def test_missing_root(self, tmp_path: Path):
        assert purge_stale_workspaces(tmp_path / "absent") == 0
