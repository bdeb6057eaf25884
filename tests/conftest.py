"""
Pytest fixtures shared by unit and e2e tests.

Chromium is never started here: HTTP and pipeline tests use FakeRenderer.
"""

import os
import tempfile
from pathlib import Path

# Keep the app's default workspaces root out of the project tree.
# Must happen before server / pwagen_backend.config are imported.
os.environ.setdefault("PWAGEN_WORKSPACES_ROOT", tempfile.mkdtemp(prefix="pwagen-tests-"))

import pytest

from pwagen_backend.capture import CapturedPage
from pwagen_backend.errors import CaptureTimeoutError, NavigationError

SAMPLE_MARKUP = (
    "<html><head><title>Example Domain</title></head>"
    "<body><h1>Example Domain</h1><p>Hello from the captured page.</p></body></html>"
)


class FakeRenderer:
    """PageRenderer stand-in. Records calls; optionally fails."""

    def __init__(self, markup: str = SAMPLE_MARKUP, error: Exception | None = None) -> None:
        self.markup = markup
        self.error = error
        self.calls: list[tuple[str, float]] = []

    async def capture(self, url: str, timeout: float) -> CapturedPage:
        self.calls.append((url, timeout))
        if self.error is not None:
            raise self.error
        return CapturedPage(url=url, markup=self.markup, title="Example Domain")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def workspaces_root(tmp_path: Path) -> Path:
    """Empty directory used as the workspaces root."""
    root = tmp_path / "generated-apps"
    root.mkdir()
    return root


@pytest.fixture
def captured_page() -> CapturedPage:
    return CapturedPage(url="https://example.com", markup=SAMPLE_MARKUP, title="Example Domain")


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def timeout_renderer() -> FakeRenderer:
    return FakeRenderer(error=CaptureTimeoutError("Page did not reach network idle", url="https://slow.example"))


@pytest.fixture
def unreachable_renderer() -> FakeRenderer:
    return FakeRenderer(
        error=NavigationError("Navigation failed", url="https://does-not-exist.invalid", cause="net::ERR_NAME_NOT_RESOLVED")
    )


def list_entries(root: Path) -> list[str]:
    """Names directly under root (workspaces and archives)."""
    return sorted(p.name for p in root.iterdir())


@pytest.fixture
def entries():
    return list_entries


@pytest.fixture
def make_renderer():
    """Factory for custom FakeRenderer instances."""
    return FakeRenderer
