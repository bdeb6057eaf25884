from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol, Sequence
from urllib.parse import urlsplit

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .errors import CaptureTimeoutError, NavigationError, RendererUnavailableError


logger = logging.getLogger(__name__)

_FETCHABLE_SCHEMES = {"http", "https"}


@dataclass(frozen=True)
class CapturedPage:
    url: str
    markup: str  # serialized DOM after network idle
    title: str = ""


class PageRenderer(Protocol):
    """Loads a URL in an isolated browsing context and returns its rendered DOM."""

    async def capture(self, url: str, timeout: float) -> CapturedPage:
        """
        Args:
            url: http(s) URL to load
            timeout: seconds allowed for navigation + network idle

        Raises:
            NavigationError: invalid or unreachable URL
            CaptureTimeoutError: the page did not settle in time
            RendererUnavailableError: the rendering engine could not start
        """
        ...


def validate_capture_url(url: str) -> str:
    """Accept only absolute http(s) URLs with a host."""
    candidate = (url or "").strip()
    try:
        parts = urlsplit(candidate)
    except ValueError:
        raise NavigationError("Malformed URL", url=candidate) from None
    if parts.scheme.lower() not in _FETCHABLE_SCHEMES or not parts.hostname:
        raise NavigationError("URL is not fetchable", url=candidate)
    return candidate


def extract_title(markup: str) -> str:
    soup = BeautifulSoup(markup or "", "html.parser")
    if soup.title is None:
        return ""
    return " ".join(soup.title.get_text().split())


class PlaywrightRenderer:
    """Headless Chromium renderer, one browser per capture.

    Each capture gets its own browser and context, so cookies and storage
    never cross requests. A semaphore caps how many Chromium processes may run
    at once; extra requests wait for a slot.
    """

    def __init__(self, max_concurrent: int = 2, launch_args: Sequence[str] = ()) -> None:
        self.max_concurrent = max(1, int(max_concurrent))
        self.launch_args = list(launch_args)
        self._slots = asyncio.Semaphore(self.max_concurrent)

    async def capture(self, url: str, timeout: float) -> CapturedPage:
        target = validate_capture_url(url)
        timeout_ms = max(1.0, float(timeout)) * 1000.0

        async with self._slots:
            try:
                markup = await self._render(target, timeout_ms)
            except PlaywrightTimeoutError:
                raise CaptureTimeoutError(
                    "Page did not reach network idle", url=target, timeout=timeout
                ) from None
            except PlaywrightError as exc:
                raise NavigationError("Navigation failed", url=target, cause=exc.message) from None

        return CapturedPage(url=target, markup=markup, title=extract_title(markup))

    async def _render(self, url: str, timeout_ms: float) -> str:
        async with async_playwright() as p:
            try:
                browser = await p.chromium.launch(args=self.launch_args)
            except PlaywrightError as exc:
                # Environment fault, not the target site.
                raise RendererUnavailableError("Could not start Chromium", cause=exc.message) from None
            try:
                context = await browser.new_context()
                page = await context.new_page()
                page.set_default_timeout(timeout_ms)
                await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
                content = await page.content()
                await context.close()
            finally:
                await browser.close()
        logger.debug("Captured %s (%d chars)", url, len(content))
        return content
