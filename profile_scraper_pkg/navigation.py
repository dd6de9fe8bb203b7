import asyncio
import logging
import random
from typing import Callable, List, Optional, Set

from playwright.async_api import Page, Route
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import BLOCK_IMAGES, SETTLE_DELAY_MS, TAB_POLL_INTERVAL_MS, TAB_TIMEOUT_MS
from .errors import ExtractionError, NavigationError, TabNotFound, TabTimeout
from .extraction import extract_profile
from .models import ProfileRecord


logger = logging.getLogger(__name__)

IMAGE_PATTERN = "**/*.{png,jpg,jpeg,gif,svg,ico,webp}"


async def random_delay(min_sec: float = 0.5, max_sec: float = 1.5) -> None:
    """Sleep for a random duration to emulate human pacing."""
    await asyncio.sleep(random.uniform(min_sec, max_sec))


async def warm_up_scroll(page: Page) -> None:
    """Perform a gentle top-to-bottom scroll to trigger lazy-loading.

    Experience, education and skills are rendered only once they come into
    view, so they are missing from the DOM right after the load event.
    """
    try:
        await page.evaluate("window.scrollTo({top: 0, behavior: 'instant'})")
        for frac in (0.25, 0.5, 0.75, 1.0):
            await page.evaluate(
                "window.scrollTo({top: document.body.scrollHeight * %s, behavior: 'smooth'})" % frac
            )
            await random_delay(0.6, 1.1)
        await page.evaluate("window.scrollTo({top: 0, behavior: 'instant'})")
    except Exception as e:
        logger.debug("Warm-up scroll skipped: %s", e)


async def _abort_route(route: Route) -> None:
    await route.abort()


class TabController:
    """Runs the open / wait-for-load / extract / close cycle of one tab.

    Every page it opens is tracked until it is closed, so `close_all()` can
    always clean up after a cancelled or crashed batch.
    """

    def __init__(
        self,
        session,
        settle_delay_ms: int = SETTLE_DELAY_MS,
        poll_interval_ms: int = TAB_POLL_INTERVAL_MS,
        block_images: bool = BLOCK_IMAGES,
        scroll: bool = True,
        extractor: Callable[..., ProfileRecord] = extract_profile,
    ):
        self.session = session
        self.settle_delay_ms = settle_delay_ms
        self.poll_interval_ms = poll_interval_ms
        self.block_images = block_images
        self.scroll = scroll
        self.extractor = extractor
        self._open: Set[Page] = set()

    @property
    def open_tabs(self) -> Set[Page]:
        return set(self._open)

    async def open_and_extract(
        self,
        url: str,
        timeout_ms: int = TAB_TIMEOUT_MS,
        debug: Optional[List[str]] = None,
    ) -> ProfileRecord:
        context = await self.session.get_context()
        page = await context.new_page()
        self._open.add(page)
        logger.info("🚀 Opening tab: %s", url)
        try:
            if self.block_images:
                await page.route(IMAGE_PATTERN, _abort_route)
            try:
                await page.goto(url, timeout=timeout_ms, wait_until="commit")
            except PlaywrightTimeoutError as e:
                raise TabTimeout(f"Navigation timed out after {timeout_ms}ms: {url}") from e
            except Exception as e:
                if page.is_closed():
                    raise TabNotFound(f"Tab closed during navigation: {url}") from e
                raise NavigationError(f"Navigation failed: {e}") from e

            await self.wait_for_complete(page, timeout_ms)
            if self.settle_delay_ms > 0:
                await asyncio.sleep(self.settle_delay_ms / 1000)
            if self.scroll:
                await warm_up_scroll(page)

            try:
                html = await page.content()
            except Exception as e:
                if page.is_closed():
                    raise TabNotFound(f"Tab closed before extraction: {url}") from e
                raise NavigationError(f"Could not read page content: {e}") from e

            record = self.extractor(html, url=url, debug=debug)
            if not record.name:
                raise ExtractionError(record.extraction_errors or "No name found on profile page")
            logger.info("✅ Extracted: %s", record.name)
            return record
        finally:
            await self.close_tab(page)

    async def wait_for_complete(self, page: Page, timeout_ms: int) -> None:
        """Poll `document.readyState` until it reports `complete`."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000
        while True:
            if page.is_closed():
                raise TabNotFound("Tab was closed while loading")
            try:
                state = await page.evaluate("document.readyState")
            except Exception as e:
                # The execution context is replaced while redirects are followed.
                if page.is_closed():
                    raise TabNotFound("Tab was closed while loading") from e
                state = None
            if state == "complete":
                return
            if loop.time() >= deadline:
                raise TabTimeout(f"Tab load timed out after {timeout_ms}ms")
            await asyncio.sleep(self.poll_interval_ms / 1000)

    async def close_tab(self, page: Page) -> None:
        self._open.discard(page)
        try:
            if not page.is_closed():
                await page.close()
            logger.info("🔒 Tab closed")
        except Exception as e:
            logger.warning("⚠️ Tab close failed: %s", e)

    async def close_all(self) -> None:
        for page in list(self._open):
            await self.close_tab(page)
