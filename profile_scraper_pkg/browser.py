import logging
from typing import Optional

import httpx
from playwright.async_api import Browser, BrowserContext, Playwright
from playwright.async_api import async_playwright

from .config import CDP_URL, COOKIES_FILE, HEADLESS, SLOW_MO_MS, USE_CDP, random_user_agent
from .cookies_auth import apply_cookies, load_cookies


logger = logging.getLogger(__name__)

CHROMIUM_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-infobars",
    "--window-size=1920,1080",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--mute-audio",
    "--no-first-run",
    "--disable-extensions",
]


async def launch_browser(playwright: Playwright, headless: bool = True, proxy: Optional[str] = None) -> Browser:
    """Launch Chromium with flags that hide the most obvious automation signals."""
    return await playwright.chromium.launch(
        headless=headless,
        proxy={"server": proxy} if proxy else None,
        slow_mo=SLOW_MO_MS if SLOW_MO_MS > 0 else None,
        args=CHROMIUM_ARGS,
    )


async def new_context(browser: Browser, locale: str = "en-US", user_agent: Optional[str] = None) -> BrowserContext:
    """Create a desktop-sized context with realistic language headers."""
    return await browser.new_context(
        user_agent=user_agent or random_user_agent(),
        viewport={"width": 1920, "height": 1080},
        locale=locale,
        has_touch=False,
        is_mobile=False,
        device_scale_factor=1,
        extra_http_headers={
            "Accept-Language": "en-US,en;q=0.9",
            "DNT": "1",
            "Upgrade-Insecure-Requests": "1",
        },
    )


async def apply_stealth(context: BrowserContext) -> None:
    """Patch the fingerprints LinkedIn checks first: webdriver, plugins, languages."""
    await context.add_init_script(
        """
        Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
        Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
        Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
        window.chrome = { runtime: {} };
        """
    )


async def connect_over_cdp(playwright: Playwright, cdp_url: str) -> Browser:
    """Attach to a running Chrome started with `--remote-debugging-port`.

    Hostnames Chrome refuses (e.g. `host.docker.internal`) are resolved to the
    WebSocket debugger URL first.
    """
    if "host.docker.internal" in cdp_url:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(cdp_url.rstrip("/") + "/json/version", timeout=10.0)
                ws_url = response.json().get("webSocketDebuggerUrl", "")
                if ws_url:
                    return await playwright.chromium.connect_over_cdp(ws_url)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("⚠️ Failed to fetch WebSocket URL: %s, trying direct connect...", e)
    return await playwright.chromium.connect_over_cdp(cdp_url)


class BrowserSession:
    """Owns the Playwright driver, the browser and the context tabs open in.

    The context is created lazily on first use so the control UI can start
    before Chrome is reachable. With CDP the browser belongs to the user and
    is never closed here; only our own tabs are.
    """

    def __init__(
        self,
        headless: bool = HEADLESS,
        use_cdp: bool = USE_CDP,
        cdp_url: str = CDP_URL,
        proxy: Optional[str] = None,
        cookies_path: str = COOKIES_FILE,
    ):
        self.headless = headless
        self.use_cdp = use_cdp
        self.cdp_url = cdp_url
        self.proxy = proxy
        self.cookies_path = cookies_path
        self.cookies_loaded = False
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def get_context(self) -> BrowserContext:
        if self._context is not None:
            return self._context
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        try:
            self._context = await self._open_context()
        except Exception:
            await self.close()
            raise
        return self._context

    async def _open_context(self) -> BrowserContext:
        if self.use_cdp:
            logger.info("🚀 Connecting via CDP: %s", self.cdp_url)
            try:
                self._browser = await connect_over_cdp(self._playwright, self.cdp_url)
                return self._browser.contexts[0] if self._browser.contexts else await self._browser.new_context()
            except Exception as e:
                logger.error("❌ CDP connection failed: %s. Falling back to launched Chromium", e)
                self._browser = None
                self.use_cdp = False

        self._browser = await launch_browser(self._playwright, headless=self.headless, proxy=self.proxy)
        context = await new_context(self._browser)
        await apply_stealth(context)
        cookies = load_cookies(self.cookies_path)
        self.cookies_loaded, has_li_at = await apply_cookies(context, cookies)
        if not has_li_at:
            logger.warning("⚠️ li_at cookie not found; LinkedIn will likely show the authwall")
        return context

    async def close(self) -> None:
        if self._browser is not None and not self.use_cdp:
            try:
                await self._browser.close()
            except Exception as e:
                logger.warning("⚠️ Browser close failed: %s", e)
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning("⚠️ Playwright stop failed: %s", e)
        self._browser = None
        self._context = None
        self._playwright = None

    async def __aenter__(self) -> "BrowserSession":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
