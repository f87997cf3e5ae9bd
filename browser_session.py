"""
Browser Session

One headless browser page shared by every page fetch of a scrape run.
Uses a remote Browserbase session over CDP when credentials are
configured, otherwise launches a local Chromium with the usual
anti-detection settings.

Usage:
    async with BrowserSession(config, 'div[data-automation="reviewCard"]') as session:
        html = await session.fetch(url)
"""

import logging
import random
from typing import Optional

from curl_cffi.requests import AsyncSession
from curl_cffi.requests import exceptions as requests_exceptions
from playwright.async_api import async_playwright, Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from scraper_config import ScrapeConfig, BROWSERBASE_API_URL

logger = logging.getLogger(__name__)

BROWSER_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--start-maximized",
]

ANTI_DETECT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', {get: () => undefined});
"""

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class TransportError(RuntimeError):
    """The browser session could not be opened or could not load a page."""


async def create_browserbase_session(config: ScrapeConfig, api_url: str = BROWSERBASE_API_URL,
                                     session_factory=AsyncSession) -> str:
    """
    Create a remote browser session and return its CDP connect URL.

    Raises:
        TransportError: If the session API fails or returns no connect URL
    """
    payload = {
        "projectId": config.browserbase_project_id,
        "region": config.browserbase_region,
        "proxies": config.browserbase_proxies,
    }
    headers = {
        "X-BB-API-Key": config.browserbase_api_key,
        "Content-Type": "application/json",
    }

    try:
        async with session_factory() as http:
            response = await http.post(
                api_url, json=payload, headers=headers,
                timeout=config.connect_timeout_ms / 1000
            )
    except requests_exceptions.RequestException as e:
        raise TransportError(f"Browserbase session request failed: {e}") from e

    if response.status_code >= 400:
        raise TransportError(
            f"Browserbase session request failed with status {response.status_code}: {response.text}"
        )

    try:
        body = response.json()
    except ValueError as e:
        raise TransportError(f"Browserbase session response is not JSON: {e}") from e

    connect_url = body.get("connectUrl") if isinstance(body, dict) else None
    if not connect_url:
        raise TransportError("Browserbase session has no connect URL")
    return connect_url


async def create_context(browser):
    """Create a browser context with anti-detection settings."""
    vw = 1920 + random.randint(-100, 100)
    vh = 1080 + random.randint(-100, 100)

    return await browser.new_context(
        viewport={"width": vw, "height": vh},
        user_agent=USER_AGENT,
        locale="en-US",
        timezone_id="America/New_York",
    )


class BrowserSession:
    """
    Scoped browser session.

    Acquired once in ``__aenter__`` and released exactly once in
    ``__aexit__``, whichever way the run ends.
    """

    def __init__(self, config: ScrapeConfig, ready_selector: str, playwright_factory=async_playwright,
                 http_session_factory=AsyncSession):
        """
        Args:
            config: Scrape settings (timeouts, Browserbase credentials, headless)
            ready_selector: CSS selector that signals the page content is rendered
            playwright_factory: Callable returning a Playwright context manager
            http_session_factory: Callable returning an async HTTP session (Browserbase API)
        """
        self.config = config
        self.ready_selector = ready_selector
        self._playwright_factory = playwright_factory
        self._http_session_factory = http_session_factory
        self._playwright = None
        self._browser = None
        self.page = None
        self._closed = False

    async def __aenter__(self) -> "BrowserSession":
        try:
            await self._open()
        except TransportError:
            await self.close()
            raise
        except Exception as e:
            await self.close()
            raise TransportError(f"Failed to open browser session: {e}") from e
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _open(self) -> None:
        self._playwright = await self._playwright_factory().start()
        chromium = self._playwright.chromium

        if self.config.uses_browserbase:
            logger.info("Creating Browserbase session for the entire run...")
            connect_url = await create_browserbase_session(
                self.config, session_factory=self._http_session_factory
            )
            self._browser = await chromium.connect_over_cdp(
                connect_url, timeout=self.config.connect_timeout_ms
            )
            logger.info("Connected to remote browser over CDP")

            contexts = self._browser.contexts
            context = contexts[0] if contexts else await self._browser.new_context()
            pages = context.pages
            self.page = pages[0] if pages else await context.new_page()
        else:
            self._browser = await chromium.launch(headless=self.config.headless, args=BROWSER_ARGS)
            mode = "headless" if self.config.headless else "visible"
            logger.info(f"Local browser launched ({mode} mode)")

            context = await create_context(self._browser)
            self.page = await context.new_page()
            await self.page.add_init_script(ANTI_DETECT_SCRIPT)

    async def close(self) -> None:
        """Release the browser and Playwright. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        if self._browser is not None:
            logger.info("Closing browser connection at the end of the run...")
            try:
                await self._browser.close()
            except Exception as e:
                logger.error(f"Error closing browser: {e}")
            self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping Playwright: {e}")
            self._playwright = None

        self.page = None

    async def navigate(self, url: str) -> None:
        """
        Load a URL.

        Raises:
            TransportError: On any navigation failure, timeouts included
        """
        if self.page is None:
            raise TransportError("Browser session is not open")
        try:
            await self.page.goto(url, wait_until="domcontentloaded",
                                 timeout=self.config.navigation_timeout_ms)
        except PlaywrightError as e:
            raise TransportError(f"Navigation to {url} failed: {e}") from e
        logger.info(f"Navigation to {url} complete")

    async def wait_for_cards(self) -> bool:
        """
        Wait for the ready selector.

        Returns:
            True if it appeared, False if the wait timed out

        Raises:
            TransportError: On errors other than a timeout
        """
        try:
            await self.page.wait_for_selector(self.ready_selector, timeout=self.config.wait_timeout_ms)
        except PlaywrightTimeoutError:
            logger.error(f"Timed out waiting for '{self.ready_selector}'")
            return False
        except PlaywrightError as e:
            raise TransportError(f"Waiting for content failed: {e}") from e
        return True

    async def content(self) -> str:
        """Return the rendered HTML of the current page."""
        try:
            return await self.page.content()
        except PlaywrightError as e:
            raise TransportError(f"Could not read page content: {e}") from e

    async def fetch(self, url: str, wait: bool = True) -> str:
        """
        Navigate to a URL and return its rendered HTML.

        Args:
            url: Page URL
            wait: Wait for the ready selector first

        Returns:
            HTML, or '' if the ready selector never appeared
        """
        await self.navigate(url)

        if wait:
            if not await self.wait_for_cards():
                return ""
            logger.info("Review cards detected. Extracting page content...")

        html = await self.content()
        logger.info(f"Page content extracted for {url}. HTML length: {len(html)}")
        return html
