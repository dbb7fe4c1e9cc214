"""
Browser page pool.

Each crawl session owns one pool. A "page" is a Chrome WebDriver; Selenium
drivers are not safe to share between concurrent tasks, so the pool hands
out one driver per task and caps the number of drivers at the batch size.
Drivers are created lazily and all of them are quit exactly once when the
session ends.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Any, Callable, List, Optional

from selenium import webdriver
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from webdriver_manager.chrome import ChromeDriverManager

from app.platform.config import settings
from app.platform.exceptions import BrowserStartupError
from app.platform.logger import get_logger

logger = get_logger(__name__)

DriverFactory = Callable[[], Any]


def build_driver() -> webdriver.Chrome:
    """Headless Chrome configured for accessibility runs."""
    chrome_options = Options()
    if settings.BROWSER_HEADLESS:
        chrome_options.add_argument('--headless=new')
    chrome_options.add_argument('--no-sandbox')
    chrome_options.add_argument('--disable-dev-shm-usage')
    chrome_options.add_argument('--disable-gpu')
    chrome_options.add_argument('--disable-extensions')
    chrome_options.add_argument(
        f'--window-size={settings.BROWSER_WINDOW_WIDTH},{settings.BROWSER_WINDOW_HEIGHT}'
    )

    if settings.CHROMEDRIVER_PATH:
        driver_service = Service(executable_path=settings.CHROMEDRIVER_PATH)
        driver = webdriver.Chrome(service=driver_service, options=chrome_options)
    elif settings.USE_WEBDRIVER_MANAGER:
        driver_service = Service(ChromeDriverManager().install())
        driver = webdriver.Chrome(service=driver_service, options=chrome_options)
    else:
        driver = webdriver.Chrome(options=chrome_options)

    driver.set_page_load_timeout(settings.PAGE_LOAD_TIMEOUT)
    driver.set_script_timeout(settings.SCRIPT_TIMEOUT)
    return driver


class PagePool:
    """Lazily created, size-capped pool of browser pages for one session."""

    def __init__(self, max_size: int = settings.CRAWL_BATCH_SIZE, driver_factory: DriverFactory = build_driver):
        self.max_size = max_size
        self.driver_factory = driver_factory

        self._drivers: List[Any] = []
        self._available: asyncio.Queue = asyncio.Queue()
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def size(self) -> int:
        return len(self._drivers)

    @property
    def closed(self) -> bool:
        return self._closed

    @asynccontextmanager
    async def page(self):
        """
        Borrow one page for the duration of the block.

        Raises:
            BrowserStartupError: if a new driver cannot be started or the
                pool is already closed
        """
        driver = await self._acquire()
        try:
            yield driver
        finally:
            # close() already quit every driver, borrowed ones included
            if not self._closed:
                self._available.put_nowait(driver)

    async def _acquire(self):
        if self._closed:
            raise BrowserStartupError("Browser pool is closed")

        if not self._available.empty():
            return self._available.get_nowait()

        async with self._lock:
            if len(self._drivers) < self.max_size:
                driver = await self._start_driver()
                self._drivers.append(driver)
                return driver

        return await self._available.get()

    async def _start_driver(self):
        try:
            driver = await asyncio.to_thread(self.driver_factory)
        except Exception as e:
            logger.error(f"Failed to start browser: {e}", exc_info=True)
            raise BrowserStartupError(f"Browser could not be started: {e}") from e

        logger.info(f"Started browser page {len(self._drivers) + 1}/{self.max_size}")
        return driver

    async def close(self) -> bool:
        """
        Quit every driver this pool created. Only the first call does work.

        Returns:
            True if this call released the pool
        """
        if self._closed:
            return False
        self._closed = True

        drivers, self._drivers = self._drivers, []
        for driver in drivers:
            await self._quit(driver)

        logger.info(f"Browser pool closed, released {len(drivers)} pages")
        return True

    @staticmethod
    async def _quit(driver) -> None:
        try:
            await asyncio.to_thread(driver.quit)
        except Exception as e:
            logger.warning(f"Error while quitting browser: {e}")
