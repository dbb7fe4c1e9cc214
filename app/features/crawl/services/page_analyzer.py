import asyncio
import time
from typing import Any, Dict, List, Protocol

from axe_selenium_python import Axe
from selenium.common.exceptions import StaleElementReferenceException, WebDriverException
from selenium.webdriver.common.by import By

from app.features.crawl.schemas.crawl import Issue, PageAnalysis
from app.features.crawl.services.session import CancellationToken
from app.platform.logger import get_logger
from app.platform.utils.url_validator import canonicalize_url, domain_of

logger = get_logger(__name__)


class PageAnalyzer(Protocol):
    """Given a page and a URL, returns the page's issues and same-domain links."""

    async def analyze(self, page: Any, url: str, token: CancellationToken) -> PageAnalysis: ...


class AxePageAnalyzer:
    """
    Runs axe-core against one page through Selenium.

    Steps: navigate, checkpoint, extract links, checkpoint, evaluate rules.
    Rule evaluation is never interrupted by cancellation. Navigation
    timeouts and WebDriver/JavaScript errors are soft failures: the result
    is flagged failed with no issues and no links.
    """

    @staticmethod
    def navigate(driver, url: str) -> float:
        """Load the page; the driver's page-load timeout bounds the wait."""
        start_time = time.time()
        driver.get(url)
        return time.time() - start_time

    @staticmethod
    def extract_links(driver, url: str) -> List[str]:
        """Anchor targets of the loaded page, canonicalized and kept to the page's domain."""
        base = driver.current_url or url
        domain = domain_of(url)
        links: List[str] = []
        seen = set()

        for element in driver.find_elements(By.CSS_SELECTOR, "a[href]"):
            try:
                href = element.get_attribute("href")
            except StaleElementReferenceException:
                continue

            canonical = canonicalize_url(href, base=base) if href else None
            if canonical and domain_of(canonical) == domain and canonical not in seen:
                seen.add(canonical)
                links.append(canonical)

        return links

    @staticmethod
    def run_rules(driver) -> Dict[str, Any]:
        axe = Axe(driver)
        axe.inject()
        return axe.run()

    async def analyze(self, page: Any, url: str, token: CancellationToken) -> PageAnalysis:
        """
        Analyze one URL with a borrowed browser page.

        Raises:
            CrawlCancelled: at the post-navigation or post-extraction checkpoint
        """
        try:
            load_time = await asyncio.to_thread(self.navigate, page, url)
            logger.debug(f"Loaded {url} in {load_time:.2f}s")
        except WebDriverException as e:
            logger.warning(f"Navigation failed for {url}: {e.msg or e.__class__.__name__}")
            return PageAnalysis.failure(url, f"Navigation failed: {e.msg or e.__class__.__name__}")

        token.checkpoint()

        try:
            links = await asyncio.to_thread(self.extract_links, page, url)
        except WebDriverException as e:
            logger.warning(f"Link extraction failed for {url}: {e.msg or e.__class__.__name__}")
            return PageAnalysis.failure(url, f"Link extraction failed: {e.msg or e.__class__.__name__}")

        token.checkpoint()

        try:
            results = await asyncio.to_thread(self.run_rules, page)
        except WebDriverException as e:
            # Links found before the rule engine failed are dropped with the page
            logger.warning(f"Accessibility rules failed for {url}: {e.msg or e.__class__.__name__}")
            return PageAnalysis.failure(url, f"Accessibility analysis failed: {e.msg or e.__class__.__name__}")

        issues = [Issue.from_axe_violation(violation, url) for violation in results.get("violations", [])]
        logger.info(f"Analyzed {url}: {len(issues)} issues, {len(links)} links")
        return PageAnalysis(url=url, issues=issues, links=links)
