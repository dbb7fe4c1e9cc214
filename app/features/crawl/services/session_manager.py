"""
Process-wide crawl coordinator.

At most one crawl session is active per process. Starting a crawl while
another one runs first cancels the old session and waits until it has fully
drained and released its browser; only then does the new session run. A
cancel that arrives while a new session waits for that drain cancels the
waiting session too, which then finishes without analyzing anything.
"""
import asyncio
from typing import Callable, List, Optional

from app.features.crawl.schemas.crawl import (
    AnalysisCancelled,
    AnalysisFailed,
    AnalysisStarted,
    CrawlResult,
    FrontierEntryRead,
)
from app.features.crawl.services.browser_pool import PagePool
from app.features.crawl.services.frontier import FrontierService
from app.features.crawl.services.page_analyzer import AxePageAnalyzer, PageAnalyzer
from app.features.crawl.services.scheduler import BatchScheduler
from app.features.crawl.services.session import CrawlSession
from app.platform.config import settings
from app.platform.exceptions import BrowserStartupError, InvalidURLError
from app.platform.logger import get_logger
from app.platform.utils.url_validator import canonicalize_url, domain_of, validate_url
from app.platform.websocket_manager import ProgressBroadcaster, broadcaster

logger = get_logger(__name__)


class SessionManager:
    def __init__(
        self,
        frontier: FrontierService,
        analyzer: PageAnalyzer,
        broadcaster: ProgressBroadcaster,
        pool_factory: Callable[[], PagePool] = PagePool,
        batch_size: int = settings.CRAWL_BATCH_SIZE,
    ):
        self.frontier = frontier
        self.broadcaster = broadcaster
        self.pool_factory = pool_factory
        self.scheduler = BatchScheduler(frontier, analyzer, broadcaster, batch_size=batch_size)

        self._active: Optional[CrawlSession] = None
        # Sessions waiting for the previous one to drain
        self._starting: List[CrawlSession] = []
        self._start_lock = asyncio.Lock()

    @property
    def active(self) -> Optional[CrawlSession]:
        return self._active

    async def check(self, url: str) -> CrawlResult:
        """
        Crawl a site from ``url`` and return the aggregate once the crawl
        completes or is cancelled.

        Raises:
            InvalidURLError: the seed URL is malformed; nothing was started
            BrowserStartupError: the browser could not be started; the
                session has been fully cleaned up
        """
        is_valid, normalized_url, error = validate_url(url)
        seed_url = canonicalize_url(normalized_url) if is_valid else None
        if seed_url is None:
            raise InvalidURLError(error or f"Not a crawlable page URL: {url}")
        domain = domain_of(seed_url)

        session = CrawlSession(domain=domain, seed_url=seed_url, pages=self.pool_factory())
        self._starting.append(session)
        try:
            async with self._start_lock:
                previous = self._active
                if previous is not None:
                    logger.info(f"Replacing active session {previous.id}")
                    await self._cancel_and_drain(previous)
                self._active = session
        finally:
            self._starting.remove(session)

        try:
            if session.cancelled:
                logger.info(f"[{session.id}] Cancelled before it started")
            else:
                logger.info(f"[{session.id}] Starting crawl of {seed_url}")
                await self.frontier.reset_domain(domain)
                await self.frontier.seed(seed_url, domain)
                await self.broadcaster.broadcast(
                    AnalysisStarted(session_id=session.id, domain=domain, initial_url=seed_url)
                )
                await self.scheduler.run_to_completion(session)
        except BrowserStartupError as e:
            session.fail()
            await self.broadcaster.broadcast(AnalysisFailed(session_id=session.id, message=e.message))
            raise
        except Exception as e:
            logger.error(f"[{session.id}] Crawl failed: {e}", exc_info=True)
            session.fail()
            await self.broadcaster.broadcast(AnalysisFailed(session_id=session.id, message=str(e)))
            raise
        finally:
            await session.shutdown()
            if self._active is session:
                self._active = None

        result = session.result()
        if result.cancelled:
            await self.broadcaster.broadcast(
                AnalysisCancelled(session_id=session.id, total_processed=result.total_processed)
            )
        return result

    async def cancel_active(self) -> Optional[str]:
        """
        Cancel whichever session is active, along with any session still
        waiting to replace it.

        Returns:
            The id of the newest cancelled session, or None if nothing was
            running
        """
        cancelled_id = None
        for session in [self._active, *self._starting]:
            if session is not None and session.cancel():
                cancelled_id = session.id
        return cancelled_id

    async def pending_urls(self, domain: str) -> List[FrontierEntryRead]:
        return await self.frontier.pending_urls(domain.lower())

    @staticmethod
    async def _cancel_and_drain(session: CrawlSession) -> None:
        session.cancel()
        # The session's own check() call performs shutdown; wait for it.
        await session.wait_finished()


_session_manager: Optional[SessionManager] = None


def get_session_manager() -> SessionManager:
    """FastAPI dependency returning the process-wide manager."""
    global _session_manager

    if _session_manager is None:
        _session_manager = SessionManager(
            frontier=FrontierService(),
            analyzer=AxePageAnalyzer(),
            broadcaster=broadcaster,
        )
    return _session_manager
