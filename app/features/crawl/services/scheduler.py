import asyncio
from typing import Optional

from app.features.crawl.schemas.crawl import (
    CrawlResult,
    FrontierEntryRead,
    PageAnalysis,
    ProcessingUrl,
    UrlCompleted,
)
from app.features.crawl.services.frontier import FrontierService
from app.features.crawl.services.page_analyzer import PageAnalyzer
from app.features.crawl.services.session import CrawlSession
from app.platform.config import settings
from app.platform.exceptions import BrowserStartupError, CrawlCancelled
from app.platform.logger import get_logger
from app.platform.websocket_manager import ProgressBroadcaster

logger = get_logger(__name__)


class BatchScheduler:
    """
    Drives a session to completion in bounded-size batches.

    Pages of one batch are analyzed concurrently, one browser page each;
    batches run one after another. Per-URL failures stay inside their task.
    """

    def __init__(
        self,
        frontier: FrontierService,
        analyzer: PageAnalyzer,
        broadcaster: ProgressBroadcaster,
        batch_size: int = settings.CRAWL_BATCH_SIZE,
    ):
        self.frontier = frontier
        self.analyzer = analyzer
        self.broadcaster = broadcaster
        self.batch_size = batch_size

    async def run_to_completion(self, session: CrawlSession) -> CrawlResult:
        """
        Claim and analyze batches until the frontier is empty or the session
        is cancelled.

        Raises:
            BrowserStartupError: if the session's browser cannot be started;
                the rest of the batch still settles first
        """
        batch_number = 0

        while not session.cancelled:
            batch = await self.frontier.claim_batch(session.domain, self.batch_size, claimant=session.id)
            if not batch:
                logger.info(f"[{session.id}] Frontier exhausted for {session.domain}")
                break

            batch_number += 1
            session.start()
            logger.info(f"[{session.id}] Batch {batch_number}: {len(batch)} URLs")

            tasks = [session.tasks.spawn(self._process_entry(session, entry)) for entry in batch]
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)

            fatal = next((o for o in outcomes if isinstance(o, BrowserStartupError)), None)
            if fatal is not None:
                session.fail()
                raise fatal

            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    logger.error(f"[{session.id}] Unexpected task error: {outcome}", exc_info=outcome)

        return session.result()

    async def _process_entry(self, session: CrawlSession, entry: FrontierEntryRead) -> Optional[PageAnalysis]:
        url = entry.url

        if session.cancelled:
            logger.debug(f"[{session.id}] Skipping {url}: cancelled")
            return None

        try:
            async with session.pages.page() as page:
                # Cancellation may land while waiting for a free page
                session.token.checkpoint()
                await self.broadcaster.broadcast(ProcessingUrl(session_id=session.id, url=url))
                analysis = await self.analyzer.analyze(page, url, session.token)
        except CrawlCancelled:
            logger.info(f"[{session.id}] Abandoned {url} at a cancellation checkpoint")
            return None
        except BrowserStartupError:
            raise
        except Exception as e:
            logger.warning(f"[{session.id}] Analysis of {url} failed: {e}", exc_info=True)
            analysis = PageAnalysis.failure(url, str(e))

        marked = await self.frontier.mark_visited(url, session.domain, failed=analysis.failed, error=analysis.error)
        if not marked:
            logger.warning(f"[{session.id}] {url} was already visited")
            return analysis

        if not analysis.failed:
            for link in analysis.links:
                await self.frontier.discover(link, url, session.domain)

        issues = [] if analysis.failed else analysis.issues
        session.record(url, issues, failed=analysis.failed)

        await self.broadcaster.broadcast(
            UrlCompleted(
                session_id=session.id,
                url=url,
                issues=issues,
                total_processed=await self.frontier.processed_count(session.domain),
                remaining_urls=await self.frontier.remaining_count(session.domain),
                failed=analysis.failed,
            )
        )
        return analysis
