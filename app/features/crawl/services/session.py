"""
Crawl session: identity, cancellation and resource ownership of one crawl run.

State machine:
    CREATED -> RUNNING -> COMPLETED
                       -> CANCELLING -> CANCELLED
                       -> FAILED

Cancellation is cooperative. ``cancel()`` only raises the token flag; tasks
check it at their checkpoints and in-flight work is allowed to finish. The
session is finalized by ``shutdown()``, which waits for every tracked task
and then releases the browser pool exactly once.
"""
import asyncio
import enum
from typing import Coroutine, List, Optional, Set

from uuid_extension import uuid7

from app.features.crawl.schemas.crawl import ActiveSession, CrawlResult, Issue
from app.features.crawl.services.browser_pool import PagePool
from app.platform.exceptions import CrawlCancelled
from app.platform.logger import get_logger

logger = get_logger(__name__)

FAILED_LABEL_SUFFIX = " (failed)"


class SessionState(enum.Enum):
    created = "created"
    running = "running"
    cancelling = "cancelling"
    completed = "completed"
    cancelled = "cancelled"
    failed = "failed"


TERMINAL_STATES = {SessionState.completed, SessionState.cancelled, SessionState.failed}


class CancellationToken:
    """Monotonic false -> true flag shared by every task of a session."""

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def checkpoint(self) -> None:
        """Raise CrawlCancelled if cancellation was requested."""
        if self._event.is_set():
            raise CrawlCancelled("Crawl cancelled")


class TaskTracker:
    """Wait-group over the in-flight asyncio tasks of a session."""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def __len__(self) -> int:
        return len(self._tasks)

    async def wait(self) -> None:
        """Barrier: return once every task registered so far has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class CrawlSession:
    """One crawl run. Owns its page pool and task set exclusively."""

    def __init__(self, domain: str, seed_url: str, pages: Optional[PagePool] = None):
        self.id = str(uuid7())
        self.domain = domain
        self.seed_url = seed_url
        self.state = SessionState.created

        self.token = CancellationToken()
        self.tasks = TaskTracker()
        self.pages = pages if pages is not None else PagePool()

        self.issues: List[Issue] = []
        self.processed_urls: List[str] = []

        self._finished = asyncio.Event()
        self._shutdown_lock = asyncio.Lock()

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def start(self) -> None:
        """CREATED -> RUNNING on the first batch dispatch."""
        if self.state == SessionState.created:
            self.state = SessionState.running
            logger.info(f"[{self.id}] Session running for {self.domain}")

    def cancel(self) -> bool:
        """
        Request cooperative cancellation.

        Returns:
            False if the session had already finished
        """
        if self.state in TERMINAL_STATES:
            return False

        self.token.cancel()
        if self.state in (SessionState.created, SessionState.running):
            self.state = SessionState.cancelling
        logger.info(f"[{self.id}] Cancellation requested ({len(self.tasks)} tasks in flight)")
        return True

    def fail(self) -> None:
        self.token.cancel()
        self.state = SessionState.failed

    def record(self, url: str, issues: List[Issue], failed: bool = False) -> None:
        """Append one settled page to the aggregate, in completion order."""
        self.processed_urls.append(f"{url}{FAILED_LABEL_SUFFIX}" if failed else url)
        self.issues.extend(issues)

    async def shutdown(self) -> None:
        """
        Drain in-flight tasks, release the browser and settle the final state.

        Safe to call more than once; only the first call releases anything.
        """
        async with self._shutdown_lock:
            if self._finished.is_set():
                return

            await self.tasks.wait()
            await self.pages.close()

            if self.state != SessionState.failed:
                self.state = SessionState.cancelled if self.token.cancelled else SessionState.completed

            self._finished.set()
            logger.info(f"[{self.id}] Session {self.state.value}, processed {len(self.processed_urls)} URLs")

    async def wait_finished(self) -> None:
        await self._finished.wait()

    def result(self) -> CrawlResult:
        return CrawlResult(
            session_id=self.id,
            domain=self.domain,
            issues=list(self.issues),
            processed_urls=list(self.processed_urls),
            total_processed=len(self.processed_urls),
            cancelled=self.token.cancelled and self.state != SessionState.failed,
        )

    def describe(self) -> ActiveSession:
        return ActiveSession(
            session_id=self.id,
            domain=self.domain,
            seed_url=self.seed_url,
            state=self.state.value,
            in_flight=len(self.tasks),
        )
