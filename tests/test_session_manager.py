"""
Session Manager Tests

One active crawl per process, replacement semantics and cleanup on failure.
"""
import asyncio

import pytest

from app.features.crawl.services.browser_pool import PagePool
from app.features.crawl.services.session import SessionState
from app.features.crawl.services.session_manager import SessionManager
from app.platform.exceptions import BrowserStartupError, InvalidURLError
from tests.fakes import StubAnalyzer, fake_pool_factory, make_issue


class GatedAnalyzer(StubAnalyzer):
    """Blocks on the first URL of ``gated_domain`` until released."""

    def __init__(self, gated_domain, **kwargs):
        super().__init__(**kwargs)
        self.gated_domain = gated_domain
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def analyze(self, page, url, token):
        if self.gated_domain in url and not self.entered.is_set():
            self.entered.set()
            await self.release.wait()
        return await super().analyze(page, url, token)


def make_manager(frontier, broadcaster, analyzer, log=None, pool_factory=None):
    return SessionManager(
        frontier=frontier,
        analyzer=analyzer,
        broadcaster=broadcaster,
        pool_factory=pool_factory or fake_pool_factory(log),
        batch_size=3,
    )


class TestCheck:
    @pytest.mark.asyncio
    async def test_completed_crawl(self, frontier, broadcaster, subscriber):
        analyzer = StubAnalyzer(
            links={"https://a.test/": ["https://a.test/b"]},
            issues={"https://a.test/b": [make_issue("https://a.test/b")]},
        )
        manager = make_manager(frontier, broadcaster, analyzer)

        result = await manager.check("a.test")

        assert result.domain == "a.test"
        assert result.processed_urls == ["https://a.test/", "https://a.test/b"]
        assert len(result.issues) == 1
        assert result.cancelled is False
        assert manager.active is None

        started = subscriber.messages[0]
        assert started == {
            "type": "analysis_started",
            "sessionId": result.session_id,
            "domain": "a.test",
            "initialUrl": "https://a.test/",
        }
        assert "analysis_cancelled" not in subscriber.types()

    @pytest.mark.asyncio
    async def test_previous_results_do_not_leak_into_new_crawl(self, frontier, broadcaster):
        analyzer = StubAnalyzer(links={"https://a.test/": ["https://a.test/b"]})
        manager = make_manager(frontier, broadcaster, analyzer)

        await manager.check("https://a.test/")
        second = await manager.check("https://a.test/")

        assert second.processed_urls == ["https://a.test/", "https://a.test/b"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["", "ftp://a.test/file", "https://", "https://a.test/brochure.pdf"])
    async def test_invalid_url_has_no_side_effects(self, frontier, broadcaster, subscriber, url):
        log = []
        analyzer = StubAnalyzer()
        manager = make_manager(frontier, broadcaster, analyzer, log=log)

        with pytest.raises(InvalidURLError):
            await manager.check(url)

        assert subscriber.messages == []
        assert analyzer.calls == []
        assert log == []
        assert manager.active is None

    @pytest.mark.asyncio
    async def test_replacement_drains_previous_session_first(self, frontier, broadcaster, subscriber):
        log = []
        analyzer = GatedAnalyzer("a.test", links={"https://a.test/": ["https://a.test/never"]})
        manager = make_manager(frontier, broadcaster, analyzer, log=log)

        first = asyncio.create_task(manager.check("https://a.test/"))
        await asyncio.wait_for(analyzer.entered.wait(), timeout=5)
        first_session = manager.active

        second = asyncio.create_task(manager.check("https://b.test/"))
        await asyncio.sleep(0.05)

        # the old session is cancelling but its in-flight page holds the new one back
        assert first_session.state == SessionState.cancelling
        assert not second.done()
        assert all("pool2" not in entry for entry in log)

        analyzer.release.set()
        first_result = await asyncio.wait_for(first, timeout=5)
        second_result = await asyncio.wait_for(second, timeout=5)

        assert first_result.cancelled is True
        assert first_result.processed_urls == ["https://a.test/"]
        assert "https://a.test/never" not in analyzer.calls
        assert second_result.cancelled is False
        assert second_result.processed_urls == ["https://b.test/"]

        assert log.index("quit:pool1.1") < log.index("create:pool2.1")
        assert first_session.state == SessionState.cancelled

        types = subscriber.types()
        assert types.index("analysis_cancelled") < types.index("analysis_started", 1)

    @pytest.mark.asyncio
    async def test_browser_startup_failure_cleans_up(self, frontier, broadcaster, subscriber):
        pools = []

        def broken_driver():
            raise RuntimeError("chrome not found")

        def pool_factory():
            pool = PagePool(max_size=2, driver_factory=broken_driver)
            pools.append(pool)
            return pool

        manager = make_manager(frontier, broadcaster, StubAnalyzer(), pool_factory=pool_factory)

        with pytest.raises(BrowserStartupError):
            await manager.check("https://a.test/")

        assert manager.active is None
        assert pools[0].closed is True
        assert subscriber.types()[-1] == "analysis_failed"

        # the manager accepts the next crawl
        manager.pool_factory = fake_pool_factory()
        result = await manager.check("https://a.test/")
        assert result.processed_urls == ["https://a.test/"]


class TestCancelActive:
    @pytest.mark.asyncio
    async def test_nothing_to_cancel(self, frontier, broadcaster):
        manager = make_manager(frontier, broadcaster, StubAnalyzer())
        assert await manager.cancel_active() is None

    @pytest.mark.asyncio
    async def test_cancel_running_crawl(self, frontier, broadcaster, subscriber):
        analyzer = GatedAnalyzer("a.test", links={"https://a.test/": ["https://a.test/b"]})
        manager = make_manager(frontier, broadcaster, analyzer)

        crawl = asyncio.create_task(manager.check("https://a.test/"))
        await asyncio.wait_for(analyzer.entered.wait(), timeout=5)

        session_id = await manager.cancel_active()
        assert session_id == manager.active.id
        assert await manager.cancel_active() == session_id

        analyzer.release.set()
        result = await asyncio.wait_for(crawl, timeout=5)

        assert result.session_id == session_id
        assert result.cancelled is True
        assert result.processed_urls == ["https://a.test/"]
        assert subscriber.messages[-1] == {
            "type": "analysis_cancelled",
            "sessionId": session_id,
            "totalProcessed": 1,
        }

    @pytest.mark.asyncio
    async def test_cancel_reaches_crawl_waiting_to_start(self, frontier, broadcaster, subscriber):
        log = []
        analyzer = GatedAnalyzer("a.test", links={"https://a.test/": ["https://a.test/never"]})
        manager = make_manager(frontier, broadcaster, analyzer, log=log)

        first = asyncio.create_task(manager.check("https://a.test/"))
        await asyncio.wait_for(analyzer.entered.wait(), timeout=5)
        first_session = manager.active

        second = asyncio.create_task(manager.check("https://b.test/"))
        await asyncio.sleep(0.05)

        cancelled_id = await manager.cancel_active()
        assert cancelled_id is not None
        assert cancelled_id != first_session.id

        analyzer.release.set()
        first_result = await asyncio.wait_for(first, timeout=5)
        second_result = await asyncio.wait_for(second, timeout=5)

        assert first_result.cancelled is True
        assert second_result.session_id == cancelled_id
        assert second_result.cancelled is True
        assert second_result.processed_urls == []
        assert not [url for url in analyzer.calls if "b.test" in url]
        assert await frontier.pending_urls("b.test") == []
        assert all("pool2" not in entry for entry in log)
        assert manager.active is None

        assert subscriber.types().count("analysis_started") == 1
        cancelled = [m for m in subscriber.messages if m["type"] == "analysis_cancelled"]
        assert {"type": "analysis_cancelled", "sessionId": cancelled_id, "totalProcessed": 0} in cancelled

    @pytest.mark.asyncio
    async def test_pending_urls(self, frontier, broadcaster):
        manager = make_manager(frontier, broadcaster, StubAnalyzer())
        await frontier.seed("https://a.test/", "a.test")

        pending = await manager.pending_urls("A.TEST")
        assert [entry.url for entry in pending] == ["https://a.test/"]
