"""
Progress Broadcaster Tests
"""
import asyncio

import pytest

from app.features.crawl.schemas.crawl import ProcessingUrl, UrlCompleted
from tests.fakes import RecordingSubscriber, make_issue


class BrokenSubscriber:
    async def send_json(self, data):
        raise ConnectionError("socket closed")


class SlowSubscriber(RecordingSubscriber):
    async def send_json(self, data):
        await asyncio.sleep(0)
        await super().send_json(data)


class TestProgressBroadcaster:
    @pytest.mark.asyncio
    async def test_fan_out_to_every_subscriber(self, broadcaster):
        first, second = RecordingSubscriber(), RecordingSubscriber()
        await broadcaster.connect(first)
        await broadcaster.connect(second)

        delivered = await broadcaster.broadcast(ProcessingUrl(session_id="s1", url="https://example.com/"))

        assert delivered == 2
        expected = {"type": "processing_url", "sessionId": "s1", "url": "https://example.com/"}
        assert first.messages == [expected]
        assert second.messages == [expected]

    @pytest.mark.asyncio
    async def test_failed_subscriber_is_dropped(self, broadcaster, subscriber):
        await broadcaster.connect(BrokenSubscriber())

        delivered = await broadcaster.broadcast({"type": "ping"})

        assert delivered == 1
        assert subscriber.messages == [{"type": "ping"}]
        assert broadcaster.get_total_connection_count() == 1

    @pytest.mark.asyncio
    async def test_no_subscribers(self, broadcaster):
        assert await broadcaster.broadcast({"type": "ping"}) == 0

    @pytest.mark.asyncio
    async def test_late_subscriber_sees_only_later_events(self, broadcaster, subscriber):
        await broadcaster.broadcast({"type": "first"})
        late = RecordingSubscriber()
        await broadcaster.connect(late)
        await broadcaster.broadcast({"type": "second"})

        assert subscriber.types() == ["first", "second"]
        assert late.types() == ["second"]

    @pytest.mark.asyncio
    async def test_concurrent_broadcasts_arrive_in_one_order(self, broadcaster):
        first, second = SlowSubscriber(), SlowSubscriber()
        await broadcaster.connect(first)
        await broadcaster.connect(second)

        await asyncio.gather(*[broadcaster.broadcast({"type": f"e{i}"}) for i in range(10)])

        assert len(first.messages) == 10
        assert first.messages == second.messages

    @pytest.mark.asyncio
    async def test_disconnect(self, broadcaster, subscriber):
        await broadcaster.disconnect(subscriber)
        await broadcaster.disconnect(subscriber)

        assert broadcaster.get_total_connection_count() == 0

    @pytest.mark.asyncio
    async def test_events_serialize_with_camel_case_keys(self, broadcaster, subscriber):
        issue = make_issue("https://example.com/")
        await broadcaster.broadcast(
            UrlCompleted(
                session_id="s1",
                url="https://example.com/",
                issues=[issue],
                total_processed=1,
                remaining_urls=3,
            )
        )

        (message,) = subscriber.messages
        assert message["type"] == "url_completed"
        assert message["totalProcessed"] == 1
        assert message["remainingUrls"] == 3
        assert message["issues"][0]["wcagTags"] == ["wcag2a", "wcag111"]
        assert message["issues"][0]["impact"] == "critical"
