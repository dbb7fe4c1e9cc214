"""
Progress Broadcaster

Fans crawl progress events out to every connected observer in real time.
Delivery is best-effort: no acknowledgments and no replay, so an observer
only sees events emitted after it connected.
"""

import asyncio
from typing import Any, List, Protocol, Union

from fastapi import WebSocket
from pydantic import BaseModel
from starlette.websockets import WebSocketState

from app.platform.logger import get_logger

logger = get_logger(__name__)


class Subscriber(Protocol):
    """Anything that can receive a JSON payload; WebSockets qualify."""

    async def send_json(self, data: Any) -> None: ...


class ProgressBroadcaster:
    """
    Publish/subscribe hub for the shared progress channel.

    Holds only the set of active subscribers; each subscriber owns its own
    connection lifecycle. Broadcasts are serialized so every subscriber
    receives events in the order they were emitted.
    """

    def __init__(self):
        self.active_connections: List[Subscriber] = []
        self._send_lock = asyncio.Lock()

    async def connect(self, subscriber: Subscriber):
        """
        Register a new subscriber. WebSockets are accepted first.

        Args:
            subscriber: The WebSocket (or other JSON sink) to register
        """
        if isinstance(subscriber, WebSocket):
            await subscriber.accept()

        self.active_connections.append(subscriber)
        logger.info(f"Progress observer connected. Total connections: {len(self.active_connections)}")

    async def disconnect(self, subscriber: Subscriber):
        """Remove a subscriber; unknown subscribers are ignored."""
        if subscriber in self.active_connections:
            self.active_connections.remove(subscriber)
            logger.info(
                f"Progress observer disconnected. Remaining connections: {len(self.active_connections)}"
            )

    async def broadcast(self, event: Union[BaseModel, dict]) -> int:
        """
        Send an event to every currently connected subscriber.

        A failed send drops that subscriber only; the crawl and the other
        subscribers are unaffected.

        Args:
            event: A progress event model or an already-serialized dict

        Returns:
            Number of successful deliveries
        """
        message = event.model_dump(mode="json", by_alias=True) if isinstance(event, BaseModel) else event

        async with self._send_lock:
            successful_sends = 0
            failed_connections = []

            for connection in list(self.active_connections):
                try:
                    if isinstance(connection, WebSocket) and connection.client_state != WebSocketState.CONNECTED:
                        failed_connections.append(connection)
                        continue
                    await connection.send_json(message)
                    successful_sends += 1
                except Exception as e:
                    logger.warning(f"Failed to deliver {message.get('type')} event: {e}")
                    failed_connections.append(connection)

            for failed_connection in failed_connections:
                await self.disconnect(failed_connection)

        logger.debug(
            f"Broadcast {message.get('type')} to {successful_sends} connections, "
            f"failed: {len(failed_connections)}"
        )
        return successful_sends

    def get_total_connection_count(self) -> int:
        """Get the total number of active subscribers."""
        return len(self.active_connections)


# Global singleton instance
broadcaster = ProgressBroadcaster()
