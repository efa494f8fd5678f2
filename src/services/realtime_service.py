"""Realtime sync coordinator: per-project channels with fan-out to every member.

The only consistency mechanism is rebroadcast: after each store write the
canonical record is published to every member of the project channel,
including the client that made the change. There is no merge of concurrent
edits; the last write wins.

When Redis is configured, publishes are mirrored to Redis pub/sub so other
worker processes can deliver them to their own members (see ``RedisRelay``).
"""

import asyncio
import json
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from src.core.config import Constants
from src.core.redis_client import RedisClient, redis_client


logger = logging.getLogger(__name__)

Envelope = dict[str, Any]
EventHandler = Callable[[Envelope], Awaitable[None]]


def channel_for_project(project_id: str) -> str:
    """Name of the channel carrying a project's events."""
    return f"{Constants.REALTIME_CHANNEL_PREFIX}{project_id}"


def redis_channel_for(channel_id: str) -> str:
    """Redis pub/sub channel mirroring a local channel."""
    return f"{Constants.REDIS_RELAY_PREFIX}{channel_id}"


@dataclass
class ChannelMember:
    """A connected client subscribed to one or more channels."""

    client_id: str
    user_id: str
    user_name: str
    send: Callable[[Envelope], Awaitable[None]]


class RealtimeHub:
    """In-process channel registry and event fan-out."""

    def __init__(self, *, redis: RedisClient | None = None, instance_id: str | None = None) -> None:
        self.instance_id = instance_id or uuid.uuid4().hex
        self._redis = redis
        self._channels: dict[str, dict[str, ChannelMember]] = {}
        self._handlers: dict[str, list[EventHandler]] = {}

    def join(self, channel_id: str, member: ChannelMember) -> None:
        """Add a member to a channel. Joining twice replaces the earlier entry.

        No authorization is applied; any connected client may join any project.
        """
        self._channels.setdefault(channel_id, {})[member.client_id] = member
        logger.info("Client joined channel", extra={"channel": channel_id, "client_id": member.client_id})

    def leave(self, channel_id: str, client_id: str) -> bool:
        """Remove a member from a channel; return True if it was a member."""
        members = self._channels.get(channel_id)
        if not members or client_id not in members:
            return False
        del members[client_id]
        if not members:
            del self._channels[channel_id]
        logger.info("Client left channel", extra={"channel": channel_id, "client_id": client_id})
        return True

    def leave_all(self, client_id: str) -> list[str]:
        """Remove a client from every channel; return the channels it left."""
        joined = [channel_id for channel_id, members in self._channels.items() if client_id in members]
        for channel_id in joined:
            self.leave(channel_id, client_id)
        return joined

    def members(self, channel_id: str) -> list[ChannelMember]:
        """Current members of a channel."""
        return list(self._channels.get(channel_id, {}).values())

    def channels_of(self, client_id: str) -> list[str]:
        """Channels a client currently belongs to."""
        return [channel_id for channel_id, members in self._channels.items() if client_id in members]

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        """Register an in-process handler run after each fan-out of ``event_name``."""
        self._handlers.setdefault(event_name, []).append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        """Remove a handler registered with ``subscribe``."""
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def reset(self) -> None:
        """Drop all channels and handlers."""
        self._channels.clear()
        self._handlers.clear()

    async def publish(self, channel_id: str, event_name: str, payload: dict[str, Any]) -> int:
        """Deliver an event to every channel member, then to in-process handlers.

        Returns:
            Number of local members the event reached
        """
        envelope: Envelope = {
            "event": str(event_name),
            "channel": channel_id,
            "payload": payload,
            "emitted_at": datetime.now(UTC).isoformat(),
        }

        delivered = await self.deliver_local(envelope)

        for handler in list(self._handlers.get(str(event_name), [])):
            try:
                await handler(envelope)
            except Exception as e:
                logger.error("Realtime handler failed for %s: %s", event_name, e)

        if self._redis is not None and self._redis.is_available:
            message = json.dumps({"origin": self.instance_id, "envelope": envelope})
            await self._redis.publish(redis_channel_for(channel_id), message)

        logger.debug("Published event", extra={"channel": channel_id, "event": str(event_name), "delivered": delivered})
        return delivered

    async def deliver_local(self, envelope: Envelope) -> int:
        """Send an envelope to this process's members of its channel.

        A member whose send fails is dropped from the channel; the others still
        receive the event.
        """
        channel_id = envelope["channel"]
        members = self.members(channel_id)
        if not members:
            return 0

        results = await asyncio.gather(*(member.send(envelope) for member in members), return_exceptions=True)

        delivered = 0
        for member, result in zip(members, results, strict=True):
            if isinstance(result, Exception):
                logger.warning(
                    "Dropping member after failed send",
                    extra={"channel": channel_id, "client_id": member.client_id, "error": str(result)},
                )
                self.leave(channel_id, member.client_id)
            else:
                delivered += 1
        return delivered


class RedisRelay:
    """Re-delivers events published by other worker processes to local members."""

    def __init__(self, hub: RealtimeHub, client: RedisClient) -> None:
        self._hub = hub
        self._client = client
        self._pubsub: Any = None
        self._task: asyncio.Task[None] | None = None

    @property
    def pattern(self) -> str:
        """Redis pattern matching every project channel."""
        return f"{redis_channel_for(Constants.REALTIME_CHANNEL_PREFIX)}*"

    async def start(self) -> bool:
        """Subscribe and begin listening; return False when Redis is not configured."""
        pubsub = self._client.pubsub()
        if pubsub is None:
            return False
        await pubsub.psubscribe(self.pattern)
        self._pubsub = pubsub
        self._task = asyncio.create_task(self._listen())
        self._task.add_done_callback(self._on_listener_done)
        logger.info("Realtime relay started", extra={"pattern": self.pattern, "instance_id": self._hub.instance_id})
        return True

    async def stop(self) -> None:
        """Cancel the listener and release the pub/sub connection."""
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        if self._pubsub is not None:
            await self._pubsub.punsubscribe()
            await self._pubsub.aclose()
            self._pubsub = None
        logger.info("Realtime relay stopped")

    async def _listen(self) -> None:
        async for message in self._pubsub.listen():
            try:
                await self.handle_message(message)
            except Exception:
                logger.exception("Failed to relay message")

    def _on_listener_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Realtime relay listener stopped: %s", error, exc_info=error)
        else:
            logger.warning("Realtime relay listener stopped: subscription closed")

    async def handle_message(self, message: dict[str, Any]) -> bool:
        """Deliver one Redis message locally; return True if it was delivered.

        Messages that originated in this process are skipped, since the hub
        already delivered them before mirroring.
        """
        if message.get("type") not in ("message", "pmessage"):
            return False

        try:
            data = json.loads(message["data"])
            origin = data["origin"]
            envelope = data["envelope"]
            if not isinstance(envelope, dict) or not isinstance(envelope.get("channel"), str):
                raise ValueError("envelope has no channel")
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring malformed relay message: %s", e)
            return False

        if origin == self._hub.instance_id:
            return False

        await self._hub.deliver_local(envelope)
        return True


# Global hub instance
realtime_hub = RealtimeHub(redis=redis_client)


async def publish_to_project(project_id: str, event_name: str, payload: dict[str, Any]) -> int:
    """Publish an event on a project's channel through the global hub."""
    return await realtime_hub.publish(channel_for_project(project_id), event_name, payload)
