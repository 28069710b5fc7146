from __future__ import annotations

import asyncio
from collections import defaultdict
import contextlib
import logging
from typing import Awaitable, Callable
from uuid import uuid4

from redis.asyncio import Redis

from skillnet.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

MessageCallback = Callable[[str, str], Awaitable[None]]


class PubSubBus:
    """join/broadcast/listen primitives the skill transports are built on."""

    def __init__(self, identity: str | None = None) -> None:
        self.identity: str = identity or uuid4().hex
        self._callbacks: dict[str, list[MessageCallback]] = defaultdict(list)
        self._tasks: set[asyncio.Task] = set()

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks.clear()

    async def subscribe(self, channel: str, callback: MessageCallback) -> None:
        self._callbacks[channel].append(callback)

    async def publish(self, channel: str, payload: str) -> None:
        raise NotImplementedError

    def subscribed_channels(self) -> list[str]:
        return list(self._callbacks.keys())

    def _deliver(self, channel: str, payload: str) -> None:
        for callback in list(self._callbacks.get(channel, [])):
            task = asyncio.create_task(self._run_callback(callback, channel, payload))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    @staticmethod
    async def _run_callback(callback: MessageCallback, channel: str, payload: str) -> None:
        try:
            await callback(channel, payload)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("pubsub callback failed", extra={"context": {"component": "pubsub", "channel": channel}})

    async def drain(self) -> None:
        """Wait until every in-flight delivery task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class LocalPubSubBus(PubSubBus):
    """In-process bus: every publish is delivered to local subscribers only."""

    def __init__(self, identity: str | None = None) -> None:
        super().__init__(identity)
        self.published: list[tuple[str, str]] = []

    async def publish(self, channel: str, payload: str) -> None:
        self.published.append((channel, payload))
        self._deliver(channel, payload)


class RedisPubSubBus(PubSubBus):
    def __init__(self, redis_url: str, identity: str | None = None, poll_timeout: float = 1.0) -> None:
        super().__init__(identity)
        self._redis_url = redis_url
        self._poll_timeout = max(0.05, float(poll_timeout))
        self._redis: Redis | None = None
        self._pubsub = None
        self._listener_task: asyncio.Task | None = None
        self.max_retry_delay = 30.0

    def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = Redis.from_url(self._redis_url, decode_responses=True)
        return self._redis

    async def start(self) -> None:
        if self._listener_task and not self._listener_task.done():
            return
        self._pubsub = self._get_redis().pubsub()
        channels = self.subscribed_channels()
        if channels:
            await self._pubsub.subscribe(*channels)
        self._listener_task = asyncio.create_task(self._listen())

    async def stop(self) -> None:
        if self._listener_task:
            self._listener_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._listener_task
            self._listener_task = None
        await super().stop()
        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def subscribe(self, channel: str, callback: MessageCallback) -> None:
        is_new = channel not in self._callbacks
        await super().subscribe(channel, callback)
        if is_new and self._pubsub is not None:
            await self._pubsub.subscribe(channel)

    async def publish(self, channel: str, payload: str) -> None:
        await self._get_redis().publish(channel, payload)

    async def _listen(self) -> None:
        retry_delay = self._poll_timeout
        while True:
            try:
                if not self._pubsub.subscribed:
                    await asyncio.sleep(self._poll_timeout)
                    continue
                message = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=self._poll_timeout)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning(
                    "pubsub listener error, retrying",
                    exc_info=True,
                    extra={"context": {"component": "pubsub", "error": str(exc), "retry_in": retry_delay}},
                )
                await asyncio.sleep(retry_delay)
                retry_delay = min(retry_delay * 2, self.max_retry_delay)
                continue
            retry_delay = self._poll_timeout
            if not message:
                await asyncio.sleep(0.05)
                continue
            channel = str(message.get("channel") or "")
            data = message.get("data")
            if not channel or data is None:
                continue
            self._deliver(channel, str(data))


def build_bus(config: Settings | None = None) -> PubSubBus:
    cfg = config or default_settings
    identity = cfg.NODE_IDENTITY or None
    backend = str(cfg.PUBSUB_BACKEND or "").strip().lower()
    if backend == "memory":
        return LocalPubSubBus(identity=identity)
    if backend == "redis":
        return RedisPubSubBus(cfg.REDIS_URL, identity=identity, poll_timeout=cfg.PUBSUB_POLL_TIMEOUT_SECONDS)
    raise ValueError(f"Unsupported PUBSUB_BACKEND: {cfg.PUBSUB_BACKEND}")
