"""Tests for the Redis-backed bus, with the Redis client mocked out."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from skillnet.services.pubsub_service import RedisPubSubBus

from tests.conftest import NODE_IDENTITY


def _messages(*steps) -> AsyncMock:
    """get_message replacement: yields each step once (raising exceptions), then None."""
    pending = list(steps)

    def next_message(**kwargs):
        if not pending:
            return None
        step = pending.pop(0)
        if isinstance(step, Exception):
            raise step
        return step

    return AsyncMock(side_effect=next_message)


def _incoming(channel: str, data: str) -> dict:
    return {"type": "message", "pattern": None, "channel": channel, "data": data}


@pytest.fixture
def fake_pubsub() -> MagicMock:
    pubsub = MagicMock()
    pubsub.subscribed = True
    pubsub.subscribe = AsyncMock()
    pubsub.aclose = AsyncMock()
    pubsub.get_message = _messages()
    return pubsub


@pytest.fixture
def fake_redis(fake_pubsub) -> MagicMock:
    client = MagicMock()
    client.pubsub.return_value = fake_pubsub
    client.publish = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
async def bus(fake_redis) -> RedisPubSubBus:
    redis_bus = RedisPubSubBus("redis://localhost:6379/0", identity=NODE_IDENTITY, poll_timeout=0.05)
    redis_bus._redis = fake_redis
    redis_bus.max_retry_delay = 0.1
    yield redis_bus
    await redis_bus.stop()


def _recorder() -> tuple[list[tuple[str, str]], asyncio.Event, AsyncMock]:
    received: list[tuple[str, str]] = []
    arrived = asyncio.Event()

    async def on_message(channel: str, payload: str) -> None:
        received.append((channel, payload))
        arrived.set()

    return received, arrived, AsyncMock(side_effect=on_message)


# ---------------------------------------------------------------------------
# Subscriptions and lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    async def test_start_subscribes_channels_registered_earlier(self, bus, fake_pubsub):
        callback = AsyncMock()
        await bus.subscribe("5fan-skill-hear", callback)
        await bus.subscribe("5fan-skills", callback)
        fake_pubsub.subscribe.assert_not_awaited()

        await bus.start()

        fake_pubsub.subscribe.assert_awaited_once_with("5fan-skill-hear", "5fan-skills")

    async def test_subscribe_after_start_joins_once(self, bus, fake_pubsub):
        await bus.start()

        await bus.subscribe("5fan-skill-view", AsyncMock())
        await bus.subscribe("5fan-skill-view", AsyncMock())

        fake_pubsub.subscribe.assert_awaited_once_with("5fan-skill-view")
        assert len(bus._callbacks["5fan-skill-view"]) == 2

    async def test_stop_closes_pubsub_and_client(self, bus, fake_redis, fake_pubsub):
        await bus.start()

        await bus.stop()

        fake_pubsub.aclose.assert_awaited_once()
        fake_redis.aclose.assert_awaited_once()
        assert bus._listener_task is None

    async def test_publish_goes_through_the_client(self, bus, fake_redis):
        await bus.publish("5fan-skills", '{"type": "skill:manifest"}')
        fake_redis.publish.assert_awaited_once_with("5fan-skills", '{"type": "skill:manifest"}')


# ---------------------------------------------------------------------------
# Listener loop
# ---------------------------------------------------------------------------


class TestListener:
    async def test_message_reaches_the_channel_callback(self, bus, fake_pubsub):
        received, arrived, callback = _recorder()
        await bus.subscribe("5fan-skill-hear", callback)
        fake_pubsub.get_message = _messages(_incoming("5fan-skill-hear", '{"type": "skill:call"}'))

        await bus.start()
        await asyncio.wait_for(arrived.wait(), timeout=2)

        assert received == [("5fan-skill-hear", '{"type": "skill:call"}')]

    async def test_messages_without_channel_or_data_are_dropped(self, bus, fake_pubsub):
        received, arrived, callback = _recorder()
        await bus.subscribe("5fan-skill-hear", callback)
        fake_pubsub.get_message = _messages(
            _incoming("", "orphan"),
            {"type": "message", "channel": "5fan-skill-hear", "data": None},
            _incoming("5fan-skill-hear", "kept"),
        )

        await bus.start()
        await asyncio.wait_for(arrived.wait(), timeout=2)

        assert received == [("5fan-skill-hear", "kept")]

    async def test_listener_survives_connection_errors(self, bus, fake_pubsub):
        received, arrived, callback = _recorder()
        await bus.subscribe("5fan-skill-hear", callback)
        fake_pubsub.get_message = _messages(
            RedisConnectionError("connection lost"),
            RedisConnectionError("connection lost"),
            _incoming("5fan-skill-hear", "after reconnect"),
        )

        await bus.start()
        await asyncio.wait_for(arrived.wait(), timeout=2)

        assert received == [("5fan-skill-hear", "after reconnect")]
        assert not bus._listener_task.done()
