"""Tests for manifest broadcasting and node lifecycle."""

from __future__ import annotations

import asyncio
import inspect
import json
import threading
from unittest.mock import AsyncMock

import pytest

from skillnet.services.manifest_broadcaster import ManifestBroadcaster, SkillSchedulerService
from skillnet.services.pubsub_service import LocalPubSubBus, RedisPubSubBus, build_bus
from skillnet.services.skill_node_service import SkillNode
from skillnet.skills import build_default_registry

from tests.conftest import NODE_IDENTITY


@pytest.fixture
def bus() -> LocalPubSubBus:
    return LocalPubSubBus(identity=NODE_IDENTITY)


@pytest.fixture
def broadcaster(test_settings, bus) -> ManifestBroadcaster:
    return ManifestBroadcaster(bus, build_default_registry(test_settings), test_settings.SKILL_DISCOVERY_CHANNEL)


async def test_broadcast_publishes_full_catalog(broadcaster, bus):
    await broadcaster.broadcast_manifest()

    channel, raw = bus.published[-1]
    manifest = json.loads(raw)
    assert channel == "5fan-skills"
    assert manifest["type"] == "skill:manifest"
    assert manifest["from"] == NODE_IDENTITY
    assert len(manifest["skills"]) == 11
    assert {"name": "view", "channel": "5fan-skill-view"}.items() <= manifest["skills"][4].items()


async def test_broadcast_failure_is_logged_not_raised(broadcaster, bus, monkeypatch):
    monkeypatch.setattr(bus, "publish", AsyncMock(side_effect=ConnectionError("redis down")))
    await broadcaster.broadcast_manifest()
    bus.publish.assert_awaited_once()


def test_describe(broadcaster):
    reply = broadcaster.describe("hear")
    assert reply["type"] == "skill:manifest"
    assert reply["skill"]["name"] == "hear"
    assert broadcaster.describe("ghost") is None
    assert broadcaster.describe(None) is None


def test_build_bus_selects_backend(test_settings):
    assert isinstance(build_bus(test_settings), LocalPubSubBus)
    assert isinstance(build_bus(test_settings.model_copy(update={"PUBSUB_BACKEND": "redis"})), RedisPubSubBus)
    with pytest.raises(ValueError, match="Unsupported PUBSUB_BACKEND"):
        build_bus(test_settings.model_copy(update={"PUBSUB_BACKEND": "kafka"}))


async def test_node_start_and_stop(test_settings):
    bus = LocalPubSubBus(identity=NODE_IDENTITY)
    node = SkillNode(config=test_settings, bus=bus)

    await node.start()
    try:
        assert "5fan-skill-hear" in bus.subscribed_channels()
        assert bus.published[0][0] == "5fan-skills"
        assert node.scheduler.scheduler.get_job("global_manifest_broadcast") is not None
        sweep_job = node.scheduler.scheduler.get_job("global_rate_window_sweep")
        assert sweep_job is not None
        assert inspect.iscoroutinefunction(sweep_job.func)
        assert node.dispatcher.context.access_control.node_identity == NODE_IDENTITY
    finally:
        await node.stop()

    assert node.scheduler.scheduler.running is False


async def test_node_respects_disabled_components(test_settings):
    config = test_settings.model_copy(update={"CHANNEL_LISTENER_ENABLED": False, "MANIFEST_BROADCAST_ENABLED": False})
    bus = LocalPubSubBus(identity=NODE_IDENTITY)
    node = SkillNode(config=config, bus=bus)

    await node.start()
    try:
        assert bus.subscribed_channels() == []
        assert bus.published == []
        assert node.scheduler.scheduler.get_job("global_manifest_broadcast") is None
        assert node.scheduler.scheduler.get_job("global_rate_window_sweep") is not None
    finally:
        await node.stop()


async def test_sweep_job_runs_on_the_event_loop_thread():
    loop_thread = threading.get_ident()
    seen_threads: list[int] = []

    def sweep() -> int:
        seen_threads.append(threading.get_ident())
        return 0

    scheduler = SkillSchedulerService()
    scheduler.start(broadcaster=None, manifest_interval_seconds=300, sweep=sweep, sweep_interval_seconds=1.0)
    try:
        await asyncio.sleep(1.6)
    finally:
        scheduler.shutdown()

    assert seen_threads
    assert set(seen_threads) == {loop_thread}
