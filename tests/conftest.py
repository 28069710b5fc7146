"""
Shared test fixtures for pytest.

- test_settings: Settings with the in-process bus and a fixed node identity
- clock: Manually advanced monotonic clock for rate windows
- make_dispatcher: Builds an isolated DispatchService over given skill definitions
- echo_skill / spy_skill: Small SkillDefinition factories
"""

from __future__ import annotations

from typing import Any, Callable
from unittest.mock import MagicMock

import pytest

from skillnet.core.config import Settings
from skillnet.services.dispatch_service import DispatchContext, DispatchService
from skillnet.services.skills_registry_service import (
    AccessTier,
    SkillDefinition,
    SkillsRegistryService,
    skill_channel,
)

NODE_IDENTITY = "node-self-0001"


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        PUBSUB_BACKEND="memory",
        NODE_IDENTITY=NODE_IDENTITY,
        LLM_ENABLED=False,
        RATE_LIMIT_MAX_CALLS=30,
        RATE_LIMIT_WINDOW_SECONDS=60.0,
        MANIFEST_BROADCAST_ENABLED=True,
        CHANNEL_LISTENER_ENABLED=True,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def make_skill(
    name: str,
    handler: Callable[[dict], Any],
    *,
    access_tier: AccessTier = AccessTier.PUBLIC,
) -> SkillDefinition:
    return SkillDefinition(
        name=name,
        channel=skill_channel(name, "test-skill-"),
        handler=handler,
        access_tier=access_tier,
        title=name.title(),
        description=f"{name} test skill",
    )


def echo_skill(name: str, **kwargs: Any) -> SkillDefinition:
    def handle(payload: dict) -> dict:
        return {"ok": True, "echo": payload.get("text"), "seen": sorted(payload.get("chainResults", {}))}

    return make_skill(name, handle, **kwargs)


def spy_skill(name: str, output: dict | None = None, **kwargs: Any) -> tuple[SkillDefinition, MagicMock]:
    spy = MagicMock(return_value=output or {"ok": True, "skill": name})
    return make_skill(name, spy, **kwargs), spy


@pytest.fixture
def make_dispatcher(test_settings: Settings, clock: FakeClock):
    def _make(
        definitions: list[SkillDefinition],
        *,
        config: Settings | None = None,
        aggregator=None,
    ) -> DispatchService:
        context = DispatchContext.from_settings(
            SkillsRegistryService(definitions),
            aggregator=aggregator,
            config=config or test_settings,
            clock=clock,
            node_identity=NODE_IDENTITY,
        )
        return DispatchService(context)

    return _make
