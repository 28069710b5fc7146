"""Tests for wire message builders and validation."""

from __future__ import annotations

import re

import pytest

from skillnet.core.errors import ErrorCode
from skillnet.protocol.messages import (
    KNOWN_TYPES,
    MessageType,
    build_call,
    build_chain,
    build_describe,
    build_error,
    build_manifest,
    build_result,
    generate_call_id,
    is_protocol_message,
    validate,
)
from skillnet.services.skills_registry_service import SkillsRegistryService

from tests.conftest import echo_skill


@pytest.fixture
def registry() -> SkillsRegistryService:
    return SkillsRegistryService([echo_skill("hear"), echo_skill("view")])


class TestValidate:
    def test_unknown_type_is_rejected(self, registry):
        result = validate({"type": "skill:bogus", "skill": "hear", "input": {"text": "hi"}}, registry)
        assert result.valid is False
        assert "Unknown message type" in result.error

    def test_non_object_is_rejected(self, registry):
        assert validate(["skill:call"], registry).valid is False
        assert validate(None, registry).error == "Message must be an object."

    def test_valid_call_passes(self, registry):
        assert validate(build_call("hear", "rough day"), registry).valid is True

    def test_call_requires_skill(self, registry):
        msg = build_call("", "rough day")
        assert validate(msg, registry).error == "skill (string) is required."

    def test_call_with_unregistered_skill(self, registry):
        result = validate(build_call("nope", "rough day"), registry)
        assert result.valid is False
        assert result.error == "Unknown skill: nope"

    def test_call_requires_text(self, registry):
        msg = build_call("hear", "rough day")
        msg["input"] = {"context": {}}
        assert validate(msg, registry).error == "input.text (string) is required."

    def test_call_rejects_whitespace_text(self, registry):
        assert validate(build_call("hear", "   "), registry).error == "input.text cannot be empty."

    def test_chain_requires_skills(self, registry):
        result = validate(build_chain([], "rough day"), registry)
        assert result.error == "skills (non-empty array) is required for chain calls."

    def test_chain_rejects_unknown_step(self, registry):
        result = validate(build_chain(["hear", "ghost"], "rough day"), registry)
        assert result.error == "Unknown skill in chain: ghost"

    def test_chain_requires_text(self, registry):
        assert validate(build_chain(["hear"], ""), registry).valid is False

    def test_describe_requires_skill(self, registry):
        assert validate({"type": MessageType.DESCRIBE.value}, registry).valid is False
        assert validate(build_describe("hear"), registry).valid is True

    def test_replies_are_structurally_valid(self, registry):
        assert validate(build_result("hear", "id-1", {"ok": True}), registry).valid is True
        assert validate(build_manifest([]), registry).valid is True


class TestBuilders:
    def test_call_id_shape_and_uniqueness(self):
        ids = {generate_call_id() for _ in range(50)}
        assert len(ids) == 50
        assert all(re.fullmatch(r"5fan-[0-9a-z]+-[0-9a-z]+", item) for item in ids)

    def test_call_merges_context_into_input(self):
        msg = build_call("hear", "rough day", {"userId": "u1"}, call_id="c-1", sender="peer-a")
        assert msg["type"] == "skill:call"
        assert msg["callId"] == "c-1"
        assert msg["input"] == {"text": "rough day", "userId": "u1"}
        assert msg["from"] == "peer-a"

    def test_error_carries_code_and_step(self):
        msg = build_error("chain", "c-2", "Rate limited", ErrorCode.RATE_LIMITED, step=3)
        assert msg["type"] == "skill:error"
        assert msg["code"] == "RATE_LIMITED"
        assert msg["step"] == 3

    def test_error_without_skill_uses_placeholder(self):
        msg = build_error(None, None, "boom")
        assert msg["skill"] == "unknown"
        assert msg["code"] == "SKILL_ERROR"
        assert "step" not in msg

    def test_manifest_lists_skills(self):
        msg = build_manifest([{"name": "hear"}], description="five brains")
        assert msg["type"] == "skill:manifest"
        assert msg["provider"] == "5fan"
        assert msg["skills"] == [{"name": "hear"}]


def test_protocol_message_detection():
    assert is_protocol_message({"type": "skill:call"})
    assert is_protocol_message({"type": "skill:something-new"})
    assert not is_protocol_message({"type": "chat:message"})
    assert not is_protocol_message("skill:call")
    assert KNOWN_TYPES == {item.value for item in MessageType}
