"""Wire messages for skill invocation over pub/sub channels.

Every message is a JSON object with a ``type`` tag in the ``skill:`` namespace,
so listeners sharing a channel with unrelated traffic can skip anything that
isn't theirs. Requests (call, chain, describe) carry a ``callId``; replies
echo it back because they are broadcast on the same channel the request
came in on.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import itertools
import time
from typing import Any, Protocol

from skillnet.core.config import settings
from skillnet.core.errors import ErrorCode

MESSAGE_TYPE_PREFIX = "skill:"


class MessageType(str, Enum):
    CALL = "skill:call"
    RESULT = "skill:result"
    ERROR = "skill:error"
    MANIFEST = "skill:manifest"
    DESCRIBE = "skill:describe"
    CHAIN = "skill:chain"
    CHAIN_RESULT = "skill:chain-result"


KNOWN_TYPES = frozenset(item.value for item in MessageType)


class SkillLookup(Protocol):
    def has(self, name: str) -> bool: ...


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(valid=False, error=error)


_call_counter = itertools.count(1)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _to_base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def generate_call_id() -> str:
    return f"{settings.PROVIDER_NAME}-{_to_base36(_now_ms())}-{_to_base36(next(_call_counter))}"


def _message_type(msg: dict) -> str:
    raw = msg.get("type")
    return raw.value if isinstance(raw, MessageType) else str(raw)


def build_call(skill: str, text: str, context: dict | None = None, call_id: str | None = None, sender: str | None = None) -> dict:
    message = {
        "type": MessageType.CALL.value,
        "skill": skill,
        "callId": call_id or generate_call_id(),
        "input": {"text": text, **(context or {})},
        "ts": _now_ms(),
    }
    if sender:
        message["from"] = sender
    return message


def build_chain(skills: list[str], text: str, context: dict | None = None, call_id: str | None = None, sender: str | None = None) -> dict:
    message = {
        "type": MessageType.CHAIN.value,
        "skills": list(skills),
        "callId": call_id or generate_call_id(),
        "input": {"text": text, **(context or {})},
        "ts": _now_ms(),
    }
    if sender:
        message["from"] = sender
    return message


def build_describe(skill: str, call_id: str | None = None, sender: str | None = None) -> dict:
    message = {
        "type": MessageType.DESCRIBE.value,
        "skill": skill,
        "callId": call_id or generate_call_id(),
        "ts": _now_ms(),
    }
    if sender:
        message["from"] = sender
    return message


def build_result(skill: str, call_id: str | None, output: Any) -> dict:
    return {
        "type": MessageType.RESULT.value,
        "skill": skill,
        "callId": call_id,
        "output": output,
        "ts": _now_ms(),
        "provider": settings.PROVIDER_NAME,
        "version": settings.PROTOCOL_VERSION,
    }


def build_error(
    skill: str | None,
    call_id: str | None,
    error: str,
    code: ErrorCode | str = ErrorCode.SKILL_ERROR,
    step: int | None = None,
) -> dict:
    message = {
        "type": MessageType.ERROR.value,
        "skill": skill or "unknown",
        "callId": call_id,
        "error": error,
        "code": code.value if isinstance(code, ErrorCode) else str(code),
        "ts": _now_ms(),
        "provider": settings.PROVIDER_NAME,
    }
    if step is not None:
        message["step"] = step
    return message


def build_chain_result(call_id: str | None, results: list[dict], synthesized: Any = None) -> dict:
    return {
        "type": MessageType.CHAIN_RESULT.value,
        "callId": call_id,
        "results": results,
        "synthesized": synthesized,
        "ts": _now_ms(),
        "provider": settings.PROVIDER_NAME,
        "version": settings.PROTOCOL_VERSION,
    }


def build_manifest(skills: list[dict], description: str = "") -> dict:
    return {
        "type": MessageType.MANIFEST.value,
        "provider": settings.PROVIDER_NAME,
        "version": settings.PROTOCOL_VERSION,
        "description": description,
        "skills": skills,
        "ts": _now_ms(),
    }


def build_skill_description(skill: dict, call_id: str | None = None) -> dict:
    message = {
        "type": MessageType.MANIFEST.value,
        "provider": settings.PROVIDER_NAME,
        "skill": skill,
        "ts": _now_ms(),
    }
    if call_id:
        message["callId"] = call_id
    return message


def is_protocol_message(msg: object) -> bool:
    if not isinstance(msg, dict):
        return False
    raw = msg.get("type")
    if isinstance(raw, MessageType):
        return True
    return isinstance(raw, str) and raw.startswith(MESSAGE_TYPE_PREFIX)


def _input_text_error(msg: dict) -> str | None:
    payload = msg.get("input")
    text = payload.get("text") if isinstance(payload, dict) else None
    if not isinstance(text, str) or not text:
        return "input.text (string) is required."
    if not text.strip():
        return "input.text cannot be empty."
    return None


def validate(msg: object, registry: SkillLookup) -> ValidationResult:
    """Check a request message against the protocol rules.

    Pure: looks at the message and the registry's membership only.
    """
    if not isinstance(msg, dict):
        return ValidationResult.fail("Message must be an object.")

    msg_type = _message_type(msg)
    if msg_type not in KNOWN_TYPES:
        return ValidationResult.fail(f"Unknown message type: {msg.get('type')}")

    if msg_type == MessageType.CALL.value:
        skill = msg.get("skill")
        if not isinstance(skill, str) or not skill.strip():
            return ValidationResult.fail("skill (string) is required.")
        if not registry.has(skill):
            return ValidationResult.fail(f"Unknown skill: {skill}")
        text_error = _input_text_error(msg)
        if text_error:
            return ValidationResult.fail(text_error)

    elif msg_type == MessageType.CHAIN.value:
        skills = msg.get("skills")
        if not isinstance(skills, list) or not skills:
            return ValidationResult.fail("skills (non-empty array) is required for chain calls.")
        for name in skills:
            if not isinstance(name, str) or not registry.has(name):
                return ValidationResult.fail(f"Unknown skill in chain: {name}")
        text_error = _input_text_error(msg)
        if text_error:
            return ValidationResult.fail(text_error)

    elif msg_type == MessageType.DESCRIBE.value:
        skill = msg.get("skill")
        if not isinstance(skill, str) or not skill.strip():
            return ValidationResult.fail("skill (string) is required.")

    return ValidationResult.ok()
