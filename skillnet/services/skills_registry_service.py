from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Iterable, Mapping, Union

from skillnet.core.config import settings
from skillnet.protocol.messages import build_manifest, build_skill_description

SkillOutput = Union[dict, Awaitable[dict]]
SkillHandler = Callable[[dict], SkillOutput]


class AccessTier(str, Enum):
    PUBLIC = "public"
    INTERNAL = "internal"


def skill_channel(name: str, prefix: str | None = None) -> str:
    return f"{prefix if prefix is not None else settings.SKILL_CHANNEL_PREFIX}{name}"


def text_input_schema(description: str, **extra_properties: dict) -> dict:
    return {
        "type": "object",
        "properties": {
            "text": {"type": "string", "description": description},
            **extra_properties,
        },
        "required": ["text"],
    }


@dataclass(frozen=True)
class SkillDefinition:
    name: str
    channel: str
    handler: SkillHandler = field(repr=False, compare=False)
    access_tier: AccessTier = AccessTier.PUBLIC
    input_contract: Mapping[str, Any] = field(default_factory=dict)
    output_contract: Mapping[str, Any] = field(default_factory=dict)
    title: str = ""
    description: str = ""
    version: str = "1.0.0"
    chains_with: tuple[str, ...] = ()

    @property
    def is_internal(self) -> bool:
        return self.access_tier is AccessTier.INTERNAL

    def summary(self) -> dict:
        return {
            "name": self.name,
            "channel": self.channel,
            "accessTier": self.access_tier.value,
            "title": self.title,
            "description": self.description,
        }

    def describe(self) -> dict:
        return {
            **self.summary(),
            "version": self.version,
            "inputContract": dict(self.input_contract),
            "outputContract": dict(self.output_contract),
            "chainsWith": list(self.chains_with),
        }


class SkillsRegistryService:
    """Read-only catalog of skills, keyed by name. Built once at startup."""

    REGISTRY_DESCRIPTION = "Five Brains Agentic Network — emotional intelligence for consumer-facing products."

    def __init__(self, definitions: Iterable[SkillDefinition]) -> None:
        skills: dict[str, SkillDefinition] = {}
        for definition in definitions:
            if definition.name in skills:
                raise ValueError(f"Duplicate skill name: {definition.name}")
            skills[definition.name] = definition
        self._skills: Mapping[str, SkillDefinition] = MappingProxyType(skills)

    def get(self, name: str) -> SkillDefinition | None:
        return self._skills.get(str(name or "").strip())

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    def list(self) -> list[SkillDefinition]:
        return list(self._skills.values())

    def names(self) -> list[str]:
        return list(self._skills.keys())

    def channel_for(self, name: str) -> str | None:
        definition = self.get(name)
        return definition.channel if definition else None

    def channels(self) -> list[str]:
        seen: list[str] = []
        for definition in self._skills.values():
            if definition.channel not in seen:
                seen.append(definition.channel)
        return seen

    def manifest_entries(self) -> list[dict]:
        return [definition.summary() for definition in self._skills.values()]

    def describe(self, name: str) -> dict | None:
        definition = self.get(name)
        return definition.describe() if definition else None

    def manifest(self) -> dict:
        return build_manifest(self.manifest_entries(), description=self.REGISTRY_DESCRIPTION)

    def description_message(self, name: str, call_id: str | None = None) -> dict | None:
        info = self.describe(name)
        return build_skill_description(info, call_id) if info is not None else None

    def __len__(self) -> int:
        return len(self._skills)
