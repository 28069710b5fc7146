from __future__ import annotations

from skillnet.core.config import Settings, settings as default_settings
from skillnet.services.llm_bridge import LlmBridge
from skillnet.services.skills_registry_service import (
    AccessTier,
    SkillDefinition,
    SkillsRegistryService,
    skill_channel,
    text_input_schema,
)
from skillnet.skills.brains import BRAINS, brain_handler, curate_consensus
from skillnet.skills.eq_engine import alias_match, crisis_detect, emotion_scan
from skillnet.skills.internal import quality_score, tier_gate
from skillnet.skills.swarm import SWARM_SKILL_NAME, swarm_handler

BRAIN_OUTPUT_CONTRACT = {
    "signal": "0-1 float — signal strength",
    "category": "string — detected category",
    "response": "string — short reply (1-2 sentences)",
    "summary": "string — brief scan summary for chaining",
}

_BRAIN_DESCRIPTIONS = {
    "hear": ("Hear", "Emotion detection, validation, and mirroring."),
    "inspyre": ("Inspyre", "Purpose, resilience and motivation."),
    "flow": ("Flow", "Habits, routines, streaks and restarts."),
    "you": ("You", "Personal patterns, identity and progress."),
    "view": ("View", "Perspective synthesis and decision support."),
}


def build_default_skills(config: Settings | None = None, llm: LlmBridge | None = None) -> list[SkillDefinition]:
    cfg = config or default_settings
    prefix = cfg.SKILL_CHANNEL_PREFIX
    brain_names = list(BRAINS)

    skills: list[SkillDefinition] = []
    for name in brain_names:
        title, description = _BRAIN_DESCRIPTIONS[name]
        skills.append(
            SkillDefinition(
                name=name,
                channel=skill_channel(name, prefix),
                handler=brain_handler(name),
                input_contract=text_input_schema(
                    "The human message to scan.",
                    context={"type": "object", "description": "Optional caller metadata."},
                ),
                output_contract=BRAIN_OUTPUT_CONTRACT,
                title=title,
                description=description,
                version="2.0.0",
                chains_with=tuple(other for other in brain_names if other != name) + (SWARM_SKILL_NAME,),
            )
        )

    skills.extend(
        [
            SkillDefinition(
                name=SWARM_SKILL_NAME,
                channel=cfg.SWARM_SKILL_CHANNEL,
                handler=swarm_handler(llm),
                input_contract=text_input_schema("The human message to analyze across all five brains."),
                output_contract={
                    "dominant": "string — brain with the strongest signal",
                    "consensus": "string — synthesized multi-brain line",
                    "response": "string — best single response",
                    "method": "llm | template",
                    "brainSignals": "object — per-brain signal and category",
                    "tags": "string[] — unique markers across brains",
                    "isCrisis": "boolean",
                },
                title="5FAN Swarm",
                description="Five-brain consensus in a single invocation.",
                version="2.0.0",
            ),
            SkillDefinition(
                name="emotion-scan",
                channel=skill_channel("emotion-scan", prefix),
                handler=emotion_scan,
                input_contract=text_input_schema("Free text to scan for emotional content."),
                output_contract={
                    "matches": "object[] — matched emotions with hiScale, family, valence",
                    "families": "object[] — unique emotion families hit",
                    "hiScale": "number — average Hi Scale (1-5)",
                    "dominantCategory": "hi | neutral | opportunity",
                },
                title="Emotion Scan",
                description="Match free text to emotions and emotion families.",
                chains_with=("crisis-detect", "hear"),
            ),
            SkillDefinition(
                name="alias-match",
                channel=skill_channel("alias-match", prefix),
                handler=alias_match,
                input_contract=text_input_schema("A word or short phrase (2+ characters)."),
                output_contract={
                    "matches": "object[] — families ranked by score (familyId, label, score, matchType)",
                    "topMatch": "object | null — best matching family",
                },
                title="Alias Match",
                description="Fuzzy-match a word to emotion families and emotion names.",
                chains_with=("emotion-scan",),
            ),
            SkillDefinition(
                name="crisis-detect",
                channel=skill_channel("crisis-detect", prefix),
                handler=crisis_detect,
                input_contract=text_input_schema("Text to scan for crisis indicators."),
                output_contract={
                    "riskLevel": "critical | elevated | none",
                    "isCrisis": "boolean",
                    "resources": "object[] | null — support services",
                    "guidance": "string — guidance for the calling app",
                },
                title="Crisis Detect",
                description="Crisis detection with structured risk levels.",
                chains_with=("emotion-scan", "hear"),
            ),
            SkillDefinition(
                name="quality-score",
                channel=skill_channel("quality-score", prefix),
                handler=quality_score,
                access_tier=AccessTier.INTERNAL,
                input_contract=text_input_schema(
                    "Content to score.",
                    previousTexts={"type": "array"},
                    wavesReceived={"type": "integer"},
                ),
                output_contract={
                    "score": "number — quality score (0.1-1.0)",
                    "grade": "excellent | good | fair | low | minimal",
                    "breakdown": "object — per-dimension scores",
                },
                title="Quality Score",
                description="Internal: content quality score for earn multipliers.",
            ),
            SkillDefinition(
                name="tier-gate",
                channel=skill_channel("tier-gate", prefix),
                handler=tier_gate,
                access_tier=AccessTier.INTERNAL,
                input_contract=text_input_schema(
                    "Feature to check access for.",
                    tier={"type": "string", "description": "Caller's current tier."},
                ),
                output_contract={
                    "allowed": "boolean",
                    "requiredTier": "string",
                    "message": "string — upgrade message if denied",
                },
                title="Tier Gate",
                description="Internal: checks whether a tier grants a feature.",
            ),
        ]
    )
    return skills


def build_default_registry(config: Settings | None = None, llm: LlmBridge | None = None) -> SkillsRegistryService:
    return SkillsRegistryService(build_default_skills(config, llm))


__all__ = [
    "BRAINS",
    "SWARM_SKILL_NAME",
    "build_default_registry",
    "build_default_skills",
    "curate_consensus",
]
