"""Internal-tier skills. Only callers classified as local may reach these."""

from __future__ import annotations

import re

QUALITY_WEIGHTS = {
    "textLength": 0.3,
    "uniqueness": 0.3,
    "diversity": 0.2,
    "socialProof": 0.2,
}

TIER_ORDER = ("free", "bronze", "silver", "gold", "premium", "collective")

FEATURE_GATES = {
    "checkin": ("free", "Daily Check-In"),
    "share_basic": ("free", "Share (1/day)"),
    "gym": ("bronze", "Hi Gym"),
    "coach_chat": ("bronze", "AI Coach Chat"),
    "journal": ("silver", "Guided Journaling"),
    "analytics": ("gold", "Advanced Analytics"),
    "wellness": ("gold", "Wellness Dashboard"),
    "priority_coach": ("premium", "Priority AI Coaching"),
    "collective_vote": ("collective", "Collective Voting"),
}


def _score_text_length(text: str) -> float:
    length = len(text.strip())
    if length >= 200:
        return 1.0
    if length >= 80:
        return 0.8
    if length >= 30:
        return 0.6
    if length >= 10:
        return 0.3
    return 0.1


def _score_uniqueness(text: str, previous_texts: list) -> float:
    if not previous_texts:
        return 0.8
    lower = text.lower().strip()
    if not lower:
        return 0.1
    words = set(re.split(r"\s+", lower))
    for previous in previous_texts:
        previous_lower = str(previous or "").lower().strip()
        if previous_lower == lower:
            return 0.1
        previous_words = set(re.split(r"\s+", previous_lower))
        union = words | previous_words
        similarity = len(words & previous_words) / len(union) if union else 0.0
        if similarity > 0.8:
            return 0.2
        if similarity > 0.6:
            return 0.4
    return 1.0


def _score_diversity(emoji_count: int, origin_variety: float) -> float:
    emoji = min(emoji_count / 3, 1) * 0.5
    origin = (origin_variety or 0.5) * 0.5
    return max(0.1, emoji + origin)


def _score_social_proof(waves: int) -> float:
    if waves >= 10:
        return 1.0
    if waves >= 5:
        return 0.8
    if waves >= 2:
        return 0.6
    if waves >= 1:
        return 0.4
    return 0.2


def _grade(score: float) -> str:
    if score >= 0.9:
        return "excellent"
    if score >= 0.7:
        return "good"
    if score >= 0.5:
        return "fair"
    if score >= 0.3:
        return "low"
    return "minimal"


def quality_score(payload: dict) -> dict:
    text = str(payload.get("text") or "")
    previous = payload.get("previousTexts") if isinstance(payload.get("previousTexts"), list) else []
    parts = {
        "textLength": _score_text_length(text),
        "uniqueness": _score_uniqueness(text, previous),
        "diversity": _score_diversity(int(payload.get("emojiCount") or 0), float(payload.get("originVariety") or 0.5)),
        "socialProof": _score_social_proof(int(payload.get("wavesReceived") or 0)),
    }
    score = sum(parts[key] * weight for key, weight in QUALITY_WEIGHTS.items())
    score = round(max(0.1, min(1.0, score)), 2)
    return {
        "ok": True,
        "score": score,
        "grade": _grade(score),
        "breakdown": {key: {"score": parts[key], "weight": QUALITY_WEIGHTS[key]} for key in QUALITY_WEIGHTS},
    }


def tier_gate(payload: dict) -> dict:
    """``text`` names the feature; ``tier`` is the caller's current tier."""
    feature = str(payload.get("feature") or payload.get("text") or "").strip()
    tier = payload.get("tier")
    if not isinstance(tier, str) or not tier:
        return {"ok": False, "error": "tier is required."}

    gate = FEATURE_GATES.get(feature)
    if gate is None:
        return {
            "ok": True,
            "allowed": True,
            "currentTier": tier,
            "requiredTier": "free",
            "note": f'Unknown feature "{feature}" — defaulting to allowed.',
        }

    required_tier, label = gate
    current_index = TIER_ORDER.index(tier) if tier in TIER_ORDER else 0
    allowed = current_index >= TIER_ORDER.index(required_tier)
    result = {
        "ok": True,
        "allowed": allowed,
        "currentTier": tier,
        "requiredTier": required_tier,
        "featureLabel": label,
    }
    if not allowed:
        result["message"] = (
            f"{label} requires {required_tier} tier or above. You're currently on {tier}. "
            "Upgrade to unlock this feature."
        )
    return result
