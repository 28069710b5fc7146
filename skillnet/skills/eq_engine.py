"""EQ data skills: vocabulary lookups over a fixed emotion table. No LLM."""

from __future__ import annotations

from collections import Counter

# (id, name, family, category, hi_scale, valence, arousal)
EMOTIONS: tuple[tuple[str, str, str, str, int, int, int], ...] = (
    ("joy", "Joy", "joy", "hi", 5, 1, 2),
    ("gratitude", "Gratitude", "joy", "hi", 5, 1, 1),
    ("proud", "Proud", "drive", "hi", 5, 1, 2),
    ("inspired", "Inspired", "drive", "hi", 4, 1, 2),
    ("calm", "Calm", "peace", "hi", 4, 1, 1),
    ("hopefulness", "Hopefulness", "peace", "hi", 4, 1, 1),
    ("relief", "Relief", "peace", "hi", 3, 1, 1),
    ("boredom", "Boredom", "disconnect", "neutral", 3, 0, 1),
    ("frustration", "Frustration", "frustration", "neutral", 3, 0, 3),
    ("overwhelm", "Overwhelm", "frustration", "neutral", 2, 0, 3),
    ("disappointment", "Disappointment", "frustration", "neutral", 2, 0, 1),
    ("doubt", "Doubt", "doubt", "neutral", 3, 0, 1),
    ("worry", "Worry", "fear", "neutral", 2, 0, 2),
    ("apathy", "Apathy", "disconnect", "neutral", 2, 0, 1),
    ("anger", "Anger", "anger", "opportunity", 2, -1, 3),
    ("resentment", "Resentment", "anger", "opportunity", 2, -1, 2),
    ("insecurity", "Insecurity", "shame", "opportunity", 1, -1, 2),
    ("guilt", "Guilt", "shame", "opportunity", 1, -1, 2),
    ("fear", "Fear", "fear", "opportunity", 1, -1, 3),
    ("grief", "Grief", "grief", "opportunity", 1, -1, 2),
    ("hopeless", "Hopeless", "grief", "opportunity", 1, -1, 1),
)

FAMILIES: dict[str, dict] = {
    "grief": {"label": "Grief & Loss", "hiScaleRange": (1, 2), "valence": -1,
              "aliases": ("loss", "heartbreak", "missing", "devastated", "sad", "lonely", "crushed")},
    "fear": {"label": "Fear & Anxiety", "hiScaleRange": (1, 2), "valence": -1,
             "aliases": ("anxious", "anxiety", "nervous", "scared", "afraid", "panic", "dread", "on edge")},
    "anger": {"label": "Anger", "hiScaleRange": (1, 2), "valence": -1,
              "aliases": ("mad", "furious", "pissed", "irritated", "annoyed", "livid")},
    "shame": {"label": "Shame & Guilt", "hiScaleRange": (1, 2), "valence": -1,
              "aliases": ("ashamed", "embarrassed", "not good enough", "worthless", "regret")},
    "frustration": {"label": "Frustration", "hiScaleRange": (2, 3), "valence": 0,
                    "aliases": ("stuck", "stressed", "too much", "rough", "fed up", "drained")},
    "doubt": {"label": "Doubt", "hiScaleRange": (2, 3), "valence": 0,
              "aliases": ("unsure", "confused", "second-guessing", "uncertain", "lost")},
    "disconnect": {"label": "Disconnect", "hiScaleRange": (2, 3), "valence": 0,
                   "aliases": ("numb", "bored", "empty", "checked out", "meh")},
    "peace": {"label": "Peace", "hiScaleRange": (3, 5), "valence": 1,
              "aliases": ("relaxed", "peaceful", "content", "at ease", "grounded")},
    "drive": {"label": "Drive", "hiScaleRange": (4, 5), "valence": 1,
              "aliases": ("motivated", "pumped", "determined", "focused", "fired up")},
    "joy": {"label": "Joy", "hiScaleRange": (4, 5), "valence": 1,
            "aliases": ("happy", "grateful", "thankful", "excited", "blessed", "love")},
}

CRISIS_PHRASES = {
    "critical": (
        "suicide", "suicidal", "kill myself", "end it all", "want to die", "no reason to live",
        "self-harm", "hurt myself", "overdose", "better off dead", "end my life", "can't go on",
        "don't want to be here", "no way out", "can't take it anymore",
    ),
    "elevated": (
        "hopeless", "no hope", "what's the point", "nobody cares", "i'm a burden", "worthless",
        "completely alone", "trapped", "giving up", "done trying", "hate my life", "hate myself",
        "empty inside", "wish i wasn't here",
    ),
}

CRISIS_RESOURCES = [
    {"name": "988 Suicide & Crisis Lifeline", "action": "Call or text 988", "available": "24/7"},
    {"name": "Crisis Text Line", "action": "Text HOME to 741741", "available": "24/7"},
]

_CATEGORY_BY_VALENCE = {1: "hi", 0: "neutral", -1: "opportunity"}


def emotion_scan(payload: dict) -> dict:
    text = str(payload.get("text") or "").lower().strip()
    if not text:
        return {"ok": False, "error": "text is required"}

    matches: list[dict] = []
    family_hits: list[str] = []

    for emotion_id, name, family, category, hi_scale, valence, arousal in EMOTIONS:
        if name.lower() in text or emotion_id in text:
            matches.append({
                "id": emotion_id,
                "name": name,
                "family": family,
                "category": category,
                "hiScale": hi_scale,
                "valence": valence,
                "arousal": arousal,
                "matchType": "emotion",
            })
            if family not in family_hits:
                family_hits.append(family)

    for family_id, family in FAMILIES.items():
        if family_id in family_hits:
            continue
        alias = next((item for item in family["aliases"] if item in text), None)
        if alias is None:
            continue
        family_hits.append(family_id)
        low, high = family["hiScaleRange"]
        matches.append({
            "id": f"alias:{alias}",
            "name": alias,
            "family": family_id,
            "category": _CATEGORY_BY_VALENCE[family["valence"]],
            "hiScale": round((low + high) / 2),
            "valence": family["valence"],
            "arousal": 2,
            "matchType": "alias",
        })

    matches.sort(key=lambda item: (item["matchType"] != "emotion", item["hiScale"]))

    counts = Counter(item["category"] for item in matches)
    dominant_category = counts.most_common(1)[0][0] if counts else "neutral"
    hi_scale = round(sum(item["hiScale"] for item in matches) / len(matches), 1) if matches else 3

    families = [{"id": family_id, "label": FAMILIES[family_id]["label"]} for family_id in family_hits]
    return {
        "ok": True,
        "matches": matches,
        "matchCount": len(matches),
        "families": families,
        "familyCount": len(families),
        "hiScale": hi_scale,
        "dominantCategory": dominant_category,
    }


def crisis_detect(payload: dict) -> dict:
    text = str(payload.get("text") or "").lower().strip()
    if not text:
        return {"ok": False, "error": "text is required"}

    critical = [phrase for phrase in CRISIS_PHRASES["critical"] if phrase in text]
    elevated = [phrase for phrase in CRISIS_PHRASES["elevated"] if phrase in text]

    if critical:
        risk_level = "critical"
        guidance = "Surface crisis resources immediately. Do not continue normal flow."
    elif elevated:
        risk_level = "elevated"
        guidance = "Respond with care and offer support resources."
    else:
        risk_level = "none"
        guidance = "No crisis indicators detected."

    return {
        "ok": True,
        "riskLevel": risk_level,
        "isCrisis": risk_level == "critical",
        "matches": critical + elevated,
        "resources": CRISIS_RESOURCES if risk_level != "none" else None,
        "guidance": guidance,
    }


def alias_match(payload: dict) -> dict:
    """Rank emotion families by how well ``text`` matches their aliases or emotion names."""
    query = str(payload.get("text") or "").strip().lower()
    if len(query) < 2:
        return {"ok": False, "error": "text must be at least 2 characters."}

    best: dict[str, tuple[int, str, str]] = {}

    def score(family_id: str, value: int, match_type: str, matched_on: str) -> None:
        if family_id not in best or best[family_id][0] < value:
            best[family_id] = (value, match_type, matched_on)

    for family_id, family in FAMILIES.items():
        for alias in family["aliases"]:
            if alias == query:
                score(family_id, 100, "exact", alias)
            elif alias.startswith(query):
                score(family_id, 80, "starts", alias)
            elif len(query) >= 3 and query in alias:
                score(family_id, 60, "partial", alias)

    for _, name, family_id, *_ in EMOTIONS:
        lowered = name.lower()
        if lowered == query:
            score(family_id, 100, "emotion", name)
        elif lowered.startswith(query):
            score(family_id, 85, "emotion-starts", name)
        elif len(query) >= 3 and query in lowered:
            score(family_id, 65, "emotion-partial", name)

    matches = [
        {
            "familyId": family_id,
            "label": FAMILIES[family_id]["label"],
            "score": value,
            "matchType": match_type,
            "matchedOn": matched_on,
        }
        for family_id, (value, match_type, matched_on) in best.items()
    ]
    matches.sort(key=lambda item: item["score"], reverse=True)
    return {
        "ok": True,
        "query": query,
        "matches": matches,
        "matchCount": len(matches),
        "topMatch": matches[0] if matches else None,
    }
