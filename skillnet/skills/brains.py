"""The five brain skills: keyword scan plus a templated reply.

Each brain looks for its own family of markers in the text, scores how
strongly the message speaks to it, and answers with one short line. ``view``
doubles as the curator that folds several brain results into a consensus.
"""

from __future__ import annotations

from dataclasses import dataclass
import random

CRISIS_RESPONSE = (
    "I hear you, and what you're feeling matters. You're not alone in this. "
    "If you're in crisis, please reach out to the 988 Suicide & Crisis Lifeline "
    "(call or text 988) or Crisis Text Line (text HOME to 741741). "
    "Someone is there for you right now."
)

CRISIS_PHRASES = (
    "suicide", "kill myself", "end it all", "want to die", "no reason to live",
    "self-harm", "cutting", "overdose", "don't want to be here",
)


@dataclass(frozen=True)
class BrainConfig:
    name: str
    marker_field: str
    categories: dict[str, tuple[str, ...]]
    templates: dict[str, tuple[str, ...]]
    extra_triggers: tuple[str, ...] = ()
    detects_crisis: bool = False

    @property
    def triggers(self) -> tuple[str, ...]:
        words: list[str] = []
        for keywords in self.categories.values():
            words.extend(keywords)
        words.extend(self.extra_triggers)
        return tuple(words)


def signal_strength(text: str, keywords: tuple[str, ...]) -> float:
    if not text or not keywords:
        return 0.0
    lower = text.lower()
    hits = sum(1 for keyword in keywords if keyword in lower)
    return min(hits / max(len(keywords) * 0.3, 1), 1.0)


BRAINS: dict[str, BrainConfig] = {
    "hear": BrainConfig(
        name="hear",
        marker_field="emotions",
        categories={
            "pain": (
                "hurt", "pain", "sad", "angry", "frustrated", "anxious", "scared", "afraid",
                "worried", "stressed", "overwhelmed", "exhausted", "tired", "broken", "lost",
                "alone", "lonely", "empty", "numb", "hopeless", "depressed", "crying", "rough",
                "grief", "betrayed", "rejected", "ashamed", "guilty", "regret", "struggling",
            ),
            "joy": (
                "happy", "joy", "excited", "grateful", "thankful", "proud", "relieved",
                "peaceful", "calm", "blessed", "amazing", "wonderful", "love", "celebrate",
            ),
        },
        extra_triggers=("feel", "feeling", "felt", "emotion", "heart", "cope", "coping"),
        templates={
            "pain": (
                "That sounds really hard. I'm here.",
                "You're carrying a lot. That takes strength.",
                "You don't have to be strong right now. Just be.",
            ),
            "joy": (
                "That's worth celebrating. I'm glad you shared it.",
                "I can feel the lightness in that. Enjoy it.",
            ),
            "mixed": (
                "I hear that. What you're feeling is real.",
                "There's no wrong way to feel right now.",
            ),
            "neutral": (
                "I'm listening. Tell me more whenever you're ready.",
                "I'm here. What's on your mind?",
            ),
        },
        detects_crisis=True,
    ),
    "inspyre": BrainConfig(
        name="inspyre",
        marker_field="themes",
        categories={
            "purpose": ("purpose", "meaning", "why", "matter", "calling", "values", "passion", "point"),
            "resilience": ("give up", "quit", "keep going", "strong", "survive", "push through", "rough", "hard"),
            "growth": ("grow", "learn", "better", "improve", "change", "become"),
        },
        templates={
            "purpose": ("What you care about is still there under the noise.",),
            "resilience": ("You've come through hard days before. This one counts too.",),
            "growth": ("Growth rarely feels like growth while it's happening.",),
            "neutral": ("Whatever today is, it's one page, not the whole story.",),
        },
    ),
    "flow": BrainConfig(
        name="flow",
        marker_field="markers",
        categories={
            "consistency": ("streak", "every day", "daily", "routine", "habit", "consistent"),
            "activity": ("workout", "run", "walk", "meditate", "journal", "gym", "yoga"),
            "recovery": ("missed", "skipped", "fell off", "restart", "start again", "back at it"),
            "flowState": ("in the zone", "flow", "focused", "locked in"),
        },
        templates={
            "consistency": ("Steady water carves stone. Keep showing up.",),
            "activity": ("Movement logged. The river keeps moving.",),
            "recovery": ("A missed day is a pause, not a stop. Pick it back up.",),
            "flowState": ("That's the current carrying you. Ride it.",),
            "neutral": ("Small steps count. What's one thing for today?",),
        },
    ),
    "you": BrainConfig(
        name="you",
        marker_field="patterns",
        categories={
            "awareness": ("i notice", "i realize", "i always", "i never", "pattern", "again"),
            "identity": ("who i am", "myself", "authentic", "the real me", "identity"),
            "progress": ("progress", "stats", "history", "how far", "compared to"),
        },
        templates={
            "awareness": ("Noticing the pattern is the first move. That's you paying attention.",),
            "identity": ("That sounds like the real you talking.",),
            "progress": ("Look at the distance you've covered. That's yours.",),
            "neutral": ("You're more consistent than you give yourself credit for.",),
        },
    ),
    "view": BrainConfig(
        name="view",
        marker_field="angles",
        categories={
            "perspective": ("perspective", "big picture", "step back", "zoom out", "confused", "unsure", "figure out"),
            "temporal": ("years from now", "looking back", "long run", "temporary", "someday", "day"),
            "decision": ("decision", "decide", "choose", "choice", "crossroads", "advice", "option"),
            "synthesis": ("overall", "summary", "bottom line", "in short", "together"),
        },
        templates={
            "perspective": ("Step back for a second. From further away this looks smaller.",),
            "temporal": ("A year from now, today will be one chapter. A rough day is still just a day.",),
            "decision": ("Both paths teach something. Which one would you regret not taking?",),
            "synthesis": ("Put together, the picture is clearer than it feels.",),
            "neutral": ("Zoom out a little. There's more here than this moment.",),
        },
    ),
}


def scan(brain_name: str, text: str) -> dict:
    config = BRAINS[brain_name]
    lower = text.lower()
    detected: list[str] = []
    scores: dict[str, int] = {}

    is_crisis = False
    if config.detects_crisis:
        for phrase in CRISIS_PHRASES:
            if phrase in lower:
                is_crisis = True
                detected.append(f"crisis:{phrase}")

    for category, keywords in config.categories.items():
        hits = [keyword for keyword in keywords if keyword in lower]
        scores[category] = len(hits)
        detected.extend(hits)

    category = "neutral"
    if is_crisis:
        category = "crisis"
    elif brain_name == "hear":
        pain, joy = scores.get("pain", 0), scores.get("joy", 0)
        if pain > joy:
            category = "pain"
        elif joy > pain:
            category = "joy"
        elif pain:
            category = "mixed"
    else:
        best = max(scores.items(), key=lambda item: item[1], default=("neutral", 0))
        if best[1] > 0:
            category = best[0]

    if is_crisis:
        summary = f"CRISIS detected — user may need immediate support. Signals: {', '.join(detected)}"
    elif detected:
        summary = f"{brain_name} signals: {category} — {', '.join(detected[:5])}"
    else:
        summary = f"No strong {brain_name} signals detected."

    result = {
        "brain": brain_name,
        "signal": signal_strength(text, config.triggers),
        "category": category,
        config.marker_field: detected,
        "summary": summary,
    }
    if config.detects_crisis:
        result["isCrisis"] = is_crisis
    return result


def fulfill(brain_name: str, scan_result: dict) -> str:
    if scan_result.get("isCrisis"):
        return CRISIS_RESPONSE
    templates = BRAINS[brain_name].templates
    options = templates.get(scan_result.get("category", "neutral")) or templates["neutral"]
    return random.choice(options)


def run_brain(brain_name: str, payload: dict) -> dict:
    text = str(payload.get("text") or "")
    result = scan(brain_name, text)
    return {"ok": True, **result, "response": fulfill(brain_name, result)}


def brain_handler(brain_name: str):
    if brain_name not in BRAINS:
        raise KeyError(f"Unknown brain: {brain_name}")

    def handle(payload: dict) -> dict:
        return run_brain(brain_name, payload)

    handle.__name__ = f"handle_{brain_name}"
    return handle


def curate_consensus(results: list[dict], original_text: str) -> str:
    """Fold several brain results into one consensus line.

    Used as the chain aggregator when the chain doesn't end on ``view``.
    """
    scans = [item for item in results if isinstance(item, dict)]
    if not scans:
        return "No brain signals to synthesize."

    dominant = max(scans, key=lambda item: float(item.get("signal") or 0.0))
    active = [item for item in scans if float(item.get("signal") or 0.0) > 0.1]
    if not active:
        return "Low signal across all brains. General support mode."

    label = dominant.get("brain") or dominant.get("skill") or "unknown"
    if len(active) == 1:
        return f"Strong {label} signal. {dominant.get('summary') or ''}".strip()

    names = ", ".join(str(item.get("brain") or item.get("skill")) for item in active)
    summaries = " | ".join(
        f"[{str(item.get('brain') or item.get('skill')).upper()}] {item.get('summary')}"
        for item in active
        if item.get("summary")
    )
    return f"Multiple brain activation ({names}). {label} leads. {summaries}"
