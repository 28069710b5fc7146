from __future__ import annotations

from skillnet.services.llm_bridge import LlmBridge
from skillnet.skills.brains import BRAINS, curate_consensus, run_brain

SWARM_SKILL_NAME = "5fan-swarm"


def build_enriched_prompt(scans: list[dict], dominant: dict) -> str:
    lines = [
        "You are 5FAN, five brains speaking as one voice.",
        "BRAIN ANALYSIS:",
    ]
    for item in scans:
        lines.append(f"- {item['brain']}: signal={item['signal']:.2f} category={item['category']} :: {item['summary']}")
    lines.append(f"Lead with the {dominant['brain']} perspective. Reply in 1-3 warm, concrete sentences.")
    return "\n".join(lines)


def swarm_handler(llm: LlmBridge | None = None):
    """All five brains in one invocation; ``view``-style curation on top."""

    async def handle(payload: dict) -> dict:
        text = str(payload.get("text") or "")
        scans = [run_brain(name, {"text": text}) for name in BRAINS]
        dominant = max(scans, key=lambda item: item["signal"])
        is_crisis = any(item.get("isCrisis") for item in scans)

        response = None
        method = "template"
        if llm is not None and not is_crisis:
            response = await llm.generate(build_enriched_prompt(scans, dominant), text)
            if response:
                method = "llm"
        if not response:
            response = next(item["response"] for item in scans if item["brain"] == "hear") if is_crisis else dominant["response"]

        tags: list[str] = []
        for item in scans:
            for marker in item.get(BRAINS[item["brain"]].marker_field, []):
                if marker not in tags:
                    tags.append(marker)

        return {
            "ok": True,
            "dominant": dominant["brain"],
            "consensus": curate_consensus(scans, text),
            "response": response,
            "method": method,
            "brainSignals": {
                item["brain"]: {"signal": item["signal"], "category": item["category"], "summary": item["summary"]}
                for item in scans
            },
            "tags": tags,
            "isCrisis": is_crisis,
            "activeBrainCount": sum(1 for item in scans if item["signal"] > 0.1),
        }

    handle.__name__ = "handle_swarm"
    return handle
