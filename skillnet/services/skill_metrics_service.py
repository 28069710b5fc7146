from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
import re
import time


class SkillMetricsService:
    """Lifetime invocation counters for one dispatcher instance.

    Mutated only between awaits on the event loop.
    """

    def __init__(self) -> None:
        self.total_calls = 0
        self.total_chains = 0
        self.total_errors = 0
        self.calls_by_skill: dict[str, int] = defaultdict(int)
        self.errors_by_code: dict[str, int] = defaultdict(int)
        self._latency: dict[str, dict[str, float]] = defaultdict(
            lambda: {"count": 0, "sum_ms": 0.0, "max_ms": 0.0}
        )
        self.started_at = time.time()

    @staticmethod
    def _sanitize_metric_name(name: str) -> str:
        normalized = re.sub(r"\W", "_", str(name or ""))
        if not normalized:
            return "metric"
        if normalized[0].isdigit():
            return f"m_{normalized}"
        return normalized

    def track_call(self, skill: str) -> None:
        self.total_calls += 1
        self.calls_by_skill[skill] += 1

    def track_chain(self) -> None:
        self.total_chains += 1

    def track_error(self, code: str | None = None) -> None:
        self.total_errors += 1
        if code:
            self.errors_by_code[str(code)] += 1

    def record_latency(self, skill: str, latency_ms: float) -> None:
        metric = self._latency[skill]
        metric["count"] += 1
        metric["sum_ms"] += float(latency_ms)
        metric["max_ms"] = max(metric["max_ms"], float(latency_ms))

    def snapshot(self, *, active_callers: int = 0) -> dict:
        now = time.time()
        latency = {
            key: {
                "count": int(value["count"]),
                "avg_ms": (float(value["sum_ms"]) / float(value["count"])) if value["count"] else 0.0,
                "max_ms": float(value["max_ms"]),
            }
            for key, value in self._latency.items()
        }
        return {
            "totalCalls": self.total_calls,
            "totalChains": self.total_chains,
            "totalErrors": self.total_errors,
            "callsBySkill": dict(self.calls_by_skill),
            "errorsByCode": dict(self.errors_by_code),
            "latency": latency,
            "startedAt": int(self.started_at * 1000),
            "uptimeMs": int((now - self.started_at) * 1000),
            "activeCallers": int(active_callers),
            "generatedAt": datetime.now(timezone.utc).isoformat(),
        }

    def to_prometheus(self, *, active_callers: int = 0) -> str:
        lines: list[str] = []

        for name, value in (
            ("skill_calls_total", self.total_calls),
            ("skill_chains_total", self.total_chains),
            ("skill_errors_total", self.total_errors),
        ):
            lines.append(f"# TYPE {name} counter")
            lines.append(f"{name} {int(value)}")

        lines.append("# TYPE skill_active_callers gauge")
        lines.append(f"skill_active_callers {int(active_callers)}")

        for skill, value in sorted(self.calls_by_skill.items()):
            metric = self._sanitize_metric_name(f"skill_{skill}_calls_total")
            lines.append(f"# TYPE {metric} counter")
            lines.append(f"{metric} {int(value)}")

        for skill, value in sorted(self._latency.items()):
            base = self._sanitize_metric_name(f"skill_{skill}_latency_ms")
            count = int(value["count"])
            avg_ms = (float(value["sum_ms"]) / count) if count else 0.0
            lines.append(f"# TYPE {base}_avg gauge")
            lines.append(f"{base}_avg {avg_ms:.6f}")
            lines.append(f"# TYPE {base}_max gauge")
            lines.append(f"{base}_max {float(value['max_ms']):.6f}")

        return "\n".join(lines) + "\n"
