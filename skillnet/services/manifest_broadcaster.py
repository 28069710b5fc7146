import inspect
import json
import logging
from time import perf_counter

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from skillnet.services.pubsub_service import PubSubBus
from skillnet.services.skills_registry_service import SkillsRegistryService

logger = logging.getLogger(__name__)


class ManifestBroadcaster:
    def __init__(self, bus: PubSubBus, registry: SkillsRegistryService, discovery_channel: str) -> None:
        self._bus = bus
        self._registry = registry
        self.discovery_channel = discovery_channel

    def manifest(self) -> dict:
        return self._registry.manifest()

    def describe(self, skill_name: object, call_id: str | None = None) -> dict | None:
        return self._registry.description_message(str(skill_name or ""), call_id)

    async def broadcast_manifest(self) -> None:
        started_at = perf_counter()
        try:
            payload = {**self.manifest(), "from": self._bus.identity}
            await self._bus.publish(self.discovery_channel, json.dumps(payload, ensure_ascii=False))
            logger.info(
                "manifest broadcast",
                extra={
                    "context": {
                        "component": "manifest",
                        "channel": self.discovery_channel,
                        "skills": len(self._registry),
                        "latency_ms": round((perf_counter() - started_at) * 1000, 3),
                    }
                },
            )
        except Exception as exc:
            logger.warning("manifest broadcast failed", extra={"context": {"component": "manifest", "error": str(exc)}})


class SkillSchedulerService:
    """Periodic jobs for the skill node: manifest re-broadcast and rate-window sweep."""

    def __init__(self) -> None:
        self.scheduler = AsyncIOScheduler(timezone="UTC")

    def start(self, *, broadcaster: ManifestBroadcaster | None, manifest_interval_seconds: int, sweep, sweep_interval_seconds: float) -> None:
        if self.scheduler.running:
            return
        if not inspect.iscoroutinefunction(sweep):
            # AsyncIOExecutor sends sync jobs to a thread pool; rate windows are loop-only state.
            sync_sweep = sweep

            async def sweep():
                return sync_sweep()

        self.scheduler.start()
        if broadcaster is not None:
            self.scheduler.add_job(
                broadcaster.broadcast_manifest,
                "interval",
                seconds=max(1, int(manifest_interval_seconds)),
                id="global_manifest_broadcast",
                replace_existing=True,
            )
        self.scheduler.add_job(
            sweep,
            "interval",
            seconds=max(1.0, float(sweep_interval_seconds)),
            id="global_rate_window_sweep",
            replace_existing=True,
        )
        logger.info("scheduler started", extra={"context": {"component": "scheduler", "event": "start"}})

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("scheduler stopped", extra={"context": {"component": "scheduler", "event": "shutdown"}})
