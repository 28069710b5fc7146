import logging

from skillnet.core.config import Settings, settings as default_settings
from skillnet.services.channel_listener import ChannelListener
from skillnet.services.dispatch_service import DispatchContext, DispatchService
from skillnet.services.llm_bridge import LlmBridge
from skillnet.services.manifest_broadcaster import ManifestBroadcaster, SkillSchedulerService
from skillnet.services.pubsub_service import PubSubBus, build_bus
from skillnet.skills import build_default_registry, curate_consensus

logger = logging.getLogger(__name__)


class SkillNode:
    """Everything one serving process owns, wired once and shared by both transports."""

    def __init__(
        self,
        *,
        config: Settings | None = None,
        bus: PubSubBus | None = None,
        dispatcher: DispatchService | None = None,
    ) -> None:
        self.settings = config or default_settings
        self.bus = bus or build_bus(self.settings)
        if dispatcher is None:
            registry = build_default_registry(self.settings, LlmBridge(self.settings))
            context = DispatchContext.from_settings(
                registry,
                aggregator=curate_consensus,
                config=self.settings,
                node_identity=self.bus.identity,
            )
            dispatcher = DispatchService(context)
        self.dispatcher = dispatcher
        self.broadcaster = ManifestBroadcaster(self.bus, dispatcher.registry, self.settings.SKILL_DISCOVERY_CHANNEL)
        self.listener = ChannelListener(self.bus, dispatcher, self.broadcaster)
        self.scheduler = SkillSchedulerService()

    async def start(self) -> None:
        if self.settings.CHANNEL_LISTENER_ENABLED:
            await self.listener.start()
        else:
            logger.info("channel listener disabled", extra={"context": {"component": "listener", "event": "disabled"}})

        await self.bus.start()

        broadcaster = self.broadcaster if self.settings.MANIFEST_BROADCAST_ENABLED else None
        if broadcaster is not None:
            await broadcaster.broadcast_manifest()
        self.scheduler.start(
            broadcaster=broadcaster,
            manifest_interval_seconds=self.settings.MANIFEST_BROADCAST_INTERVAL_SECONDS,
            sweep=self.dispatcher.sweep_rate_windows,
            sweep_interval_seconds=self.dispatcher.context.rate_limiter.sweep_interval_seconds,
        )
        logger.info(
            "skill node started",
            extra={
                "context": {
                    "component": "node",
                    "event": "startup",
                    "identity": self.bus.identity[:8],
                    "skills": len(self.dispatcher.registry),
                }
            },
        )

    async def stop(self) -> None:
        self.scheduler.shutdown()
        try:
            await self.bus.stop()
        except Exception as exc:
            logger.warning("pubsub bus stop failed", extra={"context": {"error": str(exc)}})
        logger.info("skill node stopped", extra={"context": {"component": "node", "event": "shutdown"}})
