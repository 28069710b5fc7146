import json
import logging

from skillnet.protocol.messages import MessageType, is_protocol_message
from skillnet.services.dispatch_service import DispatchService
from skillnet.services.manifest_broadcaster import ManifestBroadcaster
from skillnet.services.pubsub_service import PubSubBus

logger = logging.getLogger(__name__)


class ChannelListener:
    """Pub/sub front door: one subscription per skill channel plus discovery.

    Replies go back out on the channel the request arrived on; observers tell
    them apart only by ``callId``.
    """

    def __init__(self, bus: PubSubBus, dispatcher: DispatchService, broadcaster: ManifestBroadcaster) -> None:
        self._bus = bus
        self._dispatcher = dispatcher
        self._broadcaster = broadcaster
        self.active_channels: set[str] = set()

    async def start(self) -> None:
        channels = [*self._dispatcher.registry.channels(), self._broadcaster.discovery_channel]
        for channel in channels:
            await self.listen(channel)
        logger.info(
            "channel listener started",
            extra={"context": {"component": "listener", "event": "start", "channels": len(self.active_channels)}},
        )

    async def listen(self, channel: str) -> None:
        if channel in self.active_channels:
            return
        self.active_channels.add(channel)
        await self._bus.subscribe(channel, self.handle_payload)

    def _parse_payload(self, raw: object) -> dict | None:
        if isinstance(raw, dict):
            msg = raw
        else:
            if not raw:
                return None
            try:
                msg = json.loads(str(raw))
            except (TypeError, ValueError):
                return None

        if not is_protocol_message(msg):
            return None

        sender = str(msg.get("from") or msg.get("origin") or "")
        if sender and sender == self._bus.identity:
            return None
        return msg

    async def handle_payload(self, channel: str, raw: object) -> None:
        try:
            msg = self._parse_payload(raw)
            if msg is None:
                return

            caller_id = str(msg.get("from") or msg.get("origin") or "")
            msg_type = msg.get("type")

            if msg_type == MessageType.DESCRIBE.value:
                reply = self._broadcaster.describe(msg.get("skill"), msg.get("callId"))
                if reply is None:
                    return
            elif msg_type == MessageType.CALL.value:
                reply = await self._dispatcher.handle_call(msg, caller_id)
            elif msg_type == MessageType.CHAIN.value:
                reply = await self._dispatcher.handle_chain(msg, caller_id)
            else:
                return

            await self._reply(channel, reply)
        except Exception as exc:
            self._dispatcher.metrics.track_error()
            logger.exception(
                "channel message handling failed",
                extra={"context": {"component": "listener", "channel": channel, "error": str(exc)}},
            )

    async def _reply(self, channel: str, reply: dict) -> None:
        envelope = {**reply, "from": self._bus.identity}
        await self._bus.publish(channel, json.dumps(envelope, ensure_ascii=False, default=str))
