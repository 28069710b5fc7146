from fastapi import APIRouter, Body
from fastapi.responses import PlainTextResponse

from skillnet.api.types import Broadcaster, Dispatcher, PeerAddress
from skillnet.core.access import is_loopback_address
from skillnet.core.errors import AccessDeniedError, ErrorCode, UnknownSkillError
from skillnet.protocol.messages import build_call, build_chain
from skillnet.schemas.skills import ChainRequest, ChainResponse

router = APIRouter()


def _http_context(peer: str) -> dict:
    return {"transport": "http", "peer": peer}


@router.get("/skills")
async def skills_manifest(broadcaster: Broadcaster) -> dict:
    return {"ok": True, **broadcaster.manifest()}


@router.get("/skills/metrics")
async def skills_metrics(dispatcher: Dispatcher) -> dict:
    return {"ok": True, **dispatcher.metrics_snapshot()}


@router.get("/skills/metrics/prometheus", response_class=PlainTextResponse)
async def skills_metrics_prometheus(dispatcher: Dispatcher) -> str:
    return dispatcher.metrics.to_prometheus(active_callers=dispatcher.context.rate_limiter.active_callers)


# declared before /skill/{name} so "chain" is never read as a skill name
@router.post("/skill/chain")
async def run_chain(body: ChainRequest, dispatcher: Dispatcher, peer: PeerAddress) -> ChainResponse:
    msg = build_chain(body.skills, body.text, body.context)
    results, synthesized = await dispatcher.chain(msg, peer, transport_context=_http_context(peer))
    return ChainResponse(results=results, synthesized=synthesized)


@router.get("/skill/{name}/describe")
async def describe_skill(name: str, dispatcher: Dispatcher) -> dict:
    info = dispatcher.registry.describe(name)
    if info is None:
        raise UnknownSkillError(f"Unknown skill: {name}", skill=name)
    return {"ok": True, **info}


@router.post("/skill/{name}")
async def invoke_skill(
    name: str,
    dispatcher: Dispatcher,
    peer: PeerAddress,
    payload: dict | None = Body(default=None),
):
    definition = dispatcher.registry.get(name)
    if definition is None:
        dispatcher.metrics.track_error(ErrorCode.INVALID_CALL.value)
        raise UnknownSkillError(f"Unknown skill: {name}", skill=name)
    if definition.is_internal and not is_loopback_address(peer):
        dispatcher.metrics.track_error(ErrorCode.ACCESS_DENIED.value)
        raise AccessDeniedError("INTERNAL_ONLY", skill=name)

    skill_input = dict(payload or {})
    text = skill_input.pop("text", None)
    msg = build_call(definition.name, text, skill_input)
    return await dispatcher.call(msg, peer, transport_context=_http_context(peer))
