"""Single-call and chain execution for skill invocations.

A ``DispatchService`` owns one ``DispatchContext``: the registry, the rate
limiter, the metrics and the locality check. Both transports (pub/sub
listener and HTTP routes) hold a reference to the same instance, so two
services built side by side never share windows or counters.

Error policy:

* Validation, rate-limit and access failures are decided before a handler
  runs, so a rejected call has no side effects.
* A handler exception in a single call becomes SKILL_ERROR; it never reaches
  the transport.
* In a chain, step failures are contained by default
  (``CHAIN_STEP_ERROR_POLICY="continue"``): the failing step is recorded with
  ``ok=False`` and the remaining steps still run. With ``"abort"`` the first
  failing step ends the chain with a chain-level SKILL_ERROR.
* Running out of quota mid-chain always aborts with RATE_LIMITED naming the
  step.
"""

from __future__ import annotations

from dataclasses import dataclass
import inspect
import logging
from time import perf_counter
from typing import Any, Callable

from skillnet.core.access import AccessControl
from skillnet.core.config import Settings, settings as default_settings
from skillnet.core.errors import (
    AccessDeniedError,
    InvalidCallError,
    InvalidChainError,
    RateLimitedError,
    SkillExecutionError,
    SkillProtocolError,
    UnknownSkillError,
)
from skillnet.core.rate_limit import FixedWindowRateLimiter
from skillnet.protocol.messages import (
    MessageType,
    build_chain_result,
    build_error,
    build_result,
    validate,
)
from skillnet.services.skill_metrics_service import SkillMetricsService
from skillnet.services.skills_registry_service import SkillDefinition, SkillsRegistryService

logger = logging.getLogger(__name__)

CHAIN_CONTEXT_KEY = "chainResults"
STEP_POLICY_CONTINUE = "continue"
STEP_POLICY_ABORT = "abort"

Aggregator = Callable[[list[dict], str], Any]


@dataclass
class DispatchContext:
    registry: SkillsRegistryService
    rate_limiter: FixedWindowRateLimiter
    metrics: SkillMetricsService
    access_control: AccessControl
    aggregator: Aggregator | None = None
    synthesis_skill: str = "view"
    step_error_policy: str = STEP_POLICY_CONTINUE

    @classmethod
    def from_settings(
        cls,
        registry: SkillsRegistryService,
        *,
        aggregator: Aggregator | None = None,
        config: Settings | None = None,
        clock: Callable[[], float] | None = None,
        node_identity: str | None = None,
    ) -> "DispatchContext":
        cfg = config or default_settings
        limiter_kwargs: dict[str, Any] = {
            "max_calls": cfg.RATE_LIMIT_MAX_CALLS,
            "window_seconds": cfg.RATE_LIMIT_WINDOW_SECONDS,
        }
        if clock is not None:
            limiter_kwargs["clock"] = clock
        policy = str(cfg.CHAIN_STEP_ERROR_POLICY or "").strip().lower()
        return cls(
            registry=registry,
            rate_limiter=FixedWindowRateLimiter(**limiter_kwargs),
            metrics=SkillMetricsService(),
            access_control=AccessControl(node_identity=cfg.NODE_IDENTITY if node_identity is None else node_identity),
            aggregator=aggregator,
            synthesis_skill=cfg.CHAIN_SYNTHESIS_SKILL,
            step_error_policy=STEP_POLICY_ABORT if policy == STEP_POLICY_ABORT else STEP_POLICY_CONTINUE,
        )


def _step_entry(skill: str, output: Any) -> dict:
    if isinstance(output, dict):
        return {"skill": skill, **output}
    return {"skill": skill, "output": output}


class DispatchService:
    def __init__(self, context: DispatchContext) -> None:
        self.context = context

    @property
    def registry(self) -> SkillsRegistryService:
        return self.context.registry

    @property
    def metrics(self) -> SkillMetricsService:
        return self.context.metrics

    def metrics_snapshot(self) -> dict:
        return self.context.metrics.snapshot(active_callers=self.context.rate_limiter.active_callers)

    async def sweep_rate_windows(self) -> int:
        """Evict stale rate windows. Scheduled as a coroutine so it runs on the loop."""
        evicted = self.context.rate_limiter.cleanup()
        if evicted:
            logger.info("rate windows evicted", extra={"context": {"component": "dispatch", "evicted": evicted}})
        return evicted

    # -- single call ------------------------------------------------------

    async def call(self, msg: dict, caller_id: str | None, transport_context: dict | None = None) -> Any:
        """Run one skill:call and return the raw handler output.

        Raises ``SkillProtocolError`` for every rejected or failed call; each
        raise is counted once in ``totalErrors``.
        """
        try:
            return await self._call(msg, caller_id, transport_context)
        except SkillProtocolError as exc:
            self.context.metrics.track_error(exc.code.value)
            raise

    async def _call(self, msg: dict, caller_id: str | None, transport_context: dict | None) -> Any:
        validation = validate(msg, self.context.registry)
        if not validation.valid:
            skill = msg.get("skill") if isinstance(msg, dict) else None
            error_cls = InvalidCallError
            if isinstance(skill, str) and skill.strip() and not self.context.registry.has(skill):
                error_cls = UnknownSkillError
            raise error_cls(validation.error or "Invalid call.", skill=skill if isinstance(skill, str) else None)
        if msg.get("type") != MessageType.CALL.value:
            raise InvalidCallError(f"Expected {MessageType.CALL.value}, got {msg.get('type')}", skill=msg.get("skill"))

        skill_name = msg["skill"]
        if not self.context.rate_limiter.allow(caller_id):
            raise RateLimitedError(
                f"Rate limited: max {self.context.rate_limiter.max_calls} calls per "
                f"{int(self.context.rate_limiter.window_seconds)}s.",
                skill=skill_name,
            )

        definition = self.context.registry.get(skill_name)
        if definition is None:
            raise UnknownSkillError(f"Unknown skill: {skill_name}", skill=skill_name)

        self.context.metrics.track_call(definition.name)
        self._check_access(definition, caller_id, transport_context)

        logger.info(
            "skill call",
            extra={
                "context": {
                    "component": "dispatch",
                    "skill": definition.name,
                    "call_id": msg.get("callId"),
                    "caller": str(caller_id or "")[:8],
                }
            },
        )
        return await self._invoke(definition, dict(msg["input"]))

    async def handle_call(self, msg: dict, caller_id: str | None, transport_context: dict | None = None) -> dict:
        call_id = msg.get("callId") if isinstance(msg, dict) else None
        try:
            output = await self.call(msg, caller_id, transport_context)
        except SkillProtocolError as exc:
            return build_error(exc.skill, call_id, exc.message, exc.code, step=exc.step)
        return build_result(self.context.registry.get(msg["skill"]).name, call_id, output)

    # -- chain ------------------------------------------------------------

    async def chain(
        self, msg: dict, caller_id: str | None, transport_context: dict | None = None
    ) -> tuple[list[dict], Any]:
        """Run a skill:chain and return ``(results, synthesized)``."""
        try:
            return await self._chain(msg, caller_id, transport_context)
        except SkillProtocolError as exc:
            self.context.metrics.track_error(exc.code.value)
            raise

    async def _chain(
        self, msg: dict, caller_id: str | None, transport_context: dict | None
    ) -> tuple[list[dict], Any]:
        validation = validate(msg, self.context.registry)
        if not validation.valid:
            raise InvalidChainError(validation.error or "Invalid chain.", skill="chain")
        if msg.get("type") != MessageType.CHAIN.value:
            raise InvalidChainError(f"Expected {MessageType.CHAIN.value}, got {msg.get('type')}", skill="chain")

        skills: list[str] = list(msg["skills"])
        base_input = dict(msg["input"])
        text = str(base_input.get("text") or "")

        self.context.metrics.track_chain()
        logger.info(
            "skill chain",
            extra={
                "context": {
                    "component": "dispatch",
                    "skills": skills,
                    "call_id": msg.get("callId"),
                    "caller": str(caller_id or "")[:8],
                }
            },
        )

        results: list[dict] = []
        prior_outputs: dict[str, Any] = {}
        step_names: list[str] = []

        for index, skill_name in enumerate(skills):
            step = index + 1
            if not self.context.rate_limiter.allow(caller_id):
                raise RateLimitedError(f"Rate limited during chain at step {step} ({skill_name}).", skill="chain", step=step)

            definition = self.context.registry.get(skill_name)
            if definition is None:
                raise InvalidChainError(f"Unknown skill in chain: {skill_name}", skill="chain", step=step)
            skill_name = definition.name
            step_names.append(skill_name)
            self.context.metrics.track_call(definition.name)

            step_input = {**base_input, CHAIN_CONTEXT_KEY: dict(prior_outputs)}
            try:
                self._check_access(definition, caller_id, transport_context)
                output = await self._invoke(definition, step_input)
            except SkillProtocolError as exc:
                if self.context.step_error_policy == STEP_POLICY_ABORT:
                    raise SkillExecutionError(
                        f"Chain aborted at step {step} ({skill_name}): {exc.message}", skill="chain", step=step
                    ) from exc
                self.context.metrics.track_error(exc.code.value)
                results.append({"skill": skill_name, "ok": False, "error": exc.message, "code": exc.code.value})
                continue

            prior_outputs[skill_name] = output
            results.append(_step_entry(skill_name, output))

        return results, self._synthesize(step_names, results, text)

    async def handle_chain(self, msg: dict, caller_id: str | None, transport_context: dict | None = None) -> dict:
        call_id = msg.get("callId") if isinstance(msg, dict) else None
        try:
            results, synthesized = await self.chain(msg, caller_id, transport_context)
        except SkillProtocolError as exc:
            return build_error(exc.skill or "chain", call_id, exc.message, exc.code, step=exc.step)
        return build_chain_result(call_id, results, synthesized)

    def _synthesize(self, skills: list[str], results: list[dict], text: str) -> Any:
        last = results[-1] if results else None
        if last and skills[-1] == self.context.synthesis_skill and last.get("ok", True) is not False:
            return last.get("response")

        if self.context.aggregator is None:
            return None
        successful = [item for item in results if item.get("ok", True) is not False]
        try:
            return self.context.aggregator(successful, text)
        except Exception:
            logger.exception("chain aggregation failed", extra={"context": {"component": "dispatch", "skills": skills}})
            return None

    # -- shared -----------------------------------------------------------

    def _check_access(self, definition: SkillDefinition, caller_id: str | None, transport_context: dict | None) -> None:
        if not definition.is_internal:
            return
        if self.context.access_control.is_local(caller_id, transport_context):
            return
        raise AccessDeniedError(
            f'Skill "{definition.name}" is internal-only. External access denied.',
            skill=definition.name,
        )

    async def _invoke(self, definition: SkillDefinition, payload: dict) -> Any:
        started_at = perf_counter()
        try:
            output = definition.handler(payload)
            if inspect.isawaitable(output):
                output = await output
            return output
        except Exception as exc:
            logger.warning(
                "skill handler failed",
                exc_info=True,
                extra={"context": {"component": "dispatch", "skill": definition.name, "error": str(exc)}},
            )
            raise SkillExecutionError(str(exc) or exc.__class__.__name__, skill=definition.name) from exc
        finally:
            self.context.metrics.record_latency(definition.name, (perf_counter() - started_at) * 1000)
