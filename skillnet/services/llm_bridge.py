import asyncio
import logging

from ollama import AsyncClient  # type: ignore[import-not-found]

from skillnet.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class LlmBridge:
    """Optional LLM enrichment for skill handlers. Never used by the dispatcher."""

    def __init__(self, config: Settings | None = None) -> None:
        self._settings = config or default_settings
        self._client: AsyncClient | None = None

    @property
    def enabled(self) -> bool:
        return bool(self._settings.LLM_ENABLED)

    def _get_client(self) -> AsyncClient:
        if self._client is None:
            self._client = AsyncClient(host=self._settings.OLLAMA_BASE_URL)
        return self._client

    @staticmethod
    def _field(obj: object, name: str) -> object | None:
        if isinstance(obj, dict):
            return obj.get(name)
        return getattr(obj, name, None)

    async def generate(self, system_prompt: str, user_text: str) -> str | None:
        """Return the model's reply, or None when disabled or on any failure."""
        if not self.enabled:
            return None
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_text})
        try:
            response = await asyncio.wait_for(
                self._get_client().chat(
                    model=self._settings.OLLAMA_MODEL_NAME,
                    messages=messages,
                    options={
                        "num_predict": int(self._settings.OLLAMA_NUM_PREDICT),
                        "temperature": float(self._settings.OLLAMA_TEMPERATURE),
                    },
                ),
                timeout=float(self._settings.OLLAMA_TIMEOUT_SECONDS),
            )
        except Exception as exc:
            logger.warning("llm generate failed", extra={"context": {"component": "llm", "error": str(exc)}})
            return None

        message = self._field(response, "message")
        content = str(self._field(message, "content") or "").strip() if message is not None else ""
        return content or None
