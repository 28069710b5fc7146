from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "5FAN Skill Network"
    APP_VERSION: str = "2.0.0"
    API_PREFIX: str = ""
    PROVIDER_NAME: str = "5fan"
    PROTOCOL_VERSION: str = "2.0.0"

    NODE_IDENTITY: str = ""

    PUBSUB_BACKEND: str = "redis"
    REDIS_URL: str = "redis://localhost:6379/0"
    PUBSUB_POLL_TIMEOUT_SECONDS: float = 1.0

    SKILL_CHANNEL_PREFIX: str = "5fan-skill-"
    SKILL_DISCOVERY_CHANNEL: str = "5fan-skills"
    SWARM_SKILL_CHANNEL: str = "5fan-skill-swarm"

    RATE_LIMIT_MAX_CALLS: int = 30
    RATE_LIMIT_WINDOW_SECONDS: float = 60.0

    MANIFEST_BROADCAST_INTERVAL_SECONDS: int = 300

    CHAIN_STEP_ERROR_POLICY: str = "continue"  # continue | abort
    CHAIN_SYNTHESIS_SKILL: str = "view"

    CHANNEL_LISTENER_ENABLED: bool = True
    MANIFEST_BROADCAST_ENABLED: bool = True

    LLM_ENABLED: bool = False
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL_NAME: str = "gemma3:4b"
    OLLAMA_TIMEOUT_SECONDS: float = 30.0
    OLLAMA_NUM_PREDICT: int = 200
    OLLAMA_TEMPERATURE: float = 0.7

    OBS_LOG_JSON: bool = True
    OBS_LOG_LEVEL: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
