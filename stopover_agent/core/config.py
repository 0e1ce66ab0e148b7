from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    OPENROUTER_API_KEY: str | None = None
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"

    DEFAULT_MODEL: str = "google/gemini-2.5-flash"
    FALLBACK_MODELS: str = "anthropic/claude-3-haiku,openai/gpt-4o-mini"
    MAX_TOKENS: int = 4096
    TEMPERATURE: float = 0.7
    STREAMING_ENABLED: bool = True
    MODEL_TIMEOUT_SECONDS: float = 30.0
    MAX_TOOL_ROUNDS: int = 2

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    STORE_PROVIDER: str = "memory"
    DATA_DIR: str = "./data/conversations"
    HISTORY_LIMIT: int = 50
    CONVERSATION_TTL_HOURS: float = 24

    FLIGHT_FARE_DIFFERENCE: int = 115
    AVIOS_CONVERSION_RATE: int = 125

    ORIGINAL_PNR: str = "X4HG8"
    DEFAULT_ORIGIN: str = "LHR"
    DEFAULT_DESTINATION: str = "BKK"
    DEFAULT_PASSENGERS: int = 2

    @property
    def model_chain(self) -> tuple[str, ...]:
        """Primary model first, then fallbacks, without duplicates."""
        chain: list[str] = []
        for name in [self.DEFAULT_MODEL, *self.FALLBACK_MODELS.split(",")]:
            name = name.strip()
            if name and name not in chain:
                chain.append(name)
        return tuple(chain)


settings = Settings()
