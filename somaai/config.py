from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OpenRouterConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="OPENROUTER_",
        env_file=".env",
        extra="ignore",
    )

    # Empty key puts the service in demo mode (sample payloads).
    api_key: str = ""
    base_url: str = "https://openrouter.ai/api/v1"
    model: str = "openai/gpt-3.5-turbo"
    timeout_s: float = Field(30.0, ge=15.0, le=30.0)
    referer: str = "https://symptom.ai"
    title: str = "SymptomAI"

    @property
    def configured(self) -> bool:
        return bool(self.api_key.strip())


class ServerConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SOMAAI_",
        env_file=".env",
        extra="ignore",
    )

    frontend_url: str = "http://localhost:5173"
    rate_limit_window_s: int = 60
    rate_limit_max: int = 10
    sweep_interval_s: int = 300
    csrf_token_ttl_s: int = 3600
    cosmic_mode: bool = False
    log_level: str = "INFO"
    debug: bool = False

    @property
    def allowed_origins(self) -> list[str]:
        return [self.frontend_url.rstrip("/")]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    openrouter: OpenRouterConfig = OpenRouterConfig()
    server: ServerConfig = ServerConfig()


settings = Settings()
