from functools import lru_cache
from typing import List, Optional
import os

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "verityai-dev-secret-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(frozen=True, extra="ignore")

    ENVIRONMENT: str = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    LOG_LEVEL: str = "INFO"

    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173"
    FRONTEND_URL: Optional[str] = None
    ALLOW_VERCEL_PREVIEWS: bool = True

    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS: Optional[str] = None  # service account json

    JWT_SECRET: str = DEFAULT_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_DAYS: int = 7

    # text verifier
    SAMBANOVA_API_KEY: Optional[str] = None
    SAMBANOVA_URL: str = "https://api.sambanova.ai/v1/chat/completions"
    SAMBANOVA_MODEL: str = "Meta-Llama-3.1-8B-Instruct"

    # vision verifier + summarizer
    OPENROUTER_API_KEY: Optional[str] = None
    OPENROUTER_URL: str = "https://openrouter.ai/api/v1/chat/completions"
    OPENROUTER_MODEL: str = "google/gemini-2.0-flash-001"
    OPENROUTER_REFERER: str = "http://localhost:5173"

    NEWS_API_KEY: Optional[str] = None
    NEWS_API_URL: str = "https://newsapi.org/v2"

    PROVIDER_TIMEOUT_SECONDS: float = 20.0

    @property
    def origins(self) -> List[str]:
        found = [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]
        if self.FRONTEND_URL and self.FRONTEND_URL not in found:
            found.append(self.FRONTEND_URL.strip())
        return found

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(_env_file=os.getenv("ENV_FILE", ".env"), _env_file_encoding="utf-8")
