"""Runtime settings read from the environment.

Env vars:
- MONGO_URL: durable store connection string; unset runs the ephemeral store
- MONGO_DB (default "vakeel"), MONGO_TIMEOUT_MS (default 500)
- VAKEEL_AI_API_KEY / GRADIENT_AI_API_KEY: upstream key; unset returns mock replies
- VAKEEL_AI_ENDPOINT / GRADIENT_AI_ENDPOINT: OpenAI-compatible base URL
- VAKEEL_AI_MODEL / MODEL_NAME
- VAKEEL_AI_TIMEOUT (seconds, default 30), VAKEEL_AI_MAX_TOKENS, VAKEEL_AI_TEMPERATURE
- VAKEEL_CORS_ORIGINS: comma separated list
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional
import os


DEFAULT_AI_MODEL = "deepseek-r1-distill-llama-70b"
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _first_env(*names: str) -> Optional[str]:
    for name in names:
        val = os.getenv(name)
        if val:
            return val
    return None


@dataclass
class Settings:
    mongo_url: Optional[str] = None
    mongo_db: str = "vakeel"
    mongo_timeout_ms: int = 500
    ai_api_key: Optional[str] = None
    ai_endpoint: Optional[str] = None
    ai_model: str = DEFAULT_AI_MODEL
    ai_timeout: float = 30.0
    ai_max_tokens: int = 1500
    ai_temperature: float = 0.7
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @property
    def ai_configured(self) -> bool:
        return bool(self.ai_api_key and self.ai_endpoint)

    @staticmethod
    def from_env() -> "Settings":
        origins_raw = os.getenv("VAKEEL_CORS_ORIGINS", "")
        origins = [o.strip() for o in origins_raw.split(",") if o.strip()] or list(DEFAULT_CORS_ORIGINS)
        return Settings(
            mongo_url=os.getenv("MONGO_URL") or None,
            mongo_db=os.getenv("MONGO_DB", "vakeel"),
            mongo_timeout_ms=int(os.getenv("MONGO_TIMEOUT_MS", "500")),
            ai_api_key=_first_env("VAKEEL_AI_API_KEY", "GRADIENT_AI_API_KEY"),
            ai_endpoint=_first_env("VAKEEL_AI_ENDPOINT", "GRADIENT_AI_ENDPOINT"),
            ai_model=_first_env("VAKEEL_AI_MODEL", "MODEL_NAME") or DEFAULT_AI_MODEL,
            ai_timeout=float(os.getenv("VAKEEL_AI_TIMEOUT", "30")),
            ai_max_tokens=int(os.getenv("VAKEEL_AI_MAX_TOKENS", "1500")),
            ai_temperature=float(os.getenv("VAKEEL_AI_TEMPERATURE", "0.7")),
            cors_origins=origins,
        )
