import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

# Prompt budgets shared by the context assembler and the conversation store
MAX_DOCUMENT_CHARS = 15000
TRUNCATION_MARKER = "\n\n[Document truncated due to length...]"
MAX_HISTORY_TURNS = 20

# Sampling parameters sent with every completion request
TEMPERATURE = 0.3
MAX_OUTPUT_TOKENS = 1024
TOP_P = 1


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    database_url: str = field(default_factory=lambda: _env("DATABASE_URL", "sqlite:///docchat.db"))
    upload_dir: str = field(default_factory=lambda: _env("UPLOAD_DIR", "uploads"))
    max_upload_bytes: int = field(
        default_factory=lambda: int(_env("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    )
    groq_api_key: Optional[str] = field(default_factory=lambda: _env("GROQ_API_KEY"))
    groq_base_url: str = field(
        default_factory=lambda: _env("GROQ_BASE_URL", "https://api.groq.com/openai/v1")
    )
    groq_model: str = field(default_factory=lambda: _env("GROQ_MODEL", "llama-3.3-70b-versatile"))
    log_level: str = field(default_factory=lambda: _env("LOG_LEVEL", "INFO"))
    cors_origins: List[str] = field(
        default_factory=lambda: [o.strip() for o in _env("CORS_ORIGINS", "*").split(",") if o.strip()]
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
