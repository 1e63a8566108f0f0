import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_JWT_SECRET = "devsecret"

# Values shipped in example .env files; treated as "not configured"
PLACEHOLDER_VALUES = {
    "",
    "your-api-key",
    "your-project-id",
    "your-supabase-url",
    "your-supabase-key",
    "https://your-project.supabase.co",
}


@dataclass(frozen=True)
class Settings:
    supabase_url: Optional[str]
    supabase_key: Optional[str]
    frontend_url: Optional[str]
    gemini_api_key: Optional[str]
    openai_api_key: Optional[str]
    openai_model: str
    together_api_key: Optional[str]
    together_model: str
    jwt_secret: str
    jwt_algorithm: str
    jwt_exp_minutes: int
    mock_store_path: Optional[str]
    backend_check_ttl: float
    backend_check_timeout: float
    ai_rate_limit: int
    transition_rate_limit: int
    anonymous_gem_limit: int

    @property
    def has_remote_backend(self) -> bool:
        return is_configured(self.supabase_url) and is_configured(self.supabase_key)


def is_configured(value: Optional[str]) -> bool:
    return bool(value) and value.strip() not in PLACEHOLDER_VALUES


def get_settings() -> Settings:
    return Settings(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_KEY"),
        frontend_url=os.getenv("FRONTEND_URL"),
        gemini_api_key=os.getenv("GEMINI_API_KEY"),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        together_api_key=os.getenv("TOGETHER_API_KEY"),
        together_model=os.getenv("TOGETHER_MODEL", "meta-llama/Llama-3.3-70B-Instruct-Turbo-Free"),
        jwt_secret=os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        jwt_exp_minutes=int(os.getenv("JWT_EXP_MINUTES", "60")),
        mock_store_path=os.getenv("MOCK_STORE_PATH") or None,
        backend_check_ttl=float(os.getenv("BACKEND_CHECK_TTL", "30")),
        backend_check_timeout=float(os.getenv("BACKEND_CHECK_TIMEOUT", "2")),
        ai_rate_limit=int(os.getenv("AI_RATE_LIMIT", "20")),
        transition_rate_limit=int(os.getenv("TRANSITION_RATE_LIMIT", "10")),
        anonymous_gem_limit=int(os.getenv("ANONYMOUS_GEM_LIMIT", "1")),
    )
