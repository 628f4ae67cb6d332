import os
from dotenv import load_dotenv

load_dotenv()


def _normalize_db_url(url: str) -> str:
    # Heroku/Supabase hand out postgres:// but SQLAlchemy wants postgresql://
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


class Config:
    DATABASE_URL = _normalize_db_url(os.getenv("DATABASE_URL", "sqlite:///./geetha_tex.db"))

    # AI summary is disabled when no key is set
    ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
    AI_MODEL = os.getenv("AI_MODEL", "claude-sonnet-4-5-20250929")
    AI_MAX_TOKENS = int(os.getenv("AI_MAX_TOKENS", "1024"))

    NOTIFICATION_SECONDS = float(os.getenv("NOTIFICATION_SECONDS", "3"))
    STORAGE_PREFIX = os.getenv("STORAGE_PREFIX", "geetha-tex")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
