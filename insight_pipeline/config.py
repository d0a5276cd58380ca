"""Environment-driven configuration for the model backend."""
import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict


load_dotenv()

DEFAULT_MODEL = "claude-3-haiku-20240307"
DEFAULT_MAX_TOKENS = 1000
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TIMEOUT_SECONDS = 60.0

SYSTEM_PROMPT = (
    "You are an AI assistant named Claude, developed by Anthropic. "
    "You are helpful, harmless, and honest. "
    "Always provide clear, concise, and accurate responses to the best of your ability."
)


class Settings(BaseModel):
    """Model backend settings."""
    model_config = ConfigDict(frozen=True)

    api_key: str
    base_url: str | None = None
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    system_prompt: str = SYSTEM_PROMPT
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build Settings from the environment (and a .env file, if present)."""
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise ValueError("ANTHROPIC_API_KEY environment variable is required")

    return Settings(
        api_key=api_key,
        base_url=os.getenv("ANTHROPIC_BASE_URL") or None,
        model=os.getenv("ANTHROPIC_MODEL", DEFAULT_MODEL),
        max_tokens=int(os.getenv("ANTHROPIC_MAX_TOKENS", str(DEFAULT_MAX_TOKENS))),
        temperature=float(os.getenv("ANTHROPIC_TEMPERATURE", str(DEFAULT_TEMPERATURE))),
        timeout=float(os.getenv("ANTHROPIC_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))),
        log_level=os.getenv("INSIGHT_LOG_LEVEL", "INFO").upper(),
    )
