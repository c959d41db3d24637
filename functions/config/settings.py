"""QuoteDesk configuration settings.

Loads configuration from environment variables with sensible defaults.
Remote inference and lead delivery are disabled unless explicitly configured.
"""

import os
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file for local development (API keys, webhook URL, feature flags)
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    """Read a boolean feature flag from the environment."""
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # LLM Configuration
    llm_model: str = field(default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o-mini"))
    llm_temperature: float = field(default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.0")))
    openai_api_key: Optional[str] = field(default_factory=lambda: os.getenv("OPENAI_API_KEY"), repr=False)

    # Remote fallbacks
    remote_extraction_enabled: bool = field(default_factory=lambda: _env_flag("REMOTE_EXTRACTION_ENABLED"))
    remote_timeout_seconds: float = field(default_factory=lambda: float(os.getenv("REMOTE_TIMEOUT_SECONDS", "8")))
    estimate_review_enabled: bool = field(default_factory=lambda: _env_flag("ESTIMATE_REVIEW_ENABLED"))

    # Lead delivery
    lead_webhook_url: Optional[str] = field(default_factory=lambda: os.getenv("LEAD_WEBHOOK_URL"))
    lead_webhook_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("LEAD_WEBHOOK_TIMEOUT_SECONDS", "10"))
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    def validate(self) -> None:
        """Validate required settings are present.

        Raises:
            ValueError: If a remote feature is enabled without an API key.
        """
        if (self.remote_extraction_enabled or self.estimate_review_enabled) and not self.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required when remote inference is enabled")


# Singleton settings instance
settings = Settings()
