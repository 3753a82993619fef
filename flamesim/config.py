"""Client configuration from environment."""
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root (parent of flamesim/); .env is loaded from here so it works regardless of CWD
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_ENV_FILE if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Remote GraphQL service (text, replies, image, posting)
    graphql_endpoint: str = Field(
        default="http://localhost:8080/graphql",
        validation_alias=AliasChoices("GRAPHQL_ENDPOINT", "NEXT_PUBLIC_GRAPHQL_ENDPOINT"),
    )
    # Image synthesis is slow; this is the transport timeout for every operation.
    request_timeout_seconds: float = 60.0

    # Workflow defaults
    default_level: int = 3
    max_input_length: int = 500
    default_add_hashtag: bool = True
    default_add_disclaimer: bool = True

    # Session API
    poll_timeout_seconds: float = 25.0

    # App
    log_level: str = "INFO"


settings = Settings()
