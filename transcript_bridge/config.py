"""Application configuration settings.

This module provides centralized configuration management using environment
variables with sensible defaults, plus the structlog setup shared by the
server and the CLI.
"""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

import structlog


def _get_bool_env(name: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable.

    Args:
        name: Environment variable name.
        default: Default value if not set.

    Returns:
        Boolean value from environment.
    """
    value = os.getenv(name, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def _get_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables.

    Instances are immutable and handed to each component at construction,
    so tests can build their own without touching the environment.

    Attributes:
        api_url: Base URL of the remote audio service.
        client_id: OAuth2 client id for the remote service.
        client_secret: OAuth2 client secret for the remote service.
        owner: Owner id used for every remote entity.
        webhook_secret: Shared secret used to sign webhook callbacks.
        storage_path: Directory downloaded transcripts are written to.
        port: Port the webhook server listens on.
        gcp_project: Set when running without durable local storage.
        redact_pii: Ask the transcription step to scrub personal data.
        language_code: Transcription language.
        log_level: Logging level.
    """

    api_url: str = "https://api.simpleemotion.com"
    client_id: str | None = None
    client_secret: str | None = None
    owner: str | None = None
    webhook_secret: str = ""
    storage_path: Path = Path("transcripts")
    port: int = 8080
    gcp_project: str | None = None
    redact_pii: bool = False
    language_code: str = "en-US"
    log_level: str = "INFO"

    @property
    def local_storage_enabled(self) -> bool:
        """Whether transcripts are downloaded rather than only logged."""
        return not self.gcp_project

    @property
    def storage_dir(self) -> Path:
        """Absolute storage directory."""
        return self.storage_path.resolve()

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables.

        Returns:
            Settings instance populated from environment.
        """
        return cls(
            api_url=os.getenv("SE_API_URL", "https://api.simpleemotion.com"),
            client_id=os.getenv("SE_CLIENT_ID"),
            client_secret=os.getenv("SE_CLIENT_SECRET"),
            owner=os.getenv("SE_OWNER"),
            webhook_secret=os.getenv("SE_WEBHOOK_SECRET", ""),
            storage_path=Path(os.getenv("STORAGE_PATH", "transcripts")),
            port=_get_int_env("PORT", 8080),
            gcp_project=os.getenv("GCP_PROJECT") or None,
            redact_pii=_get_bool_env("REDACT_PII", default=False),
            language_code=os.getenv("LANGUAGE_CODE", "en-US"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


def configure_logging(level: str = "INFO", *, json_output: bool = False) -> None:
    """Configure structlog and the stdlib root logger.

    Log output goes to stderr so that stdout stays reserved for command
    results.

    Args:
        level: Logging level name.
        json_output: Render JSON lines instead of the console format.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
