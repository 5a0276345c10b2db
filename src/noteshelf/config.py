"""Configuration module for the noteshelf service."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from noteshelf import __version__

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

STORAGE_BACKENDS = ("memory", "sql")


class NoteshelfConfig(BaseModel):
    """Configuration for the noteshelf server."""

    # Storage configuration: "memory" (list-backed) or "sql" (SQLAlchemy)
    storage_backend: str = Field(
        default_factory=lambda: os.getenv("NOTESHELF_STORAGE", "memory").lower()
    )
    # Only used by the sql backend. The default is a private in-process
    # SQLite database that disappears with the process.
    database_url: str = Field(
        default_factory=lambda: os.getenv("NOTESHELF_DATABASE_URL", "sqlite://")
    )
    # Server configuration
    server_name: str = Field(default=os.getenv("NOTESHELF_SERVER_NAME", "noteshelf"))
    server_version: str = Field(default=__version__)
    # Placeholder identity every request is resolved to
    default_user_id: int = Field(
        default_factory=lambda: int(os.getenv("NOTESHELF_DEFAULT_USER_ID", "0")),
        ge=0,
    )
    default_user_name: str = Field(
        default_factory=lambda: os.getenv("NOTESHELF_DEFAULT_USER_NAME", "")
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("NOTESHELF_LOG_LEVEL", "INFO").upper()
    )

    model_config = {"validate_assignment": True, "validate_default": True}

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        """Validate that the storage backend is a known engine."""
        if v not in STORAGE_BACKENDS:
            raise ValueError(
                f"storage_backend must be one of {', '.join(STORAGE_BACKENDS)}"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that the log level is a standard logging level name."""
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return v


# Create a global config instance
config = NoteshelfConfig()
