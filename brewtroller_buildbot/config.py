"""Configuration settings for brewtroller_buildbot.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_GIT_URL = "http://github.com/brewtroller/brewtroller"


def _default_state_dir() -> Path:
    """Return the default directory holding the mirror and its lock."""
    return Path.home() / ".local" / "share" / "brewtroller-buildbot"


def _default_mirror_dir() -> Path:
    """Return the default local mirror location."""
    return _default_state_dir() / "BrewTroller"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the BTBUILD_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="BTBUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Operational modes
    debug: bool = Field(
        default=False,
        description="Debug mode - include error details and tool output in responses",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # HTTP server
    host: str = Field(default="0.0.0.0", description="Address to listen on")
    port: int = Field(default=8080, ge=1, le=65535, description="Port to listen on")

    # Upstream repository
    git_url: str = Field(
        default=DEFAULT_GIT_URL,
        description="BrewTroller remote repository",
    )
    options_file_name: str = Field(
        default="options.json",
        description="Options manifest file, relative to the repository root",
    )

    # Paths
    mirror_dir: Path = Field(
        default_factory=_default_mirror_dir,
        description="Local mirror of the upstream repository",
    )
    workspace_root: Path | None = Field(
        default=None,
        description="Parent directory for build workspaces (uses system default if not set)",
    )

    # Polling
    poll_period: float = Field(
        default=300.0,
        gt=0,
        description="Seconds between repository refreshes",
    )
    bootstrap_attempts: int = Field(
        default=5,
        ge=1,
        description="Clone attempts before startup is abandoned",
    )
    bootstrap_backoff: float = Field(
        default=2.0,
        ge=0,
        description="Initial delay between clone attempts, doubled after each failure",
    )

    # Timeouts (in seconds)
    git_timeout: int = Field(
        default=300,
        ge=1,
        description="Timeout for each git invocation",
    )
    configure_timeout: int = Field(
        default=600,
        ge=1,
        description="Timeout for the cmake configure step",
    )
    build_timeout: int = Field(
        default=1800,
        ge=1,
        description="Timeout for the make step",
    )
    request_timeout: int = Field(
        default=3600,
        ge=1,
        description="Overall deadline for one build request",
    )
    lock_timeout: int = Field(
        default=600,
        ge=1,
        description="Timeout waiting for the mirror lock during a build",
    )

    @property
    def lock_path(self) -> Path:
        """Lock file guarding the mirror, kept outside the mirror itself."""
        return self.mirror_dir.parent / f".{self.mirror_dir.name}.lock"


def get_settings(**overrides: Any) -> Settings:
    """Get the application settings.

    Args:
        **overrides: Values taking precedence over the environment,
            typically CLI flags. ``None`` values are ignored.

    Returns:
        Settings instance loaded from environment.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    return Settings(**values)


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["DEFAULT_GIT_URL", "Settings", "get_settings", "print_settings_json"]
