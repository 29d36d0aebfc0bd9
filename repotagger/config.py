"""Runtime configuration — env-driven, no hardcoded hosts in the core.

Centralized settings using pydantic-settings. Reads from a .env file and
REPOTAGGER_* environment variables. The trusted-host allow-list and the
tag pattern live here so the tagger can be reused with other hosts and
synthetic tags.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TRUSTED_HOSTS: list[str] = [
    f"{prefix}.example.{tld}"
    for prefix in ("www", "tech", "update")
    for tld in ("org", "com")
]

DEFAULT_TAG_VALUE_PATTERN = r"[0-9a-fA-F]{2}-[0-9a-fA-F]{16}(?:-[0-9a-fA-F]+)*"


class TaggerSettings(BaseSettings):
    """Settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export REPOTAGGER_LOG_LEVEL=DEBUG
        export REPOTAGGER_TRUSTED_HOSTS='["update.example.com"]'
        export REPOTAGGER_REGISTRY_PATH=/data/registry.json
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="REPOTAGGER_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"

    # Tagging rules
    trusted_hosts: list[str] = list(DEFAULT_TRUSTED_HOSTS)
    tagged_schemes: list[str] = ["http", "https"]
    tag_key: str = "knid"
    tag_value_pattern: str = DEFAULT_TAG_VALUE_PATTERN

    # Storage paths
    registry_path: Path = Path(".repotagger/registry.json")
    instance_id_path: Path = Path(".repotagger/instance-id")

    @field_validator("trusted_hosts", "tagged_schemes")
    @classmethod
    def _lowercase(cls, values: list[str]) -> list[str]:
        return [v.strip().lower() for v in values if v.strip()]


# Module-level singleton — import as `from repotagger.config import settings`
settings = TaggerSettings()
