"""Configuration settings for wikilinker."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from wikilinker.errors import ConfigError
from wikilinker.models.entity import EntityTypeConfig

# Pipeline step that carries the entity-type configuration.
AUTO_WIKILINK_STEP_TYPE = "auto_wikilink"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI-compatible LLM endpoint
    llm_base_url: str = "https://api.openai.com/v1"
    llm_api_key: str = "dummy-key"
    llm_retries: int = 3

    # Model names, one per external call family
    model_tagging: str = "gpt-4.1"
    model_narrowing: str = "gpt-4.1-nano"
    model_disambiguation: str = "gpt-4o-mini"
    model_heuristic: str = "gpt-4.1-mini"

    # Record store
    vault_path: Path = Path(".")
    last_modified_field: str = "date_modified"

    # ── Resolution tuning ────────────────────────────────────────────────────
    # Entities resolved concurrently (per-entity resolution is independent)
    max_concurrent_entities: int = 4

    # Prior mentions shown to the disambiguator per candidate
    sample_occurrences: int = 3

    # 1 = uniform, 2 = quadratic bias toward recent mentions
    sample_bias_strength: float = 2.0

    # Characters of note body shown to the disambiguator
    body_preview_chars: int = 400


settings = Settings()


def load_entity_types(path: Path) -> list[EntityTypeConfig]:
    """Load entity-type configuration from a YAML pipeline definition.

    Accepts either a pipeline whose ``auto_wikilink`` step carries
    ``entity_types``, or a document with a top-level ``entity_types`` list.

    Raises:
        ConfigError: If the file is unreadable or has no valid entity types.
    """
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        msg = f"Cannot read entity-type config {path}: {e}"
        raise ConfigError(msg) from e

    return parse_entity_types(data, source=str(path))


def parse_entity_types(data: Any, *, source: str = "<config>") -> list[EntityTypeConfig]:
    """Parse entity types out of an already-loaded YAML document."""
    if not isinstance(data, dict):
        msg = f"{source}: expected a mapping at top level"
        raise ConfigError(msg)

    raw_types: Any = data.get("entity_types")
    if raw_types is None:
        steps: Any = data.get("steps") or []
        for step in steps:
            if isinstance(step, dict) and step.get("type") == AUTO_WIKILINK_STEP_TYPE:
                raw_types = step.get("entity_types")
                break

    if not raw_types:
        msg = f"{source}: no entity_types found"
        raise ConfigError(msg)

    try:
        return [EntityTypeConfig.model_validate(item) for item in raw_types]
    except ValidationError as e:
        msg = f"{source}: invalid entity type: {e}"
        raise ConfigError(msg) from e
