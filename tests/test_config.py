"""Tests for settings and entity-type configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from wikilinker.config import Settings, load_entity_types, parse_entity_types
from wikilinker.errors import ConfigError

PIPELINE_YAML = """\
name: daily-notes
steps:
  - type: transcribe
  - type: auto_wikilink
    entity_types:
      - type: person
        description: Someone I know
        files: ["People/*.md"]
      - type: place
        files: ["Places/**/*.md"]
"""


class TestParseEntityTypes:
    def test_top_level_list(self) -> None:
        types = parse_entity_types({"entity_types": [{"type": "person", "files": ["People/*.md"]}]})
        assert [t.type for t in types] == ["person"]
        assert types[0].description is None

    def test_missing_types(self) -> None:
        with pytest.raises(ConfigError, match="no entity_types"):
            parse_entity_types({"steps": [{"type": "transcribe"}]})

    def test_not_a_mapping(self) -> None:
        with pytest.raises(ConfigError, match="mapping"):
            parse_entity_types(["person"])

    def test_invalid_entry(self) -> None:
        with pytest.raises(ConfigError, match="invalid entity type"):
            parse_entity_types({"entity_types": [{"description": "no type"}]})


class TestLoadEntityTypes:
    def test_pipeline_step(self, tmp_path: Path) -> None:
        config = tmp_path / "pipeline.yaml"
        config.write_text(PIPELINE_YAML, encoding="utf-8")

        types = load_entity_types(config)

        assert [(t.type, t.folder) for t in types] == [("person", "People"), ("place", "Places")]
        assert types[0].description == "Someone I know"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read"):
            load_entity_types(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        config = tmp_path / "bad.yaml"
        config.write_text("entity_types: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_entity_types(config)


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MAX_CONCURRENT_ENTITIES", raising=False)
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.max_concurrent_entities == 4
        assert settings.sample_occurrences == 3
        assert settings.last_modified_field == "date_modified"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MODEL_NARROWING", "local-small")
        monkeypatch.setenv("SAMPLE_BIAS_STRENGTH", "3")
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.model_narrowing == "local-small"
        assert settings.sample_bias_strength == 3.0
