"""Tests for settings and YAML loading."""

import json

import pytest
from pydantic import ValidationError

from graphsql.config import LogLevel, SyncSettings, load_settings
from graphsql.exceptions import SettingsError
from graphsql.models import LoadStrategy, NodeType
from graphsql.utils import load_yaml_with_env
from graphsql.utils.logging import logger


class TestSyncSettings:
    """Test SyncSettings validation."""

    def test_defaults(self):
        """Defaults match the editor's behaviour."""
        settings = SyncSettings()
        assert settings.source_alias == "source"
        assert settings.target_load_strategy == LoadStrategy.TRUNCATE
        assert settings.position_for(NodeType.AGGREGATE).x == 700
        assert settings.position_for(NodeType.JOIN).x == 0
        assert settings.logging.level == LogLevel.INFO

    def test_alias_must_be_identifier(self):
        """Aliases that would break the SQL are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            SyncSettings(source_alias="my alias")
        assert "source_alias must be a plain SQL identifier" in str(exc_info.value)

    def test_partial_positions_keep_defaults(self):
        """Overriding one stage keeps the others."""
        settings = SyncSettings(stage_positions={"filter": {"x": 1, "y": 2}})
        assert settings.position_for(NodeType.FILTER).x == 1
        assert settings.position_for(NodeType.SOURCE).x == 100


class TestLoadSettings:
    """Test YAML settings files."""

    def test_load_with_env_substitution(self, tmp_path, monkeypatch):
        """${VAR} placeholders are resolved before validation."""
        monkeypatch.setenv("GRAPHSQL_ALIAS", "base")
        path = tmp_path / "settings.yaml"
        path.write_text(
            "source_alias: ${GRAPHSQL_ALIAS}\n"
            "target_load_strategy: APPEND\n"
            "logging:\n"
            "  level: DEBUG\n"
        )

        settings = load_settings(str(path))
        assert settings.source_alias == "base"
        assert settings.target_load_strategy == LoadStrategy.APPEND
        assert settings.logging.level == LogLevel.DEBUG

    def test_environment_override(self, tmp_path):
        """environments.<env> overrides the base document."""
        path = tmp_path / "settings.yaml"
        path.write_text(
            "source_alias: src\n"
            "environments:\n"
            "  prod:\n"
            "    target_load_strategy: UPSERT\n"
        )

        assert load_settings(str(path)).target_load_strategy == LoadStrategy.TRUNCATE
        prod = load_settings(str(path), env="prod")
        assert prod.target_load_strategy == LoadStrategy.UPSERT
        assert prod.source_alias == "src"

    def test_env_file_overlay(self, tmp_path):
        """A sibling env.<name>.yaml is merged last."""
        (tmp_path / "settings.yaml").write_text("source_alias: src\n")
        (tmp_path / "env.dev.yaml").write_text("source_alias: dev_src\n")
        settings = load_settings(str(tmp_path / "settings.yaml"), env="dev")
        assert settings.source_alias == "dev_src"

    def test_imports(self, tmp_path):
        """Imported files provide values the importer does not set."""
        (tmp_path / "common.yaml").write_text(
            "source_alias: common\ntarget_load_strategy: APPEND\n"
        )
        (tmp_path / "settings.yaml").write_text("imports: [common.yaml]\nsource_alias: local\n")

        settings = load_settings(str(tmp_path / "settings.yaml"))
        assert settings.source_alias == "local"
        assert settings.target_load_strategy == LoadStrategy.APPEND

    def test_invalid_settings(self, tmp_path):
        """Schema violations surface as SettingsError."""
        path = tmp_path / "settings.yaml"
        path.write_text("target_load_strategy: MERGE\n")
        with pytest.raises(SettingsError) as exc_info:
            load_settings(str(path))
        assert str(path) in str(exc_info.value)

    def test_top_level_list_rejected(self, tmp_path):
        """A YAML list is not a settings document."""
        path = tmp_path / "settings.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(SettingsError, match="must be a mapping"):
            load_settings(str(path))

    def test_malformed_yaml(self, tmp_path):
        """Parser errors surface as SettingsError."""
        path = tmp_path / "settings.yaml"
        path.write_text("source_alias: [unclosed\n")
        with pytest.raises(SettingsError) as exc_info:
            load_settings(str(path))
        assert str(path) in str(exc_info.value)

    def test_empty_environment_block(self, tmp_path):
        """An environment with no keys leaves the base document alone."""
        path = tmp_path / "settings.yaml"
        path.write_text("source_alias: src\nenvironments:\n  dev:\n")
        settings = load_settings(str(path), env="dev")
        assert settings.source_alias == "src"
        assert settings.target_load_strategy == LoadStrategy.TRUNCATE

    def test_non_mapping_environment_rejected(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("environments:\n  dev: [a, b]\n")
        with pytest.raises(SettingsError, match="Environment 'dev'"):
            load_settings(str(path), env="dev")

    def test_missing_env_var_in_settings(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GRAPHSQL_MISSING", raising=False)
        path = tmp_path / "settings.yaml"
        path.write_text("source_alias: ${GRAPHSQL_MISSING}\n")
        with pytest.raises(SettingsError, match="GRAPHSQL_MISSING"):
            load_settings(str(path))

    def test_missing_env_var(self, tmp_path, monkeypatch):
        """Unset variables fail loudly."""
        monkeypatch.delenv("GRAPHSQL_MISSING", raising=False)
        path = tmp_path / "settings.yaml"
        path.write_text("source_alias: ${env:GRAPHSQL_MISSING}\n")
        with pytest.raises(ValueError, match="Missing environment variable: GRAPHSQL_MISSING"):
            load_yaml_with_env(str(path))

    def test_file_not_found(self):
        with pytest.raises(FileNotFoundError):
            load_settings("non_existent_settings.yaml")


class TestLoggingSettings:
    """Test that settings drive the shared logger."""

    def test_apply_structured_logging(self, capsys):
        """Structured mode prints one JSON object per record."""
        SyncSettings(logging={"level": "DEBUG", "structured": True}).apply_logging()
        logger.debug("hello", node="n1")

        record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert record["level"] == "DEBUG"
        assert record["message"] == "hello"
        assert record["node"] == "n1"

    def test_level_filters_records(self, capsys):
        """Records below the configured level are dropped."""
        SyncSettings(logging={"level": "ERROR", "structured": True}).apply_logging()
        logger.warning("quiet")
        assert capsys.readouterr().out == ""

    def test_secret_redaction(self, capsys):
        """Registered secrets never reach the output."""
        SyncSettings(logging={"structured": True}).apply_logging()
        logger.register_secret("hunter2")
        logger.info("connecting", dsn="postgres://u:hunter2@db")

        record = json.loads(capsys.readouterr().out.strip())
        assert record["dsn"] == "postgres://u:[REDACTED]@db"
        logger._secrets.clear()
