"""Settings for the graph/SQL synchronizer."""

from enum import Enum
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from graphsql.exceptions import SettingsError
from graphsql.models import LoadStrategy, NodeType, Position
from graphsql.utils.config_loader import load_yaml_with_env
from graphsql.utils.logging import configure_logging, logger


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    structured: bool = Field(default=False, description="Output JSON logs")


def _default_stage_positions() -> Dict[NodeType, Position]:
    return {
        NodeType.SOURCE: Position(x=100, y=200),
        NodeType.FILTER: Position(x=400, y=200),
        NodeType.AGGREGATE: Position(x=700, y=200),
        NodeType.TARGET: Position(x=1000, y=200),
    }


class SyncSettings(BaseModel):
    """
    Settings shared by GraphCompiler and SQLDecompiler.

    Example:
    ```yaml
    source_alias: src
    target_load_strategy: APPEND
    stage_positions:
      filter: {x: 350, y: 150}
    logging:
      level: DEBUG
      structured: true
    ```
    """

    source_alias: str = Field(
        default="source",
        description="Alias given to the base relation in generated SQL",
    )
    target_load_strategy: LoadStrategy = Field(
        default=LoadStrategy.TRUNCATE,
        description="Load strategy of the target node synthesized by the decompiler",
    )
    stage_positions: Dict[NodeType, Position] = Field(
        default_factory=_default_stage_positions,
        description="Canvas coordinates for decompiled nodes, per node type",
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("source_alias")
    @classmethod
    def validate_source_alias(cls, v: str) -> str:
        if not v.isidentifier():
            raise ValueError(f"source_alias must be a plain SQL identifier, got '{v}'")
        return v

    @field_validator("stage_positions")
    @classmethod
    def fill_stage_positions(cls, v: Dict[NodeType, Position]) -> Dict[NodeType, Position]:
        """Partial overrides keep the defaults for unlisted stages."""
        return {**_default_stage_positions(), **v}

    def position_for(self, node_type: NodeType) -> Position:
        return self.stage_positions.get(node_type, Position())

    def apply_logging(self) -> None:
        """Push the logging block into the shared logger."""
        configure_logging(structured=self.logging.structured, level=self.logging.level.value)


def load_settings(path: str, env: Optional[str] = None) -> SyncSettings:
    """Load settings from a YAML file.

    Args:
        path: Path to YAML file
        env: Environment name used for overrides

    Returns:
        Validated settings

    Raises:
        FileNotFoundError: If the file does not exist
        SettingsError: If the document does not describe valid settings
    """
    try:
        data = load_yaml_with_env(path, env=env)
    except (ValueError, yaml.YAMLError) as e:
        logger.error("Unreadable settings file", path=path, error=str(e))
        raise SettingsError(str(e), file=path) from e

    try:
        settings = SyncSettings.model_validate(data)
    except ValidationError as e:
        logger.error("Invalid settings", path=path, errors=e.error_count())
        raise SettingsError(str(e), file=path) from e

    logger.debug("Settings loaded", path=path, source_alias=settings.source_alias)
    return settings
