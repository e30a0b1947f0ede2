"""graphsql - keeps a visual pipeline graph and its SQL in sync."""

__version__ = "1.0.0"

from graphsql.compiler import GraphCompiler, generate_sql
from graphsql.config import SyncSettings, load_settings
from graphsql.decompiler import SQLDecompiler, parse_sql
from graphsql.exceptions import (
    CyclicGraphError,
    GraphSQLException,
    InvalidSourceError,
    MissingSourceError,
    SettingsError,
)
from graphsql.models import PipelineEdge, PipelineGraph, PipelineNode
from graphsql.transform_config import generate_transform_config

__all__ = [
    "GraphCompiler",
    "SQLDecompiler",
    "generate_sql",
    "parse_sql",
    "generate_transform_config",
    "SyncSettings",
    "load_settings",
    "PipelineGraph",
    "PipelineNode",
    "PipelineEdge",
    "GraphSQLException",
    "MissingSourceError",
    "InvalidSourceError",
    "CyclicGraphError",
    "SettingsError",
    "__version__",
]
