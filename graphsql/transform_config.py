"""Backend transformation config generated from a pipeline graph.

The job runner does not execute SQL produced by the compiler directly; it
consumes a ``{"transformations": [...]}`` document with one entry per
configured stage. Nodes are emitted in node-list order.
"""

from typing import Any, Callable, Dict, List

from graphsql.models import (
    AggregateNodeData,
    FilterNodeData,
    JoinNodeData,
    LookupNodeData,
    NodeType,
    PipelineGraph,
    PipelineNode,
    TransformationType,
    TransformNodeData,
    TransformSpec,
)
from graphsql.utils.logging import logger

# Defaults for typed transformations, overlaid by TransformSpec.config
TRANSFORMATION_DEFAULTS: Dict[TransformationType, Dict[str, Any]] = {
    TransformationType.SORTER: {"sort_columns": []},
    TransformationType.EXPRESSION: {"expressions": []},
    TransformationType.DATA_CLEANSING: {"rules": []},
    TransformationType.RANK: {
        "rank_type": "top_n",
        "order_column": "",
        "n": 10,
        "partition_by": [],
    },
    TransformationType.SEQUENCE_GENERATOR: {
        "target_column": "",
        "start_value": 1,
        "increment": 1,
    },
    TransformationType.WINDOW_FUNCTIONS: {"windows": []},
    TransformationType.NORMALIZER: {
        "columns_to_denormalize": [],
        "key_column_name": "key",
        "value_column_name": "value",
    },
    TransformationType.JSON_PARSER: {
        "source_column": "",
        "format": "json",
        "fields_to_extract": [],
    },
    TransformationType.GEOLOCATION: {
        "operation": "distance",
        "target_column": "geolocation_result",
    },
    TransformationType.DATA_VALIDATION: {
        "validation_type": "email",
        "source_column": "",
        "target_column": "",
        "is_valid_column": "",
    },
    TransformationType.DEDUPLICATION: {
        "key_columns": [],
        "method": "exact",
        "similarity_threshold": 0.8,
        "keep_strategy": "first",
    },
}

GEOLOCATION_OPERATION_KEYS: Dict[str, Dict[str, Any]] = {
    "distance": {"point1_column": "", "point2_column": ""},
    "point_in_polygon": {"point_column": "", "polygon": []},
}


def _typed_transform_config(kind: TransformationType, overrides: Dict[str, Any]) -> Dict[str, Any]:
    defaults = TRANSFORMATION_DEFAULTS[kind]
    config = {key: overrides.get(key) or default for key, default in defaults.items()}

    # Point keys only when the operation was chosen explicitly
    if kind == TransformationType.GEOLOCATION:
        for key, default in GEOLOCATION_OPERATION_KEYS.get(overrides.get("operation"), {}).items():
            config[key] = overrides.get(key) or default
    return config


def _transform_entry(transform: TransformSpec) -> Dict[str, Any]:
    kind = transform.transformation_type or TransformationType.BASIC
    if kind == TransformationType.BASIC:
        return {
            "type": "transform",
            "config": {
                "target_column": transform.target_column,
                "expression": transform.expression,
                "columns": transform.columns,
                "separator": transform.separator,
            },
        }
    return {"type": kind.value, "config": _typed_transform_config(kind, transform.config)}


def _transform_entries(node: PipelineNode) -> List[Dict[str, Any]]:
    data: TransformNodeData = node.data
    return [_transform_entry(t) for t in data.transforms]


def _filter_entries(node: PipelineNode) -> List[Dict[str, Any]]:
    data: FilterNodeData = node.data
    if not data.conditions:
        return []
    return [
        {
            "type": "filter",
            "config": {
                "conditions": [
                    {"column": c.column, "op": c.op.value, "value": c.value}
                    for c in data.conditions
                ],
            },
        }
    ]


def _aggregate_entries(node: PipelineNode) -> List[Dict[str, Any]]:
    data: AggregateNodeData = node.data
    if not data.aggregations:
        return []
    return [
        {
            "type": "aggregate",
            "config": {
                "group_by": list(data.group_by or []),
                "aggregations": [
                    {
                        "column": agg.column,
                        "function": agg.function.value,
                        "alias": agg.alias or f"{agg.column}_{agg.function.value}",
                    }
                    for agg in data.aggregations
                ],
            },
        }
    ]


def _join_entries(node: PipelineNode) -> List[Dict[str, Any]]:
    data: JoinNodeData = node.data
    if not (data.left_column and data.right_column):
        return []
    # right_data is resolved by the runner from the right-hand source node
    return [
        {
            "type": "join",
            "config": {
                "join_type": data.join_type.value,
                "left_columns": [data.left_column],
                "right_columns": [data.right_column],
            },
        }
    ]


def _lookup_entries(node: PipelineNode) -> List[Dict[str, Any]]:
    data: LookupNodeData = node.data
    if not (data.lookup_table and data.source_columns):
        return []
    return [
        {
            "type": "lookup",
            "config": {
                "lookup_table": data.lookup_table,
                "lookup_schema": data.lookup_schema or "",
                "source_columns": list(data.source_columns),
                "lookup_columns": list(data.lookup_columns),
                "return_columns": list(data.return_columns),
            },
        }
    ]


ENTRY_BUILDERS: Dict[NodeType, Callable[[PipelineNode], List[Dict[str, Any]]]] = {
    NodeType.TRANSFORM: _transform_entries,
    NodeType.FILTER: _filter_entries,
    NodeType.AGGREGATE: _aggregate_entries,
    NodeType.JOIN: _join_entries,
    NodeType.LOOKUP: _lookup_entries,
}


def generate_transform_config(graph: PipelineGraph) -> Dict[str, Any]:
    """Build the runner's transformation document for a graph.

    Args:
        graph: Pipeline graph; source and target nodes contribute nothing

    Returns:
        ``{"transformations": [...]}``
    """
    transformations: List[Dict[str, Any]] = []

    for node in graph.nodes:
        builder = ENTRY_BUILDERS.get(node.type)
        if builder is None:
            continue
        entries = builder(node)
        if not entries:
            logger.debug("Node has no transformation settings", node=node.id, type=node.type.value)
        transformations.extend(entries)

    return {"transformations": transformations}
