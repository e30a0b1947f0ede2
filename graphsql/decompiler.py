"""SQL to graph reconstruction.

Best effort: clauses are located with regular expressions and anything that
does not match is treated as absent. Decompiling never raises.
"""

import itertools
import math
import re
from typing import Iterator, List, Optional, Union

from graphsql.config import SyncSettings
from graphsql.models import (
    AggregateNodeData,
    AggregationConfig,
    ConditionValue,
    FilterCondition,
    FilterNodeData,
    NodeType,
    PipelineEdge,
    PipelineGraph,
    PipelineNode,
    SourceNodeData,
    TargetNodeData,
)
from graphsql.utils.logging import logger

FROM_PATTERN = re.compile(r"\bFROM\s+([^\s();]+)", re.IGNORECASE)
WHERE_PATTERN = re.compile(
    r"\bWHERE\s+(.+?)(?:\s+GROUP\s+BY|\s+ORDER\s+BY|\s+HAVING|$)",
    re.IGNORECASE | re.DOTALL,
)
GROUP_BY_PATTERN = re.compile(
    r"\bGROUP\s+BY\s+(.+?)(?:\s+ORDER\s+BY|\s+HAVING|$)",
    re.IGNORECASE | re.DOTALL,
)
SELECT_PATTERN = re.compile(r"\bSELECT\s+(.+?)\s+FROM\b", re.IGNORECASE | re.DOTALL)
CONDITION_SPLIT_PATTERN = re.compile(r"\s+(?:AND|OR)\s+", re.IGNORECASE)
AGGREGATION_PATTERN = re.compile(
    r"(SUM|COUNT|AVG|MIN|MAX)\s*\(\s*([^)]+)\s*\)(?:\s+AS\s+(\w+))?",
    re.IGNORECASE,
)
NUMBER_PATTERN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

# Multi-character operators come before their single-character prefixes
OPERATORS = ["!=", ">=", "<=", "=", ">", "<", "LIKE", "IN", "NOT IN", "IS NULL", "IS NOT NULL"]
AGGREGATE_FUNCTIONS = ["SUM", "COUNT", "AVG", "MIN", "MAX"]


def _parse_number(text: str) -> Optional[Union[int, float]]:
    if not NUMBER_PATTERN.fullmatch(text):
        return None
    if re.fullmatch(r"[+-]?\d+", text):
        return int(text)
    value = float(text)
    # 1e999 overflows to inf, which has no SQL literal
    if not math.isfinite(value):
        return None
    return value


def _clause_body(text: str) -> str:
    return text.strip().rstrip(";").strip()


def coerce_value(value_part: str, op: str) -> ConditionValue:
    """Turn the text right of an operator into a typed filter value."""
    if len(value_part) >= 2 and value_part.startswith("'") and value_part.endswith("'"):
        return value_part[1:-1].replace("''", "'")

    number = _parse_number(value_part)
    if number is not None:
        return number

    if value_part.upper() in ("TRUE", "FALSE"):
        return value_part.upper() == "TRUE"

    if op in ("IN", "NOT IN"):
        inner = value_part.replace("(", "").replace(")", "")
        return [item.strip().replace("'", "").replace('"', "") for item in inner.split(",")]

    if op in ("IS NULL", "IS NOT NULL"):
        return None

    return value_part


def parse_where_clause(where_clause: str) -> List[FilterCondition]:
    """Split a WHERE body into conditions.

    Splits on every whitespace-delimited AND/OR, so parentheses and string
    literals containing those words are not respected.
    """
    conditions = []

    for part in CONDITION_SPLIT_PATTERN.split(where_clause):
        trimmed = part.strip()
        if not trimmed:
            continue

        upper = trimmed.upper()
        for op in OPERATORS:
            op_index = upper.find(op)
            if op_index == -1:
                continue

            column = trimmed[:op_index].strip().replace('"', "")
            value_part = trimmed[op_index + len(op):].strip()
            conditions.append(
                FilterCondition(column=column, op=op, value=coerce_value(value_part, op))
            )
            break
        else:
            logger.debug("Dropping condition without a known operator", fragment=trimmed)

    return conditions


def has_aggregate_functions(select_clause: str) -> bool:
    upper = select_clause.upper()
    return any(f"{func}(" in upper for func in AGGREGATE_FUNCTIONS)


def extract_aggregations(select_clause: str) -> List[AggregationConfig]:
    """Collect every FUNC(column) [AS alias] in a select list."""
    return [
        AggregationConfig(
            column=match.group(2).strip().replace('"', ""),
            function=match.group(1).lower(),
            alias=match.group(3).strip() if match.group(3) else None,
        )
        for match in AGGREGATION_PATTERN.finditer(select_clause)
    ]


class _GraphBuilder:
    """Accumulates nodes and chains each new one after the previous."""

    def __init__(self, settings: SyncSettings):
        self.settings = settings
        self.nodes: List[PipelineNode] = []
        self.edges: List[PipelineEdge] = []
        self._ids: Iterator[int] = itertools.count()

    def add(self, node_type: NodeType, data) -> PipelineNode:
        node = PipelineNode(
            id=f"{node_type.value}-{next(self._ids)}",
            type=node_type,
            data=data,
            position=self.settings.position_for(node_type),
        )
        if self.nodes:
            self.edges.append(
                PipelineEdge(
                    id=f"edge-{len(self.edges)}",
                    source=self.nodes[-1].id,
                    target=node.id,
                )
            )
        self.nodes.append(node)
        return node

    def build(self) -> PipelineGraph:
        return PipelineGraph(nodes=self.nodes, edges=self.edges)


class SQLDecompiler:
    """Reconstructs a PipelineGraph from SQL text."""

    def __init__(self, settings: Optional[SyncSettings] = None):
        self.settings = settings or SyncSettings()

    def decompile(self, sql: str) -> PipelineGraph:
        """Rebuild a source → [filter] → [aggregate] → target chain.

        Args:
            sql: Free-form SQL text

        Returns:
            Reconstructed graph, empty when no FROM clause is found
        """
        from_match = FROM_PATTERN.search(sql)
        if not from_match:
            logger.debug("No FROM clause found, returning empty graph")
            return PipelineGraph()

        builder = _GraphBuilder(self.settings)

        table_ref = from_match.group(1).strip().replace('"', "").replace("'", "")
        table_parts = table_ref.split(".")
        builder.add(
            NodeType.SOURCE,
            SourceNodeData(
                schema_name=table_parts[0] if len(table_parts) > 1 else None,
                table=table_parts[-1],
                query=sql if "(" in sql and ")" in sql else None,
            ),
        )
        logger.debug("Recognised source", table=table_ref)

        where_match = WHERE_PATTERN.search(sql)
        if where_match:
            conditions = parse_where_clause(_clause_body(where_match.group(1)))
            if conditions:
                builder.add(NodeType.FILTER, FilterNodeData(conditions=conditions))
                logger.debug("Recognised filter", conditions=len(conditions))

        group_by_match = GROUP_BY_PATTERN.search(sql)
        select_match = SELECT_PATTERN.search(sql)
        select_clause = select_match.group(1) if select_match else ""

        if group_by_match or has_aggregate_functions(select_clause):
            group_by = []
            if group_by_match:
                group_by = [
                    col.strip().replace('"', "")
                    for col in _clause_body(group_by_match.group(1)).split(",")
                ]

            builder.add(
                NodeType.AGGREGATE,
                AggregateNodeData(
                    group_by=group_by or None,
                    aggregations=extract_aggregations(select_clause),
                ),
            )
            logger.debug("Recognised aggregate", group_by=group_by)

        builder.add(
            NodeType.TARGET,
            TargetNodeData(load_strategy=self.settings.target_load_strategy),
        )
        return builder.build()


def parse_sql(sql: str, settings: Optional[SyncSettings] = None) -> PipelineGraph:
    """Decompile SQL with a throwaway SQLDecompiler."""
    return SQLDecompiler(settings).decompile(sql)
