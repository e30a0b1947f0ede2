"""Graph to SQL generation.

Walks a pipeline graph depth-first from its source node and grows a single
``SELECT`` statement, one clause per visited node.
"""

from typing import List, Optional, Set

from graphsql.config import SyncSettings
from graphsql.exceptions import InvalidSourceError
from graphsql.graph import PipelineGraphIndex
from graphsql.models import (
    AggregateNodeData,
    ConditionValue,
    FilterCondition,
    FilterNodeData,
    FilterOperator,
    JoinNodeData,
    NodeType,
    PipelineGraph,
    PipelineNode,
    SourceNodeData,
)
from graphsql.utils.logging import logger

NULL_OPERATORS = (FilterOperator.IS_NULL, FilterOperator.IS_NOT_NULL)


def quote_identifier(name: str) -> str:
    return f'"{name}"'


def quote_literal(value: str) -> str:
    """Single-quote a string literal, doubling embedded quotes."""
    return "'" + value.replace("'", "''") + "'"


def render_value(value: ConditionValue) -> str:
    """Render a filter value as SQL text."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, str):
        return quote_literal(value)
    if isinstance(value, list):
        return "(" + ", ".join(render_value(item) for item in value) + ")"
    return str(value)


def render_condition(condition: FilterCondition) -> str:
    if condition.op in NULL_OPERATORS:
        return f"{condition.column} {condition.op.value}"
    return f"{condition.column} {condition.op.value} {render_value(condition.value)}"


class GraphCompiler:
    """Compiles a PipelineGraph into one SQL SELECT statement."""

    def __init__(self, settings: Optional[SyncSettings] = None):
        self.settings = settings or SyncSettings()

    def compile(self, graph: PipelineGraph) -> str:
        """Generate SQL for a pipeline graph.

        Args:
            graph: Graph with exactly one source node

        Returns:
            SQL text starting with ``SELECT``

        Raises:
            MissingSourceError: If no node has type ``source``
            InvalidSourceError: If the source has neither table nor query
            CyclicGraphError: If a cycle is reachable from the source
        """
        index = PipelineGraphIndex(graph)
        source = index.find_source()
        query = f"SELECT * FROM {self._base_relation(source)} AS {self.settings.source_alias}"
        index.check_cycles(source.id)

        visited: Set[str] = {source.id}
        state = {"query": query, "aggregates": 0, "filters": 0}

        # Depth-first, pre-order, siblings in edge-list order
        stack: List[PipelineNode] = list(reversed(index.successors(source.id)))
        while stack:
            node = stack.pop()
            if node.id in visited:
                continue
            visited.add(node.id)

            logger.debug("Compiling node", node=node.id, type=node.type.value)
            state["query"] = self._apply(node, state)
            stack.extend(reversed(index.successors(node.id)))

        logger.debug("Compiled pipeline graph", nodes=len(visited), sql=state["query"])
        return state["query"]

    def _base_relation(self, source: PipelineNode) -> str:
        data: SourceNodeData = source.data
        if data.query:
            return f"({data.query})"
        if data.table:
            if data.schema_name:
                return f"{quote_identifier(data.schema_name)}.{quote_identifier(data.table)}"
            return quote_identifier(data.table)
        raise InvalidSourceError(node_id=source.id)

    def _apply(self, node: PipelineNode, state: dict) -> str:
        query = state["query"]
        if node.type == NodeType.JOIN:
            return query + self._join_clause(node.data)
        if node.type == NodeType.FILTER:
            return query + self._where_clause(node, state)
        if node.type == NodeType.AGGREGATE:
            return self._apply_aggregate(node, query, state)
        # source, target, lookup and transform add no SQL
        return query

    def _join_clause(self, data: JoinNodeData) -> str:
        join_type = data.join_type.value.upper().replace("FULL", "FULL OUTER")
        left_table = data.left_table or self.settings.source_alias
        right_table = data.right_table or ""

        if data.join_condition:
            condition = data.join_condition
        elif data.left_column and data.right_column:
            condition = f"{left_table}.{data.left_column} = {right_table}.{data.right_column}"
        else:
            condition = "1=1"

        return f" {join_type} JOIN {right_table} ON {condition}"

    def _where_clause(self, node: PipelineNode, state: dict) -> str:
        data: FilterNodeData = node.data
        if not data.conditions:
            return ""

        state["filters"] += 1
        if state["filters"] > 1:
            logger.warning(
                "Multiple filter nodes each append their own WHERE clause",
                node=node.id,
            )
        return " WHERE " + " AND ".join(render_condition(c) for c in data.conditions)

    def _apply_aggregate(self, node: PipelineNode, query: str, state: dict) -> str:
        data: AggregateNodeData = node.data
        select_parts: List[str] = []

        if data.group_by:
            select_parts.extend(data.group_by)

        for agg in data.aggregations:
            alias = agg.alias or f"{agg.function.value}_{agg.column}"
            select_parts.append(f"{agg.function.value.upper()}({agg.column}) AS {alias}")

        state["aggregates"] += 1
        if select_parts:
            if "SELECT *" not in query:
                # Only the first aggregate can rewrite the select list
                logger.warning(
                    "Aggregate select list dropped, SELECT * already rewritten",
                    node=node.id,
                    aggregate_index=state["aggregates"],
                )
            query = query.replace("SELECT *", f"SELECT {', '.join(select_parts)}", 1)

        if data.group_by:
            query += f" GROUP BY {', '.join(data.group_by)}"
        return query


def generate_sql(graph: PipelineGraph, settings: Optional[SyncSettings] = None) -> str:
    """Compile a graph with a throwaway GraphCompiler."""
    return GraphCompiler(settings).compile(graph)
