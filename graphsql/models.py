"""Pipeline graph models shared by the compiler, decompiler and config generator.

Field names are snake_case in Python and camelCase on the wire, matching the
visual editor's JSON. Both spellings are accepted on input.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class NodeType(str, Enum):
    """Pipeline stage kinds."""

    SOURCE = "source"
    JOIN = "join"
    FILTER = "filter"
    AGGREGATE = "aggregate"
    TARGET = "target"
    LOOKUP = "lookup"
    TRANSFORM = "transform"


class JoinType(str, Enum):
    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"
    FULL = "full"


class FilterOperator(str, Enum):
    """Comparison operators a filter condition can use."""

    EQ = "="
    NE = "!="
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="
    LIKE = "LIKE"
    IN = "IN"
    NOT_IN = "NOT IN"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"


class AggregateFunction(str, Enum):
    SUM = "sum"
    COUNT = "count"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


class LoadStrategy(str, Enum):
    """How a target table is loaded."""

    TRUNCATE = "TRUNCATE"
    APPEND = "APPEND"
    UPSERT = "UPSERT"


class TransformationType(str, Enum):
    """Transformation kinds a transform node can carry."""

    BASIC = "basic"
    SORTER = "sorter"
    EXPRESSION = "expression"
    DATA_CLEANSING = "data_cleansing"
    RANK = "rank"
    SEQUENCE_GENERATOR = "sequence_generator"
    WINDOW_FUNCTIONS = "window_functions"
    NORMALIZER = "normalizer"
    JSON_PARSER = "json_parser"
    GEOLOCATION = "geolocation"
    DATA_VALIDATION = "data_validation"
    DEDUPLICATION = "deduplication"


class GraphModel(BaseModel):
    """Base for all graph models: immutable, camelCase aliases."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


ConditionValue = Union[bool, int, float, str, List[str], None]


class Position(GraphModel):
    """Canvas coordinates, display only."""

    x: float = 0
    y: float = 0


class FilterCondition(GraphModel):
    column: str
    op: FilterOperator
    value: ConditionValue = None


class AggregationConfig(GraphModel):
    column: str
    function: AggregateFunction
    alias: Optional[str] = None


class TransformSpec(GraphModel):
    """One column transformation inside a transform node."""

    # The editor sends these two in snake_case
    target_column: str = Field(default="", alias="target_column")
    expression: str = ""
    columns: Optional[List[str]] = None
    separator: Optional[str] = None
    transformation_type: Optional[TransformationType] = None
    config: Dict[str, Any] = Field(default_factory=dict)


class SourceNodeData(GraphModel):
    """
    Where the pipeline reads from.

    Either `table` (optionally with `schema`) or a free-form `query` must be
    set for the graph to compile. Both may be present after decompiling SQL
    that contains a sub-expression; the query then takes precedence.
    """

    table: Optional[str] = None
    schema_name: Optional[str] = Field(default=None, alias="schema")
    query: Optional[str] = None
    connection_string: Optional[str] = None
    db_engine: Optional[str] = None


class JoinNodeData(GraphModel):
    join_type: JoinType = JoinType.INNER
    left_table: Optional[str] = None
    right_table: Optional[str] = None
    left_column: Optional[str] = None
    right_column: Optional[str] = None
    join_condition: Optional[str] = None


class FilterNodeData(GraphModel):
    conditions: List[FilterCondition] = Field(default_factory=list)


class AggregateNodeData(GraphModel):
    group_by: Optional[List[str]] = None
    aggregations: List[AggregationConfig] = Field(default_factory=list)


class TransformNodeData(GraphModel):
    transforms: List[TransformSpec] = Field(default_factory=list)


class LookupNodeData(GraphModel):
    lookup_table: Optional[str] = None
    lookup_schema: Optional[str] = None
    source_columns: List[str] = Field(default_factory=list)
    lookup_columns: List[str] = Field(default_factory=list)
    return_columns: List[str] = Field(default_factory=list)


class TargetNodeData(GraphModel):
    table: Optional[str] = None
    schema_name: Optional[str] = Field(default=None, alias="schema")
    connection_string: Optional[str] = None
    db_engine: Optional[str] = None
    load_strategy: Optional[LoadStrategy] = None


NodeData = Union[
    SourceNodeData,
    JoinNodeData,
    FilterNodeData,
    AggregateNodeData,
    TransformNodeData,
    LookupNodeData,
    TargetNodeData,
]

NODE_DATA_TYPES: Dict[NodeType, type] = {
    NodeType.SOURCE: SourceNodeData,
    NodeType.JOIN: JoinNodeData,
    NodeType.FILTER: FilterNodeData,
    NodeType.AGGREGATE: AggregateNodeData,
    NodeType.TRANSFORM: TransformNodeData,
    NodeType.LOOKUP: LookupNodeData,
    NodeType.TARGET: TargetNodeData,
}


class PipelineNode(GraphModel):
    """One stage of a pipeline."""

    id: str
    type: NodeType
    data: NodeData
    position: Position = Field(default_factory=Position)

    @model_validator(mode="before")
    @classmethod
    def coerce_data(cls, values: Any) -> Any:
        """Validate `data` against the payload class matching `type`."""
        if not isinstance(values, dict):
            return values

        node_type = values.get("type")
        try:
            node_type = NodeType(node_type)
        except ValueError:
            # Let field validation report the bad type
            return values

        data_cls = NODE_DATA_TYPES[node_type]
        data = values.get("data")
        if data is None:
            data = {}
        if isinstance(data, dict):
            # The editor repeats the node type inside its payload
            data = {k: v for k, v in data.items() if k != "type"}
            values = {**values, "data": data_cls.model_validate(data)}
        elif not isinstance(data, data_cls):
            raise ValueError(
                f"Node '{values.get('id')}' of type '{node_type.value}' "
                f"needs {data_cls.__name__}, got {type(data).__name__}"
            )
        return values


class PipelineEdge(GraphModel):
    """Directed connection: output of `source` feeds `target`."""

    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None


class PipelineGraph(GraphModel):
    """Nodes plus directed edges, as drawn in the visual editor."""

    nodes: List[PipelineNode] = Field(default_factory=list)
    edges: List[PipelineEdge] = Field(default_factory=list)

    def get_node(self, node_id: str) -> Optional[PipelineNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def source_nodes(self) -> List[PipelineNode]:
        return [node for node in self.nodes if node.type == NodeType.SOURCE]

    def is_empty(self) -> bool:
        return not self.nodes and not self.edges
