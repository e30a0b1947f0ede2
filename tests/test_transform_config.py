"""Tests for runner transformation config generation."""

from graphsql.models import PipelineGraph
from graphsql.transform_config import generate_transform_config


def config_for(*nodes):
    return generate_transform_config(PipelineGraph(nodes=list(nodes)))


class TestGenerateTransformConfig:
    """Test per-node transformation entries."""

    def test_empty_graph(self):
        """Empty graph yields an empty list."""
        assert generate_transform_config(PipelineGraph()) == {"transformations": []}

    def test_source_and_target_ignored(self, node):
        """Endpoints contribute nothing."""
        config = config_for(node("s", "source", table="t"), node("t", "target", table="x"))
        assert config == {"transformations": []}

    def test_aggregate(self, node):
        """Aliases default to <column>_<function>."""
        config = config_for(
            node(
                "a", "aggregate",
                groupBy=["category"],
                aggregations=[
                    {"column": "value", "function": "sum", "alias": "total"},
                    {"column": "value", "function": "avg"},
                ],
            )
        )
        entry = config["transformations"][0]
        assert entry["type"] == "aggregate"
        assert entry["config"]["group_by"] == ["category"]
        assert entry["config"]["aggregations"] == [
            {"column": "value", "function": "sum", "alias": "total"},
            {"column": "value", "function": "avg", "alias": "value_avg"},
        ]

    def test_aggregate_without_aggregations_skipped(self, node):
        """Group-only aggregates are not sent to the runner."""
        assert config_for(node("a", "aggregate", groupBy=["x"]))["transformations"] == []

    def test_join(self, node):
        """Join columns become single-item lists."""
        config = config_for(node("j", "join", joinType="inner", leftColumn="id", rightColumn="emp_id"))
        assert config["transformations"] == [
            {
                "type": "join",
                "config": {"join_type": "inner", "left_columns": ["id"], "right_columns": ["emp_id"]},
            }
        ]

    def test_join_without_columns_skipped(self, node):
        assert config_for(node("j", "join", joinType="left", joinCondition="a = b")) == {
            "transformations": []
        }

    def test_lookup(self, node):
        """Lookup settings are passed through."""
        config = config_for(
            node(
                "l", "lookup",
                lookupTable="departments",
                lookupSchema="public",
                sourceColumns=["dept_id"],
                lookupColumns=["id"],
                returnColumns=["department"],
            )
        )
        assert config["transformations"][0] == {
            "type": "lookup",
            "config": {
                "lookup_table": "departments",
                "lookup_schema": "public",
                "source_columns": ["dept_id"],
                "lookup_columns": ["id"],
                "return_columns": ["department"],
            },
        }

    def test_filter(self, node):
        """Conditions keep their operator text."""
        config = config_for(
            node("f", "filter", conditions=[{"column": "age", "op": ">=", "value": 18}])
        )
        assert config["transformations"] == [
            {"type": "filter", "config": {"conditions": [{"column": "age", "op": ">=", "value": 18}]}}
        ]

    def test_node_order_preserved(self, node):
        """Entries follow node-list order, not edges."""
        config = config_for(
            node("f", "filter", conditions=[{"column": "a", "op": "=", "value": 1}]),
            node("j", "join", joinType="inner", leftColumn="a", rightColumn="b"),
        )
        assert [t["type"] for t in config["transformations"]] == ["filter", "join"]


class TestTransformNodes:
    """Test basic and typed transform specs."""

    def test_basic_transform(self, node):
        """Untyped specs become 'transform' entries."""
        config = config_for(
            node(
                "t", "transform",
                transforms=[
                    {
                        "target_column": "full_name",
                        "expression": "concat",
                        "columns": ["first", "last"],
                        "separator": " ",
                    }
                ],
            )
        )
        assert config["transformations"] == [
            {
                "type": "transform",
                "config": {
                    "target_column": "full_name",
                    "expression": "concat",
                    "columns": ["first", "last"],
                    "separator": " ",
                },
            }
        ]

    def test_typed_defaults(self, node):
        """Typed specs fill unset keys from defaults."""
        config = config_for(
            node(
                "t", "transform",
                transforms=[
                    {"transformationType": "rank", "config": {"order_column": "score", "n": 3}},
                    {"transformationType": "deduplication", "config": {"key_columns": ["email"]}},
                ],
            )
        )
        rank, dedup = config["transformations"]
        assert rank == {
            "type": "rank",
            "config": {"rank_type": "top_n", "order_column": "score", "n": 3, "partition_by": []},
        }
        assert dedup["config"] == {
            "key_columns": ["email"],
            "method": "exact",
            "similarity_threshold": 0.8,
            "keep_strategy": "first",
        }

    def test_geolocation_keys_follow_operation(self, node):
        """Only keys relevant to the chosen operation are emitted."""
        config = config_for(
            node(
                "t", "transform",
                transforms=[
                    {
                        "transformationType": "geolocation",
                        "config": {"operation": "point_in_polygon", "point_column": "loc"},
                    },
                    {"transformationType": "geolocation", "config": {}},
                ],
            )
        )
        polygon, distance = config["transformations"]
        assert polygon["config"] == {
            "operation": "point_in_polygon",
            "target_column": "geolocation_result",
            "point_column": "loc",
            "polygon": [],
        }
        assert distance["config"] == {
            "operation": "distance",
            "target_column": "geolocation_result",
        }

    def test_geolocation_explicit_distance(self, node):
        """Point columns appear once the operation is set explicitly."""
        config = config_for(
            node(
                "t", "transform",
                transforms=[
                    {
                        "transformationType": "geolocation",
                        "config": {"operation": "distance", "point1_column": "origin"},
                    }
                ],
            )
        )
        assert config["transformations"][0]["config"] == {
            "operation": "distance",
            "target_column": "geolocation_result",
            "point1_column": "origin",
            "point2_column": "",
        }
