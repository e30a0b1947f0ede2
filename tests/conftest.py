import pytest

from graphsql.models import PipelineEdge, PipelineGraph, PipelineNode
from graphsql.utils.logging import logger


def _make_node(node_id, node_type, **data):
    """Build a node from editor-style camelCase payload keys."""
    return PipelineNode.model_validate({"id": node_id, "type": node_type, "data": data})


def _make_chain(*nodes):
    """Graph whose edges link the given nodes in order."""
    edges = [
        PipelineEdge(id=f"e{i}", source=a.id, target=b.id)
        for i, (a, b) in enumerate(zip(nodes, nodes[1:]))
    ]
    return PipelineGraph(nodes=list(nodes), edges=edges)


@pytest.fixture
def node():
    """Node factory: node(id, type, **camelCase payload)."""
    return _make_node


@pytest.fixture
def chain():
    """Linear graph factory: chain(*nodes)."""
    return _make_chain


@pytest.fixture
def orders_source():
    return _make_node("src", "source", table="orders")


@pytest.fixture(autouse=True)
def reset_logger():
    """Tests that switch the shared logger must not leak their mode."""
    yield
    logger.configure(structured=False, level="INFO")
