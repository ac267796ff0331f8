"""
Core data primitives for factbridge.

- Type system: NodeType, Feature, TypeSystem
- Records: Node, Document, FactKind
- Graph view: node_graph, reachable_nodes
"""

from factbridge.core.types import (
    Feature,
    NodeType,
    TypeSystem,
    TypeSystemError,
    STRING,
    INTEGER,
    FLOAT,
    BOOLEAN,
    TOP,
)
from factbridge.core.models import Document, FactKind, Node, fact_kind_of, generate_id
from factbridge.core.graph import has_cycle, is_structured, node_graph, reachable_nodes

__all__ = [
    "Feature",
    "NodeType",
    "TypeSystem",
    "TypeSystemError",
    "STRING",
    "INTEGER",
    "FLOAT",
    "BOOLEAN",
    "TOP",
    "Document",
    "FactKind",
    "Node",
    "fact_kind_of",
    "generate_id",
    "has_cycle",
    "is_structured",
    "node_graph",
    "reachable_nodes",
]
