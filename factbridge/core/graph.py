"""
Graph view over Node references.

A document graph is implicit in the structured features of its Nodes.
This module makes it explicit as a NetworkX directed graph, which is
handy for inspecting shared children and reference cycles, and gives
the canonical walk order that fact loading follows.
"""

from __future__ import annotations

from typing import Any, Iterator

import networkx as nx

from factbridge.core.models import Node


def is_structured(value: Any) -> bool:
    """Check whether a value is a Node of a non-primitive type."""
    return isinstance(value, Node) and not value.type.primitive


def child_references(node: Node) -> Iterator[tuple[str, Node]]:
    """
    Yield ``(feature_name, child)`` for each structured reference of a node.

    Features are visited in declaration order, collection elements in
    collection order. Primitive-typed elements are skipped.
    """
    for feature in node.features():
        if feature.is_primitive_type():
            continue
        value = node.feature_value(feature)
        if isinstance(value, list):
            for element in value:
                if is_structured(element):
                    yield feature.name, element
        elif is_structured(value):
            yield feature.name, value


def reachable_nodes(root: Any) -> list[Node]:
    """
    List every structured Node reachable from root, each once.

    The order is depth-first pre-order with children in feature
    declaration order: the order in which facts are loaded.
    """
    if not is_structured(root):
        return []

    ordered: list[Node] = []
    seen: set[str] = set()
    stack: list[Node] = [root]
    while stack:
        node = stack.pop()
        if node.id in seen:
            continue
        seen.add(node.id)
        ordered.append(node)
        children = [child for _, child in child_references(node)]
        stack.extend(reversed(children))
    return ordered


def node_graph(root: Any) -> nx.DiGraph:
    """
    Build a directed graph of the references below root.

    Graph nodes are Node ids carrying the Node itself and its type name
    as attributes; edges are labelled with the feature they come from.
    """
    graph = nx.DiGraph()
    nodes = reachable_nodes(root)
    for node in nodes:
        graph.add_node(node.id, node=node, type_name=node.type.name)
    for node in nodes:
        for feature_name, child in child_references(node):
            graph.add_edge(node.id, child.id, feature=feature_name)
    return graph


def has_cycle(root: Any) -> bool:
    """Check whether the graph below root contains a reference cycle."""
    graph = node_graph(root)
    return not nx.is_directed_acyclic_graph(graph)
