"""
Core record models for factbridge.

This module defines the caller-owned side of the bridge:

- Node: A typed structured record in a document graph
- Document: Text plus the root annotations that seed a run
- FactKind: The tag that tells Node-originated facts apart from
  arbitrary values a rule may put into working memory

Nodes have reference identity. Two distinct Nodes are never equal by
value, which is what lets a working memory hold both of them as
separate facts.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterator, Optional, Sequence, Union

import ulid

from factbridge.core.types import Feature, NodeType, TypeSystem, TypeSystemError


class FactKind(str, Enum):
    """Payload kind of a working-memory fact."""

    NODE = "node"  # Originated from a document Node
    VALUE = "value"  # Anything else a rule inserted


def generate_id() -> str:
    """Generate a unique, sortable ID using ULID."""
    return str(ulid.new())


def fact_kind_of(value: Any) -> FactKind:
    """
    Read the fact kind tag of a value.

    Values without a ``fact_kind`` tag are plain VALUE facts.
    """
    kind = getattr(value, "fact_kind", None)
    if isinstance(kind, FactKind):
        return kind
    return FactKind.VALUE


FeatureRef = Union[str, Feature]


class Node:
    """
    A typed structured record.

    Feature values are set through keyword arguments or
    ``set_feature_value``. Structured features hold another Node, a list
    of Nodes (for collection features) or None; primitive features hold
    opaque scalars.

    Usage:
        ```python
        token = Node(ts.get("Token"), begin=0, end=5, pos="NN")
        sentence = Node(ts.get("Sentence"), begin=0, end=12, tokens=[token])
        ```
    """

    fact_kind = FactKind.NODE

    __slots__ = ("_id", "_type", "_values")

    def __init__(self, node_type: NodeType, **values: Any):
        self._id = generate_id()
        self._type = node_type
        self._values: dict[str, Any] = {}
        for name, value in values.items():
            self.set_feature_value(name, value)

    @property
    def id(self) -> str:
        """Unique identifier of this node instance."""
        return self._id

    @property
    def type(self) -> NodeType:
        return self._type

    def features(self) -> list[Feature]:
        """Features of this node's type, in declaration order."""
        return self._type.features

    def feature_value(self, feature: FeatureRef) -> Any:
        """
        Get the value of a feature.

        Args:
            feature: Feature or feature name

        Returns:
            The value, or None if unset

        Raises:
            TypeSystemError: If the type has no such feature
        """
        feature = self._feature(feature)
        return self._values.get(feature.name)

    def set_feature_value(self, feature: FeatureRef, value: Any) -> None:
        """
        Set the value of a feature.

        Raises:
            TypeSystemError: If the type has no such feature
            TypeError: If the value does not fit the feature's range
        """
        feature = self._feature(feature)
        self._values[feature.name] = _check_value(feature, value)

    def __getitem__(self, name: str) -> Any:
        return self.feature_value(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set_feature_value(name, value)

    def _feature(self, feature: FeatureRef) -> Feature:
        if isinstance(feature, Feature):
            if not self._type.has_feature(feature.name):
                raise TypeSystemError(f"Type {self._type.name} has no feature {feature.name!r}")
            return feature
        return self._type.get_feature(feature)

    def __repr__(self) -> str:
        # Only primitive values, structured ones may be cyclic
        shown = ", ".join(
            f"{f.name}={self._values[f.name]!r}"
            for f in self.features()
            if f.is_primitive_type() and f.name in self._values
        )
        return f"{self._type.name}({shown})"


def _check_value(feature: Feature, value: Any) -> Any:
    """Validate a value against a feature's range."""
    if value is None:
        return None

    if feature.is_primitive_type():
        if isinstance(value, Node):
            raise TypeError(f"Feature {feature.name!r} holds {feature.range.name}, got a Node")
        return value

    if feature.multiple:
        if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
            raise TypeError(f"Feature {feature.name!r} holds a collection of Nodes")
        for element in value:
            _check_node(feature, element)
        return list(value)

    _check_node(feature, value)
    return value


def _check_node(feature: Feature, value: Any) -> None:
    if not isinstance(value, Node):
        raise TypeError(f"Feature {feature.name!r} holds {feature.range.name}, got {type(value).__name__}")
    if not feature.range.subsumes(value.type):
        raise TypeError(
            f"Feature {feature.name!r} holds {feature.range.name}, got {value.type.name}"
        )


class Document:
    """
    Caller-owned text with its root annotations.

    The roots are the entry points of a run: each one, and everything
    reachable from it, becomes a fact in working memory.
    """

    def __init__(self, text: str = "", type_system: Optional[TypeSystem] = None):
        self.text = text
        self.type_system = type_system or TypeSystem()
        self._roots: list[Node] = []

    def annotate(self, type_name: str, begin: int, end: int, **values: Any) -> Node:
        """
        Create an annotation over ``text[begin:end]`` and add it as a root.

        Raises:
            ValueError: If the span lies outside the text
        """
        if not 0 <= begin <= end <= len(self.text):
            raise ValueError(f"Span [{begin}, {end}) is outside the document text")
        node = Node(self.type_system.get(type_name), begin=begin, end=end, **values)
        self._roots.append(node)
        return node

    def add_root(self, node: Node) -> Node:
        """Register an existing node as a root."""
        self._roots.append(node)
        return node

    def roots(self) -> list[Node]:
        return list(self._roots)

    def select(self, type_name: str) -> Iterator[Node]:
        """Iterate over roots of a type or its subtypes."""
        wanted = self.type_system.get(type_name)
        for node in self._roots:
            if wanted.subsumes(node.type):
                yield node

    def covered_text(self, node: Node) -> str:
        """Get the text an annotation spans."""
        return self.text[node["begin"]:node["end"]]

    def __len__(self) -> int:
        return len(self._roots)
