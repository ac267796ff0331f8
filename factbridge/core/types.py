"""
Type system for factbridge documents.

Every Node in a document graph is typed. A type declares an ordered list
of features; each feature has a range type that is either primitive
(an opaque scalar such as a string or an integer, never traversed) or
structured (another Node, or an ordered collection of Nodes).

Types form a single-inheritance hierarchy rooted at ``TOP``. A subtype
inherits its parent's features first, followed by its own, so feature
declaration order is stable across the hierarchy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Union


class TypeSystemError(KeyError):
    """Raised for unknown type or feature names."""
    pass


@dataclass(eq=False)
class Feature:
    """
    A named slot of a NodeType.

    Attributes:
        name: Feature name, unique within its type
        range: Type of the values this feature holds
        multiple: Whether the value is an ordered collection of Nodes
    """

    name: str
    range: "NodeType"
    multiple: bool = False

    def is_primitive_type(self) -> bool:
        """Check whether values of this feature are opaque scalars."""
        return self.range.primitive

    def __repr__(self) -> str:
        suffix = "[]" if self.multiple else ""
        return f"Feature({self.name}: {self.range.name}{suffix})"


@dataclass(eq=False)
class NodeType:
    """
    A named record type.

    Attributes:
        name: Type name, unique within its TypeSystem
        primitive: Whether values of this type are scalars
        parent: Supertype, or None for the hierarchy root
    """

    name: str
    primitive: bool = False
    parent: Optional["NodeType"] = None
    _own_features: list[Feature] = field(default_factory=list, repr=False)

    @property
    def features(self) -> list[Feature]:
        """All features of this type, inherited ones first."""
        inherited = self.parent.features if self.parent is not None else []
        return inherited + self._own_features

    def is_primitive(self) -> bool:
        return self.primitive

    def get_feature(self, name: str) -> Feature:
        """
        Look up a feature by name.

        Raises:
            TypeSystemError: If the type has no such feature
        """
        for feature in self.features:
            if feature.name == name:
                return feature
        raise TypeSystemError(f"Type {self.name} has no feature {name!r}")

    def has_feature(self, name: str) -> bool:
        return any(f.name == name for f in self.features)

    def subsumes(self, other: "NodeType") -> bool:
        """Check whether ``other`` is this type or one of its subtypes."""
        current: Optional[NodeType] = other
        while current is not None:
            if current is self:
                return True
            current = current.parent
        return False

    def lineage(self) -> list[str]:
        """Names of this type and its supertypes, most specific first."""
        names = []
        current: Optional[NodeType] = self
        while current is not None:
            names.append(current.name)
            current = current.parent
        return names

    def __repr__(self) -> str:
        return f"NodeType({self.name})"


# Built-in types
STRING = NodeType("String", primitive=True)
INTEGER = NodeType("Integer", primitive=True)
FLOAT = NodeType("Float", primitive=True)
BOOLEAN = NodeType("Boolean", primitive=True)
TOP = NodeType("TOP")

BUILTIN_TYPES = (STRING, INTEGER, FLOAT, BOOLEAN, TOP)

FeatureSpec = Union[str, NodeType, tuple]


class TypeSystem:
    """
    Registry of the NodeTypes used by a document.

    Usage:
        ```python
        ts = TypeSystem()
        token = ts.define("Token", {"pos": "String"}, parent="Annotation")
        sentence = ts.define("Sentence", {"tokens": ("Token", True)}, parent="Annotation")
        ```

    Feature specs map a feature name to either a range type (name or
    NodeType) or a ``(range, multiple)`` tuple for collection features.
    """

    def __init__(self):
        self._types: dict[str, NodeType] = {t.name: t for t in BUILTIN_TYPES}
        self.define("Annotation", {"begin": INTEGER, "end": INTEGER}, parent=TOP)

    def define(
        self,
        name: str,
        features: Optional[dict[str, FeatureSpec]] = None,
        parent: Union[str, NodeType, None] = TOP,
    ) -> NodeType:
        """
        Define a new structured type.

        Args:
            name: Type name
            features: Feature name -> range spec, in declaration order
            parent: Supertype name or NodeType (default: TOP)

        Returns:
            The created NodeType

        Raises:
            ValueError: If the name is already taken or a feature is invalid
            TypeSystemError: If the parent or a range type is unknown
        """
        if name in self._types:
            raise ValueError(f"Type {name!r} is already defined")

        parent_type = self._resolve(parent) if parent is not None else None
        node_type = NodeType(name, parent=parent_type)
        # Register first so features may refer to the type itself
        self._types[name] = node_type

        try:
            for feature_name, spec in (features or {}).items():
                self.add_feature(node_type, feature_name, spec)
        except (TypeSystemError, ValueError):
            del self._types[name]
            raise
        return node_type

    def add_feature(self, node_type: NodeType, name: str, spec: FeatureSpec) -> Feature:
        """Add a feature to an existing type."""
        if node_type in BUILTIN_TYPES:
            raise ValueError(f"Built-in type {node_type.name} cannot be extended")
        if node_type.has_feature(name):
            raise ValueError(f"Type {node_type.name} already has feature {name!r}")

        multiple = False
        if isinstance(spec, tuple):
            spec, multiple = spec
        range_type = self._resolve(spec)
        if multiple and range_type.primitive:
            raise ValueError(f"Collection feature {name!r} must have a structured range")

        feature = Feature(name, range_type, multiple=multiple)
        node_type._own_features.append(feature)
        return feature

    def get(self, name: str) -> NodeType:
        """
        Get a type by name.

        Raises:
            TypeSystemError: If no such type exists
        """
        try:
            return self._types[name]
        except KeyError:
            raise TypeSystemError(f"Unknown type {name!r}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def types(self) -> Iterable[NodeType]:
        return list(self._types.values())

    def _resolve(self, ref: Union[str, NodeType]) -> NodeType:
        if isinstance(ref, NodeType):
            return ref
        return self.get(ref)
