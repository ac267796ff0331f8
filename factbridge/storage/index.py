# coding: utf-8
"""
Indexing for factbridge.

This module provides the lookup index that mirrors the Node facts of a
working memory. Entries are keyed by Node identity and remember the
position at which each node was indexed, supporting lookups by type.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timezone
from threading import RLock
from typing import Optional

from pydantic import BaseModel, Field

from factbridge.core.models import Node


class IndexEntry(BaseModel):
    """An entry in a node index."""

    node_id: str = Field(..., description="Identity of the indexed node")
    type_name: str = Field(..., description="Type name of the indexed node")
    position: int = Field(..., description="Monotonic position assigned when indexed")
    indexed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When this entry was created"
    )

    model_config = {"frozen": True, "extra": "forbid"}


class Index(ABC):
    """
    Abstract base class for node indexes.

    An index holds each Node at most once. Implementations decide how
    entries are stored and ordered.
    """

    @abstractmethod
    def add(self, node: Node) -> IndexEntry:
        """Add a node, returning its entry (the existing one if present)."""
        pass

    @abstractmethod
    def remove(self, node: Node) -> bool:
        """Remove a node. Returns False if it was not indexed."""
        pass

    @abstractmethod
    def contains(self, node: Node) -> bool:
        """Check whether a node is indexed."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""
        pass


class NodeIndex(Index):
    """
    In-memory node index.

    Stores entries in dictionaries keyed by node id, with a secondary
    mapping from type name to node ids. Thread-safe using a reentrant lock.
    """

    def __init__(self, name: str = "nodes"):
        """
        Initialize the index.

        Args:
            name: Index name for identification
        """
        self._name = name
        self._lock = RLock()
        self._entries: dict[str, IndexEntry] = {}
        self._nodes: dict[str, Node] = {}
        # type_name -> node ids
        self._by_type: dict[str, set[str]] = defaultdict(set)
        self._next_position = 0

    @property
    def name(self) -> str:
        """Get the index name."""
        return self._name

    def add(self, node: Node) -> IndexEntry:
        """Add a node to the index."""
        with self._lock:
            existing = self._entries.get(node.id)
            if existing is not None:
                return existing

            entry = IndexEntry(
                node_id=node.id,
                type_name=node.type.name,
                position=self._next_position,
            )
            self._next_position += 1
            self._entries[node.id] = entry
            self._nodes[node.id] = node
            self._by_type[node.type.name].add(node.id)
            return entry

    def remove(self, node: Node) -> bool:
        """Remove a node from the index."""
        with self._lock:
            entry = self._entries.pop(node.id, None)
            if entry is None:
                return False
            self._nodes.pop(node.id, None)
            self._by_type[entry.type_name].discard(node.id)
            if not self._by_type[entry.type_name]:
                del self._by_type[entry.type_name]
            return True

    def contains(self, node: Node) -> bool:
        with self._lock:
            return node.id in self._entries

    def get_entry(self, node: Node) -> Optional[IndexEntry]:
        """Get the entry for a node, or None."""
        with self._lock:
            return self._entries.get(node.id)

    def get(self, type_name: str, include_subtypes: bool = True) -> list[Node]:
        """
        Get indexed nodes of a type, in index position order.

        Args:
            type_name: Type to look up
            include_subtypes: Also return nodes whose type derives from it

        Returns:
            Matching nodes
        """
        with self._lock:
            if include_subtypes:
                ids = [
                    node_id
                    for node_id, node in self._nodes.items()
                    if type_name in node.type.lineage()
                ]
            else:
                ids = list(self._by_type.get(type_name, ()))
            return self._ordered(ids)

    def nodes(self) -> list[Node]:
        """All indexed nodes, in index position order."""
        with self._lock:
            return self._ordered(self._entries.keys())

    def keys(self) -> set[str]:
        """Ids of all indexed nodes."""
        with self._lock:
            return set(self._entries.keys())

    def type_names(self) -> list[str]:
        """Type names that currently have entries."""
        with self._lock:
            return sorted(self._by_type.keys())

    def size(self, type_name: Optional[str] = None) -> int:
        """Get the number of entries, optionally for one exact type."""
        with self._lock:
            if type_name is not None:
                return len(self._by_type.get(type_name, ()))
            return len(self._entries)

    def clear(self) -> None:
        """Clear the index. Positions start over from zero."""
        with self._lock:
            self._entries.clear()
            self._nodes.clear()
            self._by_type.clear()
            self._next_position = 0

    def _ordered(self, ids) -> list[Node]:
        ordered = sorted(ids, key=lambda node_id: self._entries[node_id].position)
        return [self._nodes[node_id] for node_id in ordered]

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, node: object) -> bool:
        return isinstance(node, Node) and self.contains(node)
