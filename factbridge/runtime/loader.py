# coding: utf-8
"""
Graph fact loading.

Walks a document graph and inserts every structured Node reachable from
a root into a session, parent before children, each node once.

Traversal rules:
    - None, non-Node values and primitive-typed Nodes are never facts
    - Children are visited in feature declaration order; collection
      features element by element, in collection order
    - A node already visited in this walk is skipped before insertion
    - A node whose insertion did not grow the fact count (the session
      already held it) is not descended into
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from factbridge.core.graph import child_references, is_structured
from factbridge.core.models import Document, Node
from factbridge.runtime.session import Session

logger = logging.getLogger(__name__)


class GraphFactLoader:
    """
    Inserts document graphs into working memory.

    The walk is depth-first and pre-order. It runs on an explicit stack
    rather than by recursion, so arbitrarily deep chains of nodes load
    without touching the interpreter's recursion limit.

    Usage:
        ```python
        loader = GraphFactLoader()
        loader.load_document(session, document)
        ```
    """

    def load(self, session: Session, root: Any, visited: Optional[set[str]] = None) -> int:
        """
        Insert root and everything reachable from it.

        Args:
            session: Live session to insert into
            root: Root node of the walk
            visited: Ids of nodes already walked; shared across calls to
                load several roots of one graph

        Returns:
            Number of facts added to the session
        """
        if visited is None:
            visited = set()
        if not is_structured(root):
            return 0

        added = 0
        stack: list[Node] = [root]
        while stack:
            node = stack.pop()
            if node.id in visited:
                continue
            visited.add(node.id)

            logger.debug(f"Inserting {node.type.name}")
            count_before = session.fact_count
            session.insert(node)

            # Stop descending if the session did not take a new fact
            if session.fact_count == count_before:
                logger.debug(f"{node.type.name} {node.id} already in working memory, not descending")
                continue
            added += 1

            children = [child for _, child in child_references(node)]
            stack.extend(reversed(children))

        return added

    def load_all(self, session: Session, roots: Iterable[Any]) -> int:
        """Load several roots of one graph, each reachable node once."""
        visited: set[str] = set()
        return sum(self.load(session, root, visited) for root in roots)

    def load_document(self, session: Session, document: Document) -> int:
        """
        Load every root annotation of a document.

        Returns:
            Number of facts added to the session
        """
        added = self.load_all(session, document.roots())
        logger.debug(f"Loaded {added} facts from {len(document)} roots")
        return added
