# coding: utf-8
"""
Index synchronization for factbridge.

Keeps a NodeIndex in step with a session: Node facts inserted into
working memory are added to the index, retracted ones removed, and an
update swaps the old node for the new one. Facts of any other kind are
not indexed; events about them are logged and skipped.

After every event the index holds exactly the live Node facts of the
session.
"""

from __future__ import annotations

import logging

from factbridge.core.models import FactKind, fact_kind_of
from factbridge.runtime.session import FactEvent, Session, WorkingMemoryEventListener
from factbridge.storage.index import NodeIndex

logger = logging.getLogger(__name__)


class IndexSynchronizer(WorkingMemoryEventListener):
    """
    Mirrors working-memory lifecycle events into a NodeIndex.

    Update policy:
        The old node is removed from the index whenever it was a Node,
        whatever the new value is; the new value is indexed whenever it
        is a Node. An update replacing a Node with some other value
        therefore leaves no stale entry behind.
        A node re-asserted in place keeps its index position.

    Usage:
        ```python
        index = NodeIndex()
        IndexSynchronizer(index).attach(session)
        session.fire_all()
        ```
    """

    def __init__(self, index: NodeIndex):
        """
        Initialize the synchronizer.

        Args:
            index: Index to maintain; owned by this synchronizer while
                the session is active
        """
        self._index = index

    @property
    def index(self) -> NodeIndex:
        return self._index

    def attach(self, session: Session) -> None:
        """
        Index the Node facts already in session, then follow its events.

        Call after loading and before firing rules.
        """
        seeded = 0
        for value in session.facts():
            if fact_kind_of(value) is FactKind.NODE:
                self._index.add(value)
                seeded += 1
        logger.debug(f"Seeded index {self._index.name} with {seeded} nodes")
        session.add_event_listener(self)

    def detach(self, session: Session) -> None:
        session.remove_event_listener(self)

    def object_inserted(self, event: FactEvent) -> None:
        logger.debug(f"New object inserted into working memory: {event.value!r}")

        if event.kind is FactKind.NODE:
            self._index.add(event.value)
        else:
            logger.warning(f"Cannot add fact to index, not a node: {event.value!r}")

    def object_updated(self, event: FactEvent) -> None:
        logger.debug(f"Object updated in working memory: {event.old_value!r}")

        # Re-asserted in place: the entry keeps its position
        if event.value is event.old_value and event.kind is FactKind.NODE:
            self._index.add(event.value)
            return

        if event.old_kind is FactKind.NODE:
            self._index.remove(event.old_value)

        if event.kind is FactKind.NODE:
            self._index.add(event.value)
        else:
            logger.warning(f"Cannot update fact in index, not a node: {event.value!r}")

    def object_retracted(self, event: FactEvent) -> None:
        logger.debug(f"Object retracted from working memory: {event.old_value!r}")

        if event.old_kind is FactKind.NODE:
            if not self._index.remove(event.old_value):
                logger.debug(f"Retracted node was not indexed: {event.old_value!r}")
        else:
            logger.warning(f"Cannot remove fact from index, not a node: {event.old_value!r}")
