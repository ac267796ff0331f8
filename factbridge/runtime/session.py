# coding: utf-8
"""
Working memory sessions for factbridge.

A session holds the facts a rule set reasons over. Values are inserted
as facts, rules fire against them and may insert, update or retract
facts in turn, and every such mutation is reported synchronously to the
registered event listeners, in the order it happens.

Design Philosophy:
    The session does not know about indexes or documents. Anything that
    has to stay consistent with working memory observes it through the
    three lifecycle events instead of being called directly.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from itertools import count
from typing import Any, Iterator, Optional, Sequence, TYPE_CHECKING

from pydantic import BaseModel, Field

from factbridge.core.models import FactKind, fact_kind_of

if TYPE_CHECKING:
    from factbridge.rules.compiler import Rule

logger = logging.getLogger(__name__)

_UNSET = object()


class SessionDisposedError(RuntimeError):
    """Raised when a disposed session is used."""
    pass


class FactEventType(str, Enum):
    """Fact lifecycle events."""

    INSERTED = "inserted"
    UPDATED = "updated"
    RETRACTED = "retracted"


@dataclass(eq=False)
class FactHandle:
    """
    Working-memory handle of one fact.

    Attributes:
        id: Handle number, unique within its session
        value: The inserted object
        kind: Payload kind tag of the value
        version: Bumped on every update
        live: False once retracted or disposed
    """

    id: int
    value: Any
    kind: FactKind
    version: int = 1
    live: bool = True


class FactEvent(BaseModel):
    """A fact lifecycle event delivered to listeners."""

    event_type: FactEventType = Field(..., description="Kind of mutation")
    handle_id: int = Field(..., description="Handle of the affected fact")
    value: Any = Field(default=None, description="New value (insert, update)")
    old_value: Any = Field(default=None, description="Previous value (update, retract)")
    kind: Optional[FactKind] = Field(default=None, description="Kind of the new value")
    old_kind: Optional[FactKind] = Field(default=None, description="Kind of the previous value")
    rule_name: Optional[str] = Field(default=None, description="Rule whose action caused the event")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When this event occurred"
    )

    model_config = {"extra": "forbid", "arbitrary_types_allowed": True}


class WorkingMemoryEventListener(ABC):
    """Observer of fact lifecycle events."""

    @abstractmethod
    def object_inserted(self, event: FactEvent) -> None:
        pass

    @abstractmethod
    def object_updated(self, event: FactEvent) -> None:
        pass

    @abstractmethod
    def object_retracted(self, event: FactEvent) -> None:
        pass


class Session(ABC):
    """
    Abstract working memory.

    Any store exposing these operations and the three lifecycle events
    can stand behind the fact loader and the index synchronizer.
    """

    @abstractmethod
    def insert(self, value: Any) -> FactHandle:
        """Insert a value as a fact."""
        pass

    @abstractmethod
    def update(self, target: Any, new_value: Any = _UNSET) -> FactHandle:
        """Replace or re-assert the value of a fact."""
        pass

    @abstractmethod
    def retract(self, target: Any) -> bool:
        """Remove a fact."""
        pass

    @property
    @abstractmethod
    def fact_count(self) -> int:
        """Number of live facts."""
        pass

    @abstractmethod
    def facts(self) -> list[Any]:
        """Values of all live facts, in insertion order."""
        pass

    @abstractmethod
    def add_event_listener(self, listener: WorkingMemoryEventListener) -> None:
        pass

    @abstractmethod
    def remove_event_listener(self, listener: WorkingMemoryEventListener) -> None:
        pass

    @abstractmethod
    def fire_all(self, max_fires: Optional[int] = None) -> int:
        """Fire rules until none is eligible. Returns the number fired."""
        pass

    @abstractmethod
    def dispose(self) -> None:
        """Release all facts and listeners."""
        pass

    def __enter__(self) -> "Session":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.dispose()


class RuleContext:
    """
    What a rule action sees of the session while it fires.

    Mutations made through the context are attributed to the firing
    rule in the events they produce.
    """

    def __init__(self, session: "WorkingMemory", rule_name: str, handle: FactHandle):
        self._session = session
        self.rule_name = rule_name
        self.handle = handle

    @property
    def fact_count(self) -> int:
        return self._session.fact_count

    def facts(self) -> list[Any]:
        return self._session.facts()

    def insert(self, value: Any) -> FactHandle:
        return self._session.insert(value)

    def update(self, target: Any = None, new_value: Any = _UNSET) -> FactHandle:
        """Update a fact, by default the one the rule fired on."""
        return self._session.update(self.handle if target is None else target, new_value)

    def retract(self, target: Any = None) -> bool:
        """Retract a fact, by default the one the rule fired on."""
        return self._session.retract(self.handle if target is None else target)


class WorkingMemory(Session):
    """
    In-memory session with a forward-chaining agenda.

    Facts are tracked by identity: inserting an object that is already
    live returns its existing handle and leaves the fact count unchanged.

    Agenda:
        Rules are tried by descending salience, then declaration order;
        facts in insertion order. An activation ``(rule, fact, version)``
        fires at most once, so updating a fact makes it eligible again
        for every rule it matches.

    Usage:
        ```python
        session = compiled.new_session()
        session.add_event_listener(listener)
        session.insert(node)
        fired = session.fire_all()
        session.dispose()
        ```
    """

    def __init__(self, rules: Sequence["Rule"] = ()):
        """
        Initialize an empty working memory.

        Args:
            rules: Compiled rules, in declaration order
        """
        # sorted() is stable, so equal salience keeps declaration order
        self._rules = sorted(rules, key=lambda rule: -rule.salience)
        self._handles: dict[int, FactHandle] = {}
        self._by_identity: dict[int, FactHandle] = {}
        self._listeners: list[WorkingMemoryEventListener] = []
        self._handle_ids = count(1)

        self._fired: set[tuple[str, int, int]] = set()
        self._rejected: set[tuple[str, int, int]] = set()
        self._firing_rule: Optional[str] = None
        self._disposed = False

    @property
    def fact_count(self) -> int:
        return len(self._handles)

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def rules(self) -> list["Rule"]:
        """Rules in agenda order."""
        return list(self._rules)

    def facts(self) -> list[Any]:
        return [handle.value for handle in self._handles.values()]

    def handles(self) -> list[FactHandle]:
        return list(self._handles.values())

    def get_handle(self, value: Any) -> Optional[FactHandle]:
        """Get the live handle of a value, or None."""
        return self._by_identity.get(id(value))

    def __iter__(self) -> Iterator[Any]:
        return iter(self.facts())

    def __len__(self) -> int:
        return self.fact_count

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def insert(self, value: Any) -> FactHandle:
        """
        Insert a value as a fact.

        Args:
            value: Any object except None

        Returns:
            The new handle, or the existing one if the value is live

        Raises:
            ValueError: If value is None
            SessionDisposedError: If the session was disposed
        """
        self._check_open()
        if value is None:
            raise ValueError("Cannot insert None into working memory")

        existing = self._by_identity.get(id(value))
        if existing is not None:
            logger.debug(f"Fact {existing.id} already present, insertion ignored")
            return existing

        handle = FactHandle(id=next(self._handle_ids), value=value, kind=fact_kind_of(value))
        self._handles[handle.id] = handle
        self._by_identity[id(value)] = handle

        self._emit(FactEvent(
            event_type=FactEventType.INSERTED,
            handle_id=handle.id,
            value=value,
            kind=handle.kind,
            rule_name=self._firing_rule,
        ))
        return handle

    def update(self, target: Any, new_value: Any = _UNSET) -> FactHandle:
        """
        Update a fact.

        Without ``new_value`` the fact's current value is re-asserted,
        which is how a rule reports that it mutated the object in place.

        Args:
            target: FactHandle or the live value itself
            new_value: Replacement value

        Returns:
            The updated handle

        Raises:
            ValueError: If target is not live, or new_value is None or
                already held by another fact
        """
        self._check_open()
        handle = self._resolve(target)
        if handle is None:
            raise ValueError(f"Not in working memory: {target!r}")

        old_value, old_kind = handle.value, handle.kind
        value = old_value if new_value is _UNSET else new_value
        if value is None:
            raise ValueError("Cannot update a fact to None")

        if value is not old_value:
            other = self._by_identity.get(id(value))
            if other is not None:
                raise ValueError(f"Value is already held by fact {other.id}")
            del self._by_identity[id(old_value)]
            self._by_identity[id(value)] = handle
            handle.value = value
            handle.kind = fact_kind_of(value)

        handle.version += 1
        self._emit(FactEvent(
            event_type=FactEventType.UPDATED,
            handle_id=handle.id,
            value=value,
            old_value=old_value,
            kind=handle.kind,
            old_kind=old_kind,
            rule_name=self._firing_rule,
        ))
        return handle

    def retract(self, target: Any) -> bool:
        """
        Retract a fact.

        Args:
            target: FactHandle or the live value itself

        Returns:
            False if target was not live
        """
        self._check_open()
        handle = self._resolve(target)
        if handle is None:
            logger.debug(f"Retraction of unknown fact ignored: {target!r}")
            return False

        del self._handles[handle.id]
        del self._by_identity[id(handle.value)]
        handle.live = False

        self._emit(FactEvent(
            event_type=FactEventType.RETRACTED,
            handle_id=handle.id,
            old_value=handle.value,
            old_kind=handle.kind,
            rule_name=self._firing_rule,
        ))
        return True

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_event_listener(self, listener: WorkingMemoryEventListener) -> None:
        self._check_open()
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_event_listener(self, listener: WorkingMemoryEventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: FactEvent) -> None:
        """Deliver an event to every listener, in registration order."""
        for listener in list(self._listeners):
            try:
                if event.event_type == FactEventType.INSERTED:
                    listener.object_inserted(event)
                elif event.event_type == FactEventType.UPDATED:
                    listener.object_updated(event)
                else:
                    listener.object_retracted(event)
            except Exception:
                # A failing observer must not abort rule evaluation
                logger.exception(
                    f"Listener {type(listener).__name__} failed on {event.event_type.value} "
                    f"of fact {event.handle_id}"
                )

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def fire_all(self, max_fires: Optional[int] = None) -> int:
        """
        Fire rules until no activation is left.

        Args:
            max_fires: Stop after this many firings (default: no limit)

        Returns:
            Number of rules fired
        """
        self._check_open()
        fired = 0
        while max_fires is None or fired < max_fires:
            activation = self._next_activation()
            if activation is None:
                break

            rule, handle = activation
            self._fired.add((rule.name, handle.id, handle.version))
            logger.debug(f"Firing {rule.name} on fact {handle.id}")

            self._firing_rule = rule.name
            try:
                rule.action(RuleContext(self, rule.name, handle), handle.value)
            finally:
                self._firing_rule = None
            fired += 1

        return fired

    def _next_activation(self) -> Optional[tuple["Rule", FactHandle]]:
        for rule in self._rules:
            for handle in list(self._handles.values()):
                key = (rule.name, handle.id, handle.version)
                if key in self._fired or key in self._rejected:
                    continue
                if rule.matches(handle.value):
                    return rule, handle
                self._rejected.add(key)
        return None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Drop all facts and listeners. Safe to call twice."""
        if self._disposed:
            return
        for handle in self._handles.values():
            handle.live = False
        self._handles.clear()
        self._by_identity.clear()
        self._listeners.clear()
        self._fired.clear()
        self._rejected.clear()
        self._disposed = True

    def _resolve(self, target: Any) -> Optional[FactHandle]:
        if isinstance(target, FactHandle):
            handle = self._handles.get(target.id)
            return handle if handle is target else None
        return self._by_identity.get(id(target))

    def _check_open(self) -> None:
        if self._disposed:
            raise SessionDisposedError("Session is disposed")
