# coding: utf-8
"""
Execution log for factbridge runs.

Records every fact lifecycle event of a session and writes the record
to a JSON file once evaluation is over, for auditing what the rules did.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field

from factbridge.core.models import FactKind
from factbridge.runtime.session import (
    FactEvent,
    FactEventType,
    Session,
    WorkingMemoryEventListener,
)

logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = ".log"


class LogEntry(BaseModel):
    """One recorded fact lifecycle event."""

    sequence: int = Field(..., description="Position in the log")
    event_type: FactEventType = Field(..., description="Kind of mutation")
    handle_id: int = Field(..., description="Handle of the affected fact")
    kind: Optional[FactKind] = Field(default=None, description="Kind of the affected value")
    type_name: Optional[str] = Field(default=None, description="Node type or Python type name")
    rule_name: Optional[str] = Field(default=None, description="Rule that caused the event")
    text: str = Field(default="", description="Rendering of the affected value")
    timestamp: datetime = Field(..., description="When the event occurred")

    model_config = {"extra": "forbid"}


def resolve_log_path(path: Union[str, Path]) -> Path:
    """Append the default suffix when the path has none."""
    path = Path(path)
    if not path.suffix:
        path = path.with_name(path.name + DEFAULT_SUFFIX)
    return path


def prepare_log_destination(path: Union[str, Path]) -> Optional[Path]:
    """
    Create the directory a log file will be written into.

    A path without a parent directory component has nothing to create
    and is accepted as is.

    Returns:
        The directory created or confirmed, or None if there was nothing
        to create

    Raises:
        OSError: If the directory cannot be created
    """
    parent = Path(path).parent
    if parent == Path("."):
        return None
    parent.mkdir(parents=True, exist_ok=True)
    return parent


class ExecutionLog(WorkingMemoryEventListener):
    """
    Listener that records fact events for a later write to disk.

    Usage:
        ```python
        log = ExecutionLog(session, "logs/run")
        session.fire_all()
        log.write_to_disk()  # logs/run.log
        ```
    """

    def __init__(self, session: Session, path: Union[str, Path]):
        """
        Attach a new log to a session.

        Args:
            session: Session to record
            path: Destination file; ``.log`` is appended without a suffix
        """
        self._path = resolve_log_path(path)
        self._entries: list[LogEntry] = []
        session.add_event_listener(self)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def object_inserted(self, event: FactEvent) -> None:
        self._record(event, event.value, event.kind)

    def object_updated(self, event: FactEvent) -> None:
        self._record(event, event.value, event.kind)

    def object_retracted(self, event: FactEvent) -> None:
        self._record(event, event.old_value, event.old_kind)

    def _record(self, event: FactEvent, value, kind: Optional[FactKind]) -> None:
        if kind is FactKind.NODE:
            type_name = value.type.name
        else:
            type_name = type(value).__name__
        self._entries.append(LogEntry(
            sequence=len(self._entries),
            event_type=event.event_type,
            handle_id=event.handle_id,
            kind=kind,
            type_name=type_name,
            rule_name=event.rule_name,
            text=repr(value),
            timestamp=event.timestamp,
        ))

    def write_to_disk(self) -> Path:
        """
        Write all recorded entries as a JSON document.

        Returns:
            The file written
        """
        payload = {"events": [entry.model_dump(mode="json") for entry in self._entries]}
        self._path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        logger.info(f"Wrote {len(self._entries)} execution log entries to {self._path}")
        return self._path
