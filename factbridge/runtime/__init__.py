"""
Runtime layer for factbridge.

Provides execution-time features:
- Working memory sessions with lifecycle events
- Graph fact loading
- Index synchronization
- Execution logs
"""

from factbridge.runtime.session import (
    FactEvent,
    FactEventType,
    FactHandle,
    RuleContext,
    Session,
    SessionDisposedError,
    WorkingMemory,
    WorkingMemoryEventListener,
)
from factbridge.runtime.loader import GraphFactLoader
from factbridge.runtime.synchronizer import IndexSynchronizer
from factbridge.runtime.audit import ExecutionLog, LogEntry, prepare_log_destination

__all__ = [
    "FactEvent",
    "FactEventType",
    "FactHandle",
    "RuleContext",
    "Session",
    "SessionDisposedError",
    "WorkingMemory",
    "WorkingMemoryEventListener",
    "GraphFactLoader",
    "IndexSynchronizer",
    "ExecutionLog",
    "LogEntry",
    "prepare_log_destination",
]
