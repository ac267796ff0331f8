"""
factbridge - document graphs meet rule working memory.

Walks a typed, possibly cyclic document graph, inserts every structured
node into a rule session as a fact, lets the rules evaluate and mutate
working memory, and keeps a node index in step with every insertion,
update and retraction.

Layers:
- Core: Type system, Nodes, Documents, graph view
- Storage: Node index
- Runtime: Working memory, fact loading, index synchronization, execution log
- Rules: Rule source compilation
- Interface: RuleRunner pipeline step
"""
from factbridge.core.types import Feature, NodeType, TypeSystem, TypeSystemError
from factbridge.core.models import Document, FactKind, Node, fact_kind_of
from factbridge.core.graph import node_graph, reachable_nodes
from factbridge.storage.index import IndexEntry, NodeIndex
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
from factbridge.runtime.audit import ExecutionLog
from factbridge.rules.compiler import CompileError, CompiledRuleSet, Rule, compile_rules
from factbridge.config import RunnerConfig
from factbridge.interface.runner import InitializationError, RuleRunner, RunResult

__version__ = "0.1.0"

__all__ = [
    # Core
    "Feature",
    "NodeType",
    "TypeSystem",
    "TypeSystemError",
    "Document",
    "FactKind",
    "Node",
    "fact_kind_of",
    "node_graph",
    "reachable_nodes",
    # Storage
    "IndexEntry",
    "NodeIndex",
    # Runtime
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
    # Rules
    "CompileError",
    "CompiledRuleSet",
    "Rule",
    "compile_rules",
    # Interface
    "RunnerConfig",
    "InitializationError",
    "RuleRunner",
    "RunResult",
]
