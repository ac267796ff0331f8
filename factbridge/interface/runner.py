# coding: utf-8
"""
Rule runner for factbridge.

The pipeline step that runs a rule set over a document: every root
annotation and everything reachable from it becomes a fact, the rules
fire, and a node index tracks the facts the rules leave behind.

Usage:
    ```python
    from factbridge import Document, RuleRunner

    runner = RuleRunner(rules_path="rules/", log_path="logs/run")
    runner.initialize()

    result = runner.process(document)
    print(result.fact_count)
    print(result.index.get("Token"))
    ```
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from factbridge.config import RunnerConfig
from factbridge.core.models import Document
from factbridge.rules.compiler import CompileError, CompiledRuleSet, compile_rules
from factbridge.runtime.audit import ExecutionLog, prepare_log_destination
from factbridge.runtime.loader import GraphFactLoader
from factbridge.runtime.synchronizer import IndexSynchronizer
from factbridge.storage.index import NodeIndex

logger = logging.getLogger(__name__)


class InitializationError(Exception):
    """Raised when the runner cannot be set up."""
    pass


@dataclass
class RunResult:
    """
    Outcome of processing one document.

    Attributes:
        fact_count: Facts in working memory once evaluation finished
        rules_fired: Number of rule firings
        loaded: Facts inserted from the document graph
        index: Node index in step with the final working memory
        log_path: Execution log written, if any
    """

    fact_count: int
    rules_fired: int
    loaded: int
    index: NodeIndex
    log_path: Optional[Path] = None


class RuleRunner:
    """
    Runs a compiled rule set over documents.

    ``initialize`` compiles the rules and prepares the log destination;
    both failures are fatal and nothing is processed. Each ``process``
    call then uses a fresh session and a fresh index, so runs share no
    mutable state.
    """

    def __init__(
        self,
        config: Optional[RunnerConfig] = None,
        loader: Optional[GraphFactLoader] = None,
        **overrides,
    ):
        """
        Initialize the runner.

        Args:
            config: Runner configuration
            loader: Graph fact loader (default: GraphFactLoader)
            **overrides: RunnerConfig fields, used instead of or on top
                of config
        """
        if config is None:
            config = RunnerConfig(**overrides)
        elif overrides:
            config = RunnerConfig.model_validate({**config.model_dump(), **overrides})
        self._config = config
        self._loader = loader or GraphFactLoader()
        self._rule_set: Optional[CompiledRuleSet] = None

    @property
    def config(self) -> RunnerConfig:
        return self._config

    @property
    def rule_set(self) -> Optional[CompiledRuleSet]:
        return self._rule_set

    @property
    def initialized(self) -> bool:
        return self._rule_set is not None

    def initialize(self) -> None:
        """
        Compile the rule source and prepare the execution log.

        Raises:
            InitializationError: If the rules have errors or the log
                directory cannot be created
        """
        try:
            rule_set = compile_rules(self._config.rules_path)
        except CompileError as e:
            for issue in e.errors:
                logger.error(f"{issue}")
            raise InitializationError("Rule sources have errors") from e

        # The log is written at the end of a run; its directory must exist by then
        if self._config.log_enabled:
            try:
                prepare_log_destination(self._config.log_path)
            except OSError as e:
                raise InitializationError(
                    f"Cannot create execution log directory for {self._config.log_path}"
                ) from e

        self._rule_set = rule_set
        logger.debug(f"Runner initialized with {len(rule_set)} rules")

    def process(self, document: Document) -> RunResult:
        """
        Run the rules over a document.

        Args:
            document: Document whose root annotations seed working memory

        Returns:
            RunResult with the final fact count and index

        Raises:
            InitializationError: If ``initialize`` was not called
        """
        if self._rule_set is None:
            raise InitializationError("Runner is not initialized")

        session = self._rule_set.new_session()
        try:
            execution_log = None
            if self._config.log_enabled:
                execution_log = ExecutionLog(session, self._config.log_path)

            loaded = self._loader.load_document(session, document)

            # Index changes follow working memory from here on
            index = NodeIndex()
            IndexSynchronizer(index).attach(session)

            logger.info("Firing rules now!")
            fired = session.fire_all(max_fires=self._config.max_fires)

            fact_count = session.fact_count
            logger.info(f"There are {fact_count} facts.")

            log_path = execution_log.write_to_disk() if execution_log is not None else None
        finally:
            session.dispose()

        return RunResult(
            fact_count=fact_count,
            rules_fired=fired,
            loaded=loaded,
            index=index,
            log_path=log_path,
        )
