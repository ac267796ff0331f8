# coding: utf-8
"""
Rule compilation for factbridge.

Compiles rule source files into a rule set that opens working-memory
sessions. A rule is a pair of Python callables named by reference:

    {
      "rules": [
        {"name": "mark-nouns", "types": ["Token"],
         "when": "myrules.tokens:is_noun", "then": "myrules.tokens:mark"}
      ],
      "include": ["shared.json"]
    }

``when(value) -> bool`` decides whether the rule applies to a fact and
may be omitted. ``then(context, value)`` is the action. A source is a
JSON file or a directory of ``*.json`` files; ``include`` paths are
resolved relative to the file that names them.

Compilation never stops at the first problem: every missing file,
malformed document, schema violation, duplicate name and unresolvable
reference is collected and reported together in one CompileError.
"""

from __future__ import annotations

import importlib
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from factbridge.core.models import FactKind, fact_kind_of
from factbridge.runtime.session import RuleContext, WorkingMemory

logger = logging.getLogger(__name__)

RULE_FILE_PATTERN = "*.json"

_REFERENCE = re.compile(r"^[A-Za-z_][\w.]*:[A-Za-z_][\w.]*$")

Condition = Callable[[Any], bool]
Action = Callable[[RuleContext, Any], None]


class RuleDefinition(BaseModel):
    """A rule as written in a rule file."""

    name: str = Field(..., description="Rule name, unique within a rule set")
    then: str = Field(..., description="Action reference, 'module:attribute'")
    when: Optional[str] = Field(default=None, description="Condition reference, 'module:attribute'")
    types: list[str] = Field(default_factory=list, description="Node types the rule applies to")
    salience: int = Field(default=0, description="Higher salience fires first")
    description: Optional[str] = Field(default=None)

    model_config = {"extra": "forbid"}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Ensure the rule name is not empty."""
        if not v or not v.strip():
            raise ValueError("rule name cannot be empty")
        return v.strip()

    @field_validator("then", "when")
    @classmethod
    def validate_reference(cls, v: Optional[str]) -> Optional[str]:
        """Ensure callable references look like 'module:attribute'."""
        if v is not None and not _REFERENCE.match(v):
            raise ValueError(f"expected 'module:attribute', got {v!r}")
        return v


class RuleFile(BaseModel):
    """Top-level structure of a rule file."""

    rules: list[RuleDefinition] = Field(default_factory=list)
    include: list[str] = Field(default_factory=list, description="Further rule sources")

    model_config = {"extra": "forbid"}


class RuleCompileIssue(BaseModel):
    """One problem found while compiling rule sources."""

    source: str = Field(..., description="File or directory the problem is in")
    rule: Optional[str] = Field(default=None, description="Rule the problem belongs to")
    message: str = Field(...)

    model_config = {"frozen": True, "extra": "forbid"}

    def __str__(self) -> str:
        where = f"{self.source} [{self.rule}]" if self.rule else self.source
        return f"{where}: {self.message}"


class CompileError(Exception):
    """
    Raised when rule sources have errors.

    Attributes:
        errors: Every problem found, in the order encountered
    """

    def __init__(self, errors: Iterable[RuleCompileIssue]):
        self.errors = list(errors)
        super().__init__(f"Rule sources have {len(self.errors)} error(s)")

    def __str__(self) -> str:
        lines = [self.args[0]]
        lines.extend(f"  {issue}" for issue in self.errors)
        return "\n".join(lines)


@dataclass
class Rule:
    """
    An executable rule.

    Attributes:
        name: Rule name
        action: Called with the rule context and the matched value
        condition: Fact filter; None matches everything
        types: Node type names the rule is restricted to
        salience: Agenda priority
        source: Where the rule was defined
    """

    name: str
    action: Action
    condition: Optional[Condition] = None
    types: tuple[str, ...] = field(default_factory=tuple)
    salience: int = 0
    source: Optional[str] = None

    def matches(self, value: Any) -> bool:
        """Check whether the rule applies to a fact value."""
        if self.types:
            if fact_kind_of(value) is not FactKind.NODE:
                return False
            lineage = value.type.lineage()
            if not any(type_name in lineage for type_name in self.types):
                return False
        return self.condition is None or bool(self.condition(value))


class CompiledRuleSet:
    """
    A compiled, immutable set of rules.

    Each call to ``new_session`` opens an independent working memory.
    """

    def __init__(self, rules: Iterable[Rule], sources: Iterable[str] = ()):
        self._rules = tuple(rules)
        self._sources = tuple(sources)

    @classmethod
    def from_rules(cls, rules: Iterable[Rule]) -> "CompiledRuleSet":
        """
        Build a rule set from rules constructed in code.

        Raises:
            CompileError: If rule names repeat
        """
        rules = list(rules)
        issues = []
        seen: set[str] = set()
        for rule in rules:
            if rule.name in seen:
                issues.append(RuleCompileIssue(
                    source=rule.source or "<code>", rule=rule.name, message="duplicate rule name",
                ))
            seen.add(rule.name)
        if issues:
            raise CompileError(issues)
        return cls(rules)

    @property
    def rules(self) -> list[Rule]:
        return list(self._rules)

    @property
    def sources(self) -> list[str]:
        """Files the rules were compiled from."""
        return list(self._sources)

    def get(self, name: str) -> Optional[Rule]:
        for rule in self._rules:
            if rule.name == name:
                return rule
        return None

    def new_session(self) -> WorkingMemory:
        """Open a fresh working memory over these rules."""
        return WorkingMemory(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


def resolve_reference(reference: str) -> Any:
    """
    Import the object a 'module:attribute' reference names.

    Raises:
        ImportError: If the module cannot be imported
        AttributeError: If the attribute does not exist
    """
    module_name, _, attribute = reference.partition(":")
    target: Any = importlib.import_module(module_name)
    for part in attribute.split("."):
        target = getattr(target, part)
    return target


class _RuleCompiler:
    """Accumulates rules and issues across rule sources."""

    def __init__(self):
        self.rules: list[Rule] = []
        self.issues: list[RuleCompileIssue] = []
        self.sources: list[str] = []
        self._seen_files: set[Path] = set()
        self._names: set[str] = set()

    def add(self, path: Path) -> None:
        if path.is_dir():
            files = sorted(path.glob(RULE_FILE_PATTERN))
            if not files:
                self._issue(path, f"no rule files matching {RULE_FILE_PATTERN}")
            for file_path in files:
                self.add_file(file_path)
        else:
            self.add_file(path)

    def add_file(self, path: Path) -> None:
        resolved = path.resolve()
        if resolved in self._seen_files:
            # Already compiled, e.g. through an include cycle
            return
        self._seen_files.add(resolved)

        if not path.exists():
            self._issue(path, "rule source not found")
            return

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            self._issue(path, f"invalid JSON at line {e.lineno}, column {e.colno}: {e.msg}")
            return
        except (OSError, UnicodeDecodeError) as e:
            self._issue(path, f"cannot read rule source: {e}")
            return

        try:
            rule_file = RuleFile.model_validate(data)
        except ValidationError as e:
            for error in e.errors():
                location = ".".join(str(part) for part in error["loc"])
                self._issue(path, f"{location}: {error['msg']}")
            return

        self.sources.append(str(path))
        for definition in rule_file.rules:
            self._add_definition(path, definition)

        for include in rule_file.include:
            self.add(path.parent / include)

    def _add_definition(self, path: Path, definition: RuleDefinition) -> None:
        if definition.name in self._names:
            self._issue(path, "duplicate rule name", definition.name)
            return
        self._names.add(definition.name)

        action = self._callable(path, definition, definition.then)
        condition = None
        if definition.when is not None:
            condition = self._callable(path, definition, definition.when)
            if condition is None:
                return
        if action is None:
            return

        self.rules.append(Rule(
            name=definition.name,
            action=action,
            condition=condition,
            types=tuple(definition.types),
            salience=definition.salience,
            source=str(path),
        ))

    def _callable(self, path: Path, definition: RuleDefinition, reference: str) -> Optional[Callable]:
        try:
            target = resolve_reference(reference)
        except AttributeError:
            self._issue(path, f"{reference!r} does not exist", definition.name)
            return None
        except Exception as e:
            # Rule modules run arbitrary code when imported
            self._issue(path, f"cannot import {reference!r}: {e}", definition.name)
            return None

        if not callable(target):
            self._issue(path, f"{reference!r} is not callable", definition.name)
            return None
        return target

    def _issue(self, path: Path, message: str, rule: Optional[str] = None) -> None:
        self.issues.append(RuleCompileIssue(source=str(path), rule=rule, message=message))

    def build(self) -> CompiledRuleSet:
        if self.issues:
            raise CompileError(self.issues)
        return CompiledRuleSet(self.rules, self.sources)


def compile_rules(path: Union[str, Path]) -> CompiledRuleSet:
    """
    Compile a rule source.

    Args:
        path: Rule file, or directory of rule files

    Returns:
        The compiled rule set

    Raises:
        CompileError: Listing every problem found in the sources
    """
    compiler = _RuleCompiler()
    compiler.add(Path(path))
    compiled = compiler.build()
    logger.debug(f"Compiled {len(compiled)} rules from {len(compiled.sources)} files")
    return compiled
