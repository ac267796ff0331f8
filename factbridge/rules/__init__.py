"""
Rule layer for factbridge.

Compiles rule sources into rule sets that open working-memory sessions.
"""

from factbridge.rules.compiler import (
    CompileError,
    CompiledRuleSet,
    Rule,
    RuleCompileIssue,
    RuleDefinition,
    RuleFile,
    compile_rules,
    resolve_reference,
)

__all__ = [
    "CompileError",
    "CompiledRuleSet",
    "Rule",
    "RuleCompileIssue",
    "RuleDefinition",
    "RuleFile",
    "compile_rules",
    "resolve_reference",
]
