"""
Interface layer for factbridge.

Exports:
    - RuleRunner: Runs a rule set over documents
    - RunResult: Outcome of one run
    - InitializationError: Setup failure
"""

from factbridge.interface.runner import InitializationError, RuleRunner, RunResult

__all__ = [
    "InitializationError",
    "RuleRunner",
    "RunResult",
]
