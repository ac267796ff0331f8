"""
Pytest configuration and shared fixtures for factbridge tests.

This module provides a small linguistic type system, documents built
on it, a recording event listener, and rule source files referring to
the callables in ``rule_helpers``.
"""

import json

import pytest

from factbridge.core.models import Document, Node
from factbridge.core.types import TypeSystem
from factbridge.runtime.session import WorkingMemory, WorkingMemoryEventListener


# =============================================================================
# Type System Fixtures
# =============================================================================

@pytest.fixture
def type_system():
    """
    Create a type system with annotation and plain record types.

    - Token, Sentence: annotations; a sentence holds a token collection
    - Link: points at any structured node
    - Group: a collection of members plus a head
    - Ref: a chain type pointing at its own type
    """
    ts = TypeSystem()
    ts.define("Token", {"form": "String", "pos": "String", "lemma": "String"}, parent="Annotation")
    ts.define("Sentence", {"tokens": ("Token", True)}, parent="Annotation")
    ts.define("Link", {"label": "String", "target": "TOP"})
    ts.define("Group", {"members": ("TOP", True), "head": "TOP"})
    ts.define("Ref", {"next": "Ref"})
    return ts


@pytest.fixture
def make_node(type_system):
    """Factory creating nodes by type name."""
    def _make(type_name, **values):
        return Node(type_system.get(type_name), **values)
    return _make


# =============================================================================
# Document Fixtures
# =============================================================================

@pytest.fixture
def sample_document(type_system):
    """
    Create a tokenized one-sentence document.

    Four tokens (the last one punctuation) and a sentence holding all of
    them; every annotation is a root.
    """
    text = "The dog barks ."
    doc = Document(text, type_system)
    tokens = []
    offset = 0
    for form, pos in [("The", "DT"), ("dog", "NN"), ("barks", "VBZ"), (".", "PUNCT")]:
        begin = text.index(form, offset)
        end = begin + len(form)
        tokens.append(doc.annotate("Token", begin, end, form=form, pos=pos))
        offset = end
    doc.annotate("Sentence", 0, len(text), tokens=tokens)
    return doc


# =============================================================================
# Session Fixtures
# =============================================================================

class RecordingListener(WorkingMemoryEventListener):
    """Listener that keeps every event it receives."""

    def __init__(self):
        self.events = []

    def object_inserted(self, event):
        self.events.append(event)

    def object_updated(self, event):
        self.events.append(event)

    def object_retracted(self, event):
        self.events.append(event)

    @property
    def event_types(self):
        return [event.event_type.value for event in self.events]


@pytest.fixture
def session():
    """Create a rule-less working memory, disposed after the test."""
    memory = WorkingMemory()
    yield memory
    memory.dispose()


@pytest.fixture
def recorder(session):
    """A recording listener attached to the session fixture."""
    listener = RecordingListener()
    session.add_event_listener(listener)
    return listener


# =============================================================================
# Rule Source Fixtures
# =============================================================================

@pytest.fixture
def write_rules(tmp_path):
    """Factory writing a rule file into the temporary directory."""
    def _write(name, rules=None, include=None, raw=None):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if raw is not None:
            path.write_text(raw, encoding="utf-8")
        else:
            payload = {"rules": rules or []}
            if include is not None:
                payload["include"] = include
            path.write_text(json.dumps(payload), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def token_rules(write_rules):
    """Rule file cleaning up the sample document's tokens."""
    return write_rules("token_rules.json", rules=[
        {
            "name": "drop-punctuation",
            "types": ["Token"],
            "when": "rule_helpers:is_punctuation",
            "then": "rule_helpers:retract_fact",
            "salience": 10,
        },
        {
            "name": "lemmatize",
            "types": ["Token"],
            "when": "rule_helpers:needs_lemma",
            "then": "rule_helpers:set_lemma",
        },
        {
            "name": "note-sentence",
            "types": ["Sentence"],
            "then": "rule_helpers:note_sentence",
        },
    ])


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests running the whole pipeline"
    )
