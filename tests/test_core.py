"""
Tests for factbridge core types and records.
"""

import pytest

from factbridge.core.models import Document, FactKind, Node, fact_kind_of, generate_id
from factbridge.core.types import STRING, TOP, TypeSystem, TypeSystemError


class TestGenerateId:
    """Tests for ID generation."""

    def test_generates_unique_ids(self):
        """IDs should be unique."""
        ids = [generate_id() for _ in range(100)]
        assert len(set(ids)) == 100


class TestTypeSystem:
    """Tests for type definitions."""

    def test_builtin_types(self, type_system):
        """Should provide primitive and structured built-ins."""
        assert type_system.get("String").primitive
        assert type_system.get("Integer").primitive
        assert not type_system.get("TOP").primitive
        assert not type_system.get("Annotation").primitive

    def test_inherited_features_come_first(self, type_system):
        """Subtypes should list parent features before their own."""
        names = [f.name for f in type_system.get("Token").features]
        assert names == ["begin", "end", "form", "pos", "lemma"]

    def test_collection_feature(self, type_system):
        """Collection features should be marked multiple and structured."""
        feature = type_system.get("Sentence").get_feature("tokens")
        assert feature.multiple
        assert not feature.is_primitive_type()

    def test_primitive_feature(self, type_system):
        feature = type_system.get("Token").get_feature("pos")
        assert feature.is_primitive_type()

    def test_self_referential_type(self, type_system):
        """A type may refer to itself."""
        ref = type_system.get("Ref")
        assert ref.get_feature("next").range is ref

    def test_unknown_type(self, type_system):
        with pytest.raises(TypeSystemError):
            type_system.get("Missing")

    def test_unknown_feature(self, type_system):
        with pytest.raises(TypeSystemError):
            type_system.get("Token").get_feature("missing")

    def test_unknown_range_rolls_back(self):
        """A failed definition should not leave a half-built type behind."""
        ts = TypeSystem()
        with pytest.raises(TypeSystemError):
            ts.define("Broken", {"x": "Nope"})
        assert "Broken" not in ts

    def test_duplicate_type(self, type_system):
        with pytest.raises(ValueError):
            type_system.define("Token")

    def test_primitive_collection_rejected(self):
        ts = TypeSystem()
        with pytest.raises(ValueError):
            ts.define("Bad", {"values": ("String", True)})
        assert "Bad" not in ts

    def test_failed_define_can_be_retried(self):
        """A rejected definition leaves no half-built type behind."""
        ts = TypeSystem()
        with pytest.raises(ValueError):
            ts.define("Pair", {"left": "String", "right": ("String", True, "extra")})
        assert "Pair" not in ts

        pair = ts.define("Pair", {"left": "String", "right": "String"})
        assert [f.name for f in pair.features][-2:] == ["left", "right"]

    def test_builtins_cannot_be_extended(self):
        ts = TypeSystem()
        with pytest.raises(ValueError):
            ts.add_feature(TOP, "extra", STRING)

    def test_subsumption(self, type_system):
        annotation = type_system.get("Annotation")
        token = type_system.get("Token")
        assert annotation.subsumes(token)
        assert not token.subsumes(annotation)
        assert TOP.subsumes(token)
        assert token.lineage() == ["Token", "Annotation", "TOP"]


class TestNode:
    """Tests for Node records."""

    def test_feature_values(self, make_node):
        token = make_node("Token", begin=0, end=3, form="The")
        assert token["form"] == "The"
        assert token.feature_value("pos") is None
        token["pos"] = "DT"
        assert token.feature_value(token.type.get_feature("pos")) == "DT"

    def test_identity_not_value_equality(self, make_node):
        """Two nodes with identical values are still distinct."""
        a = make_node("Token", begin=0, end=3, form="The")
        b = make_node("Token", begin=0, end=3, form="The")
        assert a != b
        assert a.id != b.id
        assert len({a, b}) == 2

    def test_structured_value_must_be_node(self, make_node):
        with pytest.raises(TypeError):
            make_node("Link", target="not a node")

    def test_structured_value_range_checked(self, make_node):
        """A Ref may only point at another Ref."""
        token = make_node("Token", begin=0, end=1)
        with pytest.raises(TypeError):
            make_node("Ref", next=token)

    def test_primitive_value_must_not_be_node(self, make_node):
        with pytest.raises(TypeError):
            make_node("Token", form=make_node("Ref"))

    def test_collection_value(self, make_node):
        a = make_node("Token", begin=0, end=1)
        b = make_node("Token", begin=2, end=3)
        sentence = make_node("Sentence", begin=0, end=3, tokens=(a, b))
        assert sentence["tokens"] == [a, b]

    def test_collection_rejects_non_nodes(self, make_node):
        with pytest.raises(TypeError):
            make_node("Group", members=["a", "b"])
        with pytest.raises(TypeError):
            make_node("Group", members="ab")

    def test_unknown_feature(self, make_node):
        with pytest.raises(TypeSystemError):
            make_node("Token", missing=1)

    def test_repr_skips_structured_values(self, make_node):
        """Cyclic nodes should still render."""
        link = make_node("Link", label="self")
        link["target"] = link
        assert repr(link) == "Link(label='self')"


class TestFactKind:
    """Tests for fact kind tagging."""

    def test_nodes_are_tagged(self, make_node):
        assert fact_kind_of(make_node("Ref")) is FactKind.NODE

    def test_other_values(self):
        assert fact_kind_of("text") is FactKind.VALUE
        assert fact_kind_of({"fact_kind": "node"}) is FactKind.VALUE
        assert fact_kind_of(42) is FactKind.VALUE

    def test_tag_not_hierarchy(self):
        """Any object carrying the tag counts as a node fact."""
        class Tagged:
            fact_kind = FactKind.NODE

        assert fact_kind_of(Tagged()) is FactKind.NODE


class TestDocument:
    """Tests for documents."""

    def test_annotate(self, type_system):
        doc = Document("Hello world", type_system)
        token = doc.annotate("Token", 0, 5, form="Hello")
        assert doc.roots() == [token]
        assert doc.covered_text(token) == "Hello"
        assert len(doc) == 1

    def test_annotate_outside_text(self, type_system):
        doc = Document("Hi", type_system)
        with pytest.raises(ValueError):
            doc.annotate("Token", 0, 5)

    def test_select_includes_subtypes(self, sample_document):
        assert len(list(sample_document.select("Token"))) == 4
        assert len(list(sample_document.select("Annotation"))) == 5

    def test_add_root(self, type_system, make_node):
        doc = Document("", type_system)
        ref = doc.add_root(make_node("Ref"))
        assert doc.roots() == [ref]
