"""Tests for the relationship kind registry."""

import pytest

from contact_graph.relationships.kinds import GENERIC_KIND, KindRegistry, RelationshipKind, default_registry
from contact_graph.relationships.models import Gender


class TestComplements:
    def setup_method(self):
        self.registry = KindRegistry()

    @pytest.mark.parametrize(
        "kind,complement",
        [
            ("parent", "child"),
            ("child", "parent"),
            ("grandparent", "grandchild"),
            ("auncle", "nibling"),
            ("manager", "subordinate"),
            ("mentee", "mentor"),
        ],
    )
    def test_asymmetric_complements(self, kind, complement):
        assert self.registry.complement_of(kind) == complement
        assert not self.registry.is_symmetric(kind)

    @pytest.mark.parametrize("kind", ["friend", "sibling", "spouse", "colleague", "related"])
    def test_symmetric_kinds_complement_themselves(self, kind):
        assert self.registry.complement_of(kind) == kind
        assert self.registry.is_symmetric(kind)

    def test_unknown_kind_falls_back_to_related(self):
        assert self.registry.complement_of("nemesis") == GENERIC_KIND
        assert not self.registry.is_symmetric("nemesis")
        assert not self.registry.is_known("nemesis")

    def test_lookup_is_case_insensitive(self):
        assert self.registry.complement_of("Parent") == "child"

    def test_custom_table(self):
        registry = KindRegistry(kinds=[RelationshipKind("coach", "trainee", False)], nouns={})
        assert registry.complement_of("coach") == "trainee"
        assert registry.complement_of("friend") == GENERIC_KIND


class TestGenderedAliases:
    def setup_method(self):
        self.registry = default_registry()

    @pytest.mark.parametrize(
        "term,kind,gender",
        [
            ("mother", "parent", Gender.FEMALE),
            ("Father", "parent", Gender.MALE),
            ("mom", "parent", Gender.FEMALE),
            ("daughter", "child", Gender.FEMALE),
            ("brother", "sibling", Gender.MALE),
            ("wife", "spouse", Gender.FEMALE),
            ("niece", "nibling", Gender.FEMALE),
            ("grandpa", "grandparent", Gender.MALE),
            ("friend", "friend", None),
            ("parent", "parent", None),
        ],
    )
    def test_alias_resolution(self, term, kind, gender):
        alias = self.registry.gendered_alias(term)
        assert alias.kind == kind
        assert alias.gender == gender

    def test_unknown_term_is_kept_lowercase(self):
        alias = self.registry.gendered_alias("  Nemesis ")
        assert alias.kind == "nemesis"
        assert alias.gender is None

    def test_display_term_uses_binary_gender(self):
        assert self.registry.display_term("parent", Gender.FEMALE) == "mother"
        assert self.registry.display_term("child", Gender.MALE) == "son"

    @pytest.mark.parametrize("gender", [None, Gender.NON_BINARY, Gender.UNSPECIFIED])
    def test_display_term_is_neutral_otherwise(self, gender):
        assert self.registry.display_term("parent", gender) == "parent"

    def test_display_term_for_kind_without_nouns(self):
        assert self.registry.display_term("friend", Gender.FEMALE) == "friend"
        assert self.registry.display_term("nemesis") == "nemesis"
