"""Relationship kind registry.

Static table of relationship kinds, their complements, symmetry and the
gendered nouns used to display them.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable

from .models import Gender

GENERIC_KIND = "related"


@dataclass(frozen=True, slots=True)
class RelationshipKind:
    name: str
    complement: str
    symmetric: bool


@dataclass(frozen=True, slots=True)
class GenderedAlias:
    """Result of resolving a display term such as "mother"."""

    kind: str
    gender: Gender | None = None


@dataclass(frozen=True, slots=True)
class _Nouns:
    neutral: str
    male: str | None = None
    female: str | None = None


def _asym(a: str, b: str) -> list[RelationshipKind]:
    return [RelationshipKind(a, b, False), RelationshipKind(b, a, False)]


def _sym(*names: str) -> list[RelationshipKind]:
    return [RelationshipKind(n, n, True) for n in names]


DEFAULT_KINDS: list[RelationshipKind] = [
    # family
    *_asym("parent", "child"),
    *_asym("grandparent", "grandchild"),
    *_asym("auncle", "nibling"),
    *_sym("sibling", "spouse", "partner", "cousin", "relative"),
    # social
    *_sym("friend", "colleague", "acquaintance", "neighbor", "contact"),
    # professional
    *_asym("manager", "subordinate"),
    *_asym("mentor", "mentee"),
    # generic
    *_sym(GENERIC_KIND),
]

DEFAULT_NOUNS: dict[str, _Nouns] = {
    "parent": _Nouns("parent", "father", "mother"),
    "child": _Nouns("child", "son", "daughter"),
    "sibling": _Nouns("sibling", "brother", "sister"),
    "spouse": _Nouns("spouse", "husband", "wife"),
    "grandparent": _Nouns("grandparent", "grandfather", "grandmother"),
    "grandchild": _Nouns("grandchild", "grandson", "granddaughter"),
    "auncle": _Nouns("auncle", "uncle", "aunt"),
    "nibling": _Nouns("nibling", "nephew", "niece"),
}

# Colloquial terms accepted when parsing, never produced when rendering.
EXTRA_ALIASES: dict[str, GenderedAlias] = {
    "dad": GenderedAlias("parent", Gender.MALE),
    "daddy": GenderedAlias("parent", Gender.MALE),
    "mom": GenderedAlias("parent", Gender.FEMALE),
    "mommy": GenderedAlias("parent", Gender.FEMALE),
    "grandpa": GenderedAlias("grandparent", Gender.MALE),
    "grandma": GenderedAlias("grandparent", Gender.FEMALE),
}


class KindRegistry:
    """Lookup table for relationship kinds.

    Unknown kinds are tolerated everywhere: they complement to the generic
    "related" kind and are displayed verbatim.
    """

    def __init__(
        self,
        kinds: Iterable[RelationshipKind] = DEFAULT_KINDS,
        nouns: dict[str, _Nouns] | None = None,
        extra_aliases: dict[str, GenderedAlias] | None = None,
    ):
        self._kinds: dict[str, RelationshipKind] = {k.name: k for k in kinds}
        self._nouns = dict(DEFAULT_NOUNS if nouns is None else nouns)
        self._aliases: dict[str, GenderedAlias] = {}
        for name in self._kinds:
            self._aliases[name] = GenderedAlias(name)
        for kind, n in self._nouns.items():
            self._aliases[n.neutral] = GenderedAlias(kind)
            if n.male:
                self._aliases[n.male] = GenderedAlias(kind, Gender.MALE)
            if n.female:
                self._aliases[n.female] = GenderedAlias(kind, Gender.FEMALE)
        self._aliases.update(EXTRA_ALIASES if extra_aliases is None else extra_aliases)

    def get(self, kind: str) -> RelationshipKind | None:
        return self._kinds.get(kind.strip().lower())

    def is_known(self, kind: str) -> bool:
        return self.get(kind) is not None

    def kinds(self) -> list[str]:
        return sorted(self._kinds)

    def complement_of(self, kind: str) -> str:
        k = self.get(kind)
        return k.complement if k else GENERIC_KIND

    def is_symmetric(self, kind: str) -> bool:
        k = self.get(kind)
        return k.symmetric if k else False

    def gendered_alias(self, term: str) -> GenderedAlias:
        t = term.strip().lower()
        return self._aliases.get(t) or GenderedAlias(t)

    def canonical(self, term: str) -> str:
        return self.gendered_alias(term).kind

    def display_term(self, kind: str, gender: Gender | None = None) -> str:
        k = kind.strip().lower()
        nouns = self._nouns.get(k)
        if nouns is None:
            return k
        if gender is Gender.MALE and nouns.male:
            return nouns.male
        if gender is Gender.FEMALE and nouns.female:
            return nouns.female
        return nouns.neutral


@lru_cache(maxsize=1)
def default_registry() -> KindRegistry:
    return KindRegistry()
