from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

PHANTOM_PREFIX = "name:"


class Gender(str, Enum):
    """vCard 4.0 GENDER sex component."""

    MALE = "M"
    FEMALE = "F"
    NON_BINARY = "NB"
    UNSPECIFIED = "U"

    @property
    def is_binary(self) -> bool:
        return self in (Gender.MALE, Gender.FEMALE)


_GENDER_ALIASES: dict[str, Gender] = {
    "m": Gender.MALE,
    "male": Gender.MALE,
    "f": Gender.FEMALE,
    "female": Gender.FEMALE,
    "nb": Gender.NON_BINARY,
    "non-binary": Gender.NON_BINARY,
    "nonbinary": Gender.NON_BINARY,
    "u": Gender.UNSPECIFIED,
    "unspecified": Gender.UNSPECIFIED,
}


def parse_gender(value: object) -> Gender | None:
    """Lenient GENDER parsing; returns None for blank or unknown values."""
    if not isinstance(value, str) or not value.strip():
        return None
    return _GENDER_ALIASES.get(value.strip().lower())


def phantom_id(name: str) -> str:
    return f"{PHANTOM_PREFIX}{name}"


def is_phantom_id(node_id: str) -> bool:
    return node_id.startswith(PHANTOM_PREFIX)


@dataclass(frozen=True, slots=True)
class Entity:
    """A node of the relationship graph.

    `exists=False` marks a phantom: a relationship target the store does not know yet.
    """

    id: str
    name: str
    exists: bool = True
    gender: Gender | None = None


@dataclass(frozen=True, slots=True)
class Edge:
    """A directed, typed relationship between two graph nodes."""

    kind: str
    source: str
    target: str


@dataclass(frozen=True, slots=True)
class RelationshipRecord:
    """One relationship as seen from its source entity.

    `target` is an entity id when `resolved`, otherwise the target's display name.
    Equality and hashing only consider the kind and the target reference; the
    display name and gender are rendering hints.
    """

    kind: str
    target: str
    resolved: bool = True
    display_name: str | None = field(default=None, compare=False)
    gender: Gender | None = field(default=None, compare=False)

    @property
    def node_key(self) -> str:
        """Graph node id this record points at."""
        return self.target if self.resolved else phantom_id(self.target)

    @property
    def sort_name(self) -> str:
        return self.display_name or self.target

    def sort_key(self) -> tuple[str, str, str]:
        name = self.sort_name
        return (name.casefold(), name, self.target)
