"""Structured relationship fields.

Key grammar:
  RELATED[kind]      the only target of `kind`
  RELATED[n:kind]    n-th target of `kind` (n >= 1) when there are several
  RELATED            legacy key, kind "related"

Value grammar:
  id:<entityId>      resolved (uid:<id> and urn:uuid:<id> are accepted too)
  name:<displayName> unresolved
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .kinds import GENERIC_KIND, KindRegistry, default_registry
from .models import RelationshipRecord

logger = logging.getLogger(__name__)

FIELD_PREFIX = "RELATED"

_KEY_RE = re.compile(r"^RELATED(?:\[(?:(?P<index>[1-9]\d*):)?(?P<kind>[^\[\]:]+)\])?$")
_RESOLVED_PREFIXES = ("urn:uuid:", "uid:", "id:")
_NAME_PREFIX = "name:"


@dataclass(frozen=True, slots=True)
class FieldKey:
    kind: str
    index: int | None = None


def is_relationship_key(key: str) -> bool:
    return key.startswith(FIELD_PREFIX)


def parse_key(key: str) -> FieldKey | None:
    """Parse a relationship field key; None when the key is malformed."""
    m = _KEY_RE.match(key)
    if not m:
        return None
    kind = (m.group("kind") or GENERIC_KIND).strip().lower()
    if not kind:
        return None
    index = m.group("index")
    return FieldKey(kind=kind, index=int(index) if index is not None else None)


def format_key(kind: str, index: int | None = None) -> str:
    if index is None:
        return f"{FIELD_PREFIX}[{kind}]"
    return f"{FIELD_PREFIX}[{index}:{kind}]"


def parse_value(value: str) -> tuple[str, bool] | None:
    """Return (target, resolved) or None for a blank reference."""
    v = value.strip()
    if v.startswith(_NAME_PREFIX):
        name = v[len(_NAME_PREFIX):].strip()
        return (name, False) if name else None
    for prefix in _RESOLVED_PREFIXES:
        if v.startswith(prefix):
            v = v[len(prefix):].strip()
            break
    return (v, True) if v else None


def format_value(record: RelationshipRecord) -> str:
    if record.resolved:
        return f"id:{record.target}"
    return f"{_NAME_PREFIX}{record.target}"


class FieldCodec:
    """Converts between flat field maps and relationship records."""

    def __init__(self, registry: KindRegistry | None = None):
        self.registry = registry or default_registry()

    def decode(self, fields: Mapping[str, Any]) -> list[RelationshipRecord]:
        out: list[RelationshipRecord] = []
        seen: set[RelationshipRecord] = set()
        for key, value in fields.items():
            if not isinstance(key, str) or not is_relationship_key(key):
                continue
            fk = parse_key(key)
            if fk is None:
                logger.debug("Skipping malformed relationship key %r", key)
                continue
            if not isinstance(value, str):
                if value is not None:
                    logger.debug("Skipping non-string value for %s: %r", key, value)
                continue
            parsed = parse_value(value)
            if parsed is None:
                continue
            target, resolved = parsed
            rec = RelationshipRecord(
                kind=self.registry.canonical(fk.kind),
                target=target,
                resolved=resolved,
                display_name=None if resolved else target,
            )
            if rec in seen:
                continue
            seen.add(rec)
            out.append(rec)
        return out

    def encode(self, records: Iterable[RelationshipRecord]) -> dict[str, str]:
        """Deterministic serialization: kinds sorted, targets name-sorted within a kind."""
        groups: dict[str, list[RelationshipRecord]] = {}
        for rec in set(records):
            groups.setdefault(rec.kind, []).append(rec)

        fields: dict[str, str] = {}
        for kind in sorted(groups):
            recs = sorted(groups[kind], key=RelationshipRecord.sort_key)
            if len(recs) == 1:
                fields[format_key(kind)] = format_value(recs[0])
                continue
            for i, rec in enumerate(recs, start=1):
                fields[format_key(kind, i)] = format_value(rec)
        return fields

    def merge(self, fields: Mapping[str, Any], records: Iterable[RelationshipRecord]) -> dict[str, Any]:
        """Replace the relationship fields of `fields` with the encoding of `records`.

        Well-formed and blank relationship keys are dropped; malformed keys are
        left untouched so that unparseable data is never destroyed.
        """
        kept: dict[str, Any] = {}
        for key, value in fields.items():
            if isinstance(key, str) and is_relationship_key(key):
                if parse_key(key) is not None or value is None or value == "":
                    continue
            kept[key] = value
        kept.update(self.encode(records))
        return kept
