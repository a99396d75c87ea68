"""Shared fixtures for the contact-graph test suite.

Provides test settings and an in-memory contact store with helpers to
create contact documents and inspect what the sync engine wrote.
"""

from __future__ import annotations

from typing import Any

import pytest
import yaml

from contact_graph.relationships import EntityRef, InMemoryEntityStore, RelationshipSync
from contact_graph.settings import ContactGraphSettings
from contact_graph.vault import FrontMatterCodec


def make_document(fields: dict[str, Any], body: str = "") -> str:
    dumped = yaml.safe_dump(fields, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"---\n{dumped}---\n{body}"


class Contacts:
    """Builds contact documents inside an InMemoryEntityStore."""

    def __init__(self, store: InMemoryEntityStore):
        self.store = store
        self.codec = FrontMatterCodec()

    def add(self, uid: str, name: str, related: dict[str, str] | None = None, body: str = "", **extra: Any) -> EntityRef:
        fields: dict[str, Any] = {"UID": uid, "FN": name, **extra}
        fields.update(related or {})
        ref = EntityRef(id=uid, name=name)
        self.store.put(ref, make_document(fields, body))
        return ref

    def fields(self, uid: str) -> dict[str, Any]:
        return self.codec.split(self.store.text(uid)).fields

    def related(self, uid: str) -> dict[str, Any]:
        return {k: v for k, v in self.fields(uid).items() if k.startswith("RELATED")}

    def body(self, uid: str) -> str:
        return self.codec.split(self.store.text(uid)).body


@pytest.fixture
def test_settings() -> ContactGraphSettings:
    """Settings without revision stamps so that written text is predictable."""
    return ContactGraphSettings(stamp_revision=False, lock_ttl_seconds=5.0)


@pytest.fixture
def store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


@pytest.fixture
def contacts(store: InMemoryEntityStore) -> Contacts:
    return Contacts(store)


@pytest.fixture
def engine(store: InMemoryEntityStore, test_settings: ContactGraphSettings) -> RelationshipSync:
    return RelationshipSync(store, settings=test_settings)
