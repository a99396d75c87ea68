"""Relationship consistency engine.

This module provides:
- A registry of relationship kinds, complements and gendered display terms
- Codecs for the RELATED fields and the rendered relationship section
- An in-memory relationship graph with phantom (unresolved) nodes
- A lock-guarded orchestrator that propagates edits across contacts
"""

from .fields import FieldCodec
from .graph import GraphIssue, GraphStats, RelationshipGraph
from .kinds import KindRegistry, RelationshipKind, default_registry
from .locks import LockTable
from .models import Edge, Entity, Gender, RelationshipRecord
from .section import SectionRenderer
from .store import EntityRef, EntityStore, InMemoryEntityStore
from .sync import RelationshipSync, SyncReport, UnknownEntityError

__all__ = [
    "Edge",
    "Entity",
    "EntityRef",
    "EntityStore",
    "FieldCodec",
    "Gender",
    "GraphIssue",
    "GraphStats",
    "InMemoryEntityStore",
    "KindRegistry",
    "LockTable",
    "RelationshipGraph",
    "RelationshipKind",
    "RelationshipRecord",
    "RelationshipSync",
    "SectionRenderer",
    "SyncReport",
    "UnknownEntityError",
    "default_registry",
]
