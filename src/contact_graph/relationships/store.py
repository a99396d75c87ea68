from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EntityRef:
    """Handle on one contact document."""

    id: str
    name: str
    path: str | None = None


class EntityStore(Protocol):
    """Host document store.

    Reads and writes are coroutines; listing and lookups are index queries.
    """

    def list_entities(self) -> list[EntityRef]: ...

    async def read_text(self, ref: EntityRef) -> str: ...

    async def write_text(self, ref: EntityRef, text: str) -> None: ...

    def lookup_by_display_name(self, name: str) -> EntityRef | None: ...

    def lookup_by_id(self, entity_id: str) -> EntityRef | None: ...


WriteListener = Callable[[EntityRef], Awaitable[None]]


class InMemoryEntityStore:
    """Dict-backed store.

    Every write is recorded in `writes`, and registered listeners are awaited
    after each write the way a file watcher would report a change.
    """

    def __init__(self, documents: dict[EntityRef, str] | None = None):
        self._refs: dict[str, EntityRef] = {}
        self._texts: dict[str, str] = {}
        self.writes: list[tuple[str, str]] = []
        self.listeners: list[WriteListener] = []
        for ref, text in (documents or {}).items():
            self.put(ref, text)

    def put(self, ref: EntityRef, text: str) -> None:
        """Add or replace a document without recording a write."""
        self._refs[ref.id] = ref
        self._texts[ref.id] = text

    def remove(self, entity_id: str) -> None:
        self._refs.pop(entity_id, None)
        self._texts.pop(entity_id, None)

    def text(self, entity_id: str) -> str:
        return self._texts[entity_id]

    def list_entities(self) -> list[EntityRef]:
        return sorted(self._refs.values(), key=lambda r: r.id)

    async def read_text(self, ref: EntityRef) -> str:
        await asyncio.sleep(0)
        try:
            return self._texts[ref.id]
        except KeyError:
            raise FileNotFoundError(ref.id) from None

    async def write_text(self, ref: EntityRef, text: str) -> None:
        await asyncio.sleep(0)
        if ref.id not in self._refs:
            raise FileNotFoundError(ref.id)
        self._texts[ref.id] = text
        self.writes.append((ref.id, text))
        logger.debug("Stored %s (%d chars)", ref.id, len(text))
        for listener in list(self.listeners):
            await listener(ref)

    def lookup_by_display_name(self, name: str) -> EntityRef | None:
        name = name.strip()
        for ref in self.list_entities():
            if ref.name == name:
                return ref
        return None

    def lookup_by_id(self, entity_id: str) -> EntityRef | None:
        return self._refs.get(entity_id)

    def written_ids(self) -> list[str]:
        return [entity_id for entity_id, _text in self.writes]
