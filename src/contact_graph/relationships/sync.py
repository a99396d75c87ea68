"""Relationship synchronisation.

Keeps the structured RELATED fields and the rendered relationship section of
every contact in agreement with the relationship graph.

Three entry points:

- `sync()`       a user edited a contact's section: apply the difference to
                 the graph, rewrite the contact's fields, then rewrite fields
                 and section of every related contact.
- `view_sync()`  re-render a contact's section from its fields. No graph changes.
- `full_sync()`  upgrade phantoms whose name now matches a real contact, then `sync()`.

Each contact is guarded by a time-bounded lock. A request for a contact that
is already being synced is dropped, which is what stops A -> B -> A cascades.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from contact_graph.settings import ContactGraphSettings, settings as default_settings
from contact_graph.vault.frontmatter import ContactDocument, FrontMatterCodec

from .fields import FieldCodec
from .graph import GraphStats, RelationshipGraph
from .kinds import KindRegistry, default_registry
from .locks import LockTable
from .models import RelationshipRecord, is_phantom_id, parse_gender, phantom_id
from .section import SectionRenderer
from .store import EntityRef, EntityStore

logger = logging.getLogger(__name__)


class UnknownEntityError(LookupError):
    """The store has no contact with the requested id."""


@dataclass(slots=True)
class SyncReport:
    entity_id: str
    mode: str
    completed: bool = False
    skipped: bool = False
    added: int = 0
    removed: int = 0
    upgraded: int = 0
    written: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def revision_stamp(now: datetime | None = None) -> str:
    """vCard basic-format UTC timestamp, e.g. 20240131T120000Z."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


class RelationshipSync:
    def __init__(
        self,
        store: EntityStore,
        *,
        graph: RelationshipGraph | None = None,
        registry: KindRegistry | None = None,
        codec: FrontMatterCodec | None = None,
        locks: LockTable | None = None,
        settings: ContactGraphSettings | None = None,
    ):
        self.store = store
        self.settings = settings or default_settings
        self.registry = registry or default_registry()
        self.graph = graph or RelationshipGraph(self.registry)
        self.codec = codec or FrontMatterCodec()
        self.fields = FieldCodec(self.registry)
        self.renderer = SectionRenderer(
            self.registry,
            heading=self.settings.section_heading,
            heading_level=self.settings.section_heading_level,
            notes_heading=self.settings.notes_heading,
        )
        self.locks = locks or LockTable(ttl=self.settings.lock_ttl_seconds)
        self._loaded = False
        self._name_resolved: set[str] = set()

    # --------------------------
    # Graph rebuild
    # --------------------------

    async def load(self) -> GraphStats:
        """Rebuild the graph from every document in the store.

        First pass registers every contact as a real node so that name-based
        references made by the second pass resolve regardless of file order.
        """
        self.graph.clear()
        refs = self.store.list_entities()
        documents: dict[str, ContactDocument] = {}

        for ref in refs:
            try:
                doc = self.codec.split(await self.store.read_text(ref))
            except Exception as e:
                logger.warning("Failed to read contact %s while loading: %s", ref.id, e)
                self.graph.add_node(ref.id, ref.name)
                continue
            documents[ref.id] = doc
            self.graph.add_node(ref.id, ref.name, gender=parse_gender(doc.fields.get(self.settings.gender_field)))

        self._name_resolved.clear()
        for ref_id, doc in documents.items():
            for rec in self.fields.decode(doc.fields):
                target = None if rec.resolved else self.graph.resolve_name(rec.target)
                if target is not None:
                    self._name_resolved.update((ref_id, target))
                self.graph.add_bidirectional(ref_id, rec.target, rec.kind, name_based=not rec.resolved)

        self._loaded = True
        stats = self.graph.stats()
        logger.info(
            "Loaded relationship graph: %d nodes, %d edges, %d phantoms",
            stats.nodes,
            stats.edges,
            stats.phantoms,
        )
        return stats

    async def ensure_loaded(self) -> None:
        if not self._loaded:
            await self.load()

    def clear_locks(self) -> int:
        return self.locks.clear()

    def _require(self, entity_id: str) -> EntityRef:
        ref = self.store.lookup_by_id(entity_id)
        if ref is None:
            raise UnknownEntityError(entity_id)
        return ref

    def _ensure_node(self, ref: EntityRef) -> None:
        node = self.graph.get_node(ref.id)
        if node is None or not node.exists or node.name != ref.name:
            self.graph.add_node(ref.id, ref.name)

    def _node_key(self, rec: RelationshipRecord, report: SyncReport, touched: set[str]) -> str:
        """Graph node id a record refers to, registering newly known contacts.

        A name that now resolves while its phantom is still in the graph gets
        upgraded first, so edges recorded against the phantom can be matched.
        The phantom's former neighbours are added to `touched`.
        """
        if rec.resolved:
            return rec.target
        real = self.graph.resolve_name(rec.target)
        if real is None:
            ref = self.store.lookup_by_display_name(rec.target)
            if ref is None:
                return phantom_id(rec.target)
            self._ensure_node(ref)
            real = ref.id
        pid = phantom_id(rec.target)
        if self.graph.has_node(pid):
            linked = self.graph.neighbors(pid)
            if self.graph.upgrade_name(rec.target, real):
                report.upgraded += 1
                touched.update(linked)
                touched.add(real)
        return real

    # --------------------------
    # Entry points
    # --------------------------

    async def sync(self, entity_id: str) -> SyncReport:
        """The contact's rendered section was edited; propagate the change."""
        ref = self._require(entity_id)
        report = SyncReport(entity_id=ref.id, mode="sync")
        token = self.locks.acquire(ref.id)
        if token is None:
            logger.debug("Dropping sync for %s: already locked", ref.id)
            report.skipped = True
            return report
        try:
            await self.ensure_loaded()
            await self._sync_locked(ref, report, also_touched=set())
        finally:
            self.locks.release(ref.id, token)
        return report

    async def view_sync(self, entity_id: str) -> SyncReport:
        """Re-render the contact's section from its own fields."""
        ref = self._require(entity_id)
        report = SyncReport(entity_id=ref.id, mode="view")
        token = self.locks.acquire(ref.id)
        if token is None:
            logger.debug("Dropping view sync for %s: already locked", ref.id)
            report.skipped = True
            return report
        try:
            await self.ensure_loaded()
            try:
                text = await self.store.read_text(ref)
                doc = self.codec.split(text)
            except Exception as e:
                logger.warning("View sync of %s failed: %s", ref.id, e)
                report.errors.append(f"{ref.id}: {e}")
                return report

            records = [self._with_hints(rec) for rec in self.fields.decode(doc.fields)]
            body = self.renderer.update(doc.body, records)
            if body != doc.body:
                if await self._write(ref, self.codec.join(doc, doc.fields, body), report):
                    report.completed = True
            else:
                report.completed = True
        finally:
            self.locks.release(ref.id, token)
        return report

    async def full_sync(self, entity_id: str) -> SyncReport:
        """Upgrade resolvable phantoms, then sync the contact."""
        ref = self._require(entity_id)
        report = SyncReport(entity_id=ref.id, mode="full")
        token = self.locks.acquire(ref.id)
        if token is None:
            logger.debug("Dropping full sync for %s: already locked", ref.id)
            report.skipped = True
            return report
        try:
            await self.ensure_loaded()
            # Contacts whose name references were resolved while loading still
            # hold `name:` values in their fields.
            touched = set(self._name_resolved)
            for phantom in self.graph.phantoms():
                target = self.store.lookup_by_display_name(phantom.name)
                if target is None:
                    continue
                self._ensure_node(target)
                linked = self.graph.neighbors(phantom.id)
                if self.graph.upgrade_name(phantom.name, target.id):
                    report.upgraded += 1
                    touched.update(linked)
                    touched.add(target.id)
            await self._sync_locked(ref, report, also_touched=touched)
            self._name_resolved.clear()
        finally:
            self.locks.release(ref.id, token)
        return report

    # --------------------------
    # Propagation
    # --------------------------

    async def _sync_locked(self, ref: EntityRef, report: SyncReport, also_touched: set[str]) -> None:
        self._ensure_node(ref)
        before = self.graph.neighbors(ref.id)

        try:
            text = await self.store.read_text(ref)
            doc = self.codec.split(text)
        except Exception as e:
            logger.warning("Sync of %s failed reading its document: %s", ref.id, e)
            report.errors.append(f"{ref.id}: {e}")
            await self._propagate(ref.id, before | also_touched, report)
            return

        section = self.renderer.parse(doc.body)
        upgraded: set[str] = set()
        if section is not None:
            self._apply_diff(ref, doc, section, report, upgraded)

        fields = self._regenerate_fields(ref.id, doc.fields)
        if fields != doc.fields:
            await self._write(ref, self.codec.join(doc, fields, doc.body), report)

        after = self.graph.neighbors(ref.id)
        await self._propagate(ref.id, before | after | also_touched | upgraded, report)
        report.completed = True

    def _apply_diff(
        self,
        ref: EntityRef,
        doc: ContactDocument,
        section: list[RelationshipRecord],
        report: SyncReport,
        touched: set[str],
    ) -> None:
        listed = {(rec.kind, self._node_key(rec, report, touched)): rec for rec in section}
        stored = {(rec.kind, self._node_key(rec, report, touched)): rec for rec in self.fields.decode(doc.fields)}

        for kind, key in sorted(stored.keys() - listed.keys()):
            if self.graph.remove_bidirectional(ref.id, key, kind):
                report.removed += 1

        for kind, key in sorted(listed.keys() - stored.keys()):
            if self.graph.add_bidirectional(ref.id, key, kind):
                report.added += 1

        if not self.settings.infer_gender:
            return
        for (kind, key), rec in sorted(listed.items()):
            if rec.gender is None or is_phantom_id(key):
                continue
            node = self.graph.get_node(key)
            if node is not None and node.exists and node.gender is None:
                logger.info("Inferred gender %s for %s from '%s' in %s", rec.gender.value, key, kind, ref.id)
                self.graph.set_gender(key, rec.gender)

    async def _propagate(self, origin: str, candidates: set[str], report: SyncReport) -> None:
        for node_id in sorted(candidates):
            if node_id == origin or is_phantom_id(node_id):
                continue
            ref = self.store.lookup_by_id(node_id)
            if ref is None:
                continue
            token = self.locks.acquire(ref.id)
            if token is None:
                logger.debug("Not updating %s from %s: already locked", ref.id, origin)
                continue
            try:
                await self._refresh(ref, report)
            except Exception as e:
                logger.warning("Failed to update related contact %s: %s", ref.id, e)
                report.errors.append(f"{ref.id}: {e}")
            finally:
                self.locks.release(ref.id, token)

    async def _refresh(self, ref: EntityRef, report: SyncReport) -> None:
        """Rewrite fields, then section, of a contact from the graph."""
        original = await self.store.read_text(ref)
        doc = self.codec.split(original)
        fields = self._regenerate_fields(ref.id, doc.fields)
        body = self.renderer.update(doc.body, self.graph.records_for(ref.id))
        text = self.codec.join(doc, fields, body)
        if text != original:
            await self._write(ref, text, report)

    def _regenerate_fields(self, entity_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        out = self.fields.merge(fields, self.graph.records_for(entity_id))

        node = self.graph.get_node(entity_id)
        gender_field = self.settings.gender_field
        if node is not None and node.gender is not None and parse_gender(fields.get(gender_field)) is None:
            out[gender_field] = node.gender.value

        if out != fields and self.settings.stamp_revision:
            out[self.settings.revision_field] = revision_stamp()
        return out

    def _with_hints(self, rec: RelationshipRecord) -> RelationshipRecord:
        """Attach the target's display name and gender for rendering."""
        if not rec.resolved:
            return rec
        node = self.graph.get_node(rec.target)
        if node is not None:
            return RelationshipRecord(rec.kind, rec.target, True, display_name=node.name, gender=node.gender)
        ref = self.store.lookup_by_id(rec.target)
        name = ref.name if ref is not None else rec.target
        return RelationshipRecord(rec.kind, rec.target, True, display_name=name)

    async def _write(self, ref: EntityRef, text: str, report: SyncReport) -> bool:
        try:
            await self.store.write_text(ref, text)
        except Exception as e:
            logger.warning("Failed to write contact %s: %s", ref.id, e)
            report.errors.append(f"{ref.id}: {e}")
            return False
        report.written.append(ref.id)
        logger.info("Updated relationships of %s", ref.id)
        return True
