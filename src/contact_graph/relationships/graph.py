"""In-memory relationship graph.

A directed multigraph of contacts and typed edges. Targets the store does not
know yet are kept as phantom nodes (`name:<display name>`) until they can be
upgraded to a real id.

None of the operations raise on expected conditions: they return True when
the graph changed and False otherwise.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, replace

from .kinds import KindRegistry, default_registry
from .models import PHANTOM_PREFIX, Edge, Entity, Gender, RelationshipRecord, is_phantom_id, phantom_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GraphIssue:
    """A consistency problem reported by `RelationshipGraph.validate()`."""

    code: str
    message: str
    node: str | None = None
    edge: Edge | None = None


@dataclass(slots=True)
class GraphStats:
    nodes: int
    edges: int
    phantoms: int


class RelationshipGraph:
    """Contacts and their typed relationships.

    The graph owns the name -> id index used to resolve name-based references,
    so callers never need a separate cache of known contacts.
    """

    def __init__(self, registry: KindRegistry | None = None):
        self.registry = registry or default_registry()
        self._nodes: dict[str, Entity] = {}
        self._out: dict[str, set[Edge]] = defaultdict(set)
        self._in: dict[str, set[Edge]] = defaultdict(set)
        self._by_name: dict[str, str] = {}

    # --------------------------
    # Nodes
    # --------------------------

    def add_node(self, node_id: str, name: str, exists: bool = True, gender: Gender | None = None) -> bool:
        """Insert or update a node. Returns True when anything changed."""
        if not node_id:
            return False
        current = self._nodes.get(node_id)
        if gender is None and current is not None:
            gender = current.gender
        node = Entity(id=node_id, name=name or node_id, exists=exists, gender=gender)
        if current == node:
            return False
        if current is not None and current.exists and self._by_name.get(current.name) == node_id:
            del self._by_name[current.name]
        self._nodes[node_id] = node
        if node.exists:
            self._by_name[node.name] = node_id
        return True

    def set_gender(self, node_id: str, gender: Gender | None) -> bool:
        node = self._nodes.get(node_id)
        if node is None or node.gender == gender:
            return False
        self._nodes[node_id] = replace(node, gender=gender)
        return True

    def get_node(self, node_id: str) -> Entity | None:
        return self._nodes.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def nodes(self) -> list[Entity]:
        return sorted(self._nodes.values(), key=lambda n: n.id)

    def phantoms(self) -> list[Entity]:
        return [n for n in self.nodes() if is_phantom_id(n.id)]

    def resolve_name(self, name: str) -> str | None:
        """Id of the real node displayed as `name`, if any."""
        return self._by_name.get(name.strip())

    def degree(self, node_id: str) -> int:
        return len(self._out.get(node_id, ())) + len(self._in.get(node_id, ()))

    # --------------------------
    # Edges
    # --------------------------

    def _target_id(self, target: str, name_based: bool) -> str | None:
        """Node id for a target reference, creating a placeholder node if needed."""
        target = target.strip()
        if not target:
            return None
        if name_based:
            real = self.resolve_name(target)
            if real is not None:
                return real
            node_id = phantom_id(target)
        else:
            node_id = target
        if node_id not in self._nodes:
            if is_phantom_id(node_id):
                self.add_node(node_id, node_id[len(PHANTOM_PREFIX):], exists=False)
            else:
                # Resolved reference to an id nobody has enumerated yet.
                self.add_node(node_id, node_id, exists=False)
        return node_id

    def _link(self, source: str, target: str, kind: str) -> bool:
        if source == target:
            logger.debug("Refusing self-loop %s -[%s]-> %s", source, kind, target)
            return False
        edge = Edge(kind=kind, source=source, target=target)
        if edge in self._out[source]:
            return False
        self._out[source].add(edge)
        self._in[target].add(edge)
        return True

    def _unlink(self, source: str, target: str, kind: str) -> bool:
        edge = Edge(kind=kind, source=source, target=target)
        if edge not in self._out.get(source, ()):
            return False
        self._out[source].discard(edge)
        self._in[target].discard(edge)
        return True

    def _prune(self, *node_ids: str) -> None:
        for node_id in node_ids:
            node = self._nodes.get(node_id)
            if node is not None and not node.exists and self.degree(node_id) == 0:
                del self._nodes[node_id]
                self._out.pop(node_id, None)
                self._in.pop(node_id, None)

    def _ensure_source(self, source: str) -> bool:
        if not source:
            return False
        if source not in self._nodes:
            self._target_id(source, name_based=False)
        return True

    def add_edge(self, source: str, target: str, kind: str, name_based: bool = False) -> bool:
        """Add `source -[kind]-> target`; False if it already exists or would be a self-loop."""
        if not self._ensure_source(source):
            return False
        kind = self.registry.canonical(kind)
        target_id = self._target_id(target, name_based)
        if target_id is None:
            return False
        added = self._link(source, target_id, kind)
        if not added:
            self._prune(target_id)
        return added

    def add_bidirectional(self, source: str, target: str, kind: str, name_based: bool = False) -> bool:
        """Add the edge and its reverse (complement kind, or the same kind when symmetric)."""
        if not self._ensure_source(source):
            return False
        kind = self.registry.canonical(kind)
        target_id = self._target_id(target, name_based)
        if target_id is None:
            return False
        forward = self._link(source, target_id, kind)
        backward = self._link(target_id, source, self.registry.complement_of(kind))
        if not (forward or backward):
            self._prune(target_id)
        return forward or backward

    def remove_edge(self, source: str, target: str, kind: str, name_based: bool = False) -> bool:
        kind = self.registry.canonical(kind)
        target_id = self._lookup_target(target, name_based)
        if target_id is None:
            return False
        removed = self._unlink(source, target_id, kind)
        self._prune(target_id, source)
        return removed

    def remove_bidirectional(self, source: str, target: str, kind: str, name_based: bool = False) -> bool:
        kind = self.registry.canonical(kind)
        target_id = self._lookup_target(target, name_based)
        if target_id is None:
            return False
        forward = self._unlink(source, target_id, kind)
        backward = self._unlink(target_id, source, self.registry.complement_of(kind))
        self._prune(target_id, source)
        return forward or backward

    def _lookup_target(self, target: str, name_based: bool) -> str | None:
        target = target.strip()
        if not target:
            return None
        if not name_based:
            return target
        return self.resolve_name(target) or phantom_id(target)

    def has_edge(self, source: str, kind: str, target: str) -> bool:
        edge = Edge(kind=self.registry.canonical(kind), source=source, target=target)
        return edge in self._out.get(source, ())

    def edges(self) -> list[Edge]:
        out = [e for edges in self._out.values() for e in edges]
        return sorted(out, key=lambda e: (e.source, e.kind, e.target))

    def edges_from(self, node_id: str) -> list[Edge]:
        return sorted(self._out.get(node_id, ()), key=lambda e: (e.kind, e.target))

    def neighbors(self, node_id: str) -> set[str]:
        """Every node connected to `node_id` in either direction."""
        out = {e.target for e in self._out.get(node_id, ())}
        out.update(e.source for e in self._in.get(node_id, ()))
        return out

    # --------------------------
    # Phantom upgrade
    # --------------------------

    def upgrade_name(self, name: str, real_id: str) -> bool:
        """Repoint every edge of phantom `name:<name>` at `real_id` and drop the phantom."""
        pid = phantom_id(name.strip())
        if pid not in self._nodes or not real_id or is_phantom_id(real_id):
            return False
        if real_id not in self._nodes:
            self.add_node(real_id, name.strip())

        outgoing = list(self._out.get(pid, ()))
        incoming = list(self._in.get(pid, ()))
        for edge in outgoing:
            self._unlink(edge.source, edge.target, edge.kind)
        for edge in incoming:
            self._unlink(edge.source, edge.target, edge.kind)
        for edge in outgoing:
            self._link(real_id, edge.target, edge.kind)
        for edge in incoming:
            self._link(edge.source, real_id, edge.kind)

        del self._nodes[pid]
        self._out.pop(pid, None)
        self._in.pop(pid, None)
        logger.info("Upgraded %s to %s (%d edges)", pid, real_id, len(outgoing) + len(incoming))
        return True

    # --------------------------
    # Views
    # --------------------------

    def record_for(self, edge: Edge) -> RelationshipRecord:
        node = self._nodes.get(edge.target)
        if is_phantom_id(edge.target):
            name = edge.target[len(PHANTOM_PREFIX):]
            return RelationshipRecord(kind=edge.kind, target=name, resolved=False, display_name=name)
        return RelationshipRecord(
            kind=edge.kind,
            target=edge.target,
            resolved=True,
            display_name=node.name if node else edge.target,
            gender=node.gender if node else None,
        )

    def records_for(self, node_id: str) -> list[RelationshipRecord]:
        """Relationships of `node_id` as seen from it, in rendering order."""
        records = [self.record_for(e) for e in self._out.get(node_id, ())]
        return sorted(records, key=lambda r: (r.kind, *r.sort_key()))

    def stats(self) -> GraphStats:
        return GraphStats(
            nodes=len(self._nodes),
            edges=sum(len(v) for v in self._out.values()),
            phantoms=sum(1 for n in self._nodes if is_phantom_id(n)),
        )

    def clear(self) -> None:
        self._nodes.clear()
        self._out.clear()
        self._in.clear()
        self._by_name.clear()

    # --------------------------
    # Diagnostics
    # --------------------------

    def validate(self) -> list[GraphIssue]:
        """Report consistency problems. Never modifies the graph."""
        issues: list[GraphIssue] = []
        for edge in self.edges():
            if edge.source == edge.target:
                issues.append(GraphIssue("self_loop", f"{edge.source} is related to itself ({edge.kind})", edge=edge))
                continue
            kind = self.registry.get(edge.kind)
            if kind is None:
                continue
            if not self.has_edge(edge.target, kind.complement, edge.source):
                label = "mirror" if kind.symmetric else "complement"
                issues.append(
                    GraphIssue(
                        f"missing_{label}",
                        f"{edge.source} -[{edge.kind}]-> {edge.target} has no {kind.complement} edge back",
                        edge=edge,
                    )
                )
        for node in self.nodes():
            if not node.exists and self.degree(node.id) == 0:
                issues.append(GraphIssue("orphaned_phantom", f"{node.id} has no relationships", node=node.id))
        return issues
