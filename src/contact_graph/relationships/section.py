"""Human-readable relationship list embedded in a document's free text.

    ## Related
    - Mother [[Carol]]
    - Friend [[Bob]]

Only the heading-to-next-heading range is ever rewritten; everything else in
the document is preserved as-is.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from .kinds import KindRegistry, default_registry
from .models import RelationshipRecord

logger = logging.getLogger(__name__)

_ANY_HEADING_RE = re.compile(r"^#{1,6}\s+\S.*$")
_LINE_RE = re.compile(r"^\s*[-*]\s+(?P<term>[^\[\]]+?)\s+\[\[(?P<link>[^\[\]]+)\]\]\s*$")
_TAG_LINE_RE = re.compile(r"^\s*#[^\s#]+(?:\s+#[^\s#]+)*\s*$")


@dataclass(frozen=True, slots=True)
class SectionSpan:
    """Character range of a section: heading line start to next heading (or EOF)."""

    start: int
    end: int
    level: int
    heading: str

    def body(self, text: str) -> str:
        return text[self.start + len(self.heading):self.end]


def _heading_re(word: str) -> re.Pattern[str]:
    return re.compile(rf"^(?P<hashes>#{{1,6}})\s+{re.escape(word)}\s*$", re.IGNORECASE)


def _lines_with_offsets(text: str) -> list[tuple[int, str]]:
    out: list[tuple[int, str]] = []
    pos = 0
    for line in text.splitlines(keepends=True):
        out.append((pos, line))
        pos += len(line)
    return out


def _tag_line_start(lines: list[tuple[int, str]]) -> int | None:
    """Offset of a trailing `#tag #tag` line, if the last non-blank line is one."""
    for offset, line in reversed(lines):
        if not line.strip():
            continue
        if _TAG_LINE_RE.match(line.rstrip("\r\n")):
            return offset
        return None
    return None


def find_section(text: str, word: str) -> SectionSpan | None:
    """Locate the first heading `#{1,6} <word>` and the block beneath it."""
    pattern = _heading_re(word)
    lines = _lines_with_offsets(text)
    for i, (offset, line) in enumerate(lines):
        stripped = line.rstrip("\r\n")
        m = pattern.match(stripped)
        if not m:
            continue
        end = None
        for next_offset, next_line in lines[i + 1:]:
            if _ANY_HEADING_RE.match(next_line.rstrip("\r\n")):
                end = next_offset
                break
        if end is None:
            end = _tag_line_start(lines[i + 1:]) or len(text)
        return SectionSpan(start=offset, end=end, level=len(m.group("hashes")), heading=stripped)
    return None


def _link_name(link: str) -> str:
    # [[Name|alias]] and [[Name#heading]] both point at "Name"
    return link.split("|", 1)[0].split("#", 1)[0].strip()


class SectionRenderer:
    def __init__(
        self,
        registry: KindRegistry | None = None,
        *,
        heading: str = "Related",
        heading_level: int = 2,
        notes_heading: str = "Notes",
    ):
        self.registry = registry or default_registry()
        self.heading = heading
        self.heading_level = heading_level
        self.notes_heading = notes_heading

    # --------------------------
    # Parsing
    # --------------------------

    def find(self, text: str) -> SectionSpan | None:
        return find_section(text, self.heading)

    def parse(self, text: str) -> list[RelationshipRecord] | None:
        """Records listed in the section, or None when the document has no section.

        Records are unresolved (target = display name); non-conforming lines are ignored.
        """
        span = self.find(text)
        if span is None:
            return None
        return self.parse_lines(span.body(text).splitlines())

    def parse_lines(self, lines: Iterable[str]) -> list[RelationshipRecord]:
        out: list[RelationshipRecord] = []
        seen: set[RelationshipRecord] = set()
        for line in lines:
            if not line.strip():
                continue
            m = _LINE_RE.match(line)
            if not m:
                logger.debug("Ignoring non-relationship line %r", line)
                continue
            name = _link_name(m.group("link"))
            if not name:
                continue
            alias = self.registry.gendered_alias(m.group("term"))
            rec = RelationshipRecord(
                kind=alias.kind,
                target=name,
                resolved=False,
                display_name=name,
                gender=alias.gender,
            )
            if rec in seen:
                continue
            seen.add(rec)
            out.append(rec)
        return out

    # --------------------------
    # Rendering
    # --------------------------

    def render_line(self, record: RelationshipRecord) -> str:
        term = self.registry.display_term(record.kind, record.gender)
        return f"- {term[:1].upper()}{term[1:]} [[{record.sort_name}]]"

    def render_lines(self, records: Iterable[RelationshipRecord]) -> list[str]:
        ordered = sorted(set(records), key=lambda r: (r.kind, *r.sort_key()))
        return [self.render_line(r) for r in ordered]

    def render(self, records: Iterable[RelationshipRecord], *, heading: str | None = None) -> str:
        """Heading line plus one line per record, without a trailing newline."""
        head = heading or f"{'#' * self.heading_level} {self.heading}"
        return "\n".join([head, *self.render_lines(records)])

    def update(self, text: str, records: Iterable[RelationshipRecord]) -> str:
        """Rewrite (or insert) the section; all other content is left untouched."""
        span = self.find(text)
        if span is not None:
            old = text[span.start:span.end]
            core = old.rstrip()
            trailing = old[len(core):]
            if span.end < len(text) and not trailing:
                trailing = "\n"
            new = self.render(records, heading=span.heading)
            return text[:span.start] + new + trailing + text[span.end:]
        return self._insert(text, self.render(records))

    def _insert(self, text: str, block: str) -> str:
        notes = find_section(text, self.notes_heading)
        if notes is not None:
            return self._insert_at(text, notes.end, block)

        tags = _tag_line_start(_lines_with_offsets(text))
        if tags is not None:
            return self._insert_at(text, tags, block)
        return self._insert_at(text, len(text), block)

    @staticmethod
    def _insert_at(text: str, pos: int, block: str) -> str:
        before = text[:pos].rstrip("\n")
        after = text[pos:]
        parts = []
        if before:
            parts.append(before + "\n\n")
        parts.append(block + "\n")
        if after:
            parts.append("\n" + after.lstrip("\n"))
        return "".join(parts)

