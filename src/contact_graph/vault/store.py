from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path

from contact_graph.relationships.store import EntityRef
from contact_graph.settings import ContactGraphSettings, settings as default_settings

from .frontmatter import FrontMatterCodec, FrontMatterError

logger = logging.getLogger(__name__)


def _write_atomic(path: Path, text: str) -> None:
    # Temp file in the same directory so os.replace never crosses filesystems.
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


class VaultStore:
    """Entity store over a directory of Markdown contact documents.

    A file is a contact when its front matter carries a UID. The display name
    is the FN field, falling back to the file name.
    """

    def __init__(
        self,
        root: str | os.PathLike[str],
        *,
        codec: FrontMatterCodec | None = None,
        settings: ContactGraphSettings | None = None,
    ):
        self.root = Path(root).expanduser()
        self.codec = codec or FrontMatterCodec()
        self.settings = settings or default_settings
        self._by_id: dict[str, EntityRef] = {}
        self._by_name: dict[str, EntityRef] = {}
        self.refresh()

    def refresh(self) -> int:
        """Rescan the directory; returns the number of contacts found."""
        by_id: dict[str, EntityRef] = {}
        for path in sorted(self.root.rglob("*.md")):
            if not path.is_file():
                continue
            try:
                doc = self.codec.split(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, FrontMatterError) as e:
                logger.warning("Skipping unreadable contact %s: %s", path, e)
                continue
            uid = doc.fields.get(self.settings.uid_field)
            if uid is None or not str(uid).strip():
                continue
            uid = str(uid).strip()
            name = doc.fields.get(self.settings.name_field)
            name = str(name).strip() if name is not None and str(name).strip() else path.stem
            if uid in by_id:
                logger.warning("Duplicate UID %s in %s and %s; keeping the first", uid, by_id[uid].path, path)
                continue
            by_id[uid] = EntityRef(id=uid, name=name, path=str(path))

        self._by_id = by_id
        self._by_name = {}
        for ref in by_id.values():
            self._by_name.setdefault(ref.name, ref)
        logger.info("Indexed %d contacts under %s", len(by_id), self.root)
        return len(by_id)

    def list_entities(self) -> list[EntityRef]:
        return sorted(self._by_id.values(), key=lambda r: r.id)

    def _path(self, ref: EntityRef) -> Path:
        known = self._by_id.get(ref.id)
        path = ref.path or (known.path if known else None)
        if path is None:
            raise FileNotFoundError(f"no document for contact {ref.id}")
        return Path(path)

    async def read_text(self, ref: EntityRef) -> str:
        return await asyncio.to_thread(self._path(ref).read_text, encoding="utf-8")

    async def write_text(self, ref: EntityRef, text: str) -> None:
        path = self._path(ref)
        await asyncio.to_thread(_write_atomic, path, text)
        logger.info("Wrote %s", path)

    def lookup_by_display_name(self, name: str) -> EntityRef | None:
        return self._by_name.get(name.strip())

    def lookup_by_id(self, entity_id: str) -> EntityRef | None:
        return self._by_id.get(entity_id.strip())
