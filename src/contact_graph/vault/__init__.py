"""Markdown directory backend for contact documents."""

from .frontmatter import ContactDocument, FrontMatterCodec, FrontMatterError
from .store import VaultStore

__all__ = ["ContactDocument", "FrontMatterCodec", "FrontMatterError", "VaultStore"]
