"""YAML front matter codec.

A contact document is a Markdown file whose structured fields live in a
leading `---` ... `---` YAML mapping:

    ---
    UID: alice-1
    FN: Alice
    RELATED[friend]: id:bob-1
    ---
    ## Related
    - Friend [[Bob]]
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import yaml

_OPEN_RE = re.compile(r"\A---[ \t]*\r?\n")
_CLOSE_RE = re.compile(r"^---[ \t]*(?:\r?\n|\Z)", re.MULTILINE)


class FrontMatterError(ValueError):
    """The front matter block is not a valid YAML mapping."""


@dataclass(slots=True)
class ContactDocument:
    fields: dict[str, Any] = field(default_factory=dict)
    body: str = ""
    # Original front matter text including both delimiters; None when absent.
    header: str | None = None


class FrontMatterCodec:
    def split(self, text: str) -> ContactDocument:
        opening = _OPEN_RE.match(text)
        if not opening:
            return ContactDocument(fields={}, body=text, header=None)
        closing = _CLOSE_RE.search(text, opening.end())
        if not closing:
            raise FrontMatterError("front matter is not terminated by '---'")

        raw = text[opening.end():closing.start()]
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise FrontMatterError(f"invalid front matter: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise FrontMatterError(f"front matter must be a mapping, got {type(data).__name__}")

        fields = {str(k): v for k, v in data.items()}
        return ContactDocument(fields=fields, body=text[closing.end():], header=text[:closing.end()])

    def join(self, document: ContactDocument, fields: dict[str, Any], body: str) -> str:
        if document.header is not None and fields == document.fields:
            return document.header + body
        if not fields:
            return body
        dumped = yaml.safe_dump(fields, sort_keys=False, allow_unicode=True, default_flow_style=False)
        return f"---\n{dumped}---\n{body}"
