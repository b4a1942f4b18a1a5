"""Document store capability and its filesystem implementation.

[FileVault][nostr_writer.utils.vault.FileVault] exposes a directory of
markdown documents and attachments through vault-relative POSIX paths.
Besides plain text/binary I/O it keeps a link index used to resolve
wikilink targets (``[[Note]]``, ``![[image.png]]``) by relative path, file
name, or stem, the way markdown vault editors do.

Front-matter is the leading ``---`` delimited YAML block of a document;
[split_frontmatter()][nostr_writer.utils.vault.split_frontmatter] and
[render_document()][nostr_writer.utils.vault.render_document] convert
between text and ``(mapping, body)`` with PyYAML.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePosixPath
from typing import Any, Protocol

import yaml


logger = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)(?:\r?\n)?^---[ \t]*(?:\r?\n|\Z)", re.S | re.M)


# =============================================================================
# Front-matter
# =============================================================================


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split a document into its front-matter mapping and body.

    A document without a front-matter block yields ``({}, text)``. The body
    is returned with leading/trailing blank lines removed.

    Raises:
        ValueError: If the front-matter block is not valid YAML or not a mapping.
    """
    match = _FRONTMATTER_RE.match(text)
    if match is None:
        return {}, text.strip()
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid front-matter: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Front-matter must be a mapping")
    return data, text[match.end() :].strip()


def render_document(frontmatter: dict[str, Any], body: str) -> str:
    """Render a document with a YAML front-matter block (omitted when empty)."""
    body = body.strip() + "\n"
    if not frontmatter:
        return body
    block = yaml.safe_dump(
        frontmatter, sort_keys=False, allow_unicode=True, default_flow_style=False
    )
    return f"---\n{block}---\n\n{body}"


# =============================================================================
# Store
# =============================================================================


class DocumentStore(Protocol):
    """Capability to read and write documents and blobs by vault path."""

    def read(self, path: str) -> str: ...

    def read_binary(self, path: str) -> bytes: ...

    def write(self, path: str, text: str) -> None: ...

    def write_binary(self, path: str, data: bytes) -> None: ...

    def create(self, path: str, text: str) -> str: ...

    def exists(self, path: str) -> bool: ...

    def mkdir(self, path: str) -> None: ...

    def resolve_link(self, target: str, source: str | None = None) -> str | None: ...


class FileVault:
    """[DocumentStore][nostr_writer.utils.vault.DocumentStore] over a local directory.

    Args:
        root: Vault root directory. Every path handled by the vault is
            relative to it; paths escaping the root are rejected.

    Examples:
        ```python
        vault = FileVault(Path("~/notes").expanduser())
        vault.resolve_link("diagram.png", source="posts/hello.md")
        # 'attachments/diagram.png'
        ```
    """

    def __init__(self, root: Path) -> None:
        self.root = root.resolve()
        self._link_index: dict[str, list[str]] | None = None

    def _abs(self, path: str) -> Path:
        full = (self.root / path).resolve()
        if full != self.root and self.root not in full.parents:
            raise ValueError(f"Path escapes the vault: {path}")
        return full

    def _rel(self, full: Path) -> str:
        return full.relative_to(self.root).as_posix()

    def read(self, path: str) -> str:
        return self._abs(path).read_text(encoding="utf-8")

    def read_binary(self, path: str) -> bytes:
        return self._abs(path).read_bytes()

    def write(self, path: str, text: str) -> None:
        """Create or overwrite a text document, creating parent folders."""
        full = self._abs(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        full.write_text(text, encoding="utf-8")
        self._link_index = None

    def write_binary(self, path: str, data: bytes) -> None:
        full = self._abs(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        full.write_bytes(data)
        self._link_index = None

    def create(self, path: str, text: str) -> str:
        """Create a new document and return its path.

        Raises:
            FileExistsError: If *path* already exists.
        """
        full = self._abs(path)
        if full.exists():
            raise FileExistsError(path)
        self.write(path, text)
        return self._rel(full)

    def exists(self, path: str) -> bool:
        return self._abs(path).exists()

    def mkdir(self, path: str) -> None:
        """Create *path* and any missing parents; no-op if it exists."""
        self._abs(path).mkdir(parents=True, exist_ok=True)

    def _index(self) -> dict[str, list[str]]:
        if self._link_index is None:
            index: dict[str, list[str]] = {}
            for full in sorted(self.root.rglob("*")):
                hidden = any(p.startswith(".") for p in full.relative_to(self.root).parts)
                if hidden or not full.is_file():
                    continue
                rel = self._rel(full)
                index.setdefault(full.name.lower(), []).append(rel)
                if full.suffix.lower() == ".md":
                    index.setdefault(full.stem.lower(), []).append(rel)
            self._link_index = index
        return self._link_index

    def resolve_link(self, target: str, source: str | None = None) -> str | None:
        """Resolve a wikilink or relative link target to a vault path.

        Tried in order: relative to the source document's folder, relative
        to the vault root, then by file name (or note name without ``.md``)
        anywhere in the vault, preferring the candidate closest to *source*.
        Heading (``#``) and block (``^``) suffixes are ignored.
        """
        target = re.split(r"[#^]", target, maxsplit=1)[0].strip()
        if not target:
            return None

        candidates = []
        if source is not None:
            candidates.append(str(PurePosixPath(source).parent / target))
        candidates.append(target)
        for candidate in candidates:
            try:
                full = self._abs(candidate)
            except ValueError:
                continue
            if full.is_file():
                return self._rel(full)

        matches = self._index().get(PurePosixPath(target).name.lower(), [])
        if not matches:
            return None
        if source is not None:
            folder = str(PurePosixPath(source).parent)
            local = [m for m in matches if str(PurePosixPath(m).parent) == folder]
            if local:
                return local[0]
        return min(matches, key=lambda m: (m.count("/"), m))
