"""Read-only access to document contents.

Checkers never touch the filesystem directly; they go through a
``DocumentSource`` that raises ``OSError`` when a document cannot be read
and ``UnicodeDecodeError`` when it is not UTF-8 text.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Protocol


class DocumentSource(Protocol):
    def read(self, path: str) -> str:
        """Return the text at ``path`` or raise ``OSError`` or ``UnicodeDecodeError``."""


class FileSystemDocumentSource:
    """Reads documents relative to a project root."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def read(self, path: str) -> str:
        return (self.root / path).read_text(encoding="utf-8")


class InMemoryDocumentSource:
    """Serves documents from a mapping; useful for tests and snapshots."""

    def __init__(self, documents: Mapping[str, str] | None = None) -> None:
        self._documents = dict(documents or {})

    def read(self, path: str) -> str:
        try:
            return self._documents[path]
        except KeyError:
            raise FileNotFoundError(path) from None
