"""Minimal markdown section extraction.

Level-two headings (``## Name``) open sections; a level-one heading closes
the current section. Headings inside fenced code blocks are ignored.
"""

from __future__ import annotations

from typing import Dict, List, Optional


def section_key(title: str) -> str:
    return " ".join(title.strip().lower().split())


def parse_sections(content: str) -> Dict[str, str]:
    """Return ``{section key: body text}`` in document order.

    Keys are lower-cased, whitespace-normalised heading titles. A repeated
    heading keeps the body of its last occurrence.
    """
    sections: Dict[str, str] = {}
    current: Optional[str] = None
    body: List[str] = []
    in_fence = False

    def finish() -> None:
        if current is not None:
            sections[current] = "\n".join(body).strip()

    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith("```") or stripped.startswith("~~~"):
            in_fence = not in_fence
        elif not in_fence and stripped.startswith("## "):
            finish()
            current = section_key(stripped[2:])
            body = []
            continue
        elif not in_fence and stripped.startswith("# "):
            finish()
            current = None
            body = []
            continue
        if current is not None:
            body.append(line)

    finish()
    return sections
