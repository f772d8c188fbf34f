#!/usr/bin/env python3
"""Split a categorization answer into per-category bullet texts."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_FEATURES_HEADER = "New Features"
DEFAULT_FIXES_HEADER = "Bugs / Improvements"

_BULLET_RE = re.compile(r"^\s*[-*]\s+(?P<text>.*\S)\s*$")
_HEADING_DECOR_RE = re.compile(r"^[#*_\s]+|[*_:\s]+$")


@dataclass
class CategorizedSummary:
    features: List[str] = field(default_factory=list)
    fixes: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.features and not self.fixes

    def render(self, features_header: str = DEFAULT_FEATURES_HEADER, fixes_header: str = DEFAULT_FIXES_HEADER) -> str:
        """Markdown with both headings, always present."""
        parts = [f"## {features_header}"]
        parts.extend(f"- {b}" for b in self.features)
        parts.append("")
        parts.append(f"## {fixes_header}")
        parts.extend(f"- {b}" for b in self.fixes)
        return "\n".join(parts)


def _heading_key(line: str) -> Optional[str]:
    if _BULLET_RE.match(line):
        return None
    stripped = _HEADING_DECOR_RE.sub("", line.strip())
    return stripped.casefold() if stripped else None


def parse_summary(
    text: Optional[str],
    features_header: str = DEFAULT_FEATURES_HEADER,
    fixes_header: str = DEFAULT_FIXES_HEADER,
) -> CategorizedSummary:
    """Collect bullets under the two category headings.

    Headings match case-insensitively and may be written as `## X`, `**X**`
    or `X:`. Bullets that come before any recognized heading count as
    features; bullets under an unrelated heading are dropped.
    """
    result = CategorizedSummary()
    if not text or not text.strip():
        return result
    features_key = features_header.casefold()
    fixes_key = fixes_header.casefold()
    current: Optional[List[str]] = result.features
    for line in text.splitlines():
        m = _BULLET_RE.match(line)
        if m:
            if current is not None:
                current.append(" ".join(m.group("text").split()))
            continue
        key = _heading_key(line)
        if key is None:
            continue
        if key == features_key:
            current = result.features
        elif key == fixes_key:
            current = result.fixes
        elif line.lstrip().startswith("#"):
            current = None
    return result


__all__ = ["CategorizedSummary", "parse_summary", "DEFAULT_FEATURES_HEADER", "DEFAULT_FIXES_HEADER"]
