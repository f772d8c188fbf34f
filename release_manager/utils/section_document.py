#!/usr/bin/env python3
"""Structured markdown document made of level-two sections with bullet lists.

The aggregation draft body is held as a `SectionDocument`. Parsing keeps every
raw line so that `serialize(parse(text)) == text` byte for byte; the derived
views (headers, bullets, placeholder comments) are computed from those lines.

Recognized syntax:
  - section header: `## <title>` outside a fenced code block
  - bullet: `-` or `*` followed by whitespace, after optional indentation
  - placeholder: a line holding a single `<!-- ... -->` comment
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple


HEADER_MARKER = "##"
FENCE = "```"

_HEADER_RE = re.compile(r"^##[ \t]+(?P<title>\S.*?)[ \t]*$")
_BULLET_RE = re.compile(r"^\s*[-*]\s+(?P<text>.*\S)\s*$")
_PLACEHOLDER_RE = re.compile(r"^\s*<!--.*?-->\s*$")
_LAST_UPDATED_RE = re.compile(r"^(?P<head>.*?Last updated:[ \t]*)(?P<value>.*?)(?P<tail>[*_]*[ \t]*)$")
_ATTRIBUTION_RE = re.compile(
    r"\s*\(via \[#(?P<number>\d+)\]\((?P<url>[^)\s]*)\) by @(?P<author>[^)\s]+)\)$"
)


def is_placeholder(line: str) -> bool:
    return bool(_PLACEHOLDER_RE.match(line))


def is_bullet(line: str) -> bool:
    return bool(_BULLET_RE.match(line))


def is_last_updated(line: str) -> bool:
    return bool(_LAST_UPDATED_RE.match(line))


def header_title(line: str) -> Optional[str]:
    m = _HEADER_RE.match(line)
    return m.group("title") if m else None


def _flatten(text: str) -> str:
    return " ".join((text or "").split())


@dataclass(frozen=True)
class Attribution:
    """Where a bullet came from: the merged PR and its author."""

    number: int
    url: str
    author: str

    def render(self) -> str:
        return f"(via [#{self.number}]({self.url}) by @{self.author})"


@dataclass(frozen=True)
class Bullet:
    text: str
    attribution: Optional[Attribution] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "text", _flatten(self.text))

    def render(self) -> str:
        if self.attribution is None:
            return f"- {self.text}"
        return f"- {self.text} {self.attribution.render()}"

    @classmethod
    def from_line(cls, line: str) -> Optional["Bullet"]:
        m = _BULLET_RE.match(line)
        if not m:
            return None
        text = m.group("text")
        am = _ATTRIBUTION_RE.search(text)
        if am is None:
            return cls(text)
        attribution = Attribution(int(am.group("number")), am.group("url"), am.group("author"))
        return cls(text[: am.start()], attribution)


@dataclass
class Section:
    header: str
    header_line: str = ""
    lines: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.header_line:
            self.header_line = f"{HEADER_MARKER} {self.header}"

    @property
    def bullets(self) -> List[Bullet]:
        out: List[Bullet] = []
        for line in self.lines:
            if is_placeholder(line):
                continue
            b = Bullet.from_line(line)
            if b is not None:
                out.append(b)
        return out

    @property
    def raw_body(self) -> str:
        return "\n".join(self.lines)

    def insertion_index(self) -> int:
        """Index where new bullets go: below the header and leading placeholders.

        When the leading run of blank/placeholder lines is followed by an
        existing bullet, insertion happens right above that bullet so the list
        stays contiguous.
        """
        last_placeholder = -1
        j = 0
        while j < len(self.lines) and (not self.lines[j].strip() or is_placeholder(self.lines[j])):
            if is_placeholder(self.lines[j]):
                last_placeholder = j
            j += 1
        if j < len(self.lines) and is_bullet(self.lines[j]):
            return j
        return last_placeholder + 1

    def copy(self) -> "Section":
        return Section(self.header, self.header_line, list(self.lines))


@dataclass
class SectionDocument:
    preamble: List[str] = field(default_factory=list)
    sections: List[Section] = field(default_factory=list)

    def headers(self) -> List[str]:
        return [s.header for s in self.sections]

    def get_section(self, header: str) -> Optional[Section]:
        for s in self.sections:
            if s.header == header:
                return s
        return None

    def copy(self) -> "SectionDocument":
        return SectionDocument(list(self.preamble), [s.copy() for s in self.sections])

    def iter_lines(self) -> Iterator[Tuple[List[str], int]]:
        """Yield (container, index) for every body line, in document order."""
        for i in range(len(self.preamble)):
            yield self.preamble, i
        for s in self.sections:
            for i in range(len(s.lines)):
                yield s.lines, i

    def last_updated_line(self) -> Optional[str]:
        found = None
        for container, i in self.iter_lines():
            if is_last_updated(container[i]) and not is_bullet(container[i]):
                found = container[i]
        return found

    def tail_lines(self) -> List[str]:
        return self.sections[-1].lines if self.sections else self.preamble


def parse(text: str) -> SectionDocument:
    doc = SectionDocument()
    current: Optional[Section] = None
    in_fence = False
    for line in (text or "").split("\n"):
        if line.strip().startswith(FENCE):
            in_fence = not in_fence
        title = None if in_fence else header_title(line)
        if title is not None:
            current = Section(title, line, [])
            doc.sections.append(current)
            continue
        if current is None:
            doc.preamble.append(line)
        else:
            current.lines.append(line)
    return doc


def serialize(doc: SectionDocument) -> str:
    lines: List[str] = list(doc.preamble)
    for s in doc.sections:
        lines.append(s.header_line)
        lines.extend(s.lines)
    return "\n".join(lines)


def get_section(doc: SectionDocument, header: str) -> Optional[Section]:
    return doc.get_section(header)


def default_placeholder(header: str) -> str:
    return f"<!-- {header} will be listed here -->"


def upsert_section(doc: SectionDocument, header: str, template_body: Optional[str] = None) -> Section:
    """Append `header` with a placeholder body when absent; otherwise no-op.

    Mutates `doc` in place and returns the (existing or new) section.
    """
    existing = doc.get_section(header)
    if existing is not None:
        return existing
    tail = doc.tail_lines()
    ends_with_newline = bool(tail) and tail[-1] == ""
    if tail and tail[-1].strip():
        tail.append("")
    body = template_body if template_body is not None else default_placeholder(header)
    lines = body.split("\n")
    if ends_with_newline:
        lines.append("")
    section = Section(header, "", lines)
    doc.sections.append(section)
    return section


def strip_placeholders(text: str) -> str:
    """Drop placeholder comment lines, leaving every other line untouched."""
    return "\n".join(line for line in (text or "").split("\n") if not is_placeholder(line))


def rewrite_last_updated(line: str, value: str) -> str:
    m = _LAST_UPDATED_RE.match(line)
    if not m:
        return line
    return f"{m.group('head')}{value}{m.group('tail')}"


__all__ = [
    "Attribution",
    "Bullet",
    "Section",
    "SectionDocument",
    "parse",
    "serialize",
    "get_section",
    "upsert_section",
    "strip_placeholders",
    "rewrite_last_updated",
    "is_placeholder",
    "is_bullet",
]
