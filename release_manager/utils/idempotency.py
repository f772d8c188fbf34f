#!/usr/bin/env python3
"""Per-event idempotency recorded inside the draft body.

The draft carries one hidden comment line listing the merge events already
folded in:

	<!-- release-manager:processed pr-12,pr-15 -->

The line is a placeholder comment, so it never shows up as a bullet and is
stripped from release notes.
"""

from __future__ import annotations

import re
from hmac import compare_digest
from typing import List, Optional, Tuple

from release_manager.utils.section_document import SectionDocument

MARKER_PREFIX = "release-manager:processed"
_MARKER_RE = re.compile(r"^\s*<!--\s*release-manager:processed(?P<keys>[^>]*?)\s*-->\s*$")


def idempotency_key(pr_number: int) -> str:
	if not pr_number or int(pr_number) <= 0:
		raise ValueError("Missing PR number for idempotency key")
	return f"pr-{int(pr_number)}"


def is_marker_line(line: str) -> bool:
	return bool(_MARKER_RE.match(line))


def render_marker(keys: List[str]) -> str:
	return f"<!-- {MARKER_PREFIX} {','.join(keys)} -->"


def _find_marker(doc: SectionDocument) -> Optional[Tuple[List[str], int]]:
	for container, i in doc.iter_lines():
		if is_marker_line(container[i]):
			return container, i
	return None


def processed_keys(doc: SectionDocument) -> List[str]:
	found = _find_marker(doc)
	if found is None:
		return []
	container, i = found
	raw = _MARKER_RE.match(container[i]).group("keys")
	return [k.strip() for k in raw.split(",") if k.strip()]


def is_processed(doc: SectionDocument, key: str) -> bool:
	return any(compare_digest(k, key) for k in processed_keys(doc))


def mark_processed(doc: SectionDocument, key: str) -> SectionDocument:
	"""Return a copy of `doc` whose marker includes `key`; `doc` is untouched."""
	out = doc.copy()
	keys = processed_keys(out)
	if key in keys:
		return out
	keys.append(key)
	found = _find_marker(out)
	if found is not None:
		container, i = found
		container[i] = render_marker(keys)
		return out
	tail = out.tail_lines()
	# keep a trailing newline last
	at = len(tail) - 1 if tail and tail[-1] == "" else len(tail)
	tail.insert(at, render_marker(keys))
	return out


def strip_markers(text: str) -> str:
	return "\n".join(line for line in (text or "").split("\n") if not is_marker_line(line))


__all__ = ["idempotency_key", "processed_keys", "is_processed", "mark_processed", "strip_markers", "is_marker_line"]
