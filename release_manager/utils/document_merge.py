#!/usr/bin/env python3
"""Insert new bullets at the top of a named section of a SectionDocument."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from release_manager.utils.section_document import (
    Bullet,
    SectionDocument,
    is_bullet,
    is_last_updated,
    rewrite_last_updated,
    upsert_section,
)


def format_timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def touch_last_updated(doc: SectionDocument, now: Optional[datetime] = None) -> SectionDocument:
    """Rewrite the last "Last updated:" line in place; never adds one."""
    target = None
    for container, i in doc.iter_lines():
        if is_last_updated(container[i]) and not is_bullet(container[i]):
            target = (container, i)
    if target is not None:
        container, i = target
        container[i] = rewrite_last_updated(container[i], format_timestamp(now))
    return doc


def merge_bullets(
    doc: SectionDocument,
    header: str,
    new_bullets: Sequence[Bullet],
    *,
    now: Optional[datetime] = None,
    placeholder: Optional[str] = None,
) -> SectionDocument:
    """Return a copy of `doc` with `new_bullets` inserted most-recent-first under `header`.

    - the section is created (with its placeholder comment) when missing
    - existing content of the section stays verbatim below the new bullets
    - other sections are never touched
    - an empty `new_bullets` returns `doc` itself, unchanged
    - no deduplication happens here
    """
    if not new_bullets:
        return doc
    out = doc.copy()
    section = upsert_section(out, header, placeholder)
    at = section.insertion_index()
    section.lines[at:at] = [b.render() for b in new_bullets]
    return touch_last_updated(out, now)


__all__ = ["merge_bullets", "touch_last_updated", "format_timestamp"]
