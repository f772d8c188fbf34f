#!/usr/bin/env python3
from __future__ import annotations

from datetime import date
from typing import List, Optional

from release_manager.utils.summary_parser import CategorizedSummary

GENERATED_FOOTER = "_This summary was generated automatically by the Release Manager._"


def bullet_lines(lines: List[str]) -> str:
	return "\n".join(f"- {' '.join(str(line).split())}" for line in (lines or []))


def render_categories(features: List[str], fixes: List[str], *, features_header: str, fixes_header: str) -> str:
	"""Both category headings, each followed by its bullets (possibly none)."""
	parts = [f"## {features_header}"]
	if features:
		parts.append(bullet_lines(features))
	parts.append("")
	parts.append(f"## {fixes_header}")
	if fixes:
		parts.append(bullet_lines(fixes))
	return "\n".join(parts)


def render_merge_comment(title: str, number: int, author: str, summary: CategorizedSummary, *, features_header: str, fixes_header: str) -> str:
	header = f'### Merged: "{title}" (#{number}) by @{author}'
	body = render_categories(summary.features, summary.fixes, features_header=features_header, fixes_header=fixes_header)
	return f"{header}\n\n{body}\n\n---\n{GENERATED_FOOTER}"


def render_release_header(bump: str, released_on: date) -> str:
	return f"**Release type:** {bump}\n**Release date:** {released_on.isoformat()}"


def render_release_notes(bump: str, released_on: date, content: str) -> str:
	return f"{render_release_header(bump, released_on)}\n\n{content.strip()}\n"


def render_release_comment(tag: str, url: Optional[str], *, draft: bool = False, prerelease: bool = False) -> str:
	kind = "Draft release" if draft else ("Pre-release" if prerelease else "Release")
	link = f"[{tag}]({url})" if url else f"`{tag}`"
	return f"### :rocket: {kind} {link} published\n\n---\n{GENERATED_FOOTER}"
