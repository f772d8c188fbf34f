#!/usr/bin/env python3
"""Prepend a release entry to the repository changelog file."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from release_manager.configs.repo_config import RepoConfig
from release_manager.utils.errors import NotFoundError
from release_manager.utils.markdown_renderer import bullet_lines
from release_manager.utils.release_publisher import clean_draft_body, section_bullet_texts
from release_manager.utils.section_document import parse


def render_entry_features(features: List[str], fixes: List[str], *, features_header: str, fixes_header: str) -> str:
    blocks = []
    if features:
        blocks.append(f"### {features_header}\n{bullet_lines(features)}")
    if fixes:
        blocks.append(f"### {fixes_header}\n{bullet_lines(fixes)}")
    return "\n\n".join(blocks) if blocks else "- No notable changes"


def prepend_entry(existing: str, entry: str, header: str) -> str:
    if not existing:
        return header + entry
    if existing.startswith(header):
        return header + entry + existing[len(header):]
    return entry + existing


class ChangelogUpdater:
    def __init__(self, repo, config: RepoConfig, *, logger: Optional[logging.Logger] = None):
        self.repo = repo
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    def render_entry(self, tag: str, released_on: date, draft_body: str) -> str:
        pr = self.config.pr
        doc = parse(clean_draft_body(draft_body))
        features = render_entry_features(
            section_bullet_texts(doc, pr.features_section),
            section_bullet_texts(doc, pr.fixes_section),
            features_header=pr.features_section,
            fixes_header=pr.fixes_section,
        )
        entry = self.config.changelog.entry_format
        for key, value in {"version": tag, "date": released_on.isoformat(), "features": features}.items():
            entry = entry.replace("{" + key + "}", value)
        return entry

    def update(self, tag: str, released_on: date, draft_body: str) -> bool:
        """Write the entry on the release branch; False when it is already there."""
        cl = self.config.changelog
        branch = self.config.branches.release
        try:
            current = self.repo.get_file_entry(cl.file, ref=branch)
            existing, sha = current.get("content") or "", current.get("sha")
        except NotFoundError:
            existing, sha = "", None

        entry = self.render_entry(tag, released_on, draft_body)
        first_line = entry.split("\n", 1)[0].strip()
        if first_line and any(line.strip() == first_line for line in existing.split("\n")):
            self.logger.info(f"{cl.file} already has an entry for {tag}")
            return False

        content = prepend_entry(existing, entry, cl.header_format)
        self.repo.put_file(cl.file, content, f"docs: update {cl.file} for {tag}", branch=branch, sha=sha)
        self.logger.info(f"Prepended {tag} to {cl.file} on {branch}")
        return True


__all__ = ["ChangelogUpdater", "prepend_entry"]
