#!/usr/bin/env python3
"""Publish the finalized pending-release PR as a tagged GitHub release.

The staging -> release PR title carries the release decision
(`<BUMP> Release: <tag>: <summary>`); its body carries the categorized
bullets. A release is created at most once per tag: when one already exists
for the tag it is returned untouched.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, List, Optional

from release_manager.configs.config import Config
from release_manager.configs.repo_config import RepoConfig
from release_manager.utils import metrics
from release_manager.utils.errors import ClassificationUnavailable, NotFoundError, RemoteOperationError, TitleParseError
from release_manager.utils.idempotency import strip_markers
from release_manager.utils.markdown_renderer import render_categories, render_release_notes
from release_manager.utils.section_document import SectionDocument, parse, strip_placeholders
from release_manager.utils.versioning import BumpClass, Version, parse_version

_TITLE_RE = re.compile(r"^(?P<bump>MAJOR|MINOR|PATCH) Release: (?P<tag>[^\s:]+): (?P<summary>.*\S)$")


@dataclass(frozen=True)
class ParsedTitle:
    bump: BumpClass
    version: Version
    tag: str
    summary: str


@dataclass
class ReleaseRecord:
    tag_name: str
    title: str
    notes_body: str
    target_branch: str
    url: str = ""
    draft: bool = False
    prerelease: bool = False
    created: bool = True

    @classmethod
    def from_api(cls, data, *, created: bool) -> "ReleaseRecord":
        return cls(
            tag_name=data.get("tag_name", ""),
            title=data.get("name") or data.get("tag_name", ""),
            notes_body=data.get("body") or "",
            target_branch=data.get("target_commitish") or "",
            url=data.get("html_url", ""),
            draft=bool(data.get("draft", False)),
            prerelease=bool(data.get("prerelease", False)),
            created=created,
        )


def parse_release_title(title: str) -> ParsedTitle:
    m = _TITLE_RE.match((title or "").strip())
    if not m:
        raise TitleParseError(f"Title does not look like '<BUMP> Release: <tag>: <summary>': {title!r}")
    tag = m.group("tag")
    return ParsedTitle(
        bump=BumpClass(m.group("bump")),
        version=parse_version(tag),
        tag=tag,
        summary=m.group("summary").strip(),
    )


def section_bullet_texts(doc: SectionDocument, header: str) -> List[str]:
    section = doc.get_section(header)
    if section is None:
        return []
    return [b.render()[2:] for b in section.bullets]


def clean_draft_body(body: str) -> str:
    return strip_markers(strip_placeholders(body or ""))


class ReleasePublisher:
    def __init__(
        self,
        repo,
        config: RepoConfig,
        classifier=None,
        commenter=None,
        *,
        repo_name: str = "",
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], datetime]] = None,
        body_max_chars: Optional[int] = None,
    ):
        self.repo = repo
        self.config = config
        self.classifier = classifier
        self.commenter = commenter
        self.repo_name = repo_name
        self.logger = logger or logging.getLogger(__name__)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.body_max_chars = body_max_chars or Config.RELEASE_BODY_MAX_CHARS

    def today(self) -> date:
        return self.clock().date()

    # -------- Public API --------
    def get_by_tag(self, tag: str) -> Optional[ReleaseRecord]:
        try:
            data = self.repo.get_release_by_tag(tag)
        except NotFoundError:
            return None
        return ReleaseRecord.from_api(data, created=False)

    def fallback_notes(self, cleaned_body: str) -> str:
        """Both category headings with whatever bullets the draft body holds."""
        doc = parse(cleaned_body)
        pr = self.config.pr
        return render_categories(
            section_bullet_texts(doc, pr.features_section),
            section_bullet_texts(doc, pr.fixes_section),
            features_header=pr.features_section,
            fixes_header=pr.fixes_section,
        )

    def build_release_notes(self, parsed: ParsedTitle, body: str) -> str:
        cleaned = clean_draft_body(body)
        content: Optional[str] = None
        if self.config.release.generate_release_notes and self.classifier is not None:
            try:
                content = self.classifier.summarize_release(
                    cleaned, repo=self.repo_name, tag=parsed.tag, bump=parsed.bump.value
                )
            except ClassificationUnavailable as e:
                self.logger.warning(f"Release notes generation unavailable ({e.code}); using draft bullets")
        if not content:
            content = self.fallback_notes(cleaned)
        return render_release_notes(parsed.bump.value, self.today(), content)

    def _validate_body(self, body: str) -> None:
        if not body:
            raise RemoteOperationError("Empty release body", code="VALIDATION")
        if len(body) > self.body_max_chars:
            raise RemoteOperationError(
                f"Release body exceeds limit: len={len(body)} max={self.body_max_chars}",
                code="VALIDATION",
            )

    def publish(self, parsed: ParsedTitle, body: str, *, title: str, thread_number: Optional[int] = None) -> ReleaseRecord:
        existing = self.get_by_tag(parsed.tag)
        if existing is not None:
            self.logger.info(f"Release {parsed.tag} already exists ({existing.url}); not creating another")
            metrics.incr("release.duplicate", tag=parsed.tag)
            return existing

        notes = self.build_release_notes(parsed, body)
        self._validate_body(notes)
        rel = self.config.release
        data = self.repo.create_release(
            tag=parsed.tag,
            name=title,
            body=notes,
            target_commitish=self.config.branches.release,
            draft=rel.create_draft,
            prerelease=rel.prerelease,
        )
        record = ReleaseRecord.from_api(data or {}, created=True)
        # The API echoes these back; keep our values when it does not
        record.tag_name = record.tag_name or parsed.tag
        record.title = title
        record.notes_body = record.notes_body or notes
        record.target_branch = record.target_branch or self.config.branches.release
        self.logger.info(f"Created release {record.tag_name}: {record.url}")
        metrics.incr("release.published", tag=record.tag_name, bump=parsed.bump.value)

        if self.commenter is not None and thread_number:
            self.commenter.post_release_comment(
                thread_number, tag=record.tag_name, url=record.url, draft=record.draft, prerelease=record.prerelease
            )
        return record


__all__ = ["ParsedTitle", "ReleaseRecord", "ReleasePublisher", "parse_release_title", "clean_draft_body"]
