#!/usr/bin/env python3
"""Locate, create and re-read the pending-release draft pull request.

The draft is the staging -> release PR whose body accumulates categorized
bullets between releases. It is the only state carried across events.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from release_manager.configs.repo_config import RepoConfig
from release_manager.utils.classification import DEFAULT_BUMP_SUMMARY, truncate_summary
from release_manager.utils.document_merge import format_timestamp
from release_manager.utils.errors import RemoteOperationError
from release_manager.utils.section_document import SectionDocument, parse
from release_manager.utils.versioning import BumpClass, Version, next_version


class AggregationDraft(BaseModel):
    number: int = Field(..., description="Pull request number")
    title: str = ""
    body: str = ""
    is_draft: bool = False
    head_ref: str = ""
    base_ref: str = ""
    url: str = ""

    model_config = {"extra": "ignore"}

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "AggregationDraft":
        if not isinstance(data, dict) or "number" not in data:
            raise RemoteOperationError("Pull request payload has no number", code="UNKNOWN")
        return cls(
            number=int(data["number"]),
            title=data.get("title") or "",
            body=data.get("body") or "",
            is_draft=bool(data.get("draft", False)),
            head_ref=(data.get("head") or {}).get("ref", ""),
            base_ref=(data.get("base") or {}).get("ref", ""),
            url=data.get("html_url") or "",
        )

    def document(self) -> SectionDocument:
        return parse(self.body)


def render_placeholders(template: str, values: Dict[str, str]) -> str:
    """Substitute `{name}` tokens; unknown tokens are left as written."""
    text = template
    for key, value in values.items():
        text = text.replace("{" + key + "}", value)
    return text


def render_draft_title(config: RepoConfig, bump: BumpClass, version: Version, summary: str) -> str:
    return render_placeholders(config.pr.draft_title, {
        "bump": bump.value,
        "prefix": config.release.prefix,
        "version": str(version),
        "summary": truncate_summary(summary) or DEFAULT_BUMP_SUMMARY,
    })


class DraftLocator:
    def __init__(
        self,
        repo,
        config: RepoConfig,
        *,
        owner: str = "",
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.repo = repo
        self.config = config
        self.owner = owner
        self.logger = logger or logging.getLogger(__name__)
        self.clock = clock

    @property
    def head(self) -> str:
        return self.config.branches.staging

    @property
    def base(self) -> str:
        return self.config.branches.release

    def _candidates(self, head: str, base: str) -> List[Dict[str, Any]]:
        pulls: List[Dict[str, Any]] = []
        if self.owner:
            pulls = self.repo.list_pulls(state="open", head=f"{self.owner}:{head}", base=base) or []
        if not pulls:
            pulls = self.repo.list_pulls(state="open", head=head, base=base) or []
        return [
            p for p in pulls
            if (p.get("head") or {}).get("ref") == head and (p.get("base") or {}).get("ref") == base
        ]

    def find_draft(self, head: Optional[str] = None, base: Optional[str] = None) -> Optional[AggregationDraft]:
        """Open head -> base PR, draft-flagged ones first; None when absent."""
        head = head or self.head
        base = base or self.base
        candidates = self._candidates(head, base)
        if not candidates:
            self.logger.info(f"No open {head} -> {base} pull request found")
            return None
        flagged = [p for p in candidates if p.get("draft")]
        chosen = flagged[0] if flagged else candidates[0]
        if len(candidates) > 1:
            self.logger.warning(
                f"{len(candidates)} open {head} -> {base} pull requests; using #{chosen.get('number')}"
            )
        return AggregationDraft.from_api(chosen)

    def initial_body(self, version: Version) -> str:
        pr = self.config.pr
        now = self.clock() if self.clock else None
        return render_placeholders(pr.draft_body, {
            "featuresSection": pr.features_section,
            "fixesSection": pr.fixes_section,
            "timestamp": format_timestamp(now),
            "features": "",
            "bump": BumpClass.PATCH.value,
            "prefix": self.config.release.prefix,
            "version": str(version),
            "summary": DEFAULT_BUMP_SUMMARY,
        })

    def create_draft(self, current_version: Version) -> AggregationDraft:
        """Open a new draft PR for the next patch version. Not idempotent."""
        version = next_version(current_version, BumpClass.PATCH)
        title = render_draft_title(self.config, BumpClass.PATCH, version, DEFAULT_BUMP_SUMMARY)
        self.logger.info(f"Creating pending release draft '{title}' ({self.head} -> {self.base})")
        data = self.repo.create_pull(title=title, head=self.head, base=self.base, body=self.initial_body(version), draft=True)
        draft = AggregationDraft.from_api(data)
        self.logger.info(f"Created draft PR #{draft.number}: {draft.url}")
        return draft

    def refresh_draft(self, number: int) -> AggregationDraft:
        return AggregationDraft.from_api(self.repo.get_pull(number))


__all__ = ["AggregationDraft", "DraftLocator", "render_draft_title", "render_placeholders"]
