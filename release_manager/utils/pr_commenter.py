#!/usr/bin/env python3
"""Post merge and release comments on the pending-release draft."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from release_manager.configs.config import Config
from release_manager.utils.markdown_renderer import render_merge_comment, render_release_comment
from release_manager.utils.summary_parser import CategorizedSummary

TRUNCATION_FOOTER = "\n\n---\n_Comment truncated to fit GitHub limits._"


class PRCommenter:
    def __init__(self, repo, *, features_header: str, fixes_header: str, max_chars: Optional[int] = None, logger: Optional[logging.Logger] = None):
        self.repo = repo
        self.features_header = features_header
        self.fixes_header = fixes_header
        self.max_chars = max_chars or Config.MAX_GH_COMMENT_CHARS
        self.logger = logger or logging.getLogger(__name__)

    def _apply_truncation(self, body: str) -> str:
        if len(body) <= self.max_chars:
            return body
        head = body[: max(0, self.max_chars - len(TRUNCATION_FOOTER))]
        return head + TRUNCATION_FOOTER

    def _post(self, number: int, body: str) -> Dict[str, Any]:
        created = self.repo.create_issue_comment(number, self._apply_truncation(body))
        self.logger.info(f"Posted comment on #{number}: {(created or {}).get('html_url', '')}")
        return created or {}

    def post_merge_comment(self, draft_number: int, *, title: str, number: int, author: str, summary: CategorizedSummary) -> Dict[str, Any]:
        body = render_merge_comment(
            title,
            number,
            author,
            summary,
            features_header=self.features_header,
            fixes_header=self.fixes_header,
        )
        return self._post(draft_number, body)

    def post_release_comment(self, number: int, *, tag: str, url: Optional[str], draft: bool = False, prerelease: bool = False) -> Dict[str, Any]:
        return self._post(number, render_release_comment(tag, url, draft=draft, prerelease=prerelease))
