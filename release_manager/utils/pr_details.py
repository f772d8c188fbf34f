#!/usr/bin/env python3
"""Gather the context of a merged pull request for categorization.

Commit messages come from the PR commits listing; changed files and
insertion/deletion counts are derived from the unified diff.
"""

import re
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from release_manager.configs.config import Config
from release_manager.utils.event_models import MergeEvent


_DIFF_FILE_RE = re.compile(r"^diff --git a/(.*?) b/(.*?)$", re.MULTILINE)
_ADDITION_RE = re.compile(r"^\+[^+]", re.MULTILINE)
_DELETION_RE = re.compile(r"^-[^-]", re.MULTILINE)


class DiffStats(BaseModel):
    """Counts derived from a unified diff."""

    files: List[str] = Field(default_factory=list, description="Changed file paths (post-image)")
    additions: int = 0
    deletions: int = 0
    sample: str = Field("", description="Leading slice of the raw diff")

    model_config = {"extra": "ignore"}

    @property
    def summary(self) -> str:
        return f"{len(self.files)} files changed, {self.additions} insertions(+), {self.deletions} deletions(-)"


class PRDetails(BaseModel):
    """Everything the categorization prompt is built from."""

    number: int
    title: str
    body: Optional[str] = None
    changed_files: List[str] = Field(default_factory=list)
    diff_summary: str = ""
    diff_sample: str = ""
    commit_messages: List[str] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


def extract_first_line(message: str) -> str:
    """First line of a commit message, stripped."""
    if not message:
        return ""
    lines = message.splitlines()
    return lines[0].strip() if lines else ""


def safe_extract(data: Dict, *keys, default=None):
    """Safely extract nested dictionary values.

    Example:
        safe_extract(commit, "commit", "message", default="")
    """
    current = data
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def diff_stats(diff_text: str, sample_chars: Optional[int] = None) -> DiffStats:
    text = diff_text or ""
    limit = Config.DIFF_SAMPLE_CHARS if sample_chars is None else sample_chars
    files = [m.group(2) for m in _DIFF_FILE_RE.finditer(text)]
    return DiffStats(
        files=files,
        additions=len(_ADDITION_RE.findall(text)),
        deletions=len(_DELETION_RE.findall(text)),
        sample=text[:limit],
    )


def gather_pr_details(repo, event: MergeEvent, *, sample_chars: Optional[int] = None) -> PRDetails:
    """Fetch commits and diff of the merged PR.

    Remote failures propagate; a PR with no commits or an empty diff still
    yields details with empty lists.
    """
    commits = repo.list_commits(event.number) or []
    messages = [extract_first_line(safe_extract(c, "commit", "message", default="")) for c in commits]
    stats = diff_stats(repo.get_pull_diff(event.number), sample_chars)
    return PRDetails(
        number=event.number,
        title=event.title,
        body=event.body,
        changed_files=stats.files,
        diff_summary=stats.summary,
        diff_sample=stats.sample,
        commit_messages=[m for m in messages if m],
    )


__all__ = ["PRDetails", "DiffStats", "diff_stats", "gather_pr_details", "extract_first_line"]
