#!/usr/bin/env python3
"""Typed view of an inbound `pull_request` event.

Accepts either the bare pull request object or the full webhook envelope
(`{"action": ..., "pull_request": {...}, "repository": {...}}`).
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from release_manager.utils.errors import EventValidationError
from release_manager.utils.idempotency import idempotency_key


class BranchRef(BaseModel):
    ref: str = Field(..., description="Branch name")
    sha: Optional[str] = Field(None, description="Tip commit SHA")

    model_config = {"extra": "ignore"}


class UserRef(BaseModel):
    login: str = Field(..., description="GitHub username")

    model_config = {"extra": "ignore"}


class MergeEvent(BaseModel):
    """Pull request close event, merged or not."""

    number: int = Field(..., gt=0, description="Pull request number")
    merged: bool = Field(..., description="Whether the PR was merged (not just closed)")
    base: BranchRef
    head: BranchRef
    title: str = Field(..., description="Pull request title")
    body: Optional[str] = Field(None, description="Pull request description")
    user: UserRef
    html_url: str = Field(..., description="GitHub URL for the PR")
    merge_commit_sha: Optional[str] = None
    repository: Optional[str] = Field(None, description="Repository in 'owner/repo' format")
    action: Optional[str] = None

    model_config = {"extra": "ignore"}

    @property
    def author(self) -> str:
        return self.user.login

    @property
    def base_ref(self) -> str:
        return self.base.ref

    @property
    def head_ref(self) -> str:
        return self.head.ref

    @property
    def idempotency_key(self) -> str:
        return idempotency_key(self.number)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "MergeEvent":
        if not isinstance(payload, dict):
            raise EventValidationError("Event payload must be a JSON object")
        pr = payload.get("pull_request", payload)
        if not isinstance(pr, dict):
            raise EventValidationError("'pull_request' must be an object")
        data = dict(pr)
        repo = payload.get("repository")
        if isinstance(repo, dict) and repo.get("full_name"):
            data["repository"] = repo["full_name"]
        elif isinstance(pr.get("base"), dict) and isinstance(pr["base"].get("repo"), dict):
            data.setdefault("repository", pr["base"]["repo"].get("full_name"))
        if "action" in payload and "pull_request" in payload:
            data["action"] = payload.get("action")
        if data.get("merged") is None and "merged_at" in data:
            data["merged"] = bool(data.get("merged_at"))
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            missing = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise EventValidationError(f"Invalid pull_request event, bad fields: {', '.join(missing)}") from e


__all__ = ["MergeEvent", "BranchRef", "UserRef"]
