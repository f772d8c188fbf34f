#!/usr/bin/env python3
"""Classification adapter over the summarization service.

Three calls are made against the configured backend:

- `classify` turns a merged PR into categorized bullets,
- `classify_bump` recommends a semver bump and a one-line release summary,
- `summarize_release` writes prose release notes from the draft body.

`classify` and `summarize_release` raise `ClassificationUnavailable` when the
service is disabled, fails or answers with nothing useful. `classify_bump`
never raises: it degrades to PATCH with a stock summary.
"""

from __future__ import annotations

import logging
from typing import Optional

from langsmith.run_helpers import traceable
from pydantic import BaseModel, Field, field_validator

from release_manager.clients.llm_errors import LLMError
from release_manager.configs.repo_config import AIConfig
from release_manager.utils import metrics
from release_manager.utils.errors import ClassificationUnavailable
from release_manager.utils.pr_details import PRDetails
from release_manager.utils.prompt_builder import (
    SUMMARY_MAX_CHARS,
    build_feature_prompt,
    build_release_notes_prompt,
    build_version_prompt,
)
from release_manager.utils.structured_output import StructuredOutputError, extract_model
from release_manager.utils.summary_parser import (
    DEFAULT_FEATURES_HEADER,
    DEFAULT_FIXES_HEADER,
    CategorizedSummary,
    parse_summary,
)
from release_manager.utils.versioning import BumpClass

DEFAULT_BUMP_SUMMARY = "New features and improvements"


def truncate_summary(text: str, limit: int = SUMMARY_MAX_CHARS) -> str:
    """Flatten to one line and cap at `limit` characters, ellipsis included."""
    flat = " ".join((text or "").split())
    if len(flat) <= limit:
        return flat
    return flat[: limit - 3].rstrip() + "..."


class BumpRecommendation(BaseModel):
    bump: BumpClass = BumpClass.PATCH
    summary: str = Field(DEFAULT_BUMP_SUMMARY)

    model_config = {"extra": "ignore"}

    @field_validator("bump", mode="before")
    @classmethod
    def _coerce_bump(cls, value):
        if isinstance(value, BumpClass):
            return value
        return BumpClass.parse(value if isinstance(value, str) else None)

    @field_validator("summary", mode="before")
    @classmethod
    def _coerce_summary(cls, value):
        text = truncate_summary(str(value or ""))
        return text or DEFAULT_BUMP_SUMMARY

    @classmethod
    def default(cls) -> "BumpRecommendation":
        return cls(bump=BumpClass.PATCH, summary=DEFAULT_BUMP_SUMMARY)


def build_llm_client(ai: AIConfig):
    """Instantiate the backend named by `ai.provider`."""
    if ai.provider == "bedrock":
        from release_manager.clients.bedrock_client import BedrockClient
        return BedrockClient(temperature=ai.openai.temperature, max_output_tokens=ai.openai.max_tokens)
    from release_manager.clients.openai_client import OpenAIChatClient
    return OpenAIChatClient(model=ai.openai.model, temperature=ai.openai.temperature, max_tokens=ai.openai.max_tokens)


class ClassificationAdapter:
    def __init__(
        self,
        ai: AIConfig,
        client=None,
        *,
        features_header: str = DEFAULT_FEATURES_HEADER,
        fixes_header: str = DEFAULT_FIXES_HEADER,
        staging_branch: str = "staging",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.ai = ai
        self._client = client
        self.features_header = features_header
        self.fixes_header = fixes_header
        self.staging_branch = staging_branch
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config, client=None, logger=None) -> "ClassificationAdapter":
        return cls(
            config.ai,
            client,
            features_header=config.pr.features_section,
            fixes_header=config.pr.fixes_section,
            staging_branch=config.branches.staging,
            logger=logger,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.ai.enabled)

    def _backend(self):
        if self._client is None:
            try:
                self._client = build_llm_client(self.ai)
            except LLMError as e:
                raise ClassificationUnavailable(f"Summarization backend unavailable: {e}", code=e.code) from e
        return self._client

    def _complete(self, purpose: str, system_prompt: str, user_content: str) -> str:
        if not self.enabled:
            raise ClassificationUnavailable("AI summarization is disabled", code="DISABLED")
        client = self._backend()
        try:
            with metrics.Timer("llm.complete", provider=self.ai.provider, purpose=purpose):
                text = client.complete(system_prompt, user_content)
        except LLMError as e:
            metrics.incr("llm.error", provider=self.ai.provider, purpose=purpose, code=e.code)
            raise ClassificationUnavailable(f"Summarization call failed ({purpose}): {e}", code=e.code) from e
        if not text or not text.strip():
            raise ClassificationUnavailable(f"Summarization service returned no content ({purpose})", code="EMPTY")
        return text

    @traceable(name="classify_feature")
    def classify(self, details: PRDetails) -> CategorizedSummary:
        prompt = build_feature_prompt(
            details,
            features_header=self.features_header,
            fixes_header=self.fixes_header,
            staging_branch=self.staging_branch,
        )
        text = self._complete("classify", self.ai.feature_summary_prompt, prompt)
        summary = parse_summary(text, self.features_header, self.fixes_header)
        self.logger.info(
            f"Categorized PR #{details.number}: {len(summary.features)} feature(s), {len(summary.fixes)} fix(es)"
        )
        if summary.is_empty():
            self.logger.warning(f"Categorization of PR #{details.number} produced no bullets")
        return summary

    @traceable(name="classify_bump")
    def classify_bump(self, body: str, changes_summary: str = "") -> BumpRecommendation:
        try:
            text = self._complete("bump", self.ai.version_type_prompt, build_version_prompt(body, changes_summary))
            rec = extract_model(text, BumpRecommendation)
        except ClassificationUnavailable as e:
            self.logger.warning(f"Version classification unavailable ({e.code}); defaulting to PATCH")
            return BumpRecommendation.default()
        except StructuredOutputError as e:
            self.logger.warning(f"Unparseable version classification ({e.code}); defaulting to PATCH")
            return BumpRecommendation.default()
        self.logger.debug(f"Version classification: {rec.bump.value} / {rec.summary}")
        return rec

    @traceable(name="summarize_release")
    def summarize_release(self, body: str, *, repo: str = "", tag: str = "", bump: str = "") -> str:
        prompt = build_release_notes_prompt(
            body,
            repo=repo,
            tag=tag,
            bump=bump,
            features_header=self.features_header,
            fixes_header=self.fixes_header,
        )
        return self._complete("release_notes", self.ai.release_notes_prompt, prompt).strip()


__all__ = [
    "ClassificationAdapter",
    "BumpRecommendation",
    "build_llm_client",
    "truncate_summary",
    "DEFAULT_BUMP_SUMMARY",
]
