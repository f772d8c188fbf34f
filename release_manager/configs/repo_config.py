#!/usr/bin/env python3
"""Repository configuration document (`.github/release-manager.json`).

The document is optional. When present it is deep-merged onto the defaults
below, so a repository only needs to spell out the keys it changes. Keys use
the camelCase spelling of the JSON document; Python attributes are snake_case.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from release_manager.utils.errors import ConfigurationError, NotFoundError


class _ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class BranchesConfig(_ConfigModel):
    staging: str = "staging"
    release: str = "main"


DEFAULT_DRAFT_BODY = """# Pending Release

*This is an automated draft PR. It is updated every time a feature is merged into staging.*

## {featuresSection}
<!-- New features merged into staging will be listed here -->

## {fixesSection}
<!-- Bug fixes and improvements merged into staging will be listed here -->

---
*This PR was automatically created by the Release Manager.*
*Last updated: {timestamp}*
"""


class PRConfig(_ConfigModel):
    draft_title: str = Field("{bump} Release: {prefix}{version}: {summary}", alias="draftTitle")
    draft_body: str = Field(DEFAULT_DRAFT_BODY, alias="draftBody")
    features_section: str = Field("New Features", alias="featuresSection")
    fixes_section: str = Field("Bugs / Improvements", alias="fixesSection")

    @field_validator("features_section", "fixes_section")
    @classmethod
    def _strip_heading_marker(cls, value: str) -> str:
        # Accept "## New Features" as well as "New Features"
        title = value.lstrip("#").strip()
        if not title:
            raise ValueError("section header must not be empty")
        return title


class ReleaseConfig(_ConfigModel):
    prefix: str = "v"
    create_draft: bool = Field(False, alias="createDraft")
    prerelease: bool = False
    generate_release_notes: bool = Field(True, alias="generateReleaseNotes")


class ChangelogConfig(_ConfigModel):
    enabled: bool = False
    file: str = "CHANGELOG.md"
    header_format: str = Field("# Changelog\n\n", alias="headerFormat")
    entry_format: str = Field("## {version} ({date})\n\n{features}\n\n", alias="entryFormat")


class ReleaseTagsConfig(_ConfigModel):
    major: str = "[MAJOR]"
    minor: str = "[MINOR]"
    patch: str = "[PATCH]"


class OpenAIConfig(_ConfigModel):
    model: str = "gpt-4o-mini"
    temperature: float = Field(0.2, ge=0.0, le=2.0)
    max_tokens: int = Field(2048, gt=0)


class AIConfig(_ConfigModel):
    enabled: bool = True
    provider: str = "openai"
    feature_summary_prompt: str = Field(
        "You are a helpful assistant that generates concise summaries of feature changes in a GitHub "
        "repository. Focus on business value and benefits over technical details.",
        alias="featureSummaryPrompt",
    )
    version_type_prompt: str = Field(
        "You are a versioning expert who helps determine the appropriate semantic version increment type "
        "for code changes. Analyze the changes and recommend MAJOR for breaking changes, MINOR for new "
        "features, or PATCH for bug fixes.",
        alias="versionTypePrompt",
    )
    release_notes_prompt: str = Field(
        "You are a technical writer who turns a list of merged changes into clear, well organized "
        "release notes for end users.",
        alias="releaseNotesPrompt",
    )
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)

    @field_validator("provider")
    @classmethod
    def _known_provider(cls, value: str) -> str:
        v = value.strip().lower()
        if v not in ("openai", "bedrock"):
            raise ValueError(f"unknown ai.provider '{value}' (expected 'openai' or 'bedrock')")
        return v


class RepoConfig(_ConfigModel):
    branches: BranchesConfig = Field(default_factory=BranchesConfig)
    pr: PRConfig = Field(default_factory=PRConfig)
    release: ReleaseConfig = Field(default_factory=ReleaseConfig)
    changelog: ChangelogConfig = Field(default_factory=ChangelogConfig)
    release_tags: ReleaseTagsConfig = Field(default_factory=ReleaseTagsConfig, alias="releaseTags")
    ai: AIConfig = Field(default_factory=AIConfig)


def default_config_dict() -> Dict[str, Any]:
    return RepoConfig().model_dump(by_alias=True)


def merge_configs(defaults: Dict[str, Any], custom: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge: nested mappings merge key by key, anything else replaces."""
    merged = dict(defaults)
    for key, value in custom.items():
        if isinstance(value, dict) and isinstance(defaults.get(key), dict):
            merged[key] = merge_configs(defaults[key], value)
        else:
            merged[key] = value
    return merged


def load_repo_config(text: Optional[str]) -> RepoConfig:
    """Build a RepoConfig from raw JSON text; `None` means no file (defaults)."""
    if text is None:
        return RepoConfig()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Malformed configuration JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration document must be a JSON object")
    try:
        return RepoConfig.model_validate(merge_configs(default_config_dict(), data))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_repo_config_file(path: str) -> RepoConfig:
    p = Path(path)
    if not p.exists():
        return RepoConfig()
    return load_repo_config(p.read_text(encoding="utf-8"))


def fetch_repo_config(repo, path: str, ref: Optional[str] = None) -> RepoConfig:
    """Read the configuration document from the repository; absent means defaults."""
    try:
        text = repo.get_file(path, ref=ref)
    except NotFoundError:
        return RepoConfig()
    return load_repo_config(text)


__all__ = [
    "RepoConfig",
    "BranchesConfig",
    "PRConfig",
    "ReleaseConfig",
    "ChangelogConfig",
    "ReleaseTagsConfig",
    "AIConfig",
    "OpenAIConfig",
    "load_repo_config",
    "load_repo_config_file",
    "fetch_repo_config",
    "merge_configs",
]
