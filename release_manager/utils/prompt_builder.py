#!/usr/bin/env python3
from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from release_manager.configs.config import Config
from release_manager.utils.pr_details import PRDetails

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"
SUMMARY_MAX_CHARS = 60


def load_template(name: str) -> str:
	with open(PROMPTS_DIR / f"{name}.prompt", "r", encoding="utf-8") as f:
		return f.read()


def render_template(template: str, mapping: Dict[str, str]) -> str:
	text = template
	for key, value in mapping.items():
		text = text.replace(f"{{{{ {key} }}}}", value)
	return text


def _bulleted(lines: List[str], *, max_lines: int = 50) -> str:
	if not lines:
		return "- none"
	out = []
	for line in lines[:max_lines]:
		line_clean = str(line).replace("\r", " ").replace("\n", " ")
		out.append(f"- {line_clean}")
	if len(lines) > max_lines:
		out.append(f"- ... and {len(lines) - max_lines} more")
	return "\n".join(out)


def _clip(text: str, limit: int) -> str:
	text = text or ""
	if len(text) <= limit:
		return text
	return text[:limit] + "\n[truncated]"


def build_feature_prompt(details: PRDetails, *, features_header: str, fixes_header: str, staging_branch: str = "staging") -> str:
	"""User turn for the per-merge categorization call."""
	mapping = {
		"staging_branch": staging_branch,
		"pr_title": details.title,
		"pr_body": _clip(details.body or "(no description)", Config.MAX_PROMPT_BODY_CHARS),
		"changed_files": _bulleted(details.changed_files),
		"diff_summary": details.diff_summary or "n/a",
		"diff_sample": details.diff_sample or "n/a",
		"commit_messages": _bulleted(details.commit_messages),
		"features_header": features_header,
		"fixes_header": fixes_header,
	}
	return render_template(load_template("feature_summary"), mapping)


def build_version_prompt(draft_body: str, changes_summary: str) -> str:
	mapping = {
		"draft_body": _clip(draft_body, Config.MAX_PROMPT_BODY_CHARS),
		"changes_summary": changes_summary or "n/a",
		"summary_max_chars": str(SUMMARY_MAX_CHARS),
	}
	return render_template(load_template("version_type"), mapping)


def build_release_notes_prompt(draft_body: str, *, repo: str, tag: str, bump: str, features_header: str, fixes_header: str) -> str:
	mapping = {
		"repo": repo or "the repository",
		"tag": tag,
		"bump": bump,
		"draft_body": _clip(draft_body, Config.MAX_PROMPT_BODY_CHARS),
		"features_header": features_header,
		"fixes_header": fixes_header,
	}
	return render_template(load_template("release_notes"), mapping)
