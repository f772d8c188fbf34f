#!/usr/bin/env python3
"""Release orchestration agent.

Routes merged pull request events through the two-stage pipeline:

  feature -> staging   categorize the change, fold it into the pending-release
                       draft PR, recompute the version and title
  staging -> release   parse the finalized title and publish a tagged release

Anything else is ignored. The agent is stateless between events; the draft PR
body is the only state it reads and writes.
"""

import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from release_manager.configs.config import Config  # noqa: E402
from release_manager.configs.repo_config import BranchesConfig, RepoConfig, fetch_repo_config, load_repo_config_file  # noqa: E402
from release_manager.utils import metrics  # noqa: E402
from release_manager.utils.changelog import ChangelogUpdater  # noqa: E402
from release_manager.utils.classification import ClassificationAdapter  # noqa: E402
from release_manager.utils.context import ReleaseContext, event_logger, utc_now  # noqa: E402
from release_manager.utils.document_merge import merge_bullets, touch_last_updated  # noqa: E402
from release_manager.utils.draft_locator import DraftLocator, render_draft_title  # noqa: E402
from release_manager.utils.errors import (  # noqa: E402
	ClassificationUnavailable,
	ConfigurationError,
	EventValidationError,
	NotFoundError,
	RemoteOperationError,
	TitleParseError,
)
from release_manager.utils.event_models import MergeEvent  # noqa: E402
from release_manager.utils.github_client import GithubClient  # noqa: E402
from release_manager.utils.idempotency import is_processed, mark_processed  # noqa: E402
from release_manager.utils.pr_commenter import PRCommenter  # noqa: E402
from release_manager.utils.pr_details import gather_pr_details  # noqa: E402
from release_manager.utils.release_publisher import ReleasePublisher, ReleaseRecord, clean_draft_body, parse_release_title  # noqa: E402
from release_manager.utils.section_document import Attribution, Bullet, SectionDocument, serialize  # noqa: E402
from release_manager.utils.summary_parser import CategorizedSummary  # noqa: E402
from release_manager.utils.versioning import BumpClass, Version, next_version, parse_version  # noqa: E402

# Set up logging
logger = logging.getLogger(__name__)


class Route(str, Enum):
	FEATURE = "feature"
	RELEASE = "release"
	IGNORE = "ignore"


class Stage(str, Enum):
	IDLE = "Idle"
	CLASSIFYING_MERGE_TARGET = "ClassifyingMergeTarget"
	SUMMARIZING_FEATURE = "SummarizingFeature"
	MERGING_INTO_DRAFT = "MergingIntoDraft"
	COMPUTING_VERSION = "ComputingVersion"
	PUBLISHING_TITLE_AND_COMMENT = "PublishingTitleAndComment"
	PARSING_RELEASE_TITLE = "ParsingReleaseTitle"
	PUBLISHING_RELEASE = "PublishingRelease"


@dataclass
class EventOutcome:
	route: Optional[Route]
	status: str
	detail: str = ""
	draft_number: Optional[int] = None
	release: Optional[ReleaseRecord] = None
	version: Optional[str] = None
	title: Optional[str] = None

	@property
	def failed(self) -> bool:
		return self.status == "failed"

	def to_dict(self) -> Dict[str, Any]:
		out: Dict[str, Any] = {
			"route": self.route.value if self.route else None,
			"status": self.status,
			"detail": self.detail,
			"draft_number": self.draft_number,
			"version": self.version,
			"title": self.title,
		}
		if self.release is not None:
			out["release"] = {
				"tag": self.release.tag_name,
				"url": self.release.url,
				"created": self.release.created,
			}
		return out


def classify_route(event: MergeEvent, branches: BranchesConfig) -> Route:
	if not event.merged:
		return Route.IGNORE
	if event.base_ref == branches.staging and event.head_ref != branches.release:
		return Route.FEATURE
	if event.base_ref == branches.release and event.head_ref == branches.staging:
		return Route.RELEASE
	return Route.IGNORE


class ReleaseAgent:
	"""Explicit state machine over one merge event."""

	def __init__(self, ctx: ReleaseContext):
		self.ctx = ctx
		self.stage = Stage.IDLE
		pr = ctx.config.pr
		self.locator = DraftLocator(ctx.repo, ctx.config, owner=ctx.owner, logger=ctx.logger, clock=ctx.clock)
		self.commenter = PRCommenter(ctx.repo, features_header=pr.features_section, fixes_header=pr.fixes_section, logger=ctx.logger)
		self.publisher = ReleasePublisher(
			ctx.repo,
			ctx.config,
			ctx.classifier,
			self.commenter,
			repo_name=ctx.repo_name,
			logger=ctx.logger,
			clock=ctx.clock,
		)
		self.changelog = ChangelogUpdater(ctx.repo, ctx.config, logger=ctx.logger)

	def _enter(self, stage: Stage) -> None:
		self.ctx.logger.debug(f"stage {self.stage.value} -> {stage.value}")
		self.stage = stage

	def handle_event(self, event: MergeEvent) -> EventOutcome:
		"""Process one event. RemoteOperationError and ConfigurationError propagate."""
		self._enter(Stage.CLASSIFYING_MERGE_TARGET)
		route = classify_route(event, self.ctx.config.branches)
		self.ctx.logger.info(f"PR #{event.number} {event.head_ref} -> {event.base_ref} (merged={event.merged}) routed to {route.value}")
		metrics.incr("event.route", route=route.value)
		try:
			if route is Route.FEATURE:
				outcome = self._handle_feature(event)
			elif route is Route.RELEASE:
				outcome = self._handle_release(event)
			else:
				reason = "not merged" if not event.merged else f"{event.head_ref} -> {event.base_ref} is not a release flow"
				outcome = EventOutcome(Route.IGNORE, "ignored", detail=reason)
		finally:
			self._enter(Stage.IDLE)
		metrics.incr("event.outcome", route=route.value, status=outcome.status)
		return outcome

	# -------- feature -> staging --------
	def current_version(self) -> Version:
		"""Latest release tag, else the newest tag, else 0.0.0."""
		repo = self.ctx.repo
		try:
			latest = repo.get_latest_release()
			tag = (latest or {}).get("tag_name")
			if tag:
				self.ctx.logger.debug(f"Latest release tag: {tag}")
				return parse_version(tag)
		except NotFoundError:
			self.ctx.logger.debug("No published release; falling back to tags")
		try:
			tags = repo.list_tags(per_page=1) or []
		except NotFoundError:
			tags = []
		if tags and tags[0].get("name"):
			return parse_version(tags[0]["name"])
		self.ctx.logger.info("No releases or tags found, starting with 0.0.0")
		return Version()

	def keyword_bump(self, event: MergeEvent) -> Optional[BumpClass]:
		"""Highest bump whose releaseTags keyword appears in the PR title or body."""
		tags = self.ctx.config.release_tags
		text = f"{event.title}\n{event.body or ''}".lower()
		found: List[BumpClass] = []
		for bump, keyword in ((BumpClass.MAJOR, tags.major), (BumpClass.MINOR, tags.minor), (BumpClass.PATCH, tags.patch)):
			if keyword and keyword.lower() in text:
				found.append(bump)
		return BumpClass.highest(*found) if found else None

	def _fold(self, doc: SectionDocument, event: MergeEvent, summary: CategorizedSummary) -> SectionDocument:
		pr = self.ctx.config.pr
		now = self.ctx.now()
		attribution = Attribution(event.number, event.html_url, event.author)
		doc = merge_bullets(doc, pr.features_section, [Bullet(t, attribution) for t in summary.features], now=now)
		doc = merge_bullets(doc, pr.fixes_section, [Bullet(t, attribution) for t in summary.fixes], now=now)
		doc = mark_processed(doc, event.idempotency_key)
		return touch_last_updated(doc, now)

	def _handle_feature(self, event: MergeEvent) -> EventOutcome:
		ctx = self.ctx
		key = event.idempotency_key

		self._enter(Stage.SUMMARIZING_FEATURE)
		draft = self.locator.find_draft()
		if draft is not None and is_processed(draft.document(), key):
			ctx.logger.info(f"PR #{event.number} already recorded in draft #{draft.number}; skipping")
			return EventOutcome(Route.FEATURE, "duplicate", detail=key, draft_number=draft.number)

		details = gather_pr_details(ctx.repo, event)
		try:
			summary = ctx.classifier.classify(details)
		except ClassificationUnavailable as e:
			ctx.logger.warning(f"Categorization unavailable ({e.code}); draft left untouched: {e}")
			return EventOutcome(Route.FEATURE, "skipped", detail=str(e), draft_number=draft.number if draft else None)

		self._enter(Stage.MERGING_INTO_DRAFT)
		current = self.current_version()
		if draft is None:
			draft = self.locator.create_draft(current)
		merged = self._fold(draft.document(), event, summary)

		self._enter(Stage.COMPUTING_VERSION)
		pr = ctx.config.pr
		rec = ctx.classifier.classify_bump(
			clean_draft_body(serialize(merged)),
			summary.render(pr.features_section, pr.fixes_section),
		)
		keyword = self.keyword_bump(event)
		bump = BumpClass.highest(rec.bump, keyword)
		if keyword is not None and keyword.rank > rec.bump.rank:
			ctx.logger.info(f"releaseTags keyword raised bump {rec.bump.value} -> {bump.value}")
		version = next_version(current, bump)
		title = render_draft_title(ctx.config, bump, version, rec.summary)

		self._enter(Stage.PUBLISHING_TITLE_AND_COMMENT)
		# Re-read right before writing and fold onto the freshest body
		fresh = self.locator.refresh_draft(draft.number)
		fresh_doc = fresh.document()
		if is_processed(fresh_doc, key):
			ctx.logger.info(f"PR #{event.number} was recorded in draft #{draft.number} concurrently; skipping write")
			return EventOutcome(Route.FEATURE, "duplicate", detail=key, draft_number=draft.number)
		body = serialize(self._fold(fresh_doc, event, summary))
		ctx.repo.update_pull(draft.number, title=title, body=body)
		ctx.logger.info(f"Updated draft #{draft.number}: {title}")
		self.commenter.post_merge_comment(
			draft.number, title=event.title, number=event.number, author=event.author, summary=summary
		)
		return EventOutcome(
			Route.FEATURE,
			"updated",
			draft_number=draft.number,
			version=version.with_prefix(ctx.config.release.prefix),
			title=title,
		)

	# -------- staging -> release --------
	def _handle_release(self, event: MergeEvent) -> EventOutcome:
		ctx = self.ctx
		self._enter(Stage.PARSING_RELEASE_TITLE)
		try:
			parsed = parse_release_title(event.title)
		except TitleParseError as e:
			ctx.logger.warning(f"Release inconclusive, no release created: {e}")
			return EventOutcome(Route.RELEASE, "inconclusive", detail=str(e), draft_number=event.number)

		self._enter(Stage.PUBLISHING_RELEASE)
		record = self.publisher.publish(parsed, event.body or "", title=event.title, thread_number=event.number)
		if not record.created:
			return EventOutcome(Route.RELEASE, "already_released", release=record, draft_number=event.number, version=parsed.tag)
		if ctx.config.changelog.enabled:
			self.changelog.update(parsed.tag, ctx.now().date(), event.body or "")
		return EventOutcome(Route.RELEASE, "released", release=record, draft_number=event.number, version=parsed.tag, title=event.title)


def load_config_for(repo, config_path: Optional[str] = None) -> RepoConfig:
	path = config_path or Config.LOCAL_CONFIG_PATH
	if path:
		return load_repo_config_file(path)
	return fetch_repo_config(repo, Config.REPO_CONFIG_PATH)


def build_context(
	event: MergeEvent,
	*,
	repo=None,
	config: Optional[RepoConfig] = None,
	classifier=None,
	clock: Optional[Callable[[], datetime]] = None,
	repo_name: Optional[str] = None,
	config_path: Optional[str] = None,
) -> ReleaseContext:
	name = repo_name or event.repository or os.getenv("GITHUB_REPOSITORY", "")
	if repo is None:
		repo = GithubClient.from_full_name(name)
	if config is None:
		config = load_config_for(repo, config_path)
	log = event_logger("release_manager.agent", name, event.number)
	if classifier is None:
		classifier = ClassificationAdapter.from_config(config, logger=log)
	return ReleaseContext(config=config, logger=log, repo=repo, classifier=classifier, clock=clock or utc_now, repo_name=name)


def run_event(payload: Dict[str, Any], **kw) -> EventOutcome:
	"""Validate, build the context and handle one event; failures become an outcome."""
	try:
		event = MergeEvent.from_payload(payload)
	except EventValidationError as e:
		logger.error(f"Rejected event: {e}")
		return EventOutcome(None, "failed", detail=str(e))
	if not event.merged:
		logger.info(f"PR #{event.number} closed without merge; ignoring")
		return EventOutcome(Route.IGNORE, "ignored", detail="not merged")
	owned = None
	try:
		if kw.get("repo") is None:
			name = kw.get("repo_name") or event.repository or os.getenv("GITHUB_REPOSITORY", "")
			owned = kw["repo"] = GithubClient.from_full_name(name)
		ctx = build_context(event, **kw)
		return ReleaseAgent(ctx).handle_event(event)
	except ConfigurationError as e:
		logger.error(f"Configuration error ({e.code}): {e}")
		return EventOutcome(None, "failed", detail=str(e))
	except NotFoundError as e:
		# 404 with no default, e.g. a token that cannot see the repository
		logger.error(f"Repository resource not found: {e}")
		metrics.incr("event.failed", code=e.code)
		return EventOutcome(None, "failed", detail=str(e))
	except RemoteOperationError as e:
		logger.error(f"Repository operation failed ({e.code}): {e}")
		metrics.incr("event.failed", code=e.code)
		return EventOutcome(None, "failed", detail=str(e))
	finally:
		if owned is not None:
			owned.close()


def _read_payload(path: str) -> Dict[str, Any]:
	with open(path, "r", encoding="utf-8") as f:
		return json.load(f)


def main(argv: Optional[List[str]] = None) -> int:
	"""CLI entry point for the release manager."""
	import argparse

	parser = argparse.ArgumentParser(
		prog="release-manager",
		description="Release Manager - fold merged features into a pending release and publish releases",
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog="""
Examples:
  release-manager handle-event --event $GITHUB_EVENT_PATH
  release-manager handle-event --event event.json --repo acme/widgets --config release-manager.json --json
  release-manager show-config --config .github/release-manager.json
		"""
	)
	parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
	sub = parser.add_subparsers(dest="command", required=True)

	he = sub.add_parser("handle-event", help="Handle one pull_request event payload")
	he.add_argument("--event", default=os.getenv("GITHUB_EVENT_PATH"), help="Path to the event JSON (default: $GITHUB_EVENT_PATH)")
	he.add_argument("--repo", default=None, help="owner/repo (default: from payload or $GITHUB_REPOSITORY)")
	he.add_argument("--config", default=None, help="Local configuration file instead of the repository copy")
	he.add_argument("--json", action="store_true", help="Print the outcome as JSON")

	sc = sub.add_parser("show-config", help="Print the effective configuration")
	sc.add_argument("--config", default=None, help="Configuration file (default: built-in defaults)")

	args = parser.parse_args(argv)

	# Set up logging
	log_level = logging.DEBUG if args.verbose else logging.INFO
	logging.basicConfig(
		level=log_level,
		format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
	)

	# Suppress verbose logs from libraries unless in debug mode
	if not args.verbose:
		logging.getLogger("release_manager.utils.github_client").setLevel(logging.WARNING)
		logging.getLogger("release_manager.clients.openai_client").setLevel(logging.WARNING)
		logging.getLogger("urllib3").setLevel(logging.WARNING)
		logging.getLogger("botocore").setLevel(logging.WARNING)

	try:
		if args.command == "show-config":
			cfg = load_repo_config_file(args.config) if args.config else RepoConfig()
			print(json.dumps(cfg.model_dump(by_alias=True), indent=2))
			return 0

		if not args.event:
			print("Error: --event is required when GITHUB_EVENT_PATH is not set", file=sys.stderr)
			return 2
		try:
			payload = _read_payload(args.event)
		except (OSError, json.JSONDecodeError) as e:
			print(f"Error: cannot read event payload {args.event}: {e}", file=sys.stderr)
			return 2
		outcome = run_event(payload, repo_name=args.repo, config_path=args.config)
		if args.json:
			print(json.dumps(outcome.to_dict(), indent=2, default=str))
		else:
			route = outcome.route.value if outcome.route else "-"
			print(f"{route}: {outcome.status}{' - ' + outcome.detail if outcome.detail else ''}")
		return 1 if outcome.failed else 0

	except ConfigurationError as e:
		print(f"Error: {e}", file=sys.stderr)
		return 1

	except KeyboardInterrupt:
		print("\nOperation cancelled by user", file=sys.stderr)
		return 1


if __name__ == "__main__":
	sys.exit(main())
