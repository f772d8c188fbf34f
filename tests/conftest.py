from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from release_manager.configs.config import Config
from release_manager.configs.repo_config import RepoConfig
from release_manager.utils.classification import ClassificationAdapter
from release_manager.utils.context import ReleaseContext, event_logger
from release_manager.utils.errors import NotFoundError
from release_manager.utils.event_models import MergeEvent

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeRepository:
    """In-memory stand-in for GithubClient."""

    def __init__(self, owner: str = "acme", name: str = "widgets", *, latest_release: Optional[str] = None,
                 tags: Optional[List[str]] = None, qualified_head_lookup: bool = True):
        self.owner = owner
        self.name = name
        self.latest_release = latest_release
        self.tags = list(tags or [])
        self.qualified_head_lookup = qualified_head_lookup
        self.pulls: Dict[int, Dict[str, Any]] = {}
        self.next_number = 100
        self.commits: Dict[int, List[Dict[str, Any]]] = {}
        self.diffs: Dict[int, str] = {}
        self.comments: List[Tuple[int, str]] = []
        self.releases: Dict[str, Dict[str, Any]] = {}
        self.files: Dict[str, Dict[str, Any]] = {}
        self.updates: List[Tuple[int, Optional[str], Optional[str]]] = []
        self.list_pulls_calls: List[Dict[str, Any]] = []
        self.puts: List[Dict[str, Any]] = []
        self.before_get_pull: Optional[Callable[[int], None]] = None

    # -------- helpers for tests --------
    def add_pull(self, title: str, head: str, base: str, body: str = "", *, draft: bool = False, state: str = "open") -> Dict[str, Any]:
        number = self.next_number
        self.next_number += 1
        pr = {
            "number": number,
            "title": title,
            "body": body,
            "draft": draft,
            "state": state,
            "head": {"ref": head},
            "base": {"ref": base},
            "html_url": f"https://github.com/{self.owner}/{self.name}/pull/{number}",
        }
        self.pulls[number] = pr
        return copy.deepcopy(pr)

    # -------- capability set --------
    def list_pulls(self, state: str = "open", head: Optional[str] = None, base: Optional[str] = None):
        self.list_pulls_calls.append({"state": state, "head": head, "base": base})
        if head and ":" in head:
            if not self.qualified_head_lookup:
                return []
            owner, _, head = head.partition(":")
            if owner != self.owner:
                return []
        out = []
        for pr in self.pulls.values():
            if pr["state"] != state:
                continue
            if head and pr["head"]["ref"] != head:
                continue
            if base and pr["base"]["ref"] != base:
                continue
            out.append(copy.deepcopy(pr))
        return out

    def get_pull(self, number: int):
        if self.before_get_pull is not None:
            hook, self.before_get_pull = self.before_get_pull, None
            hook(number)
        if number not in self.pulls:
            raise NotFoundError(f"pull request #{number} not found")
        return copy.deepcopy(self.pulls[number])

    def create_pull(self, title: str, head: str, base: str, body: str, draft: bool = True):
        return self.add_pull(title, head, base, body, draft=draft)

    def update_pull(self, number: int, title: Optional[str] = None, body: Optional[str] = None):
        if number not in self.pulls:
            raise NotFoundError(f"pull request #{number} not found")
        self.updates.append((number, title, body))
        if title is not None:
            self.pulls[number]["title"] = title
        if body is not None:
            self.pulls[number]["body"] = body
        return copy.deepcopy(self.pulls[number])

    def list_commits(self, number: int):
        return copy.deepcopy(self.commits.get(number, []))

    def get_pull_diff(self, number: int) -> str:
        return self.diffs.get(number, "")

    def create_issue_comment(self, number: int, body: str):
        self.comments.append((number, body))
        return {"id": len(self.comments), "html_url": f"https://github.com/{self.owner}/{self.name}/pull/{number}#c{len(self.comments)}"}

    def get_latest_release(self):
        if not self.latest_release:
            raise NotFoundError("no releases")
        return {"tag_name": self.latest_release}

    def list_tags(self, per_page: int = 1):
        return [{"name": t} for t in self.tags[:per_page]]

    def get_release_by_tag(self, tag: str):
        if tag not in self.releases:
            raise NotFoundError(f"release {tag} not found")
        return copy.deepcopy(self.releases[tag])

    def create_release(self, tag: str, name: str, body: str, target_commitish: Optional[str] = None,
                       draft: bool = False, prerelease: bool = False):
        rel = {
            "id": len(self.releases) + 1,
            "tag_name": tag,
            "name": name,
            "body": body,
            "target_commitish": target_commitish,
            "draft": draft,
            "prerelease": prerelease,
            "html_url": f"https://github.com/{self.owner}/{self.name}/releases/tag/{tag}",
        }
        self.releases[tag] = rel
        return copy.deepcopy(rel)

    def get_file_entry(self, path: str, ref: Optional[str] = None):
        if path not in self.files:
            raise NotFoundError(f"file {path} not found")
        return dict(self.files[path])

    def get_file(self, path: str, ref: Optional[str] = None) -> str:
        return self.get_file_entry(path, ref)["content"]

    def put_file(self, path: str, content: str, message: str, branch: Optional[str] = None, sha: Optional[str] = None):
        self.puts.append({"path": path, "content": content, "message": message, "branch": branch, "sha": sha})
        self.files[path] = {"content": content, "sha": f"sha-{len(self.puts)}"}
        return {"content": {"path": path}}


class FakeLLM:
    """Answers by prompt kind: `classify`, `bump` or `notes`.

    A value may be a string, or an exception instance to raise.
    """

    def __init__(self, classify: Any = "", bump: Any = "", notes: Any = ""):
        self.answers = {"classify": classify, "bump": bump, "notes": notes}
        self.calls: List[Tuple[str, str, str]] = []

    @staticmethod
    def kind(user_content: str) -> str:
        if "Decide the semantic version increment" in user_content:
            return "bump"
        if "Write release notes" in user_content:
            return "notes"
        return "classify"

    def complete(self, system_prompt: str, user_content: str) -> str:
        kind = self.kind(user_content)
        self.calls.append((kind, system_prompt, user_content))
        answer = self.answers[kind]
        if isinstance(answer, Exception):
            raise answer
        return answer


CATEGORIZED = """## New Features
- Users can log in with SSO

## Bugs / Improvements
- Fixed session timeout handling
"""


@pytest.fixture(autouse=True)
def _no_metrics(monkeypatch):
    monkeypatch.setattr(Config, "METRICS_ENABLED", False)


@pytest.fixture
def fake_repo() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def repo_config() -> RepoConfig:
    return RepoConfig()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def make_event():
    def _make(number: int = 7, *, base: str = "staging", head: str = "feature/login", title: str = "Add SSO login",
              body: str = "Adds SSO.", merged: bool = True, author: str = "alice", repository: str = "acme/widgets") -> MergeEvent:
        return MergeEvent.from_payload({
            "pull_request": {
                "number": number,
                "merged": merged,
                "base": {"ref": base},
                "head": {"ref": head},
                "title": title,
                "body": body,
                "user": {"login": author},
                "html_url": f"https://github.com/{repository}/pull/{number}",
            },
            "repository": {"full_name": repository},
        })
    return _make


@pytest.fixture
def make_context(fake_repo, repo_config, clock):
    def _make(llm: Optional[FakeLLM] = None, *, config: Optional[RepoConfig] = None, repo: Optional[FakeRepository] = None) -> ReleaseContext:
        cfg = config or repo_config
        r = repo or fake_repo
        log = event_logger("tests", "acme/widgets", 7)
        classifier = ClassificationAdapter.from_config(cfg, client=llm or FakeLLM(), logger=log)
        return ReleaseContext(config=cfg, logger=log, repo=r, classifier=classifier, clock=clock, repo_name="acme/widgets")
    return _make
