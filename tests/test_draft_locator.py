from __future__ import annotations

from conftest import FakeRepository
from release_manager.configs.repo_config import RepoConfig
from release_manager.utils.draft_locator import DraftLocator, render_draft_title
from release_manager.utils.section_document import parse
from release_manager.utils.versioning import BumpClass, Version


def _locator(repo, config=None, clock=None, owner="acme") -> DraftLocator:
    return DraftLocator(repo, config or RepoConfig(), owner=owner, clock=clock)


def test_prefers_draft_flagged_pull_regardless_of_order(fake_repo) -> None:
    fake_repo.add_pull("Manual sync", "staging", "main")
    flagged = fake_repo.add_pull("PATCH Release: v1.0.1: x", "staging", "main", draft=True)
    fake_repo.add_pull("Other", "feature/x", "main", draft=True)
    draft = _locator(fake_repo).find_draft()
    assert draft.number == flagged["number"]
    assert draft.is_draft
    assert fake_repo.list_pulls_calls[0]["head"] == "acme:staging"


def test_falls_back_to_first_open_pull_without_draft_flag(fake_repo) -> None:
    first = fake_repo.add_pull("Sync", "staging", "main")
    fake_repo.add_pull("Sync again", "staging", "main")
    assert _locator(fake_repo).find_draft().number == first["number"]


def test_retries_with_unqualified_head() -> None:
    repo = FakeRepository(qualified_head_lookup=False)
    pr = repo.add_pull("Draft", "staging", "main", draft=True)
    assert _locator(repo).find_draft().number == pr["number"]
    assert [c["head"] for c in repo.list_pulls_calls] == ["acme:staging", "staging"]


def test_absent_draft_and_closed_pulls(fake_repo) -> None:
    fake_repo.add_pull("Old", "staging", "main", draft=True, state="closed")
    fake_repo.add_pull("Wrong base", "staging", "develop", draft=True)
    assert _locator(fake_repo).find_draft() is None


def test_create_draft_for_next_patch(fake_repo, clock) -> None:
    draft = _locator(fake_repo, clock=clock).create_draft(Version(1, 4, 2))
    assert draft.title == "PATCH Release: v1.4.3: New features and improvements"
    assert draft.is_draft
    assert (draft.head_ref, draft.base_ref) == ("staging", "main")
    doc = parse(draft.body)
    assert doc.headers() == ["New Features", "Bugs / Improvements"]
    assert doc.get_section("New Features").bullets == []
    assert "*Last updated: 2024-05-01T12:00:00Z*" in draft.body


def test_initial_body_uses_configured_sections(fake_repo, clock) -> None:
    config = RepoConfig.model_validate({"pr": {"featuresSection": "Added", "fixesSection": "## Fixed"}})
    body = _locator(fake_repo, config, clock).initial_body(Version(0, 0, 1))
    assert parse(body).headers() == ["Added", "Fixed"]


def test_refresh_reads_current_body(fake_repo) -> None:
    pr = fake_repo.add_pull("Draft", "staging", "main", body="old", draft=True)
    fake_repo.pulls[pr["number"]]["body"] = "new"
    assert _locator(fake_repo).refresh_draft(pr["number"]).body == "new"


def test_render_draft_title_truncates_summary() -> None:
    title = render_draft_title(RepoConfig(), BumpClass.MINOR, Version(2, 1, 0), "y" * 80)
    assert title.startswith("MINOR Release: v2.1.0: ")
    assert title.endswith("...")
    assert render_draft_title(RepoConfig(), BumpClass.PATCH, Version(0, 0, 1), "").endswith(": New features and improvements")
