from __future__ import annotations

from datetime import date

from release_manager.configs.repo_config import RepoConfig
from release_manager.utils.changelog import ChangelogUpdater, prepend_entry

BODY = """# Pending Release

## New Features
<!-- placeholder -->
- Users can log in with SSO

## Bugs / Improvements
<!-- placeholder -->

---
*Last updated: 2024-05-01T12:00:00Z*
"""

RELEASED = date(2024, 5, 1)


def _updater(repo) -> ChangelogUpdater:
    return ChangelogUpdater(repo, RepoConfig.model_validate({"changelog": {"enabled": True}}))


def test_render_entry_uses_tag_and_only_present_categories(fake_repo) -> None:
    entry = _updater(fake_repo).render_entry("v1.2.0", RELEASED, BODY)
    assert entry == "## v1.2.0 (2024-05-01)\n\n### New Features\n- Users can log in with SSO\n\n"


def test_render_entry_without_bullets(fake_repo) -> None:
    entry = _updater(fake_repo).render_entry("v1.2.1", RELEASED, "")
    assert "- No notable changes" in entry


def test_prepend_entry() -> None:
    assert prepend_entry("", "E\n", "# Changelog\n\n") == "# Changelog\n\nE\n"
    assert prepend_entry("# Changelog\n\nOLD\n", "E\n", "# Changelog\n\n") == "# Changelog\n\nE\nOLD\n"
    assert prepend_entry("OLD\n", "E\n", "# Changelog\n\n") == "E\nOLD\n"


def test_update_creates_file_on_release_branch(fake_repo) -> None:
    assert _updater(fake_repo).update("v1.2.0", RELEASED, BODY)
    put = fake_repo.puts[0]
    assert put["path"] == "CHANGELOG.md"
    assert put["branch"] == "main"
    assert put["sha"] is None
    assert put["content"].startswith("# Changelog\n\n## v1.2.0 (2024-05-01)")


def test_update_passes_sha_and_skips_existing_entry(fake_repo) -> None:
    fake_repo.files["CHANGELOG.md"] = {"content": "# Changelog\n\n## v1.1.0 (2024-04-01)\n\n- old\n", "sha": "abc"}
    updater = _updater(fake_repo)
    assert updater.update("v1.2.0", RELEASED, BODY)
    assert fake_repo.puts[0]["sha"] == "abc"
    content = fake_repo.files["CHANGELOG.md"]["content"]
    assert content.index("## v1.2.0") < content.index("## v1.1.0")
    assert not updater.update("v1.2.0", RELEASED, BODY)
    assert len(fake_repo.puts) == 1
