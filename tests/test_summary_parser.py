from __future__ import annotations

from release_manager.utils.summary_parser import CategorizedSummary, parse_summary


def test_two_headings_with_bullets() -> None:
    text = "## New Features\n- Add SSO\n* Add audit log\n\n## Bugs / Improvements\n- Fix crash\n"
    s = parse_summary(text)
    assert s.features == ["Add SSO", "Add audit log"]
    assert s.fixes == ["Fix crash"]


def test_empty_heading_is_allowed() -> None:
    s = parse_summary("## New Features\n\n## Bugs / Improvements\n- Tidy logging\n")
    assert s.features == []
    assert s.fixes == ["Tidy logging"]


def test_headings_are_matched_leniently() -> None:
    text = "Here you go:\n**new features**\n- A\nBugs / Improvements:\n- B\n"
    s = parse_summary(text)
    assert s.features == ["A"]
    assert s.fixes == ["B"]


def test_bullets_under_unknown_markdown_heading_are_dropped() -> None:
    text = "## New Features\n- A\n## Notes\n- internal\n## Bugs / Improvements\n- B\n"
    s = parse_summary(text)
    assert s.features == ["A"]
    assert s.fixes == ["B"]


def test_custom_headers() -> None:
    s = parse_summary("## Added\n- x\n## Fixed\n- y\n", "Added", "Fixed")
    assert (s.features, s.fixes) == (["x"], ["y"])


def test_blank_input_gives_empty_summary() -> None:
    assert parse_summary("").is_empty()
    assert parse_summary(None).is_empty()


def test_render_keeps_both_headings() -> None:
    assert CategorizedSummary(["a"], []).render() == "## New Features\n- a\n\n## Bugs / Improvements"
