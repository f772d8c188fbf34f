from __future__ import annotations

import base64
from unittest.mock import MagicMock

import pytest
import requests

from release_manager.configs.config import Config
from release_manager.utils.errors import ConfigurationError, NotFoundError, RemoteOperationError
from release_manager.utils.github_client import DIFF_MEDIA_TYPE, GithubClient


def _response(status=200, data=None, text="", headers=None):
    r = MagicMock()
    r.status_code = status
    r.json.return_value = data
    r.text = text
    r.headers = headers or {}
    return r


def _client(*responses):
    session = MagicMock()
    session.headers = {}
    session.request.side_effect = list(responses)
    return GithubClient("acme", "widgets", token="t0k", timeout_s=5, base_url="https://api.example.com/", session=session), session


def test_requires_token(monkeypatch) -> None:
    monkeypatch.setattr(Config, "GITHUB_TOKEN", None)
    with pytest.raises(ConfigurationError) as exc:
        GithubClient("acme", "widgets", session=MagicMock())
    assert exc.value.code == "AUTH"


def test_from_full_name_rejects_bad_names() -> None:
    with pytest.raises(ConfigurationError):
        GithubClient.from_full_name("widgets", token="t")


def test_auth_header_and_url() -> None:
    client, session = _client(_response(data={"number": 3}))
    assert client.get_pull(3) == {"number": 3}
    assert session.headers["Authorization"] == "token t0k"
    method, url = session.request.call_args.args
    assert (method, url) == ("GET", "https://api.example.com/repos/acme/widgets/pulls/3")
    assert session.request.call_args.kwargs["timeout"] == 5


def test_list_pulls_paginates_and_passes_filters() -> None:
    first = [{"number": i} for i in range(100)]
    client, session = _client(_response(data=first), _response(data=[{"number": 100}]))
    pulls = client.list_pulls(head="acme:staging", base="main")
    assert len(pulls) == 101
    params = session.request.call_args_list[1].kwargs["params"]
    assert params == {"state": "open", "head": "acme:staging", "base": "main", "page": 2, "per_page": 100}


def test_diff_uses_diff_media_type() -> None:
    client, session = _client(_response(text="diff --git a/x b/x"))
    assert client.get_pull_diff(9) == "diff --git a/x b/x"
    assert session.request.call_args.kwargs["headers"] == {"Accept": DIFF_MEDIA_TYPE}


@pytest.mark.parametrize(
    "status,headers,code",
    [
        (401, {}, "UNAUTHORIZED"),
        (403, {"X-RateLimit-Remaining": "0"}, "RATE_LIMIT"),
        (422, {}, "VALIDATION"),
        (429, {}, "RATE_LIMIT"),
        (502, {}, "NETWORK"),
        (418, {}, "UNKNOWN"),
    ],
)
def test_status_mapping(status, headers, code) -> None:
    client, _ = _client(_response(status=status, data={"message": "nope"}, headers=headers))
    with pytest.raises(RemoteOperationError) as exc:
        client.create_issue_comment(1, "hi")
    assert exc.value.code == code


def test_not_found() -> None:
    client, _ = _client(_response(status=404))
    with pytest.raises(NotFoundError):
        client.get_release_by_tag("v9.9.9")


def test_transport_errors() -> None:
    client, _ = _client(requests.Timeout("slow"), requests.ConnectionError("down"))
    with pytest.raises(RemoteOperationError) as exc:
        client.get_latest_release()
    assert exc.value.code == "TIMEOUT"
    with pytest.raises(RemoteOperationError) as exc:
        client.get_latest_release()
    assert exc.value.code == "NETWORK"


def test_file_entry_round_trip() -> None:
    encoded = base64.b64encode("# Changelog\n".encode()).decode()
    client, session = _client(
        _response(data={"type": "file", "encoding": "base64", "content": encoded, "sha": "abc"}),
        _response(status=201, data={"content": {"path": "CHANGELOG.md"}}),
    )
    assert client.get_file_entry("CHANGELOG.md", ref="main") == {"content": "# Changelog\n", "sha": "abc"}
    client.put_file("CHANGELOG.md", "new", "docs: update", branch="main", sha="abc")
    payload = session.request.call_args.kwargs["json"]
    assert payload["sha"] == "abc"
    assert payload["branch"] == "main"
    assert base64.b64decode(payload["content"]).decode() == "new"


def test_create_release_payload() -> None:
    client, session = _client(_response(status=201, data={"tag_name": "v1.0.0"}))
    client.create_release("v1.0.0", "", "notes", target_commitish="main", prerelease=True)
    payload = session.request.call_args.kwargs["json"]
    assert payload == {
        "tag_name": "v1.0.0",
        "name": "v1.0.0",
        "body": "notes",
        "draft": False,
        "prerelease": True,
        "target_commitish": "main",
    }
