#!/usr/bin/env python3
"""GitHub REST client bound to one repository.

Implements the repository capability set the release engine consumes: pulls,
commits, diffs, comments, tags, releases and file contents. Idempotent GETs
are retried on transient statuses through the urllib3 Retry adapter; writes
are attempted once.

A 404 surfaces as `NotFoundError`, anything else unexpected as
`RemoteOperationError` carrying a `.code` (UNAUTHORIZED, RATE_LIMIT, NETWORK,
TIMEOUT, VALIDATION, UNKNOWN).
"""

import base64
import logging
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from release_manager.configs.config import Config
from release_manager.utils.errors import ConfigurationError, NotFoundError, RemoteOperationError

# Set up logging
logger = logging.getLogger(__name__)

DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"


class GithubClient:
    """Repository-scoped GitHub REST client."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: Optional[str] = None,
        timeout_s: Optional[int] = None,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            owner: Repository owner (user or organization)
            repo: Repository name
            token: GitHub token (defaults to Config.GITHUB_TOKEN)
            timeout_s: Request timeout in seconds (defaults to Config.HTTP_TIMEOUT_S)
            base_url: API root, e.g. for GitHub Enterprise (defaults to Config.GITHUB_API_URL)

        Raises:
            ConfigurationError: If no token is available
        """
        github_config = Config.get_github_config()
        self.owner = owner
        self.repo = repo
        self.token = token or github_config["token"]
        self.timeout_s = timeout_s or github_config["timeout_s"]
        self.base_url = (base_url or github_config["base_url"]).rstrip("/")

        if not self.token:
            raise ConfigurationError("GitHub token is required (GITHUB_TOKEN or GITHUB_PAT env var)", code="AUTH")

        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': f'token {self.token}',
            'Accept': 'application/vnd.github+json',
            'User-Agent': Config.USER_AGENT,
        })

        # Configure retries for transient failures on reads only
        retry_strategy = Retry(
            total=3,
            status_forcelist=[429, 500, 502, 503, 504],
            backoff_factor=1,
            allowed_methods=["HEAD", "GET", "OPTIONS"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

        logger.debug(f"GitHub client initialized for {self.full_name}")

    @classmethod
    def from_full_name(cls, full_name: str, **kw) -> "GithubClient":
        owner, sep, repo = (full_name or "").partition("/")
        if not sep or not owner or not repo:
            raise ConfigurationError(f"Repository must be 'owner/repo', got '{full_name}'")
        return cls(owner, repo, **kw)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def _url(self, path: str) -> str:
        return f"{self.base_url}/repos/{self.owner}/{self.repo}{path}"

    # -------- HTTP helper --------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
        accept: Optional[str] = None,
        what: str = "resource",
    ) -> requests.Response:
        headers = {"Accept": accept} if accept else None
        try:
            r = self.session.request(
                method,
                self._url(path),
                params=params,
                json=payload,
                headers=headers,
                timeout=self.timeout_s,
            )
        except requests.Timeout as e:
            raise RemoteOperationError(f"Timed out on {method} {path}: {e}", code="TIMEOUT") from e
        except requests.RequestException as e:
            raise RemoteOperationError(f"Failed {method} {path}: {e}", code="NETWORK") from e

        sc = r.status_code
        if sc in (200, 201):
            return r
        if sc == 404:
            raise NotFoundError(f"{what} not found in {self.full_name} ({method} {path})")
        if sc in (401, 403):
            if sc == 403 and r.headers.get("X-RateLimit-Remaining") == "0":
                raise RemoteOperationError("GitHub API rate limit exhausted", code="RATE_LIMIT")
            raise RemoteOperationError("Invalid GitHub token or insufficient permissions", code="UNAUTHORIZED")
        if sc == 422:
            raise RemoteOperationError(f"GitHub rejected {method} {path}: {_error_message(r)}", code="VALIDATION")
        if sc == 429:
            raise RemoteOperationError("GitHub API rate limited", code="RATE_LIMIT")
        if sc >= 500:
            raise RemoteOperationError(f"GitHub server error: HTTP {sc}", code="NETWORK")
        raise RemoteOperationError(f"GitHub API error: HTTP {sc}")

    def _json(self, method: str, path: str, **kw) -> Any:
        r = self._request(method, path, **kw)
        try:
            return r.json()
        except ValueError as e:
            raise RemoteOperationError(f"Non-JSON response from {method} {path}", code="UNKNOWN") from e

    def _paginate(self, path: str, params: Optional[Dict[str, Any]] = None, *, what: str, max_pages: int = 50) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page = 1
        while page <= max_pages:
            query = dict(params or {})
            query.update({"page": page, "per_page": 100})
            batch = self._json("GET", path, params=query, what=what)
            if not batch:
                break
            items.extend(batch)
            if len(batch) < 100:
                break
            page += 1
        else:
            logger.warning(f"{what} listing for {self.full_name} truncated after {max_pages} pages")
        return items

    # -------- Pull requests --------
    def list_pulls(self, state: str = "open", head: Optional[str] = None, base: Optional[str] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"state": state}
        if head:
            params["head"] = head
        if base:
            params["base"] = base
        logger.debug(f"Listing pulls in {self.full_name}: {params}")
        return self._paginate("/pulls", params, what="pulls")

    def get_pull(self, number: int) -> Dict[str, Any]:
        return self._json("GET", f"/pulls/{number}", what=f"pull request #{number}")

    def create_pull(self, title: str, head: str, base: str, body: str, draft: bool = True) -> Dict[str, Any]:
        logger.info(f"Creating pull request {head} -> {base} in {self.full_name}")
        payload = {"title": title, "head": head, "base": base, "body": body, "draft": draft}
        return self._json("POST", "/pulls", payload=payload, what="pull request")

    def update_pull(self, number: int, title: Optional[str] = None, body: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if title is not None:
            payload["title"] = title
        if body is not None:
            payload["body"] = body
        logger.info(f"Updating pull request #{number} in {self.full_name}")
        return self._json("PATCH", f"/pulls/{number}", payload=payload, what=f"pull request #{number}")

    def list_commits(self, number: int) -> List[Dict[str, Any]]:
        return self._paginate(f"/pulls/{number}/commits", what=f"commits of #{number}")

    def get_pull_diff(self, number: int) -> str:
        r = self._request("GET", f"/pulls/{number}", accept=DIFF_MEDIA_TYPE, what=f"diff of #{number}")
        return r.text

    def create_issue_comment(self, number: int, body: str) -> Dict[str, Any]:
        return self._json("POST", f"/issues/{number}/comments", payload={"body": body}, what=f"issue #{number}")

    # -------- Tags and releases --------
    def get_latest_release(self) -> Dict[str, Any]:
        return self._json("GET", "/releases/latest", what="latest release")

    def list_tags(self, per_page: int = 1) -> List[Dict[str, Any]]:
        return self._json("GET", "/tags", params={"per_page": per_page}, what="tags")

    def get_release_by_tag(self, tag: str) -> Dict[str, Any]:
        return self._json("GET", f"/releases/tags/{tag}", what=f"release {tag}")

    def create_release(
        self,
        tag: str,
        name: str,
        body: str,
        target_commitish: Optional[str] = None,
        draft: bool = False,
        prerelease: bool = False,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "tag_name": tag,
            "name": name or tag,
            "body": body,
            "draft": draft,
            "prerelease": prerelease,
        }
        if target_commitish:
            payload["target_commitish"] = target_commitish
        logger.info(f"Creating release {tag} in {self.full_name}")
        return self._json("POST", "/releases", payload=payload, what="release")

    # -------- Contents --------
    def get_file_entry(self, path: str, ref: Optional[str] = None) -> Dict[str, Any]:
        """Return `{"content": <decoded text>, "sha": <blob sha>}` for a file."""
        params = {"ref": ref} if ref else None
        data = self._json("GET", f"/contents/{path}", params=params, what=f"file {path}")
        if not isinstance(data, dict) or data.get("type", "file") != "file":
            raise RemoteOperationError(f"{path} is not a regular file", code="VALIDATION")
        raw = data.get("content") or ""
        try:
            text = base64.b64decode(raw).decode("utf-8") if data.get("encoding", "base64") == "base64" else raw
        except (ValueError, UnicodeDecodeError) as e:
            raise RemoteOperationError(f"Could not decode {path}: {e}", code="UNKNOWN") from e
        return {"content": text, "sha": data.get("sha")}

    def get_file(self, path: str, ref: Optional[str] = None) -> str:
        return self.get_file_entry(path, ref=ref)["content"]

    def put_file(self, path: str, content: str, message: str, branch: Optional[str] = None, sha: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if branch:
            payload["branch"] = branch
        if sha:
            payload["sha"] = sha
        logger.info(f"Writing {path} on {branch or 'default branch'} in {self.full_name}")
        return self._json("PUT", f"/contents/{path}", payload=payload, what=f"file {path}")

    def close(self) -> None:
        if self.session:
            self.session.close()


def _error_message(r: requests.Response) -> str:
    try:
        data = r.json()
    except ValueError:
        return r.text[:200]
    msg = data.get("message", "") if isinstance(data, dict) else ""
    errors = data.get("errors") if isinstance(data, dict) else None
    if errors:
        msg = f"{msg} {errors}"
    return msg[:300]


__all__ = ["GithubClient"]
