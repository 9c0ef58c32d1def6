from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import httpx

from trivy_pr_commenter.config import PUBLIC_API_URL
from trivy_pr_commenter.errors import CommenterError
from trivy_pr_commenter.github.diff import Hunk, parse_hunks, range_in_hunks
from trivy_pr_commenter.log import get_logger

logger = get_logger(__name__)

GITHUB_API_VERSION = "2022-11-28"
PER_PAGE = 100


class PostOutcome(str, Enum):
    WRITTEN = "written"
    ALREADY_WRITTEN = "already_written"
    NOT_IN_DIFF = "not_in_diff"
    FAILED = "failed"


@dataclass(frozen=True)
class PostResult:
    outcome: PostOutcome
    message: str = ""


class ReviewCommenter(Protocol):
    def write_multiline_comment(self, path: str, body: str, start_line: int, end_line: int) -> PostResult:
        ...


@dataclass(frozen=True)
class ExistingComment:
    path: str
    line: int | None
    body: str


def enterprise_api_url(api_url: str) -> str:
    """Map `GITHUB_API_URL` of a GitHub Enterprise Server to its REST base URL."""
    try:
        url = httpx.URL(api_url)
    except httpx.InvalidURL as exc:
        raise CommenterError(f"invalid GITHUB_API_URL {api_url!r}: {exc}") from exc
    if not url.scheme or not url.host:
        raise CommenterError(f"invalid GITHUB_API_URL {api_url!r}")
    return f"{url.scheme}://{url.host}/api/v3"


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.text.strip()


class GitHubCommenter:
    """Post multi-line review comments on one pull request.

    The pull request's head commit, its changed files and the review comments
    already on it are loaded once by `load()`; comments are then only posted
    when the line range sits inside a hunk of the pull request diff and an
    identical comment is not already there.
    """

    def __init__(self, client: httpx.Client, owner: str, repo: str, pr_number: int) -> None:
        self._client = client
        self._owner = owner
        self._repo = repo
        self._pr_number = pr_number
        self._head_sha: str | None = None
        self._hunks: dict[str, list[Hunk]] = {}
        self._existing: list[ExistingComment] = []

    @classmethod
    def connect(
        cls,
        token: str,
        owner: str,
        repo: str,
        pr_number: int,
        api_url: str = PUBLIC_API_URL,
        *,
        timeout_s: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> "GitHubCommenter":
        if not api_url or api_url.rstrip("/") == PUBLIC_API_URL:
            base_url = PUBLIC_API_URL
        else:
            base_url = enterprise_api_url(api_url)
            logger.info("Using GitHub Enterprise API at %s", base_url)

        client = httpx.Client(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
            },
            timeout=timeout_s,
            transport=transport,
        )
        commenter = cls(client, owner, repo, pr_number)
        try:
            commenter.load()
        except CommenterError:
            client.close()
            raise
        return commenter

    @property
    def _pr_path(self) -> str:
        return f"/repos/{self._owner}/{self._repo}/pulls/{self._pr_number}"

    def _get(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        try:
            response = self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise CommenterError(f"could not connect to GitHub ({exc})") from exc
        if response.status_code >= 400:
            raise CommenterError(
                f"GitHub returned HTTP {response.status_code} for {response.request.url}: {_error_message(response)}"
            )
        return response

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise CommenterError(f"GitHub returned a non-JSON body for {response.request.url}: {exc}") from exc

    def _paginate(self, url: str) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        next_url: str | None = url
        params: dict[str, Any] | None = {"per_page": PER_PAGE}
        while next_url:
            response = self._get(next_url, params=params)
            page = self._json(response)
            if not isinstance(page, list):
                raise CommenterError(f"unexpected response from {response.request.url}: expected a list")
            items.extend(item for item in page if isinstance(item, dict))
            # The `next` link already carries the query string.
            next_url = response.links.get("next", {}).get("url")
            params = None
        return items

    def load(self) -> None:
        pull = self._json(self._get(self._pr_path))
        if not isinstance(pull, dict):
            raise CommenterError(f"unexpected response for pull request #{self._pr_number}: expected an object")
        head = pull.get("head")
        self._head_sha = head.get("sha") if isinstance(head, dict) else None
        if not self._head_sha:
            raise CommenterError(f"pull request #{self._pr_number} has no head commit")

        self._hunks = {}
        for changed in self._paginate(f"{self._pr_path}/files"):
            filename = changed.get("filename")
            if not filename:
                continue
            self._hunks[filename] = parse_hunks(changed.get("patch"))

        self._existing = [
            ExistingComment(
                path=comment.get("path") or "",
                line=comment.get("line") or comment.get("original_line"),
                body=comment.get("body") or "",
            )
            for comment in self._paginate(f"{self._pr_path}/comments")
        ]
        logger.debug(
            "Loaded %d changed files and %d existing review comments for PR #%d",
            len(self._hunks),
            len(self._existing),
            self._pr_number,
        )

    def _already_written(self, path: str, body: str, end_line: int) -> bool:
        return any(
            c.path == path and c.line == end_line and c.body.strip() == body.strip()
            for c in self._existing
        )

    def write_multiline_comment(self, path: str, body: str, start_line: int, end_line: int) -> PostResult:
        hunks = self._hunks.get(path)
        if hunks is None:
            return PostResult(PostOutcome.NOT_IN_DIFF, f"{path} is not part of the pull request")
        if not range_in_hunks(hunks, start_line, end_line):
            return PostResult(
                PostOutcome.NOT_IN_DIFF,
                f"{path}:{start_line}-{end_line} is not part of the pull request diff",
            )
        if self._already_written(path, body, end_line):
            return PostResult(PostOutcome.ALREADY_WRITTEN, f"comment already written on {path}:{end_line}")

        payload: dict[str, Any] = {
            "body": body,
            "commit_id": self._head_sha,
            "path": path,
            "side": "RIGHT",
            "line": end_line,
        }
        if start_line < end_line:
            payload["start_line"] = start_line
            payload["start_side"] = "RIGHT"

        try:
            response = self._client.post(f"{self._pr_path}/comments", json=payload)
        except httpx.HTTPError as exc:
            return PostResult(PostOutcome.FAILED, f"failed to comment on {path}:{start_line}-{end_line}: {exc}")
        if response.status_code >= 400:
            return PostResult(
                PostOutcome.FAILED,
                f"failed to comment on {path}:{start_line}-{end_line}: "
                f"HTTP {response.status_code} {_error_message(response)}",
            )

        self._existing.append(ExistingComment(path=path, line=end_line, body=body))
        return PostResult(PostOutcome.WRITTEN)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GitHubCommenter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
