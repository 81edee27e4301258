"""GitHub issues producer — fetches issues and comments, renders markdown.

Uses the REST v3 API. Rate-limit responses (429, or 403 with an exhausted
``x-ratelimit-remaining``) wait until the advertised reset instead of
failing the source.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Iterator
from datetime import datetime
from typing import Any

import httpx

from docsync.errors import HTTPStatusError, NetworkError, RateLimitError

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
PER_PAGE = 100
MAX_RETRIES = 5
DEFAULT_DELAY = 5.0
MAX_WAIT = 3600.0


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _date_string(value: str) -> str:
    """``2025-03-04T10:00:00Z`` -> ``Tue Mar 04 2025``."""
    return _parse_timestamp(value).strftime("%a %b %d %Y")


def issue_to_markdown(issue: dict[str, Any], comments: list[dict[str, Any]]) -> str:
    """Render an issue and its comment thread as a markdown document."""
    labels = ", ".join(f"`{label['name']}`" for label in issue.get("labels") or []) or "None"
    author = (issue.get("user") or {}).get("login", "unknown")

    md = f"# Issue #{issue['number']}: {issue['title']}\n\n"
    md += f"- **Author:** {author}\n"
    md += f"- **State:** {issue['state']}\n"
    md += f"- **Created on:** {_date_string(issue['created_at'])}\n"
    md += f"- **Updated on:** {_date_string(issue['updated_at'])}\n"
    md += f"- **Labels:** {labels}\n\n"
    md += f"## Description\n\n{issue.get('body') or '_No description._'}\n\n## Comments\n\n"

    if not comments:
        md += "_No comments._\n"
    for c in comments:
        login = (c.get("user") or {}).get("login", "unknown")
        md += f"### {login} - {_date_string(c['created_at'])}\n\n{c.get('body') or ''}\n\n---\n\n"
    return md


class GitHubIssuesClient:
    """Iterate the issues of one repository as ``(url, markdown)`` pairs."""

    def __init__(
        self,
        repo: str,
        token: str | None = None,
        timeout: float = 30.0,
        max_retries: int = MAX_RETRIES,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if repo.count("/") != 1:
            raise ValueError(f"Expected 'owner/name' repository, got {repo!r}")
        self.repo = repo
        self.max_retries = max_retries
        self._sleep = sleep

        headers = {"Accept": "application/vnd.github.v3+json"}
        token = token or os.getenv("GITHUB_TOKEN")
        if token:
            headers["Authorization"] = f"token {token}"
        self._client = httpx.Client(
            base_url=GITHUB_API,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @property
    def issues_path(self) -> str:
        return f"/repos/{self.repo}/issues"

    def issue_url(self, number: int) -> str:
        return f"https://github.com/{self.repo}/issues/{number}"

    # ---- Public API ---------------------------------------------------

    def fetch_issues(self, since: str) -> list[dict[str, Any]]:
        """All issues updated at or after ``since`` (ISO-8601)."""
        since_ts = _parse_timestamp(since)
        issues: list[dict[str, Any]] = []
        page = 1
        while True:
            data = self._get(
                self.issues_path,
                params={"per_page": PER_PAGE, "page": page, "state": "all", "since": since},
            )
            if not data:
                break
            issues.extend(i for i in data if _parse_timestamp(i["updated_at"]) >= since_ts)
            if len(data) < PER_PAGE:
                break
            page += 1
        return issues

    def fetch_comments(self, number: int) -> list[dict[str, Any]]:
        comments: list[dict[str, Any]] = []
        page = 1
        while True:
            data = self._get(
                f"{self.issues_path}/{number}/comments",
                params={"per_page": PER_PAGE, "page": page},
            )
            comments.extend(data)
            if len(data) < PER_PAGE:
                break
            page += 1
        return comments

    def iter_issue_documents(self, since: str) -> Iterator[tuple[str, str]]:
        issues = self.fetch_issues(since)
        logger.info("Found %d updated/new issues in %s since %s", len(issues), self.repo, since)
        for idx, issue in enumerate(issues, start=1):
            logger.info("Processing issue %d/%d (#%s)", idx, len(issues), issue["number"])
            comments = self.fetch_comments(issue["number"])
            yield self.issue_url(issue["number"]), issue_to_markdown(issue, comments)

    def close(self) -> None:
        self._client.close()

    # ---- Private ------------------------------------------------------

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        for attempt in range(1, self.max_retries + 1):
            try:
                resp = self._client.get(path, params=params)
            except httpx.TransportError as exc:
                raise NetworkError(f"GitHub fetch failed for {path}: {exc}") from exc

            try:
                return self._check(resp)
            except RateLimitError as exc:
                wait = min(exc.retry_after if exc.retry_after is not None else DEFAULT_DELAY * 2, MAX_WAIT)
                logger.warning(
                    "GitHub rate limit exceeded (attempt %d/%d). Waiting %.0fs",
                    attempt, self.max_retries, wait,
                )
                self._sleep(wait)

        raise RateLimitError(f"GitHub rate limit: max retries reached for {path}")

    @staticmethod
    def _check(resp: httpx.Response) -> Any:
        if resp.status_code == 429 or (
            resp.status_code == 403 and resp.headers.get("x-ratelimit-remaining") == "0"
        ):
            raise RateLimitError("GitHub rate limit exceeded", retry_after=_retry_after(resp))
        if resp.status_code >= 400:
            logger.error("GitHub fetch failed: HTTP %d for %s", resp.status_code, resp.url)
            raise HTTPStatusError(resp.status_code, str(resp.url))
        return resp.json()


def _retry_after(resp: httpx.Response) -> float | None:
    retry_after = resp.headers.get("retry-after")
    if retry_after and retry_after.isdigit():
        return float(retry_after)
    reset = resp.headers.get("x-ratelimit-reset")
    if reset and reset.isdigit():
        return max(float(reset) - time.time(), 0.0)
    return None
