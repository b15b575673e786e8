"""Commit lookup against the GitHub REST API."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from ..core.config import Settings
from ..errors import InvalidInputError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

_REPOSITORY_REF = re.compile(r"^(?P<owner>[A-Za-z0-9_.-]+)/(?P<repo>[A-Za-z0-9_.-]+)$")


@dataclass(frozen=True, slots=True)
class CommitRecord:
    """A commit as far as reconciliation cares: its id and message."""

    id: str
    message: str


class CommitLookup(Protocol):
    async def fetch_commits(self, repo_ref: str) -> list[CommitRecord]:  # pragma: no cover - interface definition
        """Return the repository's recent commits, newest first."""


def parse_repository_ref(repo_ref: str) -> tuple[str, str]:
    """Split ``owner/repo`` into its parts, rejecting anything else."""

    candidate = (repo_ref or "").strip()
    if candidate.endswith(".git"):
        candidate = candidate[: -len(".git")]
    match = _REPOSITORY_REF.match(candidate)
    if match is None:
        raise InvalidInputError(
            "Repository must be given as owner/repo.",
            details={"github_repo": repo_ref},
        )
    return match.group("owner"), match.group("repo")


def _parse_commits(payload: Any) -> list[CommitRecord]:
    if not isinstance(payload, list):
        raise ValueError("expected a JSON array of commits")
    records: list[CommitRecord] = []
    for item in payload:
        sha = item["sha"]
        message = item["commit"]["message"]
        if not isinstance(sha, str) or not isinstance(message, str):
            raise ValueError("commit sha and message must be strings")
        records.append(CommitRecord(id=sha, message=message))
    return records


class GitHubCommitClient:
    """Fetch commit history for ``owner/repo`` references."""

    def __init__(self, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._settings.github_token:
            headers["Authorization"] = f"Bearer {self._settings.github_token}"
        return headers

    async def fetch_commits(self, repo_ref: str) -> list[CommitRecord]:
        owner, repo = parse_repository_ref(repo_ref)
        url = f"{self._settings.github_api_url}/repos/{owner}/{repo}/commits"
        params = {"per_page": self._settings.github_commits_per_page}
        try:
            async with httpx.AsyncClient(
                headers=self._headers(),
                timeout=self._settings.github_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                commits = _parse_commits(response.json())
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Commit lookup rejected",
                extra={"repository": f"{owner}/{repo}", "status_code": exc.response.status_code},
            )
            raise UpstreamUnavailableError(
                "The commit host rejected the request.",
                details={"repository": f"{owner}/{repo}", "status_code": exc.response.status_code},
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "Commit lookup failed",
                extra={"repository": f"{owner}/{repo}", "error": exc.__class__.__name__},
            )
            raise UpstreamUnavailableError(
                "The commit host could not be reached.",
                details={"repository": f"{owner}/{repo}"},
            ) from exc
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Commit lookup returned an unexpected payload", extra={"repository": f"{owner}/{repo}"})
            raise UpstreamUnavailableError(
                "The commit host returned an unexpected response.",
                details={"repository": f"{owner}/{repo}"},
            ) from exc

        logger.info("Fetched commits", extra={"repository": f"{owner}/{repo}", "count": len(commits)})
        return commits


__all__ = ["CommitLookup", "CommitRecord", "GitHubCommitClient", "parse_repository_ref"]
