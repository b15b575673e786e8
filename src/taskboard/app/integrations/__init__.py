"""Clients for services the board talks to over the network."""

from __future__ import annotations

from .github import CommitLookup, CommitRecord, GitHubCommitClient, parse_repository_ref

__all__ = ["CommitLookup", "CommitRecord", "GitHubCommitClient", "parse_repository_ref"]
