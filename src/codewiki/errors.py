"""Exception hierarchy for the article store.

Pipeline errors (LoadError, ResolveError, GraphError) abort an in-progress
rebuild and leave the published snapshot untouched. When raised from
ArticleStore.rebuild they carry the failed RebuildReport as ``exc.report``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from codewiki.models import LoadIssue


class WikiError(Exception):
    """Base class for all codewiki errors."""

    report: Any = None


class LoadError(WikiError):
    """Sources could not be turned into an unambiguous article set."""

    def __init__(
        self,
        message: str,
        *,
        duplicates: dict[str, list[str]] | None = None,
        issues: list[LoadIssue] | None = None,
    ) -> None:
        super().__init__(message)
        self.duplicates = duplicates or {}   # slug -> source ids claiming it
        self.issues = list(issues or [])


class ResolveError(WikiError):
    """Fatal resolver fault. Unknown link targets are not errors."""


class GraphError(WikiError):
    """The parent relation contains a cycle."""

    def __init__(self, message: str, *, cycle: list[str] | None = None) -> None:
        super().__init__(message)
        self.cycle = list(cycle or [])


class NotFoundError(WikiError, KeyError):
    """Slug is absent from the current snapshot."""

    def __init__(self, slug: str) -> None:
        super().__init__(slug)
        self.slug = slug

    def __str__(self) -> str:
        return f"Article not found: {self.slug}"


class ConfigError(WikiError, ValueError):
    """Invalid configuration or query parameters."""


class BusyError(WikiError):
    """A rebuild is already in progress."""
