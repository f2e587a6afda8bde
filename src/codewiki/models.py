"""Data models for the article store."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# URL-safe slug: lowercase alphanumerics separated by single hyphens
SLUG_RE = re.compile(r"^[a-z0-9](?:[a-z0-9\-]*[a-z0-9])?$")

_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")
_EXTENSIONS = (".md", ".markdown", ".txt", ".rst")


def slugify(value: str) -> str:
    """Derive a slug from a source id or link target.

    'guides/Getting Started.md' -> 'guides-getting-started'
    """
    text = value.strip()
    lower = text.lower()
    for ext in _EXTENSIONS:
        if lower.endswith(ext):
            text = text[: -len(ext)]
            break
    return _NON_SLUG_RE.sub("-", text.lower()).strip("-")


def is_valid_slug(slug: str) -> bool:
    return bool(SLUG_RE.match(slug))


@dataclass(frozen=True)
class RawSource:
    """Unparsed article text handed in by a content provider."""

    id: str
    text: str
    modified: datetime | None = None


@dataclass(frozen=True)
class LoadIssue:
    """A source that failed to parse. Non-fatal for the batch."""

    source_id: str
    message: str

    def __str__(self) -> str:
        return f"{self.source_id}: {self.message}"


@dataclass(frozen=True)
class Article:
    """A parsed article. Immutable once loaded into a snapshot."""

    slug: str
    title: str
    body: str
    tags: frozenset[str] = frozenset()
    modified: datetime | None = None
    source_id: str = ""
    parent: str | None = None          # declared parent slug (front-matter)
    see_also: tuple[str, ...] = ()
    order: int | None = None           # explicit ordering hint among siblings
    root: bool = False                 # declared navigation root
    meta: tuple[tuple[str, Any], ...] = ()

    @property
    def summary(self) -> str:
        """First non-heading paragraph of the body, collapsed to one line."""
        for block in self.body.split("\n\n"):
            text = " ".join(line.strip() for line in block.strip().splitlines())
            if text and not text.startswith(("#", "```")):
                return text
        return ""

    def meta_dict(self) -> dict[str, Any]:
        return dict(self.meta)


class ReferenceKind(str, Enum):
    INTERNAL_LINK = "internal-link"
    SEE_ALSO = "see-also"
    PARENT = "parent"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Reference:
    """A directed edge source -> target. Target may dangle."""

    source: str
    target: str
    kind: ReferenceKind
    position: int = -1                 # char offset in body; -1 for front-matter
    label: str | None = None
    anchor: str | None = None
    dangling: bool = False
    self_reference: bool = False

    def format(self) -> str:
        arrow = f"{self.source} -[{self.kind.value}]-> {self.target}"
        if self.anchor:
            arrow += f"#{self.anchor}"
        return arrow


@dataclass(frozen=True)
class NavigationNode:
    """An article plus its place in the navigation tree and link graph."""

    article: Article
    parent: str | None
    children: tuple[str, ...] = ()
    path: tuple[str, ...] = ()          # nearest root -> this slug
    backlinks: tuple[str, ...] = ()
    see_also: tuple[str, ...] = ()

    @property
    def slug(self) -> str:
        return self.article.slug

    @property
    def depth(self) -> int:
        return max(0, len(self.path) - 1)

    @property
    def is_root(self) -> bool:
        return self.parent is None


@dataclass
class RebuildReport:
    """Outcome of one ArticleStore.rebuild call."""

    ok: bool = False
    stage: str = "load"                # load | resolve | graph | index | publish
    error: Exception | None = None
    issues: list[LoadIssue] = field(default_factory=list)
    dangling: list[Reference] = field(default_factory=list)
    orphans: list[str] = field(default_factory=list)
    article_count: int = 0
    reference_count: int = 0
    generation: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    duration: float = 0.0

    @property
    def warnings(self) -> list[str]:
        out = [f"load: {issue}" for issue in self.issues]
        out.extend(f"dangling: {ref.format()}" for ref in self.dangling)
        out.extend(f"orphan: {slug}" for slug in self.orphans)
        return out

    def summary(self) -> str:
        if not self.ok:
            return f"rebuild failed at {self.stage}: {self.error}"
        return (
            f"{self.article_count} articles, {self.reference_count} references, "
            f"{len(self.issues)} load issues, {len(self.dangling)} dangling, "
            f"{len(self.orphans)} orphans ({self.duration:.3f}s)"
        )
