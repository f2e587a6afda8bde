"""Content loader: RawSource text -> Article values.

Source format:

    ---
    slug: getting-started          # optional, default: slugified source id
    title: Getting Started         # optional if the body has a '# Heading'
    tags: [setup, intro]           # list or "setup, intro"
    parent: overview               # navigation parent
    see_also: [faq]
    order: 1                       # sibling ordering hint
    root: true                     # declared navigation root
    updated: 2026-01-31            # last-modified override
    ---
    # Getting Started
    Body text with [[links]] to other articles.

Front-matter is YAML. Everything after it is the body; when the title comes
from the first '# Heading' that line is removed from the body.

load() never raises for a single bad source: the failure is recorded as a
LoadIssue and the rest of the batch is loaded. Duplicate slugs raise LoadError.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any

import yaml

from codewiki.errors import LoadError
from codewiki.models import Article, LoadIssue, is_valid_slug, slugify

if TYPE_CHECKING:
    from collections.abc import Iterable

    from codewiki.models import RawSource

logger = logging.getLogger("codewiki.loader")

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE)
_HEADING_RE = re.compile(r"^#[ \t]+(.+?)[ \t#]*$", re.MULTILINE)

_KNOWN_KEYS = frozenset({"slug", "title", "tags", "parent", "see_also", "order", "root", "updated"})


class SourceParseError(ValueError):
    """One source is malformed. Becomes a LoadIssue."""


@dataclass
class LoadResult:
    articles: list[Article] = field(default_factory=list)
    issues: list[LoadIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------

def _split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    match = _FRONT_MATTER_RE.match(text)
    if match is None:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        msg = f"malformed front-matter: {exc}"
        raise SourceParseError(msg) from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = f"front-matter must be a mapping, got {type(data).__name__}"
        raise SourceParseError(msg)
    bad_keys = [k for k in data if not isinstance(k, str)]
    if bad_keys:
        msg = f"front-matter keys must be strings, got {bad_keys[0]!r}"
        raise SourceParseError(msg)
    return data, text[match.end():]


def _str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    msg = f"'{key}' must be a list or a comma-separated string"
    raise SourceParseError(msg)


def _ref_slug(value: Any, key: str) -> str:
    if not isinstance(value, str) or not slugify(value):
        msg = f"'{key}' must be a single article slug"
        raise SourceParseError(msg)
    return slugify(value)


def _timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError as exc:
            msg = f"'updated' is not an ISO date: {value!r}"
            raise SourceParseError(msg) from exc
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    msg = f"'updated' has unsupported type {type(value).__name__}"
    raise SourceParseError(msg)


def _order(value: Any) -> int | None:
    if value is None:
        return None
    # bool is an int subclass; 'order: true' is a mistake
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"'order' must be an integer, got {value!r}"
        raise SourceParseError(msg)
    return value


def _flag(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        msg = f"'{key}' must be true or false, got {value!r}"
        raise SourceParseError(msg)
    return value


def _take_heading(body: str) -> tuple[str | None, str]:
    """Return (title, body without that heading) for the first '# ' line."""
    match = _HEADING_RE.search(body)
    if match is None:
        return None, body
    # Only the first level-1 heading before any other content counts
    if body[: match.start()].strip():
        return None, body
    title = match.group(1).strip()
    rest = body[: match.start()] + body[match.end():]
    return title, rest.lstrip("\r\n")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_source(source: RawSource) -> Article:
    """Parse a single source. Raises SourceParseError on malformed input."""
    meta, body = _split_front_matter(source.text)

    raw_slug = meta.get("slug")
    if raw_slug is not None:
        slug = str(raw_slug).strip()
        if not is_valid_slug(slug):
            msg = f"invalid slug {slug!r} (use lowercase letters, digits and hyphens)"
            raise SourceParseError(msg)
    else:
        slug = slugify(source.id)
        if not is_valid_slug(slug):
            msg = f"cannot derive a slug from source id {source.id!r}"
            raise SourceParseError(msg)

    title = meta.get("title")
    if title is not None:
        title = str(title).strip()
    else:
        title, body = _take_heading(body)
    if not title:
        msg = "missing required title (front-matter 'title' or a leading '# Heading')"
        raise SourceParseError(msg)

    parent = meta.get("parent")
    modified = _timestamp(meta.get("updated"))
    if modified is None and source.modified is not None:
        modified = source.modified if source.modified.tzinfo else source.modified.replace(tzinfo=UTC)

    extra = {k: v for k, v in meta.items() if k not in _KNOWN_KEYS}
    return Article(
        slug=slug,
        title=title,
        body=body.strip("\n"),
        tags=frozenset(t.lower() for t in _str_list(meta.get("tags"), "tags")),
        modified=modified,
        source_id=source.id,
        parent=_ref_slug(parent, "parent") if parent is not None else None,
        see_also=tuple(slugify(s) for s in _str_list(meta.get("see_also"), "see_also") if slugify(s)),
        order=_order(meta.get("order")),
        root=_flag(meta.get("root", False), "root"),
        meta=tuple(sorted(extra.items())),
    )


def load(sources: Iterable[RawSource]) -> LoadResult:
    """Parse a batch of sources.

    Bad sources are skipped and reported in LoadResult.issues.
    Raises LoadError if two sources resolve to the same slug.
    """
    result = LoadResult()
    claimed: dict[str, list[str]] = {}

    for source in sources:
        try:
            article = parse_source(source)
        except SourceParseError as exc:
            issue = LoadIssue(source.id, str(exc))
            logger.warning("skipping source %s: %s", source.id, exc)
            result.issues.append(issue)
            continue
        claimed.setdefault(article.slug, []).append(source.id)
        result.articles.append(article)

    duplicates = {slug: ids for slug, ids in claimed.items() if len(ids) > 1}
    if duplicates:
        detail = "; ".join(f"{slug} <- {', '.join(ids)}" for slug, ids in sorted(duplicates.items()))
        msg = f"duplicate slugs: {detail}"
        raise LoadError(msg, duplicates=duplicates, issues=result.issues)

    result.articles.sort(key=lambda a: a.slug)
    return result
