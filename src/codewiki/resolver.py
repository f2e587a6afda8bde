"""Link resolver: article bodies + front-matter -> Reference edges.

Marker grammar in bodies:

    [[target]]                 internal link
    [[target|label]]           with display text
    [[target#anchor]]          link to a heading inside target
    [[target#anchor|label]]

Targets are slugified the same way source ids are ('Getting Started' ->
'getting-started'). Markers inside fenced code blocks and inline code spans
are not references.

Front-matter 'parent' and 'see_also' produce parent / see-also edges with
position -1, emitted before body links in declaration order.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from codewiki.errors import ResolveError
from codewiki.models import Reference, ReferenceKind, slugify

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from codewiki.models import Article

_LINK_RE = re.compile(r"\[\[([^\[\]|#\n]*[A-Za-z0-9][^\[\]|#\n]*)(?:#([^\[\]|\n]*))?(?:\|([^\[\]\n]*))?\]\]")
_FENCE_RE = re.compile(r"^(```|~~~).*?(?:^\1[ \t]*$|\Z)", re.DOTALL | re.MULTILINE)
_INLINE_CODE_RE = re.compile(r"`[^`\n]*`")


def _masked(body: str) -> str:
    """Blank out code so offsets into the result still index the original body."""
    def _blank(m: re.Match[str]) -> str:
        return re.sub(r"[^\n]", " ", m.group(0))

    return _INLINE_CODE_RE.sub(_blank, _FENCE_RE.sub(_blank, body))


def extract_links(body: str) -> Iterator[tuple[int, str, str | None, str | None]]:
    """Yield (position, target slug, anchor, label) for each marker in body."""
    for m in _LINK_RE.finditer(_masked(body)):
        target = slugify(m.group(1))
        if not target:
            continue
        anchor = (m.group(2) or "").strip() or None
        label = (m.group(3) or "").strip() or None
        yield m.start(), target, anchor, label


def _article_refs(article: Article, known: set[str]) -> list[Reference]:
    def _ref(target: str, kind: ReferenceKind, position: int = -1,
             anchor: str | None = None, label: str | None = None) -> Reference:
        return Reference(
            source=article.slug,
            target=target,
            kind=kind,
            position=position,
            label=label,
            anchor=anchor,
            dangling=target not in known,
            self_reference=target == article.slug,
        )

    refs: list[Reference] = []
    if article.parent is not None:
        refs.append(_ref(article.parent, ReferenceKind.PARENT))
    refs.extend(_ref(target, ReferenceKind.SEE_ALSO) for target in article.see_also)
    for position, target, anchor, label in extract_links(article.body):
        refs.append(_ref(target, ReferenceKind.INTERNAL_LINK, position, anchor, label))
    return refs


def resolve(articles: Sequence[Article]) -> list[Reference]:
    """Return every reference in the corpus, ordered by (source slug, position).

    Unknown targets are kept with dangling=True. Self-references are kept
    with self_reference=True.
    """
    known: set[str] = set()
    for article in articles:
        if article.slug in known:
            msg = f"duplicate slug in article set: {article.slug}"
            raise ResolveError(msg)
        known.add(article.slug)

    refs: list[Reference] = []
    for article in sorted(articles, key=lambda a: a.slug):
        refs.extend(_article_refs(article, known))
    # Stable: front-matter refs share position -1 and keep declaration order
    refs.sort(key=lambda r: (r.source, r.position))
    return refs


def dangling(references: Sequence[Reference]) -> list[Reference]:
    return [r for r in references if r.dangling]
