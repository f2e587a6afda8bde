"""Navigation graph: a parent-edge forest plus the associative link graph.

Nodes are referred to by slug only; article data is looked up through the
articles mapping, so the whole structure is plain data and can be rebuilt
off the hot path.

Tree rules:
    - each article has at most one parent edge (front-matter 'parent')
    - an article whose parent is missing or dangling is a tree root
    - cycles in the parent relation are rejected (GraphError)
    - siblings are ordered by 'order' hint, then title, then slug

Orphans: articles whose topmost ancestor is not a declared root
('root: true'). When no article declares itself a root, every parentless
article counts as declared. An article with a dangling parent is always
an orphan.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from codewiki.errors import GraphError, NotFoundError
from codewiki.models import NavigationNode, ReferenceKind

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

    from codewiki.models import Article, Reference

_UNVISITED, _VISITING, _VISITED = 0, 1, 2


def _sibling_key(article: Article) -> tuple[int, int, str, str]:
    hinted = article.order is not None
    return (0 if hinted else 1, article.order or 0, article.title.casefold(), article.slug)


def find_cycle(parents: Mapping[str, str]) -> list[str] | None:
    """Depth-first search over child -> parent edges.

    Returns the cycle as a slug list closed on its first element
    (['a', 'b', 'a']) or None. Iterative, so deep hierarchies are fine.
    """
    state: dict[str, int] = {}
    for start in sorted(parents):
        if state.get(start, _UNVISITED) != _UNVISITED:
            continue
        trail: list[str] = []
        node: str | None = start
        while node is not None and state.get(node, _UNVISITED) == _UNVISITED:
            state[node] = _VISITING
            trail.append(node)
            node = parents.get(node)
        if node is not None and state.get(node) == _VISITING:
            return [*trail[trail.index(node):], node]
        for slug in trail:
            state[slug] = _VISITED
    return None


@dataclass(frozen=True)
class NavigationGraph:
    articles: Mapping[str, Article]
    references: tuple[Reference, ...]
    parents: Mapping[str, str]                       # child -> parent (resolved only)
    child_map: Mapping[str, tuple[str, ...]]
    root_slugs: tuple[str, ...]
    orphan_slugs: tuple[str, ...]
    backlink_map: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    see_also_map: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Tree queries
    # ------------------------------------------------------------------

    def _require(self, slug: str) -> None:
        if slug not in self.articles:
            raise NotFoundError(slug)

    def __contains__(self, slug: object) -> bool:
        return slug in self.articles

    def roots(self) -> list[str]:
        return list(self.root_slugs)

    def parent(self, slug: str) -> str | None:
        self._require(slug)
        return self.parents.get(slug)

    def children(self, slug: str) -> list[str]:
        self._require(slug)
        return list(self.child_map.get(slug, ()))

    def path_to(self, slug: str) -> list[str]:
        """Slugs from the nearest root down to slug (inclusive)."""
        self._require(slug)
        path = [slug]
        node = self.parents.get(slug)
        while node is not None:
            path.append(node)
            node = self.parents.get(node)
        path.reverse()
        return path

    def walk(self) -> Iterator[tuple[int, str]]:
        """Depth-first (depth, slug) over every tree, in menu order."""
        stack = [(0, slug) for slug in reversed(self.root_slugs)]
        while stack:
            depth, slug = stack.pop()
            yield depth, slug
            stack.extend((depth + 1, c) for c in reversed(self.child_map.get(slug, ())))

    def node(self, slug: str) -> NavigationNode:
        self._require(slug)
        return NavigationNode(
            article=self.articles[slug],
            parent=self.parents.get(slug),
            children=self.child_map.get(slug, ()),
            path=tuple(self.path_to(slug)),
            backlinks=self.backlink_map.get(slug, ()),
            see_also=self.see_also_map.get(slug, ()),
        )

    # ------------------------------------------------------------------
    # Graph queries
    # ------------------------------------------------------------------

    def backlinks(self, slug: str) -> list[str]:
        """Slugs of articles that link to slug (any kind, self excluded)."""
        self._require(slug)
        return list(self.backlink_map.get(slug, ()))

    def see_also(self, slug: str) -> list[str]:
        self._require(slug)
        return list(self.see_also_map.get(slug, ()))

    def references_from(self, slug: str) -> list[Reference]:
        self._require(slug)
        return [r for r in self.references if r.source == slug]

    def dangling_references(self) -> list[Reference]:
        return [r for r in self.references if r.target not in self.articles]

    def orphans(self) -> list[str]:
        return list(self.orphan_slugs)


def build(articles: Sequence[Article], references: Sequence[Reference]) -> NavigationGraph:
    """Derive the navigation forest and link maps. Raises GraphError on a cycle."""
    by_slug = {a.slug: a for a in articles}

    parents: dict[str, str] = {}
    dangling_parent: set[str] = set()
    for ref in references:
        if ref.kind is not ReferenceKind.PARENT or ref.source not in by_slug:
            continue
        if ref.target in by_slug:
            parents[ref.source] = ref.target
        else:
            dangling_parent.add(ref.source)

    cycle = find_cycle(parents)
    if cycle is not None:
        msg = "parent cycle: " + " -> ".join(cycle)
        raise GraphError(msg, cycle=cycle)

    grouped: dict[str, list[Article]] = {}
    for child, parent in parents.items():
        grouped.setdefault(parent, []).append(by_slug[child])
    child_map = {
        parent: tuple(a.slug for a in sorted(kids, key=_sibling_key))
        for parent, kids in grouped.items()
    }
    roots = tuple(a.slug for a in sorted(
        (a for a in by_slug.values() if a.slug not in parents), key=_sibling_key,
    ))

    declared = {a.slug for a in articles if a.root}
    if not declared:
        declared = {slug for slug in roots if slug not in dangling_parent}

    def _top(slug: str) -> str:
        while slug in parents:
            slug = parents[slug]
        return slug

    orphans = tuple(sorted(
        slug for slug in by_slug
        if slug in dangling_parent or _top(slug) not in declared
    ))

    backlinks: dict[str, set[str]] = {}
    see_also: dict[str, list[str]] = {}
    for ref in references:
        if ref.target not in by_slug or ref.self_reference or ref.source == ref.target:
            continue
        backlinks.setdefault(ref.target, set()).add(ref.source)
        if ref.kind is ReferenceKind.SEE_ALSO and ref.target not in see_also.get(ref.source, []):
            see_also.setdefault(ref.source, []).append(ref.target)

    return NavigationGraph(
        articles=by_slug,
        references=tuple(references),
        parents=parents,
        child_map=child_map,
        root_slugs=roots,
        orphan_slugs=orphans,
        backlink_map={slug: tuple(sorted(srcs)) for slug, srcs in backlinks.items()},
        see_also_map={slug: tuple(targets) for slug, targets in see_also.items()},
    )
