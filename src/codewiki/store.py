"""ArticleStore: the public API over one consistent snapshot.

    store = ArticleStore()
    report = store.rebuild(collect_sources(cfg.content))
    store.get("getting-started")
    store.navigate("getting-started").path
    store.search("install", limit=5)

Readers grab the current Snapshot once and answer from it, so a read that
started before a rebuild finishes against the old snapshot. rebuild() runs
load -> resolve -> graph -> index on a private snapshot and publishes it with
a single attribute assignment. A second rebuild while one is running raises
BusyError; a failed rebuild leaves the live snapshot untouched.

A process-wide default store is available through get_store(); it starts
empty, is replaced only by rebuilds, and is dropped by shutdown_store().
"""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from codewiki import loader, navigation, resolver
from codewiki.errors import BusyError, LoadError, NotFoundError, WikiError
from codewiki.models import RebuildReport
from codewiki.search import SearchIndex, SearchWeights, build_index

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from codewiki.models import Article, NavigationNode, RawSource, Reference
    from codewiki.navigation import NavigationGraph

logger = logging.getLogger("codewiki.store")


@dataclass(frozen=True)
class Snapshot:
    """Articles and everything derived from them, built from one article set."""

    articles: Mapping[str, Article] = field(default_factory=dict)
    references: tuple[Reference, ...] = ()
    navigation: NavigationGraph = field(default_factory=lambda: navigation.build([], []))
    index: SearchIndex = field(default_factory=lambda: build_index([]))
    generation: int = 0
    built_at: datetime | None = None


class ArticleStore:
    """Single-writer, multi-reader article store."""

    def __init__(self, weights: SearchWeights | None = None) -> None:
        self.weights = (weights or SearchWeights()).validate()
        self._snapshot = Snapshot()
        self._rebuild_lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self.last_report: RebuildReport | None = None

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, slug: str) -> Article | None:
        return self._snapshot.articles.get(slug)

    def list(self, tag: str | None = None) -> list[Article]:
        """Articles sorted by slug, optionally only those carrying tag."""
        snap = self._snapshot
        wanted = tag.lower() if tag else None
        return [
            snap.articles[slug] for slug in sorted(snap.articles)
            if wanted is None or wanted in snap.articles[slug].tags
        ]

    def navigate(self, slug: str) -> NavigationNode:
        snap = self._snapshot
        if slug not in snap.articles:
            raise NotFoundError(slug)
        return snap.navigation.node(slug)

    def search(self, text: str, limit: int = 10) -> list[tuple[str, float]]:
        return self._snapshot.index.query(text, limit)

    def dangling_references(self) -> list[Reference]:
        return self._snapshot.navigation.dangling_references()

    def orphans(self) -> list[str]:
        return self._snapshot.navigation.orphans()

    def tree(self) -> list[tuple[int, Article]]:
        """(depth, article) rows in menu order."""
        snap = self._snapshot
        return [(depth, snap.articles[slug]) for depth, slug in snap.navigation.walk()]

    def tags(self) -> dict[str, int]:
        counts: Counter[str] = Counter()
        for article in self._snapshot.articles.values():
            counts.update(article.tags)
        return dict(sorted(counts.items()))

    def stats(self) -> dict[str, object]:
        snap = self._snapshot
        return {
            "generation": snap.generation,
            "built_at": snap.built_at.isoformat() if snap.built_at else None,
            "articles": len(snap.articles),
            "references": len(snap.references),
            "dangling": len(snap.navigation.dangling_references()),
            "orphans": len(snap.navigation.orphans()),
            "roots": len(snap.navigation.roots()),
            "tokens": len(snap.index.vocabulary),
        }

    # ------------------------------------------------------------------
    # Rebuild
    # ------------------------------------------------------------------

    def _build(self, sources: Iterable[RawSource], report: RebuildReport) -> Snapshot:
        report.stage = "load"
        loaded = loader.load(sources)
        report.issues = loaded.issues

        report.stage = "resolve"
        refs = resolver.resolve(loaded.articles)

        report.stage = "graph"
        graph = navigation.build(loaded.articles, refs)

        report.stage = "index"
        index = build_index(loaded.articles, self.weights)

        report.dangling = graph.dangling_references()
        report.orphans = graph.orphans()
        report.article_count = len(loaded.articles)
        report.reference_count = len(refs)
        return Snapshot(
            articles={a.slug: a for a in loaded.articles},
            references=tuple(refs),
            navigation=graph,
            index=index,
        )

    def rebuild(self, sources: Iterable[RawSource]) -> RebuildReport:
        """Rebuild from sources and publish atomically.

        Raises BusyError if another rebuild is running, or the failing stage's
        LoadError / ResolveError / GraphError with exc.report set.
        """
        if not self._rebuild_lock.acquire(blocking=False):
            msg = "a rebuild is already in progress"
            raise BusyError(msg)
        try:
            return self._rebuild_locked(sources)
        finally:
            self._rebuild_lock.release()

    def _rebuild_locked(self, sources: Iterable[RawSource]) -> RebuildReport:
        report = RebuildReport()
        start = time.monotonic()
        logger.info("rebuild started (generation %d live)", self._snapshot.generation)
        try:
            fresh = self._build(sources, report)
        except WikiError as exc:
            report.error = exc
            if isinstance(exc, LoadError):
                report.issues = list(exc.issues)
            report.duration = time.monotonic() - start
            exc.report = report
            self.last_report = report
            logger.warning("rebuild failed at %s: %s", report.stage, exc)
            raise

        report.stage = "publish"
        generation = self._snapshot.generation + 1
        self._snapshot = Snapshot(
            articles=fresh.articles,
            references=fresh.references,
            navigation=fresh.navigation,
            index=fresh.index,
            generation=generation,
            built_at=datetime.now(UTC),
        )
        report.ok = True
        report.generation = generation
        report.duration = time.monotonic() - start
        self.last_report = report
        for issue in report.issues:
            logger.warning("load issue: %s", issue)
        logger.info("rebuild published generation %d: %s", generation, report.summary())
        return report

    def is_rebuilding(self) -> bool:
        return self._rebuild_lock.locked()

    def rebuild_async(self, sources: Iterable[RawSource]) -> Future[RebuildReport]:
        """Run rebuild() on a background worker.

        The lock is taken here, so a concurrent request fails fast with
        BusyError instead of queueing. Abandoning the future is safe.
        """
        if not self._rebuild_lock.acquire(blocking=False):
            msg = "a rebuild is already in progress"
            raise BusyError(msg)
        def _run(batch: list[RawSource]) -> RebuildReport:
            try:
                return self._rebuild_locked(batch)
            finally:
                self._rebuild_lock.release()

        def _on_done(f: Future[RebuildReport]) -> None:
            # A cancelled job never ran _run, so its lock is still held
            if f.cancelled():
                self._rebuild_lock.release()

        try:
            # Materialise before handing off; callers may pass a generator
            batch = list(sources)
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="codewiki-rebuild")
            future = self._executor.submit(_run, batch)
        except BaseException:
            self._rebuild_lock.release()
            raise
        future.add_done_callback(_on_done)
        return future

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None


# ---------------------------------------------------------------------------
# Process-wide default store
# ---------------------------------------------------------------------------

_default_lock = threading.Lock()
_default: list[ArticleStore | None] = [None]


def get_store() -> ArticleStore:
    """Return the process-wide store, creating an empty one on first use."""
    with _default_lock:
        if _default[0] is None:
            _default[0] = ArticleStore()
        return _default[0]


def set_store(store: ArticleStore) -> None:
    with _default_lock:
        previous, _default[0] = _default[0], store
    if previous is not None and previous is not store:
        previous.close()


def shutdown_store() -> None:
    """Drop the process-wide store (called on process shutdown)."""
    with _default_lock:
        store, _default[0] = _default[0], None
    if store is not None:
        store.close()
