from __future__ import annotations

import os
import threading

from codewiki.config import load_config
from codewiki.sources import fingerprint
from codewiki.store import ArticleStore
from codewiki.watcher import poll_once, rebuild_from_config, watch_poll


def test_rebuild_from_config(project):
    cfg = load_config(project)
    store = ArticleStore()
    report = rebuild_from_config(cfg, store)
    assert report is not None
    assert report.ok
    assert store.get("index").title == "Home"


def test_failed_rebuild_keeps_snapshot(project):
    cfg = load_config(project)
    store = ArticleStore()
    rebuild_from_config(cfg, store)
    snap = store.snapshot
    (project / "docs" / "dupe.md").write_text("---\nslug: index\n---\n# Again\n")
    assert rebuild_from_config(cfg, store) is None
    assert store.snapshot is snap
    assert not store.last_report.ok


def test_poll_once_detects_changes(project):
    cfg = load_config(project)
    store = ArticleStore()
    seen = fingerprint(cfg.content)
    assert poll_once(cfg, store, seen) is False
    assert store.snapshot.generation == 0

    path = project / "docs" / "new.md"
    path.write_text("# New page\n")
    assert poll_once(cfg, store, seen) is True
    assert store.get("new") is not None
    assert "new.md" in seen

    stat = path.stat()
    os.utime(path, (stat.st_atime, stat.st_mtime + 10))
    path.write_text("# Renamed page\n")
    os.utime(path, (stat.st_atime, stat.st_mtime + 10))
    assert poll_once(cfg, store, seen) is True
    assert store.get("new").title == "Renamed page"

    path.unlink()
    assert poll_once(cfg, store, seen) is True
    assert store.get("new") is None


def test_watch_poll_stops(project):
    cfg = load_config(project)
    store = ArticleStore()
    stop = threading.Event()
    stop.set()
    watch_poll(cfg, store, stop=stop)
    assert store.snapshot.generation == 0


def test_poll_once_retries_after_busy_store(project):
    cfg = load_config(project)
    store = ArticleStore()
    seen = fingerprint(cfg.content)
    before = dict(seen)
    (project / "docs" / "late.md").write_text("# Late page\n")

    assert store._rebuild_lock.acquire(blocking=False)
    try:
        assert poll_once(cfg, store, seen) is True
        assert seen == before
    finally:
        store._rebuild_lock.release()

    assert poll_once(cfg, store, seen) is True
    assert store.get("late") is not None
    assert "late.md" in seen
