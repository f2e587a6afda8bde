"""Polling watcher: rebuilds the store when article files change.

    python -m codewiki.watcher [CONFIG_ROOT]

Every `watch.interval` seconds the content directory is fingerprinted
(relative path -> mtime). Any added, removed or touched file triggers a full
rebuild. A failed rebuild is logged and the previous snapshot stays live;
the next change retries.

SIGHUP reloads codewiki.toml.
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from codewiki.config import load_config
from codewiki.errors import BusyError, WikiError
from codewiki.sources import collect_sources, fingerprint
from codewiki.store import ArticleStore, get_store, set_store, shutdown_store

if TYPE_CHECKING:
    from codewiki.config import WikiConfig
    from codewiki.models import RebuildReport

logger = logging.getLogger("codewiki.watcher")

# Mutable container so the signal handler and loop share state without globals.
_reload_state: list[bool] = [False]     # [0] = SIGHUP reload requested


class _ReloadRequestedError(Exception):
    """Raised from within the watch loop to trigger a config reload."""


def _handle_sighup(signum: int, frame: object) -> None:  # noqa: ARG001
    _reload_state[0] = True
    logger.info("SIGHUP received, config reload requested")


def _rebuild(cfg: WikiConfig, store: ArticleStore) -> RebuildReport | None:
    """Like rebuild_from_config, but a busy store raises BusyError."""
    try:
        report = store.rebuild(collect_sources(cfg.content))
    except BusyError:
        raise
    except WikiError:
        logger.exception("rebuild failed; previous snapshot still live")
        return None
    for ref in report.dangling:
        logger.warning("dangling reference: %s", ref.format())
    return report


def rebuild_from_config(cfg: WikiConfig, store: ArticleStore) -> RebuildReport | None:
    """Collect sources and rebuild. Returns None if the rebuild failed."""
    try:
        return _rebuild(cfg, store)
    except BusyError:
        logger.info("rebuild already running, skipping")
        return None


def poll_once(cfg: WikiConfig, store: ArticleStore, seen: dict[str, float]) -> bool:
    """Fingerprint content; rebuild if it changed since `seen`. Updates seen in place.

    Returns True when a change was detected. If the store is busy, seen is
    left as it was so the next poll retries.
    """
    current = fingerprint(cfg.content)
    if current == seen:
        return False
    added = current.keys() - seen.keys()
    removed = seen.keys() - current.keys()
    touched = {p for p in current.keys() & seen.keys() if current[p] != seen[p]}
    logger.info("content changed: +%d -%d ~%d", len(added), len(removed), len(touched))
    try:
        _rebuild(cfg, store)
    except BusyError:
        logger.info("rebuild already running, retrying on next poll")
        return True
    seen.clear()
    seen.update(current)
    return True


def watch_poll(
    cfg: WikiConfig,
    store: ArticleStore,
    *,
    stop: threading.Event | None = None,
) -> None:
    """Poll until stop is set (forever if stop is None)."""
    stop = stop or threading.Event()
    seen = fingerprint(cfg.content)
    logger.info("polling content=%s interval=%.1fs", cfg.content_dir, cfg.watch.interval)
    while not stop.is_set():
        try:
            poll_once(cfg, store, seen)
        except OSError:
            logger.exception("poll failed for %s", cfg.content_dir)
        if _reload_state[0]:
            raise _ReloadRequestedError
        stop.wait(cfg.watch.interval)


def run(cfg: WikiConfig, store: ArticleStore, stop: threading.Event | None = None) -> None:
    logger.info("startup: building %s", cfg.content_dir)
    report = rebuild_from_config(cfg, store)
    if report is not None:
        logger.info("startup: %s", report.summary())
    watch_poll(cfg, store, stop=stop)


def run_from_config(config_root: Path | None = None) -> None:
    """Load codewiki.toml and watch. Handles SIGHUP for live config reload."""
    import signal as _signal

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")
    if hasattr(_signal, "SIGHUP"):
        _signal.signal(_signal.SIGHUP, _handle_sighup)

    try:
        while True:
            _reload_state[0] = False
            cfg = load_config(config_root)
            store = ArticleStore(cfg.search.weights())
            set_store(store)
            try:
                run(cfg, get_store())
                break
            except _ReloadRequestedError:
                logger.info("Reloading config from %s", config_root or Path.cwd())
    finally:
        shutdown_store()


if __name__ == "__main__":
    root = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    run_from_config(root)
