"""Article store and navigation graph for a code wiki.

Pipeline (rebuilt in full on every content change):

    RawSource[]  --loader-->  Article[]
                 --resolver-->  Reference[]  ([[slug]] links, parent, see_also)
                 --navigation-->  NavigationGraph  (parent forest, backlinks)
                 --search-->  SearchIndex  (token -> {slug: weight})

ArticleStore publishes the four results together as one immutable Snapshot.
Readers never see a navigation graph and a search index built from different
article sets.
"""

from codewiki.config import WikiConfig, init_config, load_config
from codewiki.errors import (
    BusyError,
    ConfigError,
    GraphError,
    LoadError,
    NotFoundError,
    ResolveError,
    WikiError,
)
from codewiki.models import Article, NavigationNode, RawSource, RebuildReport, Reference, ReferenceKind
from codewiki.store import ArticleStore, Snapshot, get_store, shutdown_store

__all__ = [
    "Article",
    "ArticleStore",
    "BusyError",
    "ConfigError",
    "GraphError",
    "LoadError",
    "NavigationNode",
    "NotFoundError",
    "RawSource",
    "RebuildReport",
    "Reference",
    "ReferenceKind",
    "ResolveError",
    "Snapshot",
    "WikiConfig",
    "WikiError",
    "get_store",
    "init_config",
    "load_config",
    "shutdown_store",
]
