"""WikiConfig: project-local config for a code wiki.

Default layout (all relative to the project root):

    codewiki.toml         # project config
    docs/                 # article sources (*.md)

codewiki.toml example:

    [wiki]
    name = "my-project"
    content_dir = "docs"

    [content]
    include = ["**/*.md", "**/*.markdown"]
    exclude = ["**/.git/**", "**/node_modules/**"]
    use_git = false         # use git ls-files (respects .gitignore)
    max_size_kb = 512

    [search]
    title_weight = 3.0
    body_weight = 1.0
    tag_weight = 2.0
    prefix_weight = 0.5
    default_limit = 10

    [watch]
    interval = 1.0
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from codewiki.errors import ConfigError
from codewiki.search import SearchWeights

_CONFIG_FILENAME = "codewiki.toml"
_DEFAULT_CONTENT_DIR = "docs"

_DEFAULT_INCLUDE = ["**/*.md", "**/*.markdown"]
_DEFAULT_EXCLUDE = [
    "**/.git/**", "**/node_modules/**", "**/__pycache__/**",
    "**/_build/**", "**/site/**",
]


@dataclass
class ContentConfig:
    """Where article sources live and which files count."""
    path: Path = field(default_factory=Path)
    include: list[str] = field(default_factory=lambda: list(_DEFAULT_INCLUDE))
    exclude: list[str] = field(default_factory=lambda: list(_DEFAULT_EXCLUDE))
    use_git: bool = False
    max_size_kb: int = 512


@dataclass
class SearchConfig:
    title_weight: float = 3.0
    body_weight: float = 1.0
    tag_weight: float = 2.0
    prefix_weight: float = 0.5
    default_limit: int = 10

    def weights(self) -> SearchWeights:
        return SearchWeights(
            title=self.title_weight,
            body=self.body_weight,
            tags=self.tag_weight,
            prefix=self.prefix_weight,
        ).validate()


@dataclass
class WatchConfig:
    interval: float = 1.0    # seconds between mtime polls


@dataclass
class WikiConfig:
    """Resolved configuration for a wiki project."""

    root: Path                      # directory that contains codewiki.toml
    name: str = ""
    content: ContentConfig = field(default_factory=ContentConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)

    @property
    def content_dir(self) -> Path:
        return self.content.path

    def ensure_dirs(self) -> None:
        self.content.path.mkdir(parents=True, exist_ok=True)


def _number(section: dict[str, Any], key: str, default: float, *, minimum: float = 0.0) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"{key} must be a number, got {value!r}"
        raise ConfigError(msg)
    if value < minimum:
        msg = f"{key} must be >= {minimum}, got {value}"
        raise ConfigError(msg)
    return float(value)


def _patterns(section: dict[str, Any], key: str, default: list[str]) -> list[str]:
    value = section.get(key, default)
    if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
        msg = f"content.{key} must be a list of glob patterns"
        raise ConfigError(msg)
    return list(value)


def load_config(root: Path | str | None = None) -> WikiConfig:
    """Load codewiki.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        try:
            with config_path.open("rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            msg = f"{config_path}: {exc}"
            raise ConfigError(msg) from exc

    wiki_section = raw.get("wiki", {})
    content_section = raw.get("content", {})
    srch_section = raw.get("search", {})
    watch_section = raw.get("watch", {})

    name = wiki_section.get("name", root_path.name)
    content_rel = wiki_section.get("content_dir", _DEFAULT_CONTENT_DIR)

    limit = srch_section.get("default_limit", 10)
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        msg = f"search.default_limit must be a positive integer, got {limit!r}"
        raise ConfigError(msg)

    max_size = content_section.get("max_size_kb", 512)
    if isinstance(max_size, bool) or not isinstance(max_size, int) or max_size < 1:
        msg = f"content.max_size_kb must be a positive integer, got {max_size!r}"
        raise ConfigError(msg)

    interval = _number(watch_section, "interval", 1.0)
    if interval <= 0:
        msg = f"watch.interval must be > 0, got {interval}"
        raise ConfigError(msg)

    return WikiConfig(
        root=root_path,
        name=name,
        content=ContentConfig(
            path=root_path / content_rel,
            include=_patterns(content_section, "include", _DEFAULT_INCLUDE),
            exclude=_patterns(content_section, "exclude", _DEFAULT_EXCLUDE),
            use_git=bool(content_section.get("use_git", False)),
            max_size_kb=max_size,
        ),
        search=SearchConfig(
            title_weight=_number(srch_section, "title_weight", 3.0),
            body_weight=_number(srch_section, "body_weight", 1.0),
            tag_weight=_number(srch_section, "tag_weight", 2.0),
            prefix_weight=_number(srch_section, "prefix_weight", 0.5),
            default_limit=limit,
        ),
        watch=WatchConfig(interval=interval),
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for codewiki.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path, name: str | None = None) -> Path:
    """Write a default codewiki.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"codewiki.toml already exists at {config_path}"
        raise FileExistsError(msg)

    project_name = name or root.name
    content = f"""\
[wiki]
name = "{project_name}"
content_dir = "docs"

# [content]
# include = ["**/*.md", "**/*.markdown"]
# exclude = ["**/.git/**", "**/node_modules/**"]
# use_git = false     # use git ls-files to respect .gitignore
# max_size_kb = 512

# [search]
# title_weight = 3.0
# body_weight = 1.0
# tag_weight = 2.0
# prefix_weight = 0.5   # multiplier for prefix (non-exact) token matches
# default_limit = 10

# [watch]
# interval = 1.0        # seconds between polls
"""
    config_path.write_text(content)
    return config_path
