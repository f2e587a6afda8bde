"""Filesystem content provider: content directory -> RawSource values.

Source ids are POSIX paths relative to the content directory
('guides/install.md'), which the loader slugifies ('guides-install') unless
the file sets an explicit slug. File mtimes become RawSource.modified.
"""

from __future__ import annotations

import logging
import subprocess
from datetime import UTC, datetime
from fnmatch import fnmatch
from typing import TYPE_CHECKING

from codewiki.models import RawSource

if TYPE_CHECKING:
    from pathlib import Path

    from codewiki.config import ContentConfig

logger = logging.getLogger("codewiki.sources")

# Binary detection: if >30% of first 512 bytes are non-printable, skip
_BINARY_THRESHOLD = 0.30


def _is_binary(path: Path) -> bool:
    try:
        with path.open("rb") as f:
            sample = f.read(512)
    except OSError:
        return True
    non_printable = sum(1 for b in sample if b < 9 or (13 < b < 32) or b == 127)
    return len(sample) > 0 and non_printable / len(sample) > _BINARY_THRESHOLD


def _matches(rel: str, patterns: list[str]) -> bool:
    # '**/x/**' should also catch 'x/...' at the top level
    return any(fnmatch(rel, pat.lstrip("/")) or fnmatch("/" + rel, pat) for pat in patterns)


def _git_files(content_path: Path) -> list[Path] | None:
    """Return git-tracked (and untracked, not ignored) files. None if not a git repo."""
    try:
        result = subprocess.run(
            ["git", "ls-files", "--cached", "--others", "--exclude-standard"],
            cwd=content_path,
            capture_output=True,
            text=True,
            check=True,
            timeout=10,
        )
        return [content_path / p for p in result.stdout.splitlines() if p]
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError):
        return None


def _glob_files(content_path: Path, include: list[str], exclude: list[str]) -> list[Path]:
    files: list[Path] = []
    for p in content_path.rglob("*"):
        if not p.is_file():
            continue
        rel = p.relative_to(content_path).as_posix()
        if _matches(rel, include) and not _matches(rel, exclude):
            files.append(p)
    return files


def collect_files(content: ContentConfig) -> list[Path]:
    """Return all article files under the content directory, sorted."""
    content_path = content.path
    if not content_path.exists():
        return []

    if content.use_git:
        git_files = _git_files(content_path)
        if git_files is not None:
            result: list[Path] = []
            for p in git_files:
                if not p.is_file():
                    continue
                rel = p.relative_to(content_path).as_posix()
                if _matches(rel, content.include) or any(fnmatch(p.name, pat.split("/")[-1]) for pat in content.include):
                    if not _matches(rel, content.exclude):
                        result.append(p)
            return sorted(result)

    return sorted(_glob_files(content_path, content.include, content.exclude))


def read_source(path: Path, content_path: Path) -> RawSource:
    stat = path.stat()
    return RawSource(
        id=path.relative_to(content_path).as_posix(),
        text=path.read_text(encoding="utf-8", errors="replace"),
        modified=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
    )


def collect_sources(content: ContentConfig) -> list[RawSource]:
    """Read every article file. Oversized, binary and unreadable files are skipped."""
    limit = content.max_size_kb * 1024
    sources: list[RawSource] = []
    for path in collect_files(content):
        try:
            if path.stat().st_size > limit:
                logger.warning("skipping %s: larger than %d KB", path, content.max_size_kb)
                continue
            if _is_binary(path):
                logger.warning("skipping %s: binary content", path)
                continue
            sources.append(read_source(path, content.path))
        except OSError as exc:
            logger.warning("skipping %s: %s", path, exc)
    return sources


def fingerprint(content: ContentConfig) -> dict[str, float]:
    """Map of relative path -> mtime, used to detect content changes."""
    out: dict[str, float] = {}
    for path in collect_files(content):
        try:
            out[path.relative_to(content.path).as_posix()] = path.stat().st_mtime
        except OSError:
            continue
    return out
