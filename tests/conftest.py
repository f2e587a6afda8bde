"""Shared fixtures: in-memory sources and an on-disk wiki project."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from codewiki.models import RawSource


def src(id: str, text: str, modified: datetime | None = None) -> RawSource:  # noqa: A002
    return RawSource(id=id, text=text, modified=modified)


def page(title: str, body: str = "", **front: object) -> str:
    """Article text with YAML front-matter built from keyword args."""
    lines = [f"title: {title}"]
    for key, value in front.items():
        if isinstance(value, (list, tuple)):
            lines.append(f"{key}: [{', '.join(str(v) for v in value)}]")
        elif isinstance(value, bool):
            lines.append(f"{key}: {'true' if value else 'false'}")
        else:
            lines.append(f"{key}: {value}")
    return "---\n" + "\n".join(lines) + "\n---\n" + body


@pytest.fixture
def corpus() -> list[RawSource]:
    """A small documentation tree:

    overview (root)
      install (order 1)
      configuration (order 2)
        search-tuning
      faq
    """
    t = datetime(2026, 1, 1, tzinfo=UTC)
    return [
        src("overview.md", page("Overview", "Start here. See [[install]] and [[faq]].", root=True), t),
        src("install.md", page("Install", "Run pip install. Then read [[configuration]].",
                               parent="overview", order=1, tags=["setup"]), t),
        src("configuration.md", page("Configuration", "Edit the config file.",
                                     parent="overview", order=2, tags=["setup", "config"]), t),
        src("search-tuning.md", page("Search tuning", "Adjust config weights.",
                                     parent="configuration", see_also=["faq"]), t),
        src("faq.md", page("FAQ", "Frequently asked questions about install.", parent="overview"), t),
    ]


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A wiki project on disk: codewiki.toml + docs/."""
    (tmp_path / "codewiki.toml").write_text('[wiki]\nname = "demo"\ncontent_dir = "docs"\n')
    docs = tmp_path / "docs"
    (docs / "guides").mkdir(parents=True)
    (docs / "index.md").write_text("# Home\nWelcome. Read [[guides-setup]].\n")
    (docs / "guides" / "setup.md").write_text(
        "---\nparent: index\ntags: [setup]\n---\n# Setup\nInstall the tool.\n"
    )
    return tmp_path
