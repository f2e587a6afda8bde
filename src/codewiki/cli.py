"""codewiki CLI: inspect a documentation corpus through the article store.

Commands:
    codewiki init [NAME]          create codewiki.toml + content dir
    codewiki check [--strict]     rebuild and report load issues, dangling links, orphans
    codewiki ls [--tag TAG]       list articles
    codewiki show SLUG            article with breadcrumbs, children, backlinks
    codewiki tree                 navigation tree
    codewiki search QUERY         ranked search
    codewiki status               corpus stats
    codewiki watch                rebuild on every content change
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from codewiki.config import WikiConfig, init_config, load_config
from codewiki.errors import NotFoundError, WikiError
from codewiki.sources import collect_sources
from codewiki.store import ArticleStore

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg(root: str | None) -> WikiConfig:
    try:
        return load_config(root)
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc


def _open_store(ctx: click.Context) -> tuple[WikiConfig, ArticleStore]:
    """Load config and build a store from the configured content dir."""
    cfg = _load_cfg(ctx.obj.get("root"))
    if not cfg.content_dir.exists():
        msg = f"content directory not found: {cfg.content_dir} (run `codewiki init`)"
        raise click.ClickException(msg)
    try:
        store = ArticleStore(cfg.search.weights())
        store.rebuild(collect_sources(cfg.content))
    except WikiError as exc:
        report = exc.report
        if report is not None:
            for issue in report.issues:
                click.echo(f"  {issue}", err=True)
        raise click.ClickException(str(exc)) from exc
    return cfg, store


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="codewiki")
@click.option("--root", default=None, help="Project root (default: search upward for codewiki.toml)")
@click.option("-v", "--verbose", is_flag=True, help="Log pipeline progress to stderr")
@click.pass_context
def cli(ctx: click.Context, root: str | None, verbose: bool) -> None:
    """codewiki: article store and navigation graph for documentation."""
    ctx.ensure_object(dict)
    ctx.obj["root"] = root
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")


# ---------------------------------------------------------------------------
# codewiki init
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("name", required=False)
@click.option("--dir", "root", default=".", show_default=True, help="Project root")
def init(name: str | None, root: str) -> None:
    """Create codewiki.toml and the content directory."""
    root_path = Path(root).resolve()
    try:
        config_path = init_config(root_path, name=name)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("codewiki.toml already exists, skipping init")

    cfg = _load_cfg(str(root_path))
    cfg.ensure_dirs()
    click.echo(f"Content dir : {cfg.content_dir}")


# ---------------------------------------------------------------------------
# codewiki check
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--strict", is_flag=True, help="Exit non-zero on warnings too")
@click.pass_context
def check(ctx: click.Context, strict: bool) -> None:
    """Rebuild the corpus and report problems an editor should fix."""
    _, store = _open_store(ctx)
    report = store.last_report
    if report is None:
        return
    for warning in report.warnings:
        click.echo(warning)
    click.echo(report.summary())
    if strict and report.warnings:
        ctx.exit(1)


# ---------------------------------------------------------------------------
# codewiki ls / show / tree
# ---------------------------------------------------------------------------


@cli.command("ls")
@click.option("--tag", default=None, help="Only articles with this tag")
@click.pass_context
def ls_cmd(ctx: click.Context, tag: str | None) -> None:
    """List articles by slug."""
    _, store = _open_store(ctx)
    for article in store.list(tag):
        tags = f"  [{', '.join(sorted(article.tags))}]" if article.tags else ""
        click.echo(f"{article.slug}  {article.title}{tags}")


@cli.command()
@click.argument("slug")
@click.pass_context
def show(ctx: click.Context, slug: str) -> None:
    """Show one article with its navigation context."""
    _, store = _open_store(ctx)
    try:
        node = store.navigate(slug)
    except NotFoundError as exc:
        raise click.ClickException(str(exc)) from exc

    article = node.article
    click.echo(" > ".join(node.path))
    click.echo(f"# {article.title}")
    if article.tags:
        click.echo(f"tags: {', '.join(sorted(article.tags))}")
    if article.modified:
        click.echo(f"updated: {article.modified.isoformat()}")
    click.echo("")
    click.echo(article.body)
    click.echo("")
    if node.children:
        click.echo("children: " + ", ".join(node.children))
    if node.see_also:
        click.echo("see also: " + ", ".join(node.see_also))
    if node.backlinks:
        click.echo("linked from: " + ", ".join(node.backlinks))


@cli.command()
@click.pass_context
def tree(ctx: click.Context) -> None:
    """Print the navigation tree in menu order."""
    _, store = _open_store(ctx)
    orphans = set(store.orphans())
    for depth, article in store.tree():
        mark = "  (orphan)" if article.slug in orphans else ""
        click.echo(f"{'  ' * depth}{article.title} [{article.slug}]{mark}")


# ---------------------------------------------------------------------------
# codewiki search
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("query", nargs=-1, required=True)
@click.option("-n", "--limit", type=int, default=None, help="Max results (default from config)")
@click.pass_context
def search(ctx: click.Context, query: tuple[str, ...], limit: int | None) -> None:
    """Ranked search over titles, bodies and tags."""
    cfg, store = _open_store(ctx)
    text = " ".join(query)
    try:
        hits = store.search(text, limit if limit is not None else cfg.search.default_limit)
    except WikiError as exc:
        raise click.ClickException(str(exc)) from exc
    if not hits:
        click.echo("No results.")
        return
    for slug, score in hits:
        article = store.get(slug)
        title = article.title if article else slug
        click.echo(f"{score:8.2f}  {slug}  {title}")


# ---------------------------------------------------------------------------
# codewiki status
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show corpus stats."""
    from rich.console import Console
    from rich.table import Table

    cfg, store = _open_store(ctx)
    console = Console()

    table = Table(title=f"codewiki: {cfg.name}", show_header=True, header_style="bold")
    table.add_column("Metric", style="dim", no_wrap=True)
    table.add_column("Value", justify="right")

    table.add_row("Config", str(cfg.root / "codewiki.toml"))
    table.add_row("Content", str(cfg.content_dir))
    table.add_row("", "")
    for key, value in store.stats().items():
        table.add_row(key.replace("_", " ").capitalize(), str(value))

    tags = store.tags()
    if tags:
        table.add_row("", "")
        top = sorted(tags.items(), key=lambda kv: (-kv[1], kv[0]))[:5]
        table.add_row("Top tags", ", ".join(f"{t} ({n})" for t, n in top))

    console.print(table)


# ---------------------------------------------------------------------------
# codewiki watch
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Rebuild on every content change (Ctrl-C to stop)."""
    from codewiki.watcher import run_from_config

    root = ctx.obj.get("root")
    try:
        run_from_config(Path(root) if root else None)
    except KeyboardInterrupt:
        click.echo("stopped")
