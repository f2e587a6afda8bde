from __future__ import annotations

import pytest
from conftest import page, src

from codewiki.errors import ResolveError
from codewiki.loader import load, parse_source
from codewiki.models import ReferenceKind
from codewiki.resolver import dangling, extract_links, resolve


def _articles(*sources):
    return load(list(sources)).articles


def test_link_grammar():
    body = "See [[b]], [[Getting Started|the guide]] and [[api#auth]] or [[api#tokens|tokens]]."
    links = [(target, anchor, label) for _, target, anchor, label in extract_links(body)]
    assert links == [
        ("b", None, None),
        ("getting-started", None, "the guide"),
        ("api", "auth", None),
        ("api", "tokens", "tokens"),
    ]


def test_links_in_code_are_ignored():
    body = "Real [[a]].\n```\n[[not-a-link]]\n```\nInline `[[nope]]` and [[b]]."
    assert [t for _, t, _, _ in extract_links(body)] == ["a", "b"]


def test_positions_index_the_original_body():
    body = "x `code` [[target]]"
    (pos, target, _, _), = extract_links(body)
    assert body[pos:].startswith("[[target]]")
    assert target == "target"


def test_dangling_targets_are_kept():
    articles = _articles(src("a", "# A\n[[missing]] and [[b]]"), src("b", "# B"))
    refs = resolve(articles)
    assert [(r.target, r.dangling) for r in refs] == [("missing", True), ("b", False)]
    assert [r.target for r in dangling(refs)] == ["missing"]


def test_self_reference_flagged():
    refs = resolve(_articles(src("a", "# A\nsee [[a]]")))
    assert len(refs) == 1
    assert refs[0].self_reference
    assert not refs[0].dangling


def test_front_matter_refs_come_first_in_declaration_order():
    articles = _articles(
        src("child", page("Child", "body [[sib]]", parent="root-page", see_also=["x", "sib"])),
        src("root-page", "# Root"),
        src("sib", "# Sib"),
    )
    refs = [r for r in resolve(articles) if r.source == "child"]
    assert [(r.kind, r.target) for r in refs] == [
        (ReferenceKind.PARENT, "root-page"),
        (ReferenceKind.SEE_ALSO, "x"),
        (ReferenceKind.SEE_ALSO, "sib"),
        (ReferenceKind.INTERNAL_LINK, "sib"),
    ]
    assert refs[0].position == -1
    assert refs[-1].position >= 0


def test_ordering_is_deterministic():
    sources = [
        src("b", "# B\n[[a]] then [[c]]"),
        src("a", "# A\n[[c]] then [[b]]"),
        src("c", "# C\n"),
    ]
    first = resolve(_articles(*sources))
    second = resolve(_articles(*reversed(sources)))
    assert first == second
    assert [(r.source, r.target) for r in first] == [("a", "c"), ("a", "b"), ("b", "a"), ("b", "c")]


def test_duplicate_articles_are_a_resolver_fault():
    a = parse_source(src("a", "# A"))
    with pytest.raises(ResolveError):
        resolve([a, a])
