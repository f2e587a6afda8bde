from __future__ import annotations

from datetime import UTC, datetime

import pytest
from conftest import page, src

from codewiki.errors import LoadError
from codewiki.loader import load, parse_source
from codewiki.models import slugify


def test_title_from_heading_is_removed_from_body():
    article = parse_source(src("a", "# Intro\nSee [[b]]"))
    assert article.slug == "a"
    assert article.title == "Intro"
    assert article.body == "See [[b]]"


def test_front_matter_fields():
    text = page(
        "Getting Started",
        "Body text.",
        slug="start",
        tags=["Setup", "intro"],
        parent="Overview",
        see_also=["faq", "Install Guide"],
        order=3,
        root=True,
        updated="2026-02-03",
        audience="devs",
    )
    article = parse_source(src("docs/whatever.md", text))
    assert article.slug == "start"
    assert article.title == "Getting Started"
    assert article.tags == frozenset({"setup", "intro"})
    assert article.parent == "overview"
    assert article.see_also == ("faq", "install-guide")
    assert article.order == 3
    assert article.root is True
    assert article.modified == datetime(2026, 2, 3, tzinfo=UTC)
    assert article.meta_dict() == {"audience": "devs"}
    assert article.body == "Body text."


def test_slug_derived_from_source_path():
    article = parse_source(src("guides/Getting Started.md", "# GS\n"))
    assert article.slug == "guides-getting-started"
    assert slugify("API  Reference!") == "api-reference"


def test_comma_separated_tags():
    article = parse_source(src("t", "---\ntitle: T\ntags: a, B ,c\n---\n"))
    assert article.tags == frozenset({"a", "b", "c"})


def test_source_mtime_used_when_no_updated_key():
    ts = datetime(2025, 5, 1, 12, 0)
    article = parse_source(src("a", "# A\n", modified=ts))
    assert article.modified == ts.replace(tzinfo=UTC)


def test_summary_is_first_paragraph():
    article = parse_source(src("a", "# A\n\nFirst line\ncontinues.\n\nSecond paragraph."))
    assert article.summary == "First line continues."


def test_bad_sources_are_collected_not_fatal():
    result = load([
        src("good", "# Good\nfine"),
        src("notitle", "no heading here"),
        src("broken", "---\ntitle: [unclosed\n---\nbody"),
        src("listy", "---\n- a\n- b\n---\n# L"),
        src("badslug", "---\nslug: Not Valid\ntitle: X\n---\n"),
        src("badorder", "---\ntitle: X\norder: first\n---\n"),
    ])
    assert [a.slug for a in result.articles] == ["good"]
    assert [i.source_id for i in result.issues] == ["notitle", "broken", "listy", "badslug", "badorder"]
    assert "missing required title" in result.issues[0].message
    assert "malformed front-matter" in result.issues[1].message
    assert not result.ok


def test_duplicate_slugs_fail_the_batch():
    with pytest.raises(LoadError) as exc_info:
        load([
            src("a.md", "# One\n"),
            src("other.md", "---\nslug: a\ntitle: Two\n---\n"),
            src("bad", "nothing"),
        ])
    err = exc_info.value
    assert err.duplicates == {"a": ["a.md", "other.md"]}
    assert [i.source_id for i in err.issues] == ["bad"]


def test_articles_sorted_by_slug():
    result = load([src("zeta", "# Z"), src("alpha", "# A"), src("mid", "# M")])
    assert [a.slug for a in result.articles] == ["alpha", "mid", "zeta"]


def test_heading_after_content_is_not_a_title():
    result = load([src("x", "intro text\n# Late Heading\n")])
    assert result.articles == []
    assert result.issues[0].source_id == "x"


def test_non_string_front_matter_key_is_an_issue():
    result = load([
        src("good", "# Good"),
        src("numkey", "---\ntitle: X\n1: one\nextra: two\n---\n"),
    ])
    assert [a.slug for a in result.articles] == ["good"]
    assert [i.source_id for i in result.issues] == ["numkey"]
    assert "keys must be strings" in result.issues[0].message


def test_root_flag_must_be_boolean():
    result = load([
        src("quoted", '---\ntitle: Q\nroot: "false"\n---\n'),
        src("plain", page("Plain", root=False)),
    ])
    assert [a.slug for a in result.articles] == ["plain"]
    assert result.articles[0].root is False
    assert [i.source_id for i in result.issues] == ["quoted"]
    assert "'root' must be true or false" in result.issues[0].message
