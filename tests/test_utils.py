import json
from datetime import date, datetime
from pathlib import Path

import pytest

from trellis import utils
from trellis.content import Heading
from trellis.drops import Drop


def test_slugify_and_titleize_strip_date():
    assert utils.slugify("2024-01-02-post-title") == "post-title"
    assert utils.slugify("mixed-case-slug") == "mixed-case-slug"
    assert utils.slugify("!!!") == "index"
    assert utils.titleize("2024-01-02-post-title.md") == "Post Title"
    assert utils.titleize("getting_started.md") == "Getting Started"


def test_source_stem():
    assert utils.source_stem(Path("about.html.jinja")) == "about"
    assert utils.source_stem(Path("index.jinja")) == "index"
    assert utils.source_stem(Path("v1.2-notes.md")) == "v1.2-notes"
    assert utils.source_stem(Path("page.html")) == "page"
    assert utils.source_stem(Path("notes.txt")) == "notes"


def test_dates():
    assert utils.extract_date_from_name("2024-01-15-cool") == datetime(2024, 1, 15)
    assert utils.extract_date_from_name("invalid") is None
    assert utils.extract_date_from_name("2024-13-32-post") is None
    assert utils.coerce_datetime(date(2024, 2, 3)) == datetime(2024, 2, 3)
    assert utils.coerce_datetime(datetime(2024, 2, 3, 4)) == datetime(2024, 2, 3, 4)
    assert utils.coerce_datetime("2024-02-03T10:00:00") == datetime(2024, 2, 3, 10)
    assert utils.coerce_datetime("yesterday") is None
    assert utils.coerce_datetime(42) is None


def test_tags():
    text = "Talking about #python and #web/frontend plus #python again."
    assert utils.extract_tags(text) == ["python", "web/frontend"]
    assert utils.strip_hashtags(text).startswith("Talking about python")


def test_first_paragraph_and_clean_dir(tmp_path):
    text = "# Title <b>x</b>\n\nSecond paragraph."
    assert utils.first_paragraph(text) == "Title x"
    assert utils.first_paragraph("") == ""

    target = tmp_path / "build"
    target.mkdir()
    (target / "old.txt").write_text("old", encoding="utf-8")
    utils.ensure_clean_dir(target)
    assert list(target.iterdir()) == []
    utils.ensure_clean_dir(tmp_path / "fresh")
    assert (tmp_path / "fresh").is_dir()


def test_path_kinds_and_number_prefixes():
    assert utils.is_template(Path("index.html.jinja"))
    assert utils.is_markdown(Path("page.MD"))
    assert utils.is_html(Path("404.html"))
    assert not utils.is_html(Path("page.html.jinja"))
    assert utils.extract_number_from_name("01-intro") == 1
    assert utils.extract_number_from_name("2024-01-15-03-post") == 3
    assert utils.extract_number_from_name("2024-01-15-post") is None
    assert utils.extract_number_from_name("intro") is None
    assert utils.strip_number_prefix("2024-01-15-03-post") == "post"
    assert utils.strip_number_prefix("02-mid") == "mid"


def test_build_tags_index():
    class Page:
        def __init__(self, tags):
            self.tags = tags

    first, second = Page(["python", "web"]), Page(["python"])
    index = utils.build_tags_index([first, second])
    assert index == {"python": [first, second], "web": [first]}


def test_urls():
    assert utils.join_root_url("https://example.com/", "about") == "https://example.com/about"
    assert utils.join_root_url("", "/about") == "/about"
    html = '<a href="/about">A</a><a href="#top">T</a><img src="https://cdn/x.png">'
    result = utils.absolutize_html_urls(html, "https://example.com")
    assert 'href="https://example.com/about"' in result
    assert 'href="#top"' in result
    assert 'src="https://cdn/x.png"' in result
    assert utils.absolutize_html_urls(html, "") == html


def test_sanitized_path_stays_inside_base():
    base = Path("/srv/out")
    assert utils.sanitized_path(base, "posts/hello/") == base / "posts/hello"
    assert utils.sanitized_path(base, "/posts/hello") == base / "posts/hello"
    assert utils.sanitized_path(base, "../../etc/passwd") == base / "etc/passwd"
    assert utils.sanitized_path(base, "/a/../../b") == base / "b"
    assert utils.sanitized_path(base, "~/secrets") == base / "~/secrets"
    assert utils.sanitized_path(base, "/") == base
    assert utils.sanitized_path(base, "") == base


def test_deep_merge():
    target = {"a": 1, "nested": {"x": 1, "deeper": {"k": 1}}, "list": [1]}
    overwrite = {
        "nested": {"y": 2, "x": None, "deeper": {"j": 2, "k": None}},
        "list": [2],
        "a": None,
        "b": None,
    }
    merged = utils.deep_merge(target, overwrite)
    assert merged == {
        "a": 1,
        "b": None,
        "nested": {"x": 1, "y": 2, "deeper": {"k": 1, "j": 2}},
        "list": [2],
    }
    # inputs untouched
    assert target["nested"] == {"x": 1, "deeper": {"k": 1}}
    assert utils.deep_merge(target, target) == target


def test_deep_merge_into_drop_returns_drop_copy():
    data = {"a": {"x": 1}}
    merged = utils.deep_merge(Drop(data), {"a": {"y": 2}})
    assert isinstance(merged, Drop)
    assert merged["a"] == {"x": 1, "y": 2}


def test_deep_merge_detects_cycles_and_allows_shared_values():
    shared = {"v": 1}
    merged = utils.deep_merge({"a": shared, "b": {}}, {"a": {"w": 2}, "b": shared})
    assert merged == {"a": {"v": 1, "w": 2}, "b": {"v": 1}}

    loop = {}
    loop["loop"] = loop
    with pytest.raises(utils.MergeError):
        utils.deep_merge(loop, loop)


def test_mergeable():
    assert utils.mergeable({})
    assert utils.mergeable(Drop({}))
    assert not utils.mergeable([])
    assert not utils.mergeable(None)


def test_json_default():
    payload = {
        "when": datetime(2024, 1, 2, 3, 4),
        "day": date(2024, 1, 2),
        "path": Path("a/b.md"),
        "set": {"b", "a"},
        "heading": Heading(id="x", text="X", level=2),
        "drop": Drop({"k": "v"}),
        "gen": (n for n in range(2)),
    }
    decoded = json.loads(json.dumps(payload, default=utils.json_default))
    assert decoded == {
        "when": "2024-01-02T03:04:00",
        "day": "2024-01-02",
        "path": "a/b.md",
        "set": ["a", "b"],
        "heading": {"id": "x", "text": "X", "level": 2},
        "drop": {"k": "v"},
        "gen": [0, 1],
    }
    with pytest.raises(TypeError):
        utils.json_default(object())


def test_coerce_tags():
    assert utils.coerce_tags("news") == ["news"]
    assert utils.coerce_tags("news, python  web") == ["news", "python", "web"]
    assert utils.coerce_tags(["a", 1]) == ["a", "1"]
    assert utils.coerce_tags(None) == []
    assert utils.coerce_tags("") == []
