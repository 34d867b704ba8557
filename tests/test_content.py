from datetime import datetime
from pathlib import Path

from trellis.content import (
    ContentProcessor,
    DefaultPageBuilder,
    FileContentLoader,
    LayoutResolver,
    UrlDeriver,
)


def create_site(tmp_path: Path) -> Path:
    site = tmp_path / "site"
    (site / "_layouts").mkdir(parents=True)
    (site / "_partials").mkdir()
    (site / "posts").mkdir()
    (site / "pages").mkdir()
    (site / "_hidden").mkdir()
    (site / "_layouts" / "default.html.jinja").write_text("{{ page_content }}", encoding="utf-8")
    (site / "_layouts" / "posts.html.jinja").write_text("{{ page_content }}", encoding="utf-8")

    (site / "index.md").write_text(
        "# Home Page\n\nWelcome to the #web frontend.\n\n![Logo](logo.png)",
        encoding="utf-8",
    )
    (site / "pages" / "about.md").write_text("# About Us", encoding="utf-8")
    (site / "pages" / "index.md").write_text("# Pages Index", encoding="utf-8")
    (site / "posts" / "2024-01-15-my-post.md").write_text(
        "# Post Title\n\nBody text #python", encoding="utf-8"
    )
    (site / "posts" / "_draft.md").write_text("# Draft", encoding="utf-8")
    (site / "posts" / "hidden-draft.md").write_text(
        "---\ndraft: true\n---\n# Hidden", encoding="utf-8"
    )
    (site / "raw.html.jinja").write_text('<img src="inline.png">', encoding="utf-8")
    (site / "_hidden" / "secret.md").write_text("# Secret", encoding="utf-8")
    (site / "notes.txt").write_text("ignore", encoding="utf-8")
    (site / "front.md").write_text(
        "---\n"
        "title: From Front Matter\n"
        "layout: none\n"
        "permalink: /custom/place\n"
        "date: 2023-05-06\n"
        "tags: [alpha, beta]\n"
        "author:\n"
        "  name: Ada\n"
        "---\n"
        "# Heading Title\n\nIntro paragraph.\n",
        encoding="utf-8",
    )
    return site


def test_content_processing_builds_pages(tmp_path):
    site = create_site(tmp_path)
    pages = ContentProcessor(site).load()
    urls = {p.url for p in pages}
    assert urls == {"/", "/pages/about/", "/pages/", "/posts/my-post/", "/raw/", "/custom/place/"}
    assert all(not p.draft for p in pages)

    home = next(p for p in pages if p.url == "/")
    assert 'img src="/assets/images/logo.png"' in home.content
    assert home.tags == ["web"]
    assert home.group == ""
    assert home.layout == "default"
    assert home.description.startswith("Home Page")
    assert home.place_in_layout

    post = next(p for p in pages if p.group == "posts")
    assert post.slug == "my-post"
    assert post.date == datetime(2024, 1, 15)
    assert post.layout == "posts"
    assert post.toc[0].id == "post-title"

    raw = next(p for p in pages if p.filename == "raw.html.jinja")
    assert raw.source_type == "jinja"
    assert raw.slug == "raw"
    assert "/assets/images/inline.png" in raw.content


def test_front_matter_overrides_extracted_metadata(tmp_path):
    site = create_site(tmp_path)
    page = next(p for p in ContentProcessor(site).load() if p.filename == "front.md")
    assert page.title == "From Front Matter"
    assert page.layout == "none"
    assert page.no_layout
    assert not page.place_in_layout
    assert page.url == "/custom/place/"
    assert page.date == datetime(2023, 5, 6)
    assert page.tags == ["alpha", "beta"]
    assert page.frontmatter["author"] == {"name": "Ada"}
    assert page.excerpt == "Intro paragraph."
    assert "---" not in page.body


def test_include_drafts(tmp_path):
    site = create_site(tmp_path)
    pages = ContentProcessor(site).load(include_drafts=True)
    drafts = {p.filename for p in pages if p.draft}
    assert drafts == {"_draft.md", "hidden-draft.md"}


def test_loader_skips_internal_directories(tmp_path):
    site = create_site(tmp_path)
    names = {p.name for p in FileContentLoader(site).iter_files(include_drafts=True)}
    assert "secret.md" not in names
    assert "notes.txt" not in names
    assert "default.html.jinja" not in names
    assert "_draft.md" in names


def test_layout_resolver_candidates(tmp_path):
    site = tmp_path / "site"
    (site / "_layouts" / "docs").mkdir(parents=True)
    (site / "_layouts" / "docs" / "intro.html").write_text("x", encoding="utf-8")
    (site / "_layouts" / "about.jinja").write_text("x", encoding="utf-8")
    resolver = LayoutResolver(site)
    assert resolver.resolve(site / "docs" / "intro.md", "docs") == "docs/intro"
    assert resolver.resolve(site / "docs" / "other.md", "docs") == "default"
    assert resolver.resolve(site / "about.md", "") == "about"
    assert LayoutResolver.group_from_folder("docs/deep") == "docs"
    assert LayoutResolver.group_from_folder("") == ""


def test_url_deriver():
    deriver = UrlDeriver()
    assert deriver.derive(Path("index.md"), "index") == "/"
    assert deriver.derive(Path("posts/index.md"), "index") == "/posts/"
    assert deriver.derive(Path("posts/a.md"), "a") == "/posts/a/"
    assert deriver.derive(Path("a.md"), "a", permalink="feed.xml") == "/feed.xml"
    assert deriver.derive(Path("a.md"), "a", permalink="/x/y/") == "/x/y/"


def test_page_builder_with_unknown_renderer(tmp_path):
    class NoRenderers:
        def get_renderer(self, path):
            return None

    site = tmp_path / "site"
    site.mkdir()
    source = site / "plain.md"
    source.write_text("just text", encoding="utf-8")
    page = DefaultPageBuilder(site, renderer_registry=NoRenderers()).build(source)
    assert page.source_type == "unknown"
    assert page.content == "just text"
