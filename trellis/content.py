"""Content processing for Trellis.

This module turns source files into Page objects: it discovers content
files, extracts front matter and metadata, renders the body and works out
the URL and layout for each page.

Key classes:
- Page: Dataclass representing a site page; the backing object of PageDrop.
- Heading: Dataclass representing a heading for TOC generation.
- FileContentLoader: Discovers content files under the site directory.
- LayoutResolver: Picks the layout template for a page.
- UrlDeriver: Derives the output URL for a page.
- DefaultPageBuilder: Builds a Page from one source file.
- ContentProcessor: Facade loading every page of a site.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .extractors import CompositeMetadataExtractor, default_metadata_extractor
from .renderers import RendererRegistry, _rewrite_image_path, default_renderer_registry
from .utils import is_html, is_markdown, is_template, slugify, source_stem, titleize

IMAGE_SRC_RE = re.compile(r'<img\s+[^>]*src="([^"]+)"', re.IGNORECASE)

# Front matter layout values meaning "render without a layout".
NO_LAYOUT_VALUES = (None, False, "none")


@dataclass
class Heading:
    """A heading extracted from Markdown, used for the table of contents.

    Attributes:
        id: Anchor id for the heading.
        text: Heading text.
        level: Heading level (1-6).
    """

    id: str
    text: str
    level: int


@dataclass
class Page:
    """A site page with its metadata and rendered content.

    Attributes:
        title: Human-readable title of the page.
        body: Source body without front matter.
        content: Rendered HTML (or Jinja source for jinja pages).
        description: Short description, often from first paragraph.
        excerpt: Full first paragraph (markdown files only).
        url: URL path for the page.
        slug: URL-friendly slug.
        date: Publication date.
        tags: Tags from hashtags or front matter.
        draft: Whether this is a draft page.
        layout: Layout name, or a "no layout" value (None, False, "none").
        group: Top-level content folder, which is also the collection label.
        path: Path to the source file.
        folder: Folder path relative to site directory.
        filename: Name of the source file.
        source_type: "markdown", "html", or "jinja".
        frontmatter: Front matter mapping; drops read and write it in place.
        toc: Headings for the table of contents.
    """

    title: str
    body: str
    content: str
    description: str
    excerpt: str
    url: str
    slug: str
    date: datetime
    tags: list[str]
    draft: bool
    layout: Any
    group: str
    path: Path
    folder: str
    filename: str
    source_type: str  # "markdown" | "html" | "jinja"
    frontmatter: dict[str, Any] = field(default_factory=dict)
    toc: list[Heading] = field(default_factory=list)

    @property
    def no_layout(self) -> bool:
        return self.layout in NO_LAYOUT_VALUES

    @property
    def place_in_layout(self) -> bool:
        return not self.no_layout


class FileContentLoader:
    """Discovers content files in a site directory.

    Directories starting with ``_`` (layouts, partials) are skipped;
    files starting with ``_`` are drafts and only included on request.
    """

    def __init__(self, site_dir: Path):
        self.site_dir = site_dir

    def iter_files(self, include_drafts: bool = False) -> list[Path]:
        files: list[Path] = []
        for path in sorted(self.site_dir.rglob("*")):
            if path.is_dir():
                continue
            rel = path.relative_to(self.site_dir)
            if any(part.startswith("_") for part in rel.parts[:-1]):
                continue
            if rel.name.startswith("_") and not include_drafts:
                continue
            if is_markdown(path) or is_template(path) or is_html(path):
                files.append(path)
        return files


class LayoutResolver:
    """Resolves the layout template for a page.

    Candidates, most specific first: ``{folder}/{name}``, the group, then
    ``default``. A page at the site root tries its own name first.
    """

    def __init__(self, site_dir: Path):
        self.site_dir = site_dir
        self.layout_dir = site_dir / "_layouts"

    def resolve(self, path: Path, folder: str) -> str:
        name = source_stem(path)
        candidates: list[str] = []
        if folder:
            candidates.append(f"{folder}/{name}")
            candidates.append(self.group_from_folder(folder))
        else:
            candidates.append(name)
        candidates.append("default")

        for candidate in candidates:
            for suffix in (".html.jinja", ".jinja", ".html", ""):
                if (self.layout_dir / f"{candidate}{suffix}").is_file():
                    return candidate
        return "default"

    @staticmethod
    def group_from_folder(folder: str) -> str:
        if not folder:
            return ""
        return Path(folder).parts[0]


class UrlDeriver:
    """Derives URL paths from a page's location, or its permalink."""

    def derive(self, rel: Path, slug: str, permalink: str | None = None) -> str:
        if permalink:
            cleaned = "/" + str(permalink).strip().lstrip("/")
            if cleaned.endswith("/") or Path(cleaned).suffix:
                return cleaned
            return f"{cleaned}/"
        segments = [p for p in rel.parent.parts if p]
        url_parts = segments if slug == "index" else segments + [slug]
        path = "/".join(url_parts)
        return f"/{path}/" if path else "/"


class DefaultPageBuilder:
    """Builds Page objects from source files.

    Attributes:
        site_dir: Directory containing site content.
        renderer_registry: Registry of content renderers.
        metadata_extractor: Composite metadata extractor.
        layout_resolver: Layout resolver instance.
        url_deriver: URL deriver instance.
    """

    def __init__(
        self,
        site_dir: Path,
        renderer_registry: RendererRegistry | None = None,
        metadata_extractor: CompositeMetadataExtractor | None = None,
    ):
        self.site_dir = site_dir
        self.renderer_registry = renderer_registry or default_renderer_registry
        self.metadata_extractor = metadata_extractor or default_metadata_extractor
        self.layout_resolver = LayoutResolver(site_dir)
        self.url_deriver = UrlDeriver()

    def build(self, path: Path, draft: bool = False) -> Page:
        """Build a Page from a source file.

        Front matter ``layout`` and ``permalink`` take precedence over the
        resolved layout and derived URL.

        Args:
            path: Path to the source file.
            draft: Whether the file is a draft by name.

        Returns:
            Page object.
        """
        rel = path.relative_to(self.site_dir)
        folder = rel.parent.as_posix() if rel.parent != Path(".") else ""
        raw = path.read_text(encoding="utf-8")

        metadata = self.metadata_extractor.extract(raw, path)
        frontmatter = metadata.get("frontmatter", {})
        body = metadata.get("body", raw)

        renderer = self.renderer_registry.get_renderer(path)
        if renderer is not None:
            source_type = renderer.source_type
            content, toc = renderer.render(body, folder)
        else:
            source_type = "unknown"
            content, toc = body, []

        if "layout" in frontmatter:
            layout = frontmatter["layout"]
        else:
            layout = self.layout_resolver.resolve(path, folder)
        slug = slugify(source_stem(path))

        return Page(
            title=metadata.get("title", titleize(path.name)),
            body=body,
            content=self._rewrite_inline_images(content, folder),
            description=metadata.get("description", ""),
            excerpt=metadata.get("excerpt", ""),
            url=self.url_deriver.derive(rel, slug, frontmatter.get("permalink")),
            slug=slug,
            date=metadata.get("date", datetime.now()),
            tags=metadata.get("tags", []),
            draft=draft or metadata.get("draft", False),
            layout=layout,
            group=LayoutResolver.group_from_folder(folder),
            path=path,
            folder=folder,
            filename=path.name,
            source_type=source_type,
            frontmatter=frontmatter,
            toc=toc,
        )

    def _rewrite_inline_images(self, html: str, folder: str) -> str:
        def repl(match: re.Match) -> str:
            src = match.group(1)
            return match.group(0).replace(src, _rewrite_image_path(src, folder))

        return IMAGE_SRC_RE.sub(repl, html)


class ContentProcessor:
    """Loads every page of a site.

    Attributes:
        site_dir: Directory containing site content.
    """

    def __init__(
        self,
        site_dir: Path,
        content_loader: FileContentLoader | None = None,
        page_builder: DefaultPageBuilder | None = None,
    ):
        self.site_dir = site_dir
        self._content_loader = content_loader or FileContentLoader(site_dir)
        self._page_builder = page_builder or DefaultPageBuilder(site_dir)

    def load(self, include_drafts: bool = False) -> list[Page]:
        """Load all content files as Pages.

        Pages marked ``draft: true`` in front matter are dropped unless
        drafts are requested, just like ``_``-prefixed files.
        """
        pages: list[Page] = []
        for path in self._content_loader.iter_files(include_drafts):
            page = self._page_builder.build(path, draft=path.name.startswith("_"))
            if page.draft and not include_drafts:
                continue
            pages.append(page)
        return pages
