"""Drops for pages, collections and the site.

Templates never see Page, Collection or Site objects directly; the
TemplateEngine wraps them in these drops for each render. None of these
drops is mutable: keys without an accessor fall through to the backing
object's data (front matter, collection metadata, site data), and writing
to a read-only accessor raises ImmutableKeyError.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from pathlib import Path
from typing import Any

from markupsafe import Markup

from .collections import Collection
from .content import Page, UrlDeriver
from .drops import Drop, accessor, writer
from .site import Site
from .utils import coerce_tags


class PageDrop(Drop, mutable=False):
    """Template view of a Page; unknown keys read and write its front matter."""

    def load_fallback_data(self) -> MutableMapping[str, Any]:
        return self.backing_object.frontmatter

    @property
    def _page(self) -> Page:
        return self.backing_object

    @accessor
    def title(self):
        return self._page.title

    @title.setter
    def title(self, value):
        self._page.title = "" if value is None else str(value)
        self._page.frontmatter["title"] = self._page.title

    @accessor
    def layout(self):
        return self._page.layout

    @layout.setter
    def layout(self, value):
        self._page.layout = value
        self._page.frontmatter["layout"] = value

    @accessor
    def tags(self):
        return list(self._page.tags)

    @tags.setter
    def tags(self, value):
        self._page.tags = coerce_tags(value)
        self._page.frontmatter["tags"] = list(self._page.tags)

    @accessor
    def draft(self):
        return self._page.draft

    @draft.setter
    def draft(self, value):
        self._page.draft = bool(value)
        self._page.frontmatter["draft"] = self._page.draft

    @accessor
    def description(self):
        return self._page.description

    @description.setter
    def description(self, value):
        self._page.description = "" if value is None else str(value)
        self._page.frontmatter["description"] = self._page.description

    @accessor
    def url(self):
        return self._page.url

    @writer
    def permalink(self, value):
        """Store the permalink and re-derive the page URL from it."""
        self._page.frontmatter["permalink"] = value
        rel = Path(self._page.folder) / self._page.filename
        self._page.url = UrlDeriver().derive(rel, self._page.slug, value)

    @accessor
    def slug(self):
        return self._page.slug

    @accessor
    def date(self):
        return self._page.date

    @accessor
    def content(self):
        return Markup(self._page.content)

    @accessor
    def excerpt(self):
        return self._page.excerpt

    @accessor
    def group(self):
        return self._page.group

    @accessor
    def path(self):
        """Source path relative to the site directory."""
        if self._page.folder:
            return f"{self._page.folder}/{self._page.filename}"
        return self._page.filename

    @accessor
    def filename(self):
        return self._page.filename

    @accessor
    def source_type(self):
        return self._page.source_type

    @accessor
    def toc(self):
        return list(self._page.toc)

    @accessor
    def data(self):
        return self.fallback_data

    def collapse_document(self) -> dict[str, Any]:
        """Summary used when the page is nested in site or collection JSON."""
        summary = {key: self[key] for key in ("title", "url", "slug", "date", "group", "tags")}
        summary["path"] = self["path"]
        return summary


class CollectionDrop(Drop, mutable=False):
    """Template view of a Collection; unknown keys use the collection's config."""

    def load_fallback_data(self) -> MutableMapping[str, Any]:
        return self.backing_object.metadata

    @property
    def _collection(self) -> Collection:
        return self.backing_object

    @accessor
    def label(self):
        return self._collection.label

    @accessor
    def relative_directory(self):
        return self._collection.relative_directory

    @accessor
    def resources(self):
        """PageDrops for the collection, newest first."""
        return [PageDrop(page) for page in self._collection.pages.sorted()]


class SiteDrop(Drop, mutable=False):
    """Template view of the Site; unknown keys read and write site data."""

    def load_fallback_data(self) -> MutableMapping[str, Any]:
        return self.backing_object.data

    @property
    def _site(self) -> Site:
        return self.backing_object

    @accessor
    def pages(self):
        return [PageDrop(page) for page in self._site.pages]

    @accessor
    def collections(self):
        return {label: CollectionDrop(c) for label, c in self._site.collections.items()}

    @accessor
    def tags(self):
        return {tag: [PageDrop(p) for p in pages] for tag, pages in self._site.tags.items()}

    @accessor
    def data(self):
        return self.fallback_data

    @accessor
    def time(self):
        return self._site.time

    @accessor
    def environment(self):
        return self._site.environment

    @accessor
    def root_url(self):
        return self._site.root_url

    @accessor
    def config(self):
        return self._site.config
