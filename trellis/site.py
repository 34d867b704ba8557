"""The Site model: everything a build knows about a project.

Site is the backing object of SiteDrop. Its ``data`` dict is shared with
the drop, so templates and hooks that write unknown keys through
``site[...]`` update the site data itself.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .collections import Collection, PageCollection, TagCollection, group_collections
from .content import Page
from .utils import build_tags_index


@dataclass
class Site:
    """A loaded site.

    Attributes:
        config: Merged configuration.
        data: Site data from the data directory.
        pages: All pages, in load order.
        collections: Label to Collection.
        tags: Tag to pages.
        time: Build start time.
    """

    config: dict[str, Any]
    data: dict[str, Any]
    pages: PageCollection = field(default_factory=lambda: PageCollection([]))
    collections: dict[str, Collection] = field(default_factory=dict)
    tags: TagCollection = field(default_factory=lambda: TagCollection({}))
    time: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_pages(
        cls, config: dict[str, Any], data: dict[str, Any], pages: Iterable[Page]
    ) -> Site:
        """Build a Site, grouping pages into collections and indexing tags."""
        pages = PageCollection(pages)
        return cls(
            config=config,
            data=data,
            pages=pages,
            collections=group_collections(pages, config.get("collections")),
            tags=TagCollection(build_tags_index(pages)),
        )

    @property
    def environment(self) -> str:
        return str(self.config.get("environment", "development"))

    @property
    def root_url(self) -> str:
        return str(self.config.get("root_url") or self.data.get("root_url") or "")
