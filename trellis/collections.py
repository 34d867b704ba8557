"""Page collections for Trellis.

Key classes:
- PageCollection: Sequence of pages sorted newest first on request.
- TagCollection: Mapping of tag name to PageCollection.
- Collection: A labelled group of pages (one per top-level content
  folder); the backing object of CollectionDrop.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .content import Page
from .utils import extract_number_from_name, strip_number_prefix


class PageCollection(Sequence[Page]):
    """Sequence of Pages; backs collections, tags and the site page list."""

    def __init__(self, pages: Iterable[Page]):
        self._pages = list(pages)
        self._sorted_cache: PageCollection | None = None

    def __iter__(self) -> Iterator[Page]:
        return iter(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    def __getitem__(self, item):
        return self._pages[item]

    def sorted(self, reverse: bool = True) -> PageCollection:
        """Sort pages by date, then by number prefix, then by filename.

        With ``reverse=True`` (the default) the newest page comes first;
        pages without a number prefix sort after numbered ones.
        """
        if reverse and self._sorted_cache is not None:
            return self._sorted_cache

        def sort_key(p: Page):
            number = extract_number_from_name(p.path.stem)
            num_key = number if number is not None else (float("inf") if reverse else 0)
            return (p.date, num_key, strip_number_prefix(p.path.stem).lower())

        result = PageCollection(sorted(self._pages, key=sort_key, reverse=reverse))
        if reverse:
            self._sorted_cache = result
        return result

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PageCollection({len(self._pages)} pages)"


class TagCollection(Mapping[str, PageCollection]):
    """Mapping of tag name to PageCollection."""

    def __init__(self, mapping: Mapping[str, Iterable[Page]]):
        self._mapping = {k: PageCollection(v) for k, v in mapping.items()}

    def __getitem__(self, key: str) -> PageCollection:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TagCollection({len(self._mapping)} tags)"


@dataclass
class Collection:
    """A labelled group of pages.

    Attributes:
        label: Collection name, the top-level folder under the site dir.
        pages: Pages in the collection.
        metadata: Settings from ``collections.<label>`` in the config.
            CollectionDrop reads and writes unknown keys here.
    """

    label: str
    pages: PageCollection
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def relative_directory(self) -> str:
        return self.label


def group_collections(
    pages: Iterable[Page], metadata: Mapping[str, Any] | None = None
) -> dict[str, Collection]:
    """Group pages by top-level folder into collections.

    Pages at the site root belong to the ``pages`` collection. Collections
    named in ``metadata`` exist even when they have no pages.

    Args:
        pages: All site pages.
        metadata: ``collections`` section of the site config.

    Returns:
        Dict of label to Collection, in label order.
    """
    metadata = metadata or {}
    grouped: dict[str, list[Page]] = {label: [] for label in metadata}
    for page in pages:
        grouped.setdefault(page.group or "pages", []).append(page)
    collections: dict[str, Collection] = {}
    for label in sorted(grouped):
        settings = metadata.get(label)
        collections[label] = Collection(
            label=label,
            pages=PageCollection(grouped[label]),
            metadata=settings if isinstance(settings, dict) else {},
        )
    return collections
