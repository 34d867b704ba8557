"""Front matter defaults.

The ``defaults`` config section assigns values to every page in a scope::

    defaults:
      - scope:
          path: posts
        values:
          layout: post
          author:
            name: Staff

Values are merged into each page through its PageDrop, so they follow the
drop write rules: accessors with writers (title, layout, tags, permalink,
...) update the page, other keys land in the front matter, and read-only accessors
such as ``url`` are rejected with ImmutableKeyError. Keys the page's own
front matter sets are kept (nested mappings are deep-merged with the
page's values winning); later rules override earlier ones.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from typing import Any

from .content import Page
from .site_drops import PageDrop
from .utils import deep_merge, mergeable


def scope_matches(scope: Mapping[str, Any] | None, page: Page) -> bool:
    """Check whether a defaults scope applies to a page.

    ``path`` matches the page's source path relative to the site directory,
    either exactly or as a folder prefix. ``collection`` matches the page
    group (``pages`` for root-level pages). An empty scope matches every page.
    """
    scope = scope or {}
    path = str(scope.get("path", "") or "").strip("/")
    if path:
        rel = f"{page.folder}/{page.filename}" if page.folder else page.filename
        if rel != path and not rel.startswith(f"{path}/"):
            return False
    collection = scope.get("collection")
    if collection and collection != (page.group or "pages"):
        return False
    return True


def _defaults_resolver(explicit: frozenset):
    def resolve(key: Any, current: Any, incoming: Any) -> Any:
        if key in explicit:
            if mergeable(current) and mergeable(incoming):
                return deep_merge(incoming, current)
            return current
        incoming = copy.deepcopy(incoming)
        if mergeable(current) and mergeable(incoming):
            return deep_merge(current, incoming)
        return incoming

    return resolve


def apply_defaults(pages: Iterable[Page], rules: Iterable[Mapping[str, Any]] | None) -> None:
    """Merge matching default values into each page, in rule order.

    Args:
        pages: Pages to update in place.
        rules: ``defaults`` section of the config.

    Raises:
        ImmutableKeyError: If a rule sets a read-only page accessor.
    """
    rules = [rule for rule in (rules or []) if isinstance(rule, Mapping)]
    if not rules:
        return
    for page in pages:
        resolver = _defaults_resolver(frozenset(page.frontmatter))
        for rule in rules:
            values = rule.get("values") or {}
            if not values or not scope_matches(rule.get("scope"), page):
                continue
            PageDrop(page).merge_in_place(values, resolver)
