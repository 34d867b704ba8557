"""Utility functions for Trellis.

This module contains the helpers shared across the Trellis codebase:
string processing, path handling, date extraction, URL joining and the
deep-merge used by drops and configuration.

Key functions:
    slugify: Convert filenames to URL slugs.
    titleize: Convert filenames to human-readable titles.
    extract_tags: Extract hashtags from text.
    build_tags_index: Build index of pages by tags.
    deep_merge: Recursively merge two mappings (or drops).
    sanitized_path: Keep a path inside a base directory.
    json_default: Fallback serializer for json.dumps.
"""

from __future__ import annotations

import copy
import dataclasses
import os
import re
import shutil
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from pathlib import Path
from typing import Any

HASHTAG_RE = re.compile(r"#([a-zA-Z][a-zA-Z0-9]{2,}(?:/[a-zA-Z0-9]+)*)")

_URL_ATTR_RE = re.compile(
    r'(?P<prefix>\b(?:href|src|action)=["\'])(?P<url>[^"\']+)(?P<suffix>["\'])'
)
_URL_SKIP_PREFIXES = ("http://", "https://", "//", "mailto:", "tel:", "#", "javascript:")

MAX_MERGE_DEPTH = 100


class MergeError(ValueError):
    """Raised when a deep merge meets a cyclic or excessively nested structure."""


def slugify(name: str) -> str:
    """Convert filename (without extension) to slug, dropping date prefix.

    Args:
        name: Filename stem.

    Returns:
        URL-friendly slug.
    """
    cleaned = _strip_date_prefix(name)
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", cleaned)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'
    """
    base = _strip_date_prefix(Path(filename).stem)
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def _strip_date_prefix(name: str) -> str:
    parts = name.split("-")
    if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
        return "-".join(parts[3:])
    return name


def source_stem(path: Path) -> str:
    """Return a source filename without its content suffix.

    Examples:
        >>> source_stem(Path("about.html.jinja"))
        'about'
        >>> source_stem(Path("v1.2-notes.md"))
        'v1.2-notes'
    """
    name = path.name
    for suffix in (".html.jinja", ".jinja", ".html", ".md"):
        if name.lower().endswith(suffix):
            return name[: -len(suffix)]
    return path.stem


def extract_date_from_name(name: str) -> datetime | None:
    """Extract a date from a filename with YYYY-MM-DD prefix.

    Args:
        name: Filename stem (without extension).

    Returns:
        datetime object if a valid date prefix is found, None otherwise.
    """
    parts = name.split("-")
    if len(parts) >= 3 and all(p.isdigit() for p in parts[:3]):
        try:
            return datetime(int(parts[0]), int(parts[1]), int(parts[2]))
        except ValueError:
            return None
    return None


def coerce_datetime(value: Any) -> datetime | None:
    """Turn a front matter date value into a datetime.

    YAML yields ``date`` objects for bare dates and ``datetime`` objects for
    timestamps; strings are parsed as ISO 8601.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def extract_tags(text: str) -> list[str]:
    """Extract unique hashtags (without the ``#``) in order of appearance.

    Examples:
        >>> extract_tags("Hello #world, this is #python code")
        ['world', 'python']
    """
    seen: list[str] = []
    for tag in HASHTAG_RE.findall(text):
        if tag not in seen:
            seen.append(tag)
    return seen


def coerce_tags(value: Any) -> list[str]:
    """Normalize a tags value to a list of strings.

    A string is split on commas and whitespace, so ``"news, python"`` and
    ``"news python"`` both give two tags. None gives no tags.

    Examples:
        >>> coerce_tags("news, python")
        ['news', 'python']
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [tag for tag in re.split(r"[,\s]+", value) if tag]
    return [str(tag) for tag in value]


def strip_hashtags(text: str) -> str:
    """Remove hashtag symbols from text, keeping the tag words."""
    return HASHTAG_RE.sub(lambda m: m.group(1), text)


def first_paragraph(text: str, limit: int = 160) -> str:
    """Extract and clean the first paragraph from text.

    Strips leading # (headers), HTML tags, and Jinja syntax.
    Collapses whitespace and truncates to the specified limit.
    """
    paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
    if not paragraphs:
        return ""
    para = paragraphs[0].lstrip("# ").strip()
    para = re.sub(r"<[^>]+>", "", para)
    para = re.sub(r"\{[%#{].*?[%#}]\}", "", para)
    collapsed = " ".join(para.split())
    return collapsed[:limit]


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty."""
    if path.exists():
        shutil.rmtree(str(path), ignore_errors=True)
    path.mkdir(parents=True, exist_ok=True)


def is_markdown(path: Path) -> bool:
    return path.suffix.lower() == ".md"


def is_template(path: Path) -> bool:
    """Check if a path is a Jinja template (``.jinja`` or ``.html.jinja``)."""
    return path.suffixes[-2:] == [".html", ".jinja"] or path.suffix == ".jinja"


def is_html(path: Path) -> bool:
    """Check if a path is a plain HTML file (not a Jinja template)."""
    return path.suffix.lower() == ".html" and not is_template(path)


def extract_number_from_name(name: str) -> int | None:
    """Extract a leading number from a filename for sorting.

    Handles filenames like "01-intro.md". If the filename has a date prefix,
    the number after the date is used.
    """
    parts = name.split("-")
    if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
        if parts[3].isdigit():
            return int(parts[3])
        return None
    if parts and parts[0].isdigit():
        return int(parts[0])
    return None


def strip_number_prefix(name: str) -> str:
    """Strip date and number prefixes from a filename stem."""
    parts = name.split("-")
    if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
        parts = parts[3:]
        if parts and parts[0].isdigit():
            parts = parts[1:]
    elif parts and parts[0].isdigit():
        parts = parts[1:]
    return "-".join(parts) if parts else name


def build_tags_index(pages: Iterable) -> dict[str, list]:
    """Build an index mapping tags to lists of pages containing that tag."""
    tags: dict[str, list] = {}
    for page in pages:
        for tag in page.tags:
            tags.setdefault(tag, []).append(page)
    return tags


def join_root_url(root_url: str, path: str) -> str:
    """Join a root URL and a path, avoiding double slashes.

    Examples:
        >>> join_root_url('https://example.com/', 'about')
        'https://example.com/about'
    """
    if not root_url:
        return path
    base = root_url.rstrip("/")
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"


def absolutize_html_urls(html: str, root_url: str) -> str:
    """Rewrite root-relative href/src/action URLs in HTML to absolute URLs."""
    if not root_url:
        return html

    def repl(match: re.Match) -> str:
        url = match.group("url")
        if not url or url.startswith(_URL_SKIP_PREFIXES):
            return match.group(0)
        absolute = join_root_url(root_url, url)
        return f"{match.group('prefix')}{absolute}{match.group('suffix')}"

    return _URL_ATTR_RE.sub(repl, html)


def sanitized_path(base_directory: Path, questionable_path: str) -> Path:
    """Resolve ``questionable_path`` as a path inside ``base_directory``.

    Leading slashes, ``~`` and ``..`` segments cannot climb out of the base:
    the questionable path is normalized as if it were rooted at ``/`` and then
    re-rooted under the base directory.

    Examples:
        >>> sanitized_path(Path("/out"), "../../etc/passwd")
        PosixPath('/out/etc/passwd')
    """
    base = Path(base_directory)
    cleaned = questionable_path.replace("\\", "/")
    if cleaned.startswith("~"):
        cleaned = "/" + cleaned
    normalized = os.path.normpath("/" + cleaned.lstrip("/")).replace("\\", "/")
    normalized = re.sub(r"^(?:[A-Za-z]:)?/+", "", normalized)
    if not normalized or normalized == ".":
        return base
    return base / normalized


def mergeable(value: Any) -> bool:
    """Return True if ``value`` can take part in a deep merge."""
    return isinstance(value, Mapping)


def deep_merge(target: Mapping, overwrite: Mapping, *, _depth: int = 0, _active=None):
    """Merge ``overwrite`` into a copy of ``target``, recursing into mappings.

    Keys present in both where both values are mappings are merged key by
    key; any other value from ``overwrite`` replaces the one in ``target``,
    except that None never replaces a key ``target`` already has. Neither input is modified, except that a drop copy still writes through
    to its backing object's data.

    Args:
        target: Base mapping or drop.
        overwrite: Mapping or drop whose keys take precedence.

    Returns:
        A new dict, or a copy of the drop when ``target`` is a drop.

    Raises:
        MergeError: If the inputs reference themselves along the merge path
            or nest deeper than ``MAX_MERGE_DEPTH``.
    """
    # Import here to avoid circular imports
    from .drops import Drop

    if _depth > MAX_MERGE_DEPTH:
        raise MergeError(f"Refusing to merge structures nested deeper than {MAX_MERGE_DEPTH}")
    active: set[int] = _active if _active is not None else set()
    idents = {id(target), id(overwrite)}
    if idents & active:
        raise MergeError("Cannot merge a structure that contains itself")
    active.update(idents)
    try:
        merged = copy.copy(target) if isinstance(target, Drop) else dict(target)
        for key in overwrite.keys():
            value = overwrite[key]
            if value is None and key in merged:
                continue
            if key in merged and mergeable(merged[key]) and mergeable(value):
                value = deep_merge(merged[key], value, _depth=_depth + 1, _active=active)
            merged[key] = value
        return merged
    finally:
        active.difference_update(idents)


def json_default(value: Any) -> Any:
    """Serialize values ``json.dumps`` does not know about.

    Drops nested inside a structure are collapsed through their
    ``collapse_document`` hook.
    """
    if hasattr(value, "collapse_document"):
        return value.collapse_document()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, Iterable) and not isinstance(value, (str, bytes)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
