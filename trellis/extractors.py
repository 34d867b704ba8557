"""Metadata extractors for Trellis.

Each extractor pulls one kind of metadata out of a source file. The
composite runs front matter extraction first so the others only see the
body, then lets explicit front matter fields win over extracted values.

Key classes:
- FrontmatterExtractor: Splits YAML front matter from the body.
- TitleExtractor: Title from the first level-1 heading or the filename.
- TagExtractor: Hashtags in the body.
- DateExtractor: Date from the filename prefix or modification time.
- DescriptionExtractor: Description and excerpt from the first paragraph.
- CompositeMetadataExtractor: Runs a list of extractors in order.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from .utils import (
    coerce_datetime,
    coerce_tags,
    extract_date_from_name,
    extract_tags,
    first_paragraph,
    strip_hashtags,
    titleize,
)

FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*(?:\n|$)", re.DOTALL)


def extract_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split YAML front matter from content.

    Returns:
        Tuple of (front matter dict, remaining content). Invalid or
        non-mapping YAML leaves the text untouched.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError:
        return {}, text
    if not isinstance(data, dict):
        return {}, text
    return data, text[match.end() :]


class FrontmatterExtractor:
    def extract(self, content: str, path: Path) -> dict[str, Any]:
        frontmatter, body = extract_frontmatter(content)
        return {"frontmatter": frontmatter, "body": body}


class TitleExtractor:
    """Extracts the title from the first ``# Heading``, else the filename."""

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        for line in content.splitlines():
            stripped = line.strip()
            if stripped.startswith("# "):
                return {"title": stripped.lstrip("# ").strip()}
        return {"title": titleize(path.name)}


class TagExtractor:
    def extract(self, content: str, path: Path) -> dict[str, Any]:
        return {"tags": extract_tags(content)}


class DateExtractor:
    """Extracts the date from a YYYY-MM-DD filename prefix.

    Falls back to the file's modification time, or now when the file does
    not exist on disk.
    """

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        found = extract_date_from_name(path.stem)
        if found is None:
            try:
                found = datetime.fromtimestamp(path.stat().st_mtime)
            except OSError:
                found = datetime.now()
        return {"date": found}


class DescriptionExtractor:
    """Extracts a short description and, for Markdown, the first real paragraph."""

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        cleaned = strip_hashtags(content)
        description = first_paragraph(cleaned)
        excerpt = self._extract_excerpt(cleaned) if path.suffix.lower() == ".md" else ""
        return {"description": description, "excerpt": excerpt}

    def _extract_excerpt(self, text: str) -> str:
        paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
        for para in paragraphs:
            if para.startswith(("#", "![", "```", "---")):
                continue
            return " ".join(para.split())
        return ""


def _frontmatter_overrides(frontmatter: dict[str, Any]) -> dict[str, Any]:
    """Pick the front matter fields that replace extracted metadata."""
    overrides: dict[str, Any] = {}
    if frontmatter.get("title"):
        overrides["title"] = str(frontmatter["title"])
    if "description" in frontmatter and frontmatter["description"] is not None:
        overrides["description"] = str(frontmatter["description"])
    if "date" in frontmatter:
        parsed = coerce_datetime(frontmatter["date"])
        if parsed is not None:
            overrides["date"] = parsed
    if isinstance(frontmatter.get("tags"), (str, list)):
        overrides["tags"] = coerce_tags(frontmatter["tags"])
    if "draft" in frontmatter:
        overrides["draft"] = bool(frontmatter["draft"])
    return overrides


class CompositeMetadataExtractor:
    """Runs several extractors and merges their results.

    Once an extractor has produced a ``body``, the following extractors
    receive the body instead of the raw file. Later results override
    earlier ones, and front matter fields override everything.
    """

    def __init__(self, extractors: list | None = None):
        if extractors is None:
            self._extractors = [
                FrontmatterExtractor(),
                TitleExtractor(),
                TagExtractor(),
                DateExtractor(),
                DescriptionExtractor(),
            ]
        else:
            self._extractors = list(extractors)

    def add_extractor(self, extractor) -> None:
        self._extractors.append(extractor)

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for extractor in self._extractors:
            source = result.get("body", content)
            result.update(extractor.extract(source, path))
        result.update(_frontmatter_overrides(result.get("frontmatter", {})))
        return result


default_metadata_extractor = CompositeMetadataExtractor()
