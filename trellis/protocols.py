"""Protocol definitions for Trellis.

These interfaces keep the content pipeline pluggable: renderers, metadata
extractors, content loaders and page builders can be swapped for test
doubles or custom implementations without touching the build.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .content import Heading, Page


@runtime_checkable
class ContentRenderer(Protocol):
    """Renders one type of source file to HTML.

    The registry asks each renderer in turn whether it accepts a path;
    the first that does renders the page body.
    """

    @abstractmethod
    def can_render(self, path: Path) -> bool:
        """Tell whether this renderer handles a source file.

        Args:
            path: Source file path.

        Returns:
            True if the file is of this renderer's type.
        """
        ...

    @abstractmethod
    def render(self, content: str, folder: str) -> tuple[str, list[Heading]]:
        """Render content to HTML.

        Args:
            content: Source content to render.
            folder: Folder containing the page (for relative path resolution).

        Returns:
            Tuple of (rendered HTML, list of headings for TOC).
        """
        ...

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Source type identifier ('markdown', 'html' or 'jinja')."""
        ...


@runtime_checkable
class MetadataExtractor(Protocol):
    """Extracts metadata (title, tags, date, ...) from source content."""

    @abstractmethod
    def extract(self, content: str, path: Path) -> dict[str, Any]:
        """Pull metadata out of a source file.

        Args:
            content: Raw file text, or the body once front matter is split off.
            path: Source file path, used for filename-derived values.

        Returns:
            Mapping of metadata keys to values.
        """
        ...


@runtime_checkable
class ContentLoader(Protocol):
    """Discovers content files."""

    @abstractmethod
    def iter_files(self, include_drafts: bool = False) -> list[Path]:
        """List the content files of a site.

        Args:
            include_drafts: Whether ``_``-prefixed draft files are included.

        Returns:
            Content file paths in a stable order.
        """
        ...


@runtime_checkable
class PageBuilder(Protocol):
    """Builds a Page from a source file."""

    @abstractmethod
    def build(self, path: Path, draft: bool = False) -> Page:
        """Build a Page from one source file.

        Args:
            path: Source file path.
            draft: Whether the file is a draft by name.

        Returns:
            The built Page.
        """
        ...


@runtime_checkable
class TemplateRenderer(Protocol):
    """Renders pages with their layouts."""

    @abstractmethod
    def render_page(self, page: Page) -> str:
        """Render a page body and place it in its layout.

        Args:
            page: Page to render.

        Returns:
            Rendered HTML.
        """
        ...

    @abstractmethod
    def render_string(self, template: str, context: dict[str, Any]) -> str:
        """Render a template string.

        Args:
            template: Jinja source.
            context: Variables visible to the template.

        Returns:
            Rendered text.
        """
        ...
