"""Content renderers for Trellis.

One renderer per source type, looked up through a registry:

- MarkdownRenderer: Markdown to HTML via mistune, with Pygments
  highlighting and heading ids collected for a table of contents.
- HTMLRenderer: Plain HTML, passed through.
- JinjaContentRenderer: Jinja bodies, passed through and rendered later by
  the TemplateEngine with the page's drops in scope.
"""

from __future__ import annotations

import re
from pathlib import Path

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .protocols import ContentRenderer
from .utils import is_html, is_markdown, is_template, strip_hashtags


def _generate_heading_id(text: str) -> str:
    """Turn heading text into an anchor id.

    Args:
        text: Heading text.

    Returns:
        Lowercase, hyphenated id.
    """
    slug = text.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


def _rewrite_image_path(src: str, folder: str) -> str:
    """Point relative image sources at the assets/images directory.

    Args:
        src: Image source as written in the page.
        folder: Folder of the page, relative to the site directory.

    Returns:
        The rewritten source; absolute URLs and Jinja expressions are
        returned unchanged.
    """
    if src.startswith(("http://", "https://", "//", "/")) or "{{" in src:
        return src
    prefix = Path(folder) if folder else Path()
    return f"/assets/images/{(prefix / src).as_posix()}"


class _HighlightRenderer(mistune.HTMLRenderer):
    """mistune renderer adding heading ids, image rewriting and highlighting.

    Attributes:
        folder: Folder of the page being rendered, for image paths.
        headings: Headings seen so far, in document order.
    """

    def __init__(self, folder: str):
        super().__init__(escape=False)
        self.folder = folder
        self.headings: list = []
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        """Render a heading with a unique id and record it for the TOC.

        Args:
            text: Rendered heading text.
            level: Heading level (1-6).
            **attrs: Extra attributes from mistune.

        Returns:
            HTML heading tag.
        """
        # Import here to avoid circular imports
        from .content import Heading

        base_id = _generate_heading_id(text)
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id
        self.headings.append(Heading(id=heading_id, text=text, level=level))
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def image(self, text: str, url: str | None = None, title: str | None = None):
        return super().image(text, _rewrite_image_path(url or "", self.folder), title)

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a fenced code block, highlighted when Pygments knows the language.

        Args:
            code: Code text.
            info: Language name from the fence, if any.

        Returns:
            HTML for the block.
        """
        if info:
            try:
                lexer = get_lexer_by_name(info, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                return highlight(code, lexer, HtmlFormatter(cssclass="highlight"))
        escaped = code.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        lang_class = f' class="language-{info}"' if info else ""
        return f"<pre><code{lang_class}>{escaped}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown pages, collecting headings for the TOC."""

    @property
    def source_type(self) -> str:
        return "markdown"

    def can_render(self, path: Path) -> bool:
        """Check for a ``.md`` file.

        Args:
            path: Source file path.

        Returns:
            True for Markdown files.
        """
        return is_markdown(path)

    def render(self, content: str, folder: str) -> tuple[str, list]:
        """Render Markdown to HTML.

        Args:
            content: Markdown body, without front matter.
            folder: Folder of the page, for image paths.

        Returns:
            Tuple of (HTML, list of Heading objects for the TOC).
        """
        renderer = _HighlightRenderer(folder)
        markdown = mistune.create_markdown(
            renderer=renderer, plugins=["strikethrough", "footnotes", "table", "url"]
        )
        return markdown(strip_hashtags(content)), renderer.headings


class HTMLRenderer:
    """Passes plain HTML pages through unchanged."""

    @property
    def source_type(self) -> str:
        return "html"

    def can_render(self, path: Path) -> bool:
        return is_html(path)

    def render(self, content: str, folder: str) -> tuple[str, list]:
        return content, []


class JinjaContentRenderer:
    """Keeps Jinja bodies as source; the TemplateEngine renders them with drops in scope."""

    @property
    def source_type(self) -> str:
        return "jinja"

    def can_render(self, path: Path) -> bool:
        return is_template(path)

    def render(self, content: str, folder: str) -> tuple[str, list]:
        return content, []


class RendererRegistry:
    """Ordered list of renderers; the first that accepts a path wins."""

    def __init__(self):
        self._renderers: list[ContentRenderer] = []
        self.register(MarkdownRenderer())
        self.register(JinjaContentRenderer())
        self.register(HTMLRenderer())

    def register(self, renderer: ContentRenderer) -> None:
        self._renderers.append(renderer)

    def get_renderer(self, path: Path) -> ContentRenderer | None:
        """Find the renderer for a source file.

        Args:
            path: Source file path.

        Returns:
            The first matching renderer, or None when no renderer accepts it.
        """
        for renderer in self._renderers:
            if renderer.can_render(path):
                return renderer
        return None


default_renderer_registry = RendererRegistry()
