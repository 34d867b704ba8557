"""Template rendering engine for Trellis.

This module uses Jinja2 to render pages and layouts. Each render gets a
fresh context of drops: ``site`` (SiteDrop), ``resource`` and its alias
``page`` (PageDrop), so templates can write ``{{ resource.title }}`` or
``{{ site.collections.posts.resources }}`` without knowing the Python
objects behind them.

Key class:
- TemplateEngine: Handles template rendering and provides context to templates.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from markupsafe import Markup, escape

from .content import Heading, Page
from .site import Site
from .site_drops import PageDrop, SiteDrop
from .utils import join_root_url, json_default

__all__ = ["TemplateEngine", "render_toc"]


def render_toc(page: Page | PageDrop) -> Markup:
    """Render a page's headings as a nested ``<ul>`` table of contents.

    Accepts a Page or a PageDrop; returns empty Markup when there are no
    headings.
    """
    headings = page["toc"] if isinstance(page, PageDrop) else page.toc
    if not headings:
        return Markup("")
    return _render_toc_from_headings(headings)


def _render_toc_from_headings(headings: list[Heading]) -> Markup:
    html_parts: list[str] = []
    level_stack: list[int] = []

    for heading in headings:
        level = heading.level
        # Close nested lists when going back up
        while level_stack and level_stack[-1] > level:
            level_stack.pop()
            html_parts.append("</li></ul>")

        if level_stack and level_stack[-1] == level:
            html_parts.append("</li>")
        else:
            html_parts.append("<ul>")
            level_stack.append(level)

        html_parts.append(f'<li><a href="#{escape(heading.id)}">{escape(heading.text)}</a>')

    while level_stack:
        level_stack.pop()
        html_parts.append("</li></ul>")

    return Markup("".join(html_parts))


def _finalize(value: Any) -> Any:
    # Missing drop keys resolve to None; render them as nothing.
    return "" if value is None else value


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        site_dir: Directory containing templates.
        site: The Site being rendered.
        env: Jinja2 environment.
        root_url: Base URL applied by ``url_for``.
    """

    def __init__(self, site_dir: Path, site: Site, root_url: str | None = None):
        """Initialize the template engine.

        Args:
            site_dir: Directory with content, ``_layouts`` and ``_partials``.
            site: Site whose drops are exposed to templates.
            root_url: Optional base URL for links; defaults to the site's.
        """
        self.site_dir = site_dir
        self.site = site
        self.root_url = root_url if root_url is not None else site.root_url
        self.env = Environment(
            loader=FileSystemLoader(
                [
                    site_dir / "_layouts",
                    site_dir / "_partials",
                    site_dir,
                ]
            ),
            autoescape=select_autoescape(["html", "xml"]),
            finalize=_finalize,
        )
        self.env.policies["json.dumps_kwargs"] = {"sort_keys": True, "default": json_default}
        self.env.globals["url_for"] = self._url_for
        self.env.globals["render_toc"] = render_toc

    def _url_for(self, path: str) -> str:
        """Generate a URL for a path, applying root_url if configured."""
        if path.startswith(("http://", "https://", "//")):
            return path
        base = self.root_url or str(self.site.data.get("url", "") or "")
        if base:
            return join_root_url(base, path if path.startswith("/") else f"/{path}")
        return path if path.startswith("/") else f"/{path}"

    def context_for(self, page: Page) -> dict[str, Any]:
        """Build the template context for one page render."""
        resource = PageDrop(page)
        return {
            "site": SiteDrop(self.site),
            "resource": resource,
            "page": resource,
            "data": self.site.data,
        }

    def render_page(self, page: Page) -> str:
        """Render a page body and, unless it opts out, its layout.

        Args:
            page: Page object to render.

        Returns:
            Rendered HTML string.
        """
        context = self.context_for(page)
        body_html = self._render_body(page, context)
        if not page.place_in_layout:
            return body_html
        layout_template = self._resolve_layout_template(str(page.layout))
        try:
            return layout_template.render(page_content=Markup(body_html), **context)
        except TemplateNotFound as exc:
            print(f"Template not found during render ({exc}); rendering body only.")
            return body_html

    def _render_body(self, page: Page, context: dict[str, Any]) -> str:
        if page.source_type == "jinja":
            return self.env.from_string(page.content).render(**context)
        return page.content

    def _resolve_layout_template(self, layout: str):
        candidates = [f"{layout}.html.jinja", f"{layout}.jinja", f"{layout}.html", layout]
        if layout != "default":
            candidates.extend(
                ["default.html.jinja", "default.jinja", "default.html", "default"]
            )
        for name in candidates:
            try:
                return self.env.get_template(name)
            except TemplateNotFound:
                continue
        return self.env.from_string("{{ page_content }}")

    def render_string(self, template: str, context: dict[str, Any]) -> str:
        return self.env.from_string(template).render(**context)
