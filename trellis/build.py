"""Site building functionality for Trellis.

This module contains the core logic for building a static site from source
files. It loads configuration and data, processes content, applies front
matter defaults, renders templates, and writes output files.

Key functions:
- build_site: Main function to build the entire site.
- load_config: Loads site configuration from trellis.yaml.
- load_data: Loads site data from YAML files in the data directory.
- load_site: Loads config, data and pages into a Site without rendering.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jinja2 import TemplateSyntaxError

from .content import ContentProcessor, Page
from .defaults import apply_defaults
from .drops import DropError
from .site import Site
from .templates import TemplateEngine
from .utils import absolutize_html_urls, ensure_clean_dir, sanitized_path

ENV_VAR = "TRELLIS_ENV"

DEFAULT_CONFIG: dict[str, Any] = {
    "source_dir": "site",
    "data_dir": "data",
    "output_dir": "output",
    "root_url": "",
    "environment": "development",
    "collections": {},
    "defaults": [],
}


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        pages: List of all pages in the site.
        output_dir: Directory where the site was built.
        site: The Site that was rendered.
    """

    pages: list[Page]
    output_dir: Path
    site: Site

    @property
    def data(self) -> dict[str, Any]:
        return self.site.data


def load_config(project_root: Path) -> dict[str, Any]:
    """Load site configuration from trellis.yaml.

    The environment comes from the ``TRELLIS_ENV`` variable when set, then
    the config file, then ``development``.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing configuration values, with defaults applied.

    Raises:
        BuildError: If the config file is not valid YAML.
    """
    config_path = project_root / "trellis.yaml"
    config = {
        key: (value.copy() if isinstance(value, (dict, list)) else value)
        for key, value in DEFAULT_CONFIG.items()
    }
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise BuildError(config_path, f"Invalid YAML: {exc}", exc) from exc
        if isinstance(loaded, dict):
            config.update(loaded)
    if os.environ.get(ENV_VAR):
        config["environment"] = os.environ[ENV_VAR]
    return config


def load_data(project_root: Path, data_dir: str = "data") -> dict[str, Any]:
    """Load site data from YAML files in the data directory.

    ``site.yaml`` is merged at the top level; every other file is stored
    under its stem.

    Args:
        project_root: Root directory of the project.
        data_dir: Data directory name relative to the project root.

    Returns:
        Dictionary containing merged data from all YAML files.
    """
    directory = project_root / data_dir
    data: dict[str, Any] = {}
    if not directory.exists():
        return data
    for path in sorted([*directory.glob("*.yaml"), *directory.glob("*.yml")]):
        with open(path, encoding="utf-8") as f:
            payload = yaml.safe_load(f)
        if payload is None:
            continue
        if path.stem == "site":
            if isinstance(payload, dict):
                data.update(payload)
        else:
            data[path.stem] = payload
    return data


def load_site(
    project_root: Path,
    include_drafts: bool = False,
    root_url: str | None = None,
) -> Site:
    """Load config, data and pages into a Site and apply front matter defaults.

    Draft filtering runs after defaults, so a rule setting ``draft`` counts.

    Raises:
        FileNotFoundError: If the source directory does not exist.
        BuildError: If a defaults rule cannot be applied to a page.
    """
    config = load_config(project_root)
    if root_url is not None:
        config["root_url"] = root_url
    data = load_data(project_root, config.get("data_dir", "data"))
    if config.get("root_url"):
        data.setdefault("root_url", config["root_url"])

    site_dir = project_root / config.get("source_dir", "site")
    if not site_dir.exists():
        raise FileNotFoundError(f"Expected site directory at {site_dir}")
    pages = ContentProcessor(site_dir).load(include_drafts=include_drafts)
    for page in pages:
        try:
            apply_defaults([page], config.get("defaults"))
        except DropError as exc:
            raise BuildError(page.path, f"Front matter defaults: {exc}", exc) from exc
    if not include_drafts:
        # defaults may mark pages as drafts
        pages = [page for page in pages if not page.draft]
    return Site.from_pages(config, data, pages)


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    root_url: str | None = None,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to include draft pages.
        root_url: Optional base URL to absolutize links with.
        clean_output: Whether to wipe the output directory before building.
        output_dir_override: Optional path to write the build output instead of config output_dir.

    Returns:
        BuildResult containing all pages, output directory, and the site.

    Raises:
        BuildError: If a page fails to render.
    """
    site = load_site(project_root, include_drafts=include_drafts, root_url=root_url)
    output_dir = output_dir_override or (project_root / site.config.get("output_dir", "output"))
    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    site_dir = project_root / site.config.get("source_dir", "site")
    engine = TemplateEngine(site_dir, site)
    resolved_root = site.root_url
    for page in site.pages:
        try:
            rendered = engine.render_page(page)
        except TemplateSyntaxError as exc:
            raise BuildError(
                page.path,
                f"Template syntax error on line {exc.lineno}: {exc.message}",
                exc,
            ) from exc
        except Exception as exc:
            raise BuildError(page.path, _format_error_message(exc), exc) from exc
        if resolved_root:
            rendered = absolutize_html_urls(rendered, resolved_root)
        _write_page(output_dir, page, rendered)

    return BuildResult(pages=list(site.pages), output_dir=output_dir, site=site)


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    error_type = type(exc).__name__
    if isinstance(exc, DropError):
        return f"Drop error: {exc}"
    if error_type == "UndefinedError":
        return f"Undefined variable: {exc}"
    if error_type == "TypeError":
        return f"Type error: {exc}"
    if error_type == "AttributeError":
        return f"Attribute error: {exc}"
    return f"{error_type}: {exc}"


def output_path_for(output_dir: Path, url: str) -> Path:
    """Map a page URL to a file under the output directory.

    URLs ending in ``/`` get an ``index.html``; URLs with a file extension
    are written as-is. The result never escapes ``output_dir``.
    """
    target = sanitized_path(output_dir, url)
    if url.endswith("/") or not target.suffix:
        return target / "index.html"
    return target


def _write_page(output_dir: Path, page: Page, rendered: str) -> None:
    target = output_path_for(output_dir, page.url)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        f.write(rendered)
