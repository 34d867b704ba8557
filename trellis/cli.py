"""Command-line interface for Trellis.

Commands:
- build: Build the site into the output directory.
- inspect: Print the drop a template would see, as JSON.
"""

from __future__ import annotations

from pathlib import Path

import click

from . import __version__


@click.group()
@click.version_option(version=__version__, prog_name="trellis")
def cli():
    """Trellis static site generator."""


def _report_build_error(exc, project_root: Path) -> None:
    try:
        shown = exc.source_path.relative_to(project_root)
    except ValueError:
        shown = exc.source_path
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  File: {shown}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
def build(drafts: bool):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import BuildError, build_site

    try:
        result = build_site(project_root, include_drafts=drafts)
    except BuildError as exc:
        _report_build_error(exc, project_root)
        raise SystemExit(1) from None
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc)) from None
    click.echo(f"Built {len(result.pages)} pages into {result.output_dir}")


@cli.command()
@click.argument("path", required=False)
@click.option("--drafts", is_flag=True, help="Include draft content")
def inspect(path: str | None, drafts: bool):
    """Print the site drop, or the drop for PATH (relative to the site directory)."""
    project_root = Path.cwd()
    from .build import BuildError, load_site
    from .site_drops import PageDrop, SiteDrop

    try:
        site = load_site(project_root, include_drafts=drafts)
    except BuildError as exc:
        _report_build_error(exc, project_root)
        raise SystemExit(1) from None
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc)) from None

    if path is None:
        click.echo(SiteDrop(site).inspect())
        return
    wanted = path.strip("/")
    for page in site.pages:
        drop = PageDrop(page)
        if drop["path"] == wanted:
            click.echo(drop.inspect())
            return
    raise click.ClickException(f"No page found at {wanted}")


def main():
    """Entry point for the CLI application."""
    cli()
