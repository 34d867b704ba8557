"""Trellis static site generator.

Trellis renders Markdown, HTML and Jinja content with YAML front matter
through Jinja2 layouts. Templates see pages, collections and the site
through drops: dictionary-like facades that resolve each key from
overrides, declared accessors and the object's own data, in that order.

The main entry point is the CLI module, which provides commands for
building a site and inspecting the drops templates receive.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
