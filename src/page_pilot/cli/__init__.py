"""
CLI module for page-pilot.

Provides command-line interface using Typer:
- title / text: Read a page
- screenshot: Render a page to an image file
- wait-for: Wait for a selector to appear
- config: Configuration management
"""

from page_pilot.cli.main import app

__all__ = ["app"]
