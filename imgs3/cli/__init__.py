"""
CLI module for imgs3.

Provides the command-line interface for uploading, deleting and listing images.
"""
from imgs3.cli.app import app as _app

# Export app function for pyproject.toml entry point
def app():
    """Entry point function for pyproject.toml scripts."""
    _app()

__all__ = ['app']
