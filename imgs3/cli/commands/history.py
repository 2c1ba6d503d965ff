"""
History command implementation.
"""
from typing import Optional

import typer

from imgs3.core.uploader import UploadService


def history_command(
    config_path: Optional[str] = typer.Option(None, "-c", "--config", help="Path to config YAML")
):
    """List locally recorded uploads."""
    UploadService(config_path).list_history()
