"""
Delete command implementation.
"""
import sys
from typing import Optional

import typer

from imgs3.core.uploader import UploadService


def delete_command(
    object_name: str = typer.Argument(..., help="Remote object name, e.g. def123.png"),
    token: Optional[str] = typer.Option(None, "--token", help="Delete token (looked up in local history when omitted)"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Remove from local history even if the remote delete fails"),
    config_path: Optional[str] = typer.Option(None, "-c", "--config", help="Path to config YAML")
):
    """Delete an uploaded image from S3 storage and local history."""
    upload_service = UploadService(config_path, assume_yes=yes)
    exit_code = upload_service.execute_delete(object_name, token)

    if exit_code != 0:
        sys.exit(exit_code)
