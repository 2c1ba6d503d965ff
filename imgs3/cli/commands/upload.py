"""
Upload command implementation.

Thin wrapper around UploadService that handles CLI argument parsing
and delegates business logic to the service layer.
"""
import sys
from typing import Optional

import typer

from imgs3.core.uploader import UploadService


def upload_command(
    image: str = typer.Argument(..., help="PNG image to upload"),
    creds_url: Optional[str] = typer.Option(None, "--creds-url", help="Credentials broker URL (overrides IMGS3_CREDS_URL)"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Broker API key (overrides IMGS3_API_KEY)"),
    config_path: Optional[str] = typer.Option(None, "-c", "--config", help="Path to config YAML")
):
    """Upload a PNG image to S3 storage."""

    # Delegate to service layer
    upload_service = UploadService(config_path)
    upload_service.configure_environment_variables(creds_url, api_key)
    exit_code = upload_service.execute_upload(image)

    # Exit with appropriate code
    if exit_code != 0:
        sys.exit(exit_code)
