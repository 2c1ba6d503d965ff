"""
Main CLI application for imgs3.

Defines the Typer application structure and command routing; commands are
thin wrappers over the service layer.
"""
import logging

import typer

from imgs3.cli.commands.delete import delete_command
from imgs3.cli.commands.history import history_command
from imgs3.cli.commands.upload import upload_command


# Initialize Typer app
app = typer.Typer(help="imgs3 - upload screenshots to S3 with presigned credentials")

# Register commands
app.command("upload", help="Upload a PNG image to S3 storage.")(upload_command)
app.command("delete", help="Delete an uploaded image from S3 storage and local history.")(delete_command)
app.command("history", help="List locally recorded uploads.")(history_command)


@app.callback()
def main(verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable debug logging")):
    """imgs3 - upload screenshots to S3 with presigned credentials."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s"
    )
