"""
Upload and delete services for imgs3.

Service layer behind the CLI: builds settings and collaborators, runs one
session and maps its outcome to an exit code.
"""
import asyncio
import logging
import os
from typing import Optional

import aiofiles
from rich.table import Table

from imgs3.rich_utils.ui_helpers import ConsoleClipboard, ConsoleNotifier, ConsolePrompt, get_console
from imgs3.upload import DeleteRequest, S3Settings, S3UploadManager
from imgs3.upload.exceptions import UploadError

logger = logging.getLogger(__name__)


class UploadService:
    """Service for uploading images to and deleting them from S3 storage."""

    def __init__(self, config_path: Optional[str] = None, assume_yes: bool = False):
        self.console = get_console()
        self.settings = S3Settings(config_path)
        self.manager = S3UploadManager(
            self.settings,
            ConsolePrompt(self.console, assume_yes=assume_yes),
            notifier=ConsoleNotifier(self.console),
            clipboard=ConsoleClipboard(),
            console=self.console
        )

    def configure_environment_variables(
        self,
        creds_url: Optional[str],
        api_key: Optional[str]
    ) -> None:
        """Override environment variables if CLI parameters are provided."""
        if creds_url:
            os.environ["IMGS3_CREDS_URL"] = creds_url
        if api_key:
            os.environ["IMGS3_API_KEY"] = api_key

    async def read_image(self, image_path: str) -> bytes:
        async with aiofiles.open(image_path, 'rb') as f:
            return await f.read()

    def execute_upload(self, image_path: str) -> int:
        """Upload one PNG file and return exit code."""
        if not os.path.isfile(image_path):
            self.console.print(f"❌ Image not found: {image_path}", style="bold red")
            return 1

        try:
            outcome = asyncio.run(self._upload(image_path))
        except UploadError as e:
            self.console.print(f"❌ Upload failed: {e}", style="bold red")
            return 1
        except KeyboardInterrupt:
            self.console.print("🛑 Upload cancelled", style="yellow")
            return 130

        if outcome.succeeded:
            logger.info(f"Uploaded {image_path} as {outcome.storage_object_name}")
            return 0
        if outcome.error:
            self.console.print(f"❌ Upload failed: {outcome.error}", style="bold red")
        return 1

    async def _upload(self, image_path: str):
        image = await self.read_image(image_path)
        return await self.manager.upload(image)

    def execute_delete(self, object_name: str, delete_token: Optional[str] = None) -> int:
        """Delete one uploaded object and return exit code."""
        if not delete_token:
            entry = self.manager.history.find(object_name)
            if entry is None or not entry.delete_token:
                self.console.print(f"❌ No delete token known for {object_name}", style="bold red")
                self.console.print("   Pass --token or upload the image with imgs3 first", style="dim")
                return 1
            delete_token = entry.delete_token

        try:
            outcome = asyncio.run(self.manager.delete(DeleteRequest(object_name, delete_token)))
        except KeyboardInterrupt:
            self.console.print("🛑 Delete cancelled", style="yellow")
            return 130

        if outcome is not None and outcome.succeeded:
            return 0
        return 1

    def list_history(self) -> int:
        """Print local upload history, newest first."""
        entries = self.manager.history.entries()
        if not entries:
            self.console.print("ℹ️ Upload history is empty", style="blue")
            return 0

        table = Table(title=f"Upload history ({self.manager.history.path()})")
        table.add_column("Storage")
        table.add_column("Object name", style="bold")
        table.add_column("Delete token", style="dim")
        for entry in entries:
            table.add_row(entry.storage_kind or "-", entry.object_name, entry.delete_token or "-")
        self.console.print(table)
        return 0
