"""
Delete Session for previously uploaded images

Removes the remote object through the broker and then the local history
entry. When the remote call fails the local entry is only removed if the
user explicitly confirms it.
"""

import asyncio
import logging
from typing import Callable, Optional

from rich.console import Console

from .api_client import DeleteClient
from .exceptions import HTTPStatusError, SessionStateError, TransportError, UploadError
from .history import STORAGE_TYPE_S3, History
from .models import DeleteOutcome, DeleteRequest, SettingsSnapshot
from .settings import S3Settings
from .transport import TransportSlot

logger = logging.getLogger(__name__)


class DeleteSession:
    """Deletes one uploaded image remotely and from local history"""

    def __init__(
        self,
        settings: S3Settings,
        history: History,
        prompt,
        console: Optional[Console] = None,
        delete_client_factory: Callable[[SettingsSnapshot], DeleteClient] = DeleteClient,
    ):
        self.settings = settings
        self.history = history
        self.prompt = prompt
        self.console = console or Console()
        self.delete_client_factory = delete_client_factory

        self._delete_slot = TransportSlot("delete")
        self.storage_object_name = ""
        self.delete_token = ""
        self.result_status = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def run(self, request: DeleteRequest) -> Optional[DeleteOutcome]:
        return await self.delete_resource(request.object_name, request.delete_token)

    async def delete_resource(self, object_name: str, delete_token: str) -> Optional[DeleteOutcome]:
        """Delete the remote object. Returns None when superseded by a later call."""
        if self._closed:
            raise SessionStateError("Delete session is already closed")

        self.settings.clear_proxy()
        self._delete_slot.release()
        snapshot = self.settings.snapshot()

        self.storage_object_name = object_name
        self.delete_token = delete_token

        self.console.print(f"🗑  Deleting {object_name}...", style="cyan")
        client = self.delete_client_factory(snapshot)
        task = self._delete_slot.issue(client.delete(object_name, delete_token))

        try:
            await task
        except asyncio.CancelledError:
            if self._closed or not self._delete_slot.is_current(task):
                logger.debug("Discarding superseded delete call")
                return None
            self.close()
            raise
        except UploadError as e:
            if not self._delete_slot.is_current(task):
                return None
            outcome = self._handle_failure(object_name, e)
        else:
            if not self._delete_slot.is_current(task):
                return None
            removed = self._remove_image_preview()
            self.console.print(f"✅ Removed {object_name} from remote storage", style="green")
            outcome = DeleteOutcome(succeeded=True, object_name=object_name, removed_locally=removed)

        self.close()
        return outcome

    def _handle_failure(self, object_name: str, error: UploadError) -> DeleteOutcome:
        logger.warning(f"Remote delete of {object_name} failed: {error}")

        message = "Unable to remove screenshot from the remote storage."
        category = self.classify_error(error)
        if category:
            message += "\n" + category
        message += "\n\n" + str(error)
        message += "\n\n" + "Do you want to remove screenshot from local history anyway?"

        if self.prompt.ask_yes_no("Remove screenshot from history?", message):
            removed = self._remove_image_preview()
            return DeleteOutcome(
                succeeded=True,
                object_name=object_name,
                removed_locally=removed,
                overridden=True,
                error=str(error)
            )

        return DeleteOutcome(succeeded=False, object_name=object_name, error=str(error))

    @staticmethod
    def classify_error(error: UploadError) -> Optional[str]:
        if isinstance(error, TransportError):
            return "Network error"
        if isinstance(error, HTTPStatusError) and error.is_not_found:
            return "Possibly it doesn't exist anymore"
        return None

    def _remove_image_preview(self) -> bool:
        removed = self.history.remove(STORAGE_TYPE_S3, self.delete_token, self.storage_object_name)
        self.delete_token = ""
        self.storage_object_name = ""
        self.result_status = True
        return removed

    def close(self) -> None:
        """Release the delete transport and proxy. Safe to call repeatedly."""
        if self._closed:
            return
        self._delete_slot.release()
        self.settings.clear_proxy()
        self._closed = True
