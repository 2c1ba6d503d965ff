"""
imgs3 S3 Upload Module

Uploads images to S3-compatible storage with short-lived presigned POST
credentials and deletes them again with the issued delete token.

Upload: credentials (GET broker) -> multipart form -> POST object store -> history
Delete: DELETE broker/<object> -> history purge (or user-confirmed override)
"""

from typing import Optional

from rich.console import Console

from .delete_session import DeleteSession
from .exceptions import (
    ConfigurationMissingError,
    HTTPStatusError,
    ImageFormatError,
    MalformedResponseError,
    SessionStateError,
    TransportError,
    UploadError,
    RetryLimitReached,
    UserDeclinedRetry
)
from .history import STORAGE_TYPE_S3, History
from .models import (
    CredentialDocument,
    DeleteOutcome,
    DeleteRequest,
    SessionState,
    UploadOutcome
)
from .settings import S3Settings
from .upload_session import UploadSession


# Main class for external use
class S3UploadManager:
    """Creates upload and delete sessions wired to shared collaborators"""

    def __init__(self, settings: S3Settings, prompt, notifier=None, clipboard=None,
                 console: Optional[Console] = None, history: Optional[History] = None):
        self.settings = settings
        self.prompt = prompt
        self.notifier = notifier
        self.clipboard = clipboard
        self.console = console
        self.history = history or History(settings.history_path(), settings.history_max_size())

    def upload_session(self, image: bytes) -> UploadSession:
        return UploadSession(
            image,
            self.settings,
            self.history,
            self.prompt,
            notifier=self.notifier,
            clipboard=self.clipboard,
            console=self.console
        )

    def delete_session(self) -> DeleteSession:
        return DeleteSession(self.settings, self.history, self.prompt, console=self.console)

    async def upload(self, image: bytes) -> UploadOutcome:
        async with self.upload_session(image) as session:
            return await session.start()

    async def delete(self, request: DeleteRequest) -> Optional[DeleteOutcome]:
        return await self.delete_session().run(request)


__all__ = [
    'S3UploadManager',
    'S3Settings',
    'History',
    'STORAGE_TYPE_S3',
    'UploadSession',
    'DeleteSession',
    'CredentialDocument',
    'UploadOutcome',
    'DeleteRequest',
    'DeleteOutcome',
    'SessionState',
    'UploadError',
    'TransportError',
    'HTTPStatusError',
    'MalformedResponseError',
    'ConfigurationMissingError',
    'UserDeclinedRetry',
    'RetryLimitReached',
    'SessionStateError',
    'ImageFormatError'
]
