"""
Upload Session for S3 presigned POST uploads

Sequences credential fetch, form construction, upload and history recording
as an explicit state machine:

    IDLE -> FETCHING_CREDENTIALS -> BUILDING_FORM -> UPLOADING -> SUCCEEDED
    any non-terminal state -> FAILED or CANCELLED
"""

import asyncio
import logging
from typing import Callable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from .api_client import CredentialClient, UploadClient
from .exceptions import RetryLimitReached, SessionStateError, UploadError, UserDeclinedRetry
from .form_builder import MultipartUploadBuilder
from .history import STORAGE_TYPE_S3, History
from .models import CredentialDocument, SessionState, SettingsSnapshot, UploadOutcome, object_name_from_url
from .retry_policy import RetryPolicy
from .settings import S3Settings
from .transport import TransportSlot

logger = logging.getLogger(__name__)

DECLINED_MESSAGE = "credentials unavailable, user declined retry"


class UploadSession:
    """Uploads one PNG image through the credential broker"""

    def __init__(
        self,
        image: bytes,
        settings: S3Settings,
        history: History,
        prompt,
        notifier=None,
        clipboard=None,
        console: Optional[Console] = None,
        retry_policy: Optional[RetryPolicy] = None,
        credential_client_factory: Callable[[SettingsSnapshot], CredentialClient] = CredentialClient,
        upload_client_factory: Callable[[SettingsSnapshot], UploadClient] = UploadClient,
    ):
        self.image = image
        self.settings = settings
        self.history = history
        self.notifier = notifier
        self.clipboard = clipboard
        self.console = console or Console()
        self.retry_policy = retry_policy or RetryPolicy(
            settings, prompt, self.console, max_attempts=settings.retry_max_attempts()
        )
        self.credential_client_factory = credential_client_factory
        self.upload_client_factory = upload_client_factory

        self.builder = MultipartUploadBuilder()
        self._creds_slot = TransportSlot("credentials")
        self._upload_slot = TransportSlot("upload")

        self.state = SessionState.IDLE
        self.snapshot: Optional[SettingsSnapshot] = None
        self.delete_token = ""
        self.storage_object_name = ""
        self.public_url = ""
        self.result_status = False
        self.outcome: Optional[UploadOutcome] = None
        self._closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def _transition(self, state: SessionState) -> None:
        logger.debug(f"Upload session {self.state.value} -> {state.value}")
        self.state = state

    async def start(self) -> UploadOutcome:
        """Fetch credentials and upload the image"""
        if self.state is not SessionState.IDLE or self._closed:
            raise SessionStateError(
                f"Cannot start an upload session in state '{self.state.value}'", self.state
            )

        self.delete_token = ""
        self.storage_object_name = ""

        while True:
            # Fresh settings on every attempt
            self.settings.clear_proxy()
            self._release_transports()
            self.snapshot = self.settings.snapshot()
            self._transition(SessionState.FETCHING_CREDENTIALS)
            self.console.print("📡 Getting upload credentials...", style="cyan")

            try:
                document = await self._fetch_credentials()
            except asyncio.CancelledError:
                if self.state is SessionState.CANCELLED:
                    return self._current_outcome()
                self.cancel()
                raise
            except UploadError as e:
                if self.snapshot.credentials_endpoint:
                    return self._fail(str(e))
                try:
                    await self._resolve_endpoint()
                except (UserDeclinedRetry, RetryLimitReached) as declined:
                    return self._fail(str(declined))
                if self.state is SessionState.CANCELLED:
                    return self._current_outcome()
                self.console.print("🔁 Credentials endpoint resolved, retrying...", style="cyan")
                continue

            outcome = await self.upload(document)
            return outcome if outcome is not None else self._current_outcome()

    async def _fetch_credentials(self) -> CredentialDocument:
        client = self.credential_client_factory(self.snapshot)
        task = self._creds_slot.issue(client.fetch())
        return await task

    async def _resolve_endpoint(self) -> None:
        # Remote lookup and the retry prompt both block
        try:
            resolved = await asyncio.to_thread(self.retry_policy.resolve_and_retry)
        except RetryLimitReached:
            if self.state is SessionState.CANCELLED:
                return
            raise
        if not resolved and self.state is not SessionState.CANCELLED:
            raise UserDeclinedRetry(DECLINED_MESSAGE)

    async def upload(self, document: CredentialDocument) -> Optional[UploadOutcome]:
        """Build the form and POST it. Returns None when superseded by a later call."""
        if self.state.is_terminal or self._closed:
            raise SessionStateError(
                f"Cannot upload from a finished session ('{self.state.value}')", self.state
            )
        if self.snapshot is None:
            self.snapshot = self.settings.snapshot()

        self._transition(SessionState.BUILDING_FORM)
        try:
            form = self.builder.build(document.fields, self.image)
        except UploadError as e:
            return self._fail(str(e))

        self._transition(SessionState.UPLOADING)
        self.console.print("🚀 Uploading image...", style="cyan")
        client = self.upload_client_factory(self.snapshot)
        task = self._upload_slot.issue(client.post(document.post_url, form))

        try:
            await task
        except asyncio.CancelledError:
            if self.state is SessionState.CANCELLED:
                return self._current_outcome()
            if not self._upload_slot.is_current(task):
                logger.debug("Discarding superseded upload call")
                return None
            self.cancel()
            raise
        except UploadError as e:
            if not self._upload_slot.is_current(task):
                return None
            # The POST is never retried
            return self._fail(str(e))

        if not self._upload_slot.is_current(task) or self.state is not SessionState.UPLOADING:
            return None
        return self._on_upload_succeeded(document)

    def _on_upload_succeeded(self, document: CredentialDocument) -> UploadOutcome:
        self._transition(SessionState.SUCCEEDED)

        image_name = object_name_from_url(document.result_url)
        self.public_url = document.result_url
        self.delete_token = document.delete_token
        self.storage_object_name = image_name
        self.result_status = True

        error = None
        packed = self.history.pack_file_name(STORAGE_TYPE_S3, self.delete_token, image_name)
        try:
            self.history.save(self.image, packed)
        except OSError as e:
            error = f"Uploaded, but the local history entry could not be saved: {e}"
            logger.error(f"{error} (object {image_name}, delete token {self.delete_token})")
            self.console.print(f"⚠️  {error}", style="yellow")

        self.outcome = UploadOutcome(
            succeeded=True,
            state=self.state,
            public_url=self.public_url,
            delete_token=self.delete_token,
            storage_object_name=self.storage_object_name,
            error=error
        )
        self._apply_post_upload_action(self.outcome)
        return self.outcome

    def _apply_post_upload_action(self, outcome: UploadOutcome) -> None:
        if self.settings.copy_and_close_after_upload_enabled():
            if self.notifier is not None:
                self.notifier.send_message("URL copied to clipboard.")
            if self.clipboard is not None:
                self.clipboard.set_text(outcome.public_url)
            self.close()
        else:
            self._display_success_message(outcome)

    def _display_success_message(self, outcome: UploadOutcome) -> None:
        message_text = Text()
        message_text.append("🎉 ", style="bold green")
        message_text.append("Upload completed successfully!\n\n", style="bold green")
        message_text.append("🔗 URL: ", style="blue")
        message_text.append(outcome.public_url, style="bold blue underline")
        message_text.append("\n🗑  Delete token: ", style="dim")
        message_text.append(outcome.delete_token, style="dim")

        self.console.print(Panel(message_text, title="imgs3", border_style="green", padding=(1, 2)))

    def _fail(self, message: str) -> UploadOutcome:
        self._transition(SessionState.FAILED)
        self.console.print(f"❌ {message}", style="red")
        self.outcome = UploadOutcome(succeeded=False, state=self.state, error=message)
        return self.outcome

    def _current_outcome(self) -> UploadOutcome:
        if self.outcome is not None:
            return self.outcome
        return UploadOutcome(
            succeeded=self.state is SessionState.SUCCEEDED,
            state=self.state,
            public_url=self.public_url,
            delete_token=self.delete_token,
            storage_object_name=self.storage_object_name
        )

    def cancel(self) -> None:
        """Abort in-flight calls. No-op once the session has finished."""
        if self.state.is_terminal:
            return
        self._transition(SessionState.CANCELLED)
        self._release_transports()
        self.builder.release()
        self.outcome = UploadOutcome(succeeded=False, state=self.state)
        self.console.print("🛑 Upload cancelled", style="yellow")

    def _release_transports(self) -> None:
        self._creds_slot.release()
        self._upload_slot.release()

    def close(self) -> None:
        """Release transports, the form and the proxy. Safe to call repeatedly."""
        if self._closed:
            return
        self.cancel()
        self._release_transports()
        self.builder.release()
        self.settings.clear_proxy()
        self._closed = True
