"""
Credential endpoint resolution with user-confirmed retries.
"""

import logging
from typing import Optional

from rich.console import Console

from .exceptions import RetryLimitReached
from .settings import S3Settings

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Unable to get s3 credentials, please check your VPN connection and try again"


class RetryPolicy:
    """Re-resolves a missing credentials endpoint from remote configuration.

    Each attempt after the first needs a fresh "retry" answer from the
    confirmation surface; `max_attempts` (when set) caps the total number
    of remote lookups as well.
    """

    def __init__(self, settings: S3Settings, prompt, console: Optional[Console] = None,
                 max_attempts: Optional[int] = None):
        self.settings = settings
        self.prompt = prompt
        self.console = console or Console()
        self.max_attempts = max_attempts
        self.attempts = 0

    def resolve_and_retry(self) -> bool:
        """Return True once the credentials endpoint is available, False if the user cancels.

        Raises RetryLimitReached when `max_attempts` runs out before the user
        cancels.
        """
        self.attempts = 0
        while True:
            self.attempts += 1
            self.console.print("📡 Retrieving configuration file with s3 creds...", style="cyan")
            if self.settings.get_config_remote() and self.settings.credentials_endpoint():
                logger.info(f"Credentials endpoint resolved after {self.attempts} attempt(s)")
                return True

            self.console.print("⚠️  S3 Creds URL is not found in your configuration file", style="yellow")

            if self.max_attempts is not None and self.attempts >= self.max_attempts:
                logger.warning(f"Giving up on remote configuration after {self.attempts} attempts")
                raise RetryLimitReached(
                    f"credentials unavailable, retry limit of {self.max_attempts} attempts reached",
                    attempts=self.attempts
                )

            if not self.prompt.ask_retry(RETRY_MESSAGE):
                logger.info("User declined to retry credential resolution")
                return False
