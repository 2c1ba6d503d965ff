"""
Shared fixtures and fakes for the imgs3 test suite.
"""

import io
from typing import List, Optional

import pytest
from rich.console import Console

from imgs3.upload.exceptions import ConfigurationMissingError
from imgs3.upload.models import CredentialDocument, SettingsSnapshot

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + bytes(range(32))

RESULT_URL = "https://bucket.s3.amazonaws.com/abc/def123.png"

CREDENTIALS_RESPONSE = {
    "resultURL": RESULT_URL,
    "deleteToken": "tok3n",
    "formData": {
        "url": "https://bucket.s3.amazonaws.com/",
        "fields": {"key": "abc"}
    }
}


class FakeSettings:
    """In-memory settings collaborator"""

    def __init__(self, endpoint="https://broker.test/creds/", api_key="secret",
                 copy_and_close=False, remote_endpoint=None):
        self.endpoint = endpoint
        self.key = api_key
        self.copy_and_close = copy_and_close
        self.remote_endpoint = remote_endpoint
        self.get_config_remote_calls = 0
        self.clear_proxy_calls = 0
        self.snapshot_calls = 0
        self.copy_and_close_calls = 0

    def credentials_endpoint(self):
        return self.endpoint

    def api_key(self):
        return self.key

    def proxy(self):
        return None

    def clear_proxy(self):
        self.clear_proxy_calls += 1

    def request_timeout(self):
        return 5.0

    def retry_max_attempts(self):
        return None

    def copy_and_close_after_upload_enabled(self):
        self.copy_and_close_calls += 1
        return self.copy_and_close

    def snapshot(self):
        self.snapshot_calls += 1
        return SettingsSnapshot(
            credentials_endpoint=self.endpoint,
            api_key=self.key,
            proxy=None,
            request_timeout=self.request_timeout()
        )

    def get_config_remote(self):
        self.get_config_remote_calls += 1
        if self.remote_endpoint:
            self.endpoint = self.remote_endpoint
            return True
        return False


class FakeCredentialClient:
    """Credential client factory that replays scripted results"""

    def __init__(self, results: Optional[List] = None):
        self.results = list(results or [CredentialDocument.from_response(CREDENTIALS_RESPONSE)])
        self.snapshots = []
        self.calls = 0

    def __call__(self, snapshot):
        self.snapshots.append(snapshot)
        self._snapshot = snapshot
        return self

    async def fetch(self):
        self.calls += 1
        if not self._snapshot.credentials_endpoint:
            raise ConfigurationMissingError("S3 credentials URL is not configured")
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class FakeUploadClient:
    """Upload client factory recording every POST"""

    def __init__(self, error: Optional[Exception] = None, gate=None):
        self.error = error
        self.gate = gate
        self.posts = []
        self.completed = 0

    def __call__(self, snapshot):
        return self

    async def post(self, url, form):
        self.posts.append((url, form.parts))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        self.completed += 1
        return form.image_size


@pytest.fixture
def console():
    return Console(file=io.StringIO(), force_terminal=False, no_color=True)


@pytest.fixture
def png_bytes():
    return PNG_BYTES


@pytest.fixture
def credential_document():
    return CredentialDocument.from_response(CREDENTIALS_RESPONSE)
