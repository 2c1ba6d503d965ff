"""
Data Models for the S3 Upload Workflow

Dataclasses shared by the transport clients, the sessions and the
history collaborator.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import aiohttp

from .exceptions import MalformedResponseError


class SessionState(Enum):
    """Upload session state"""
    IDLE = "idle"
    FETCHING_CREDENTIALS = "fetching_credentials"
    BUILDING_FORM = "building_form"
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.SUCCEEDED, SessionState.FAILED, SessionState.CANCELLED)


@dataclass(frozen=True)
class ProxyDescriptor:
    """HTTP proxy used by every transport role"""
    url: str
    username: Optional[str] = None
    password: Optional[str] = None

    def auth(self) -> Optional[aiohttp.BasicAuth]:
        if not self.username:
            return None
        return aiohttp.BasicAuth(self.username, self.password or "")


@dataclass(frozen=True)
class SettingsSnapshot:
    """Settings read at the start of a session"""
    credentials_endpoint: str
    api_key: str = ""
    proxy: Optional[ProxyDescriptor] = None
    request_timeout: float = 60.0

    def get_headers(self) -> Dict[str, str]:
        """Get authentication headers for broker requests"""
        if not self.api_key:
            return {}
        return {"X-API-Key": self.api_key}


def object_name_from_url(url: str) -> str:
    """Last '/'-delimited segment of a public object URL."""
    return url[url.rfind("/") + 1:]


@dataclass(frozen=True)
class CredentialDocument:
    """Presigned POST credentials issued by the broker"""
    result_url: str
    post_url: str
    fields: Dict[str, str]
    delete_token: str

    @classmethod
    def from_response(cls, payload: Any) -> "CredentialDocument":
        """Parse the broker JSON body, raising MalformedResponseError on any gap."""
        if not isinstance(payload, dict):
            raise MalformedResponseError("Credential response is not a JSON object")

        result_url = payload.get("resultURL")
        delete_token = payload.get("deleteToken")
        form_data = payload.get("formData")

        if not isinstance(result_url, str) or not result_url:
            raise MalformedResponseError("Credential response has no resultURL")
        if not object_name_from_url(result_url):
            raise MalformedResponseError(f"resultURL has no object name: {result_url}")
        if not isinstance(delete_token, str) or not delete_token:
            raise MalformedResponseError("Credential response has no deleteToken")
        if not isinstance(form_data, dict):
            raise MalformedResponseError("Credential response has no formData")

        post_url = form_data.get("url")
        if not isinstance(post_url, str) or not post_url:
            raise MalformedResponseError("Credential response has no formData.url")

        fields = form_data.get("fields", {})
        if fields is None:
            fields = {}
        if not isinstance(fields, dict):
            raise MalformedResponseError("formData.fields is not an object")
        for key, value in fields.items():
            if not isinstance(value, str):
                raise MalformedResponseError(f"formData.fields[{key!r}] is not a string")

        # json.loads keeps object key order, which is the broker's iteration order
        return cls(
            result_url=result_url,
            post_url=post_url,
            fields=dict(fields),
            delete_token=delete_token,
        )

    @property
    def storage_object_name(self) -> str:
        return object_name_from_url(self.result_url)


@dataclass
class UploadOutcome:
    """Result of one upload session"""
    succeeded: bool
    state: SessionState
    public_url: str = ""
    delete_token: str = ""
    storage_object_name: str = ""
    error: Optional[str] = None


@dataclass(frozen=True)
class DeleteRequest:
    """Remote object to delete"""
    object_name: str
    delete_token: str


@dataclass
class DeleteOutcome:
    """Result of one delete session"""
    succeeded: bool
    object_name: str
    removed_locally: bool = False
    overridden: bool = False
    error: Optional[str] = None


@dataclass
class HistoryEntry:
    """Unpacked history file name"""
    storage_kind: str
    delete_token: str
    object_name: str
    path: Optional[str] = None
