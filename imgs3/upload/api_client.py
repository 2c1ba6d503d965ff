"""
Transport clients for the S3 credential broker and the object store.

Each client performs exactly one HTTP call per invocation inside its own
aiohttp.ClientSession, so cancelling the awaiting task tears the
connection down with it.
"""

import asyncio
import json
import logging
from typing import Any, Dict

import aiohttp

from .exceptions import (
    ConfigurationMissingError,
    HTTPStatusError,
    MalformedResponseError,
    TransportError,
)
from .form_builder import UploadForm
from .models import CredentialDocument, SettingsSnapshot

logger = logging.getLogger(__name__)


class _BrokerTransport:
    """Shared request plumbing: deadline, proxy and error mapping"""

    def __init__(self, snapshot: SettingsSnapshot):
        self.snapshot = snapshot

    def _timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.snapshot.request_timeout)

    def _proxy_kwargs(self) -> Dict[str, Any]:
        proxy = self.snapshot.proxy
        if proxy is None:
            return {}
        return {"proxy": proxy.url, "proxy_auth": proxy.auth()}

    async def _request(self, method: str, url: str, **kwargs) -> bytes:
        try:
            async with aiohttp.ClientSession(timeout=self._timeout()) as session:
                async with session.request(method, url, **self._proxy_kwargs(), **kwargs) as response:
                    body = await response.read()
                    if not 200 <= response.status < 300:
                        self._raise_for_status(url, response, body)
                    return body
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Operation timed out after {self.snapshot.request_timeout:g}s: {url}",
                endpoint=url,
                original_exception=e
            )
        except aiohttp.ClientError as e:
            raise TransportError(str(e) or e.__class__.__name__, endpoint=url, original_exception=e)

    def _raise_for_status(self, url: str, response: aiohttp.ClientResponse, body: bytes):
        reason = response.reason or ""
        message = f"Error transferring {url} - server replied: {reason or response.status}"
        detail = body.decode("utf-8", errors="replace").strip()
        if detail:
            message += f"\n{detail[:500]}"
        raise HTTPStatusError(message, endpoint=url, status_code=response.status, reason=reason)


class CredentialClient(_BrokerTransport):
    """Fetches presigned POST credentials from the broker"""

    async def fetch(self) -> CredentialDocument:
        """GET {credentials_endpoint}"""
        url = self.snapshot.credentials_endpoint
        if not url:
            raise ConfigurationMissingError("S3 credentials URL is not configured")

        logger.debug(f"Requesting upload credentials from {url}")
        body = await self._request("GET", url, headers=self.snapshot.get_headers())

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise MalformedResponseError(f"Credential response is not valid JSON: {e}")

        return CredentialDocument.from_response(payload)


class UploadClient(_BrokerTransport):
    """Posts the multipart form to the presigned URL"""

    async def post(self, url: str, form: UploadForm) -> int:
        """POST {formData.url}"""
        logger.debug(f"Uploading {form.image_size} bytes to {url}")
        await self._request("POST", url, data=form.to_form_data())
        return form.image_size


class DeleteClient(_BrokerTransport):
    """Removes an uploaded object through the broker"""

    async def delete(self, object_name: str, delete_token: str) -> None:
        """DELETE {credentials_endpoint}{object_name}"""
        if not self.snapshot.credentials_endpoint:
            raise ConfigurationMissingError("S3 credentials URL is not configured")

        url = self.snapshot.credentials_endpoint + object_name
        headers = {
            "X-API-Key": self.snapshot.api_key,
            "Authorization": f"Bearer {delete_token}",
        }
        logger.debug(f"Deleting remote object {object_name}")
        await self._request("DELETE", url, headers=headers)
