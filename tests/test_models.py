"""
Tests for credential document parsing and object name derivation.
"""

import copy

import pytest

from conftest import CREDENTIALS_RESPONSE
from imgs3.upload.exceptions import MalformedResponseError
from imgs3.upload.models import (
    CredentialDocument,
    ProxyDescriptor,
    SessionState,
    SettingsSnapshot,
    object_name_from_url
)


class TestCredentialDocument:
    """Parsing of the broker response"""

    def setup_method(self):
        self.payload = copy.deepcopy(CREDENTIALS_RESPONSE)

    def test_parses_complete_response(self):
        document = CredentialDocument.from_response(self.payload)

        assert document.result_url == "https://bucket.s3.amazonaws.com/abc/def123.png"
        assert document.post_url == "https://bucket.s3.amazonaws.com/"
        assert document.fields == {"key": "abc"}
        assert document.delete_token == "tok3n"
        assert document.storage_object_name == "def123.png"

    def test_preserves_field_order(self):
        self.payload["formData"]["fields"] = {
            "key": "abc/def123.png",
            "policy": "eyJ...",
            "x-amz-algorithm": "AWS4-HMAC-SHA256",
            "acl": "public-read",
        }
        document = CredentialDocument.from_response(self.payload)

        assert list(document.fields) == ["key", "policy", "x-amz-algorithm", "acl"]

    def test_missing_fields_means_empty_policy(self):
        del self.payload["formData"]["fields"]
        document = CredentialDocument.from_response(self.payload)
        assert document.fields == {}

    @pytest.mark.parametrize("missing", ["resultURL", "deleteToken", "formData"])
    def test_missing_top_level_key_is_malformed(self, missing):
        del self.payload[missing]
        with pytest.raises(MalformedResponseError):
            CredentialDocument.from_response(self.payload)

    def test_empty_delete_token_is_malformed(self):
        self.payload["deleteToken"] = ""
        with pytest.raises(MalformedResponseError):
            CredentialDocument.from_response(self.payload)

    def test_missing_post_url_is_malformed(self):
        del self.payload["formData"]["url"]
        with pytest.raises(MalformedResponseError):
            CredentialDocument.from_response(self.payload)

    def test_result_url_without_object_name_is_malformed(self):
        self.payload["resultURL"] = "https://bucket.s3.amazonaws.com/abc/"
        with pytest.raises(MalformedResponseError):
            CredentialDocument.from_response(self.payload)

    def test_non_string_field_value_is_malformed(self):
        self.payload["formData"]["fields"] = {"content-length-range": 100}
        with pytest.raises(MalformedResponseError):
            CredentialDocument.from_response(self.payload)

    def test_non_object_payload_is_malformed(self):
        with pytest.raises(MalformedResponseError):
            CredentialDocument.from_response(["resultURL"])


class TestObjectName:

    def test_last_path_segment(self):
        assert object_name_from_url("https://bucket.s3.amazonaws.com/abc/def123.png") == "def123.png"

    def test_no_slash_returns_whole_string(self):
        assert object_name_from_url("def123.png") == "def123.png"


class TestSmallModels:

    def test_terminal_states(self):
        assert SessionState.SUCCEEDED.is_terminal
        assert SessionState.FAILED.is_terminal
        assert SessionState.CANCELLED.is_terminal
        assert not SessionState.UPLOADING.is_terminal
        assert not SessionState.IDLE.is_terminal

    def test_api_key_header_only_when_configured(self):
        assert SettingsSnapshot("https://b/", api_key="k").get_headers() == {"X-API-Key": "k"}
        assert SettingsSnapshot("https://b/").get_headers() == {}

    def test_proxy_auth(self):
        assert ProxyDescriptor("http://proxy:3128").auth() is None
        auth = ProxyDescriptor("http://proxy:3128", "user", "pw").auth()
        assert auth.login == "user"
        assert auth.password == "pw"
