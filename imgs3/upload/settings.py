"""
S3 Settings

Accessor for the configuration the upload and delete sessions need:
credentials endpoint, API key, proxy and post-upload behaviour. Values are
re-read from disk and environment for every session so configuration edits
apply without a restart.
"""

import logging
import os
from typing import Any, Dict, Optional

import backoff
import requests

from imgs3.core.config_manager import USER_CONFIG_FILE, ConfigManager

from .models import ProxyDescriptor, SettingsSnapshot

logger = logging.getLogger(__name__)


class S3Settings:
    """Settings collaborator for the S3 sessions"""

    ENV_OVERRIDES = {
        "IMGS3_CREDS_URL": ("s3", "credentials_endpoint"),
        "IMGS3_API_KEY": ("s3", "api_key"),
        "IMGS3_REMOTE_CONFIG_URL": ("s3", "remote_config_url"),
    }
    PROXY_ENV = "IMGS3_PROXY"
    REMOTE_CONFIG_TIMEOUT = 10

    def __init__(self, config_path: Optional[str] = None, config_manager: Optional[ConfigManager] = None):
        self.config_path = config_path
        self.config_manager = config_manager or ConfigManager()
        self._config: Dict[str, Any] = {}
        self._proxy: Optional[ProxyDescriptor] = None
        self._proxy_loaded = False
        self.reload()

    def reload(self) -> None:
        """Re-read configuration files and environment overrides"""
        config = self.config_manager.discover_and_load_config(self.config_path)
        for var_name, (section, key) in self.ENV_OVERRIDES.items():
            value = os.getenv(var_name)
            if value:
                config.setdefault(section, {})[key] = value
        self._config = config

    def _section(self, name: str) -> Dict[str, Any]:
        return self._config.get(name) or {}

    def credentials_endpoint(self) -> str:
        return self._section("s3").get("credentials_endpoint") or ""

    def api_key(self) -> str:
        return self._section("s3").get("api_key") or ""

    def remote_config_url(self) -> str:
        return self._section("s3").get("remote_config_url") or ""

    def request_timeout(self) -> float:
        return float(self._section("network").get("request_timeout", 60))

    def copy_and_close_after_upload_enabled(self) -> bool:
        return bool(self._section("upload").get("copy_and_close_after_upload", False))

    def retry_max_attempts(self) -> Optional[int]:
        value = self._section("retry").get("max_attempts")
        return int(value) if value else None

    def history_path(self) -> str:
        return os.path.expanduser(self._section("history").get("path") or "~/.cache/imgs3/history")

    def history_max_size(self) -> int:
        return int(self._section("history").get("max_size", 25))

    def proxy(self) -> Optional[ProxyDescriptor]:
        """Proxy descriptor, built lazily and cached until clear_proxy()"""
        if not self._proxy_loaded:
            proxy_config = self._section("s3").get("proxy") or {}
            url = os.getenv(self.PROXY_ENV) or proxy_config.get("url")
            if url:
                self._proxy = ProxyDescriptor(
                    url=url,
                    username=proxy_config.get("username") or None,
                    password=proxy_config.get("password") or None
                )
            self._proxy_loaded = True
        return self._proxy

    def clear_proxy(self) -> None:
        self._proxy = None
        self._proxy_loaded = False

    def snapshot(self) -> SettingsSnapshot:
        """Fresh settings for a new session"""
        self.reload()
        self.clear_proxy()
        return SettingsSnapshot(
            credentials_endpoint=self.credentials_endpoint(),
            api_key=self.api_key(),
            proxy=self.proxy(),
            request_timeout=self.request_timeout()
        )

    def get_config_remote(self) -> bool:
        """Resolve missing S3 settings from the remote configuration URL.

        Returns True when a credentials endpoint is available afterwards.
        The resolved values are written to the user config file.
        """
        url = self.remote_config_url()
        if not url:
            logger.warning("No remote configuration URL configured")
            return False

        try:
            payload = self._fetch_remote_config(url)
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Failed to retrieve remote configuration from {url}: {e}")
            return False

        resolved = self._parse_remote_config(payload)
        if not resolved.get("credentials_endpoint"):
            logger.warning("Remote configuration does not contain an S3 credentials URL")
            return False

        self._persist(resolved)
        self.reload()
        return bool(self.credentials_endpoint())

    @backoff.on_exception(
        backoff.expo,
        (requests.exceptions.ConnectionError, requests.exceptions.Timeout),
        max_tries=3,
        base=1,
        max_value=10
    )
    def _fetch_remote_config(self, url: str) -> Any:
        proxy = self.proxy()
        proxies = {"http": proxy.url, "https": proxy.url} if proxy else None
        response = requests.get(url, timeout=self.REMOTE_CONFIG_TIMEOUT, proxies=proxies)
        response.raise_for_status()
        return response.json()

    def _parse_remote_config(self, payload: Any) -> Dict[str, str]:
        """Accept both the flat layout and the legacy {"S3": {...}} layout"""
        if not isinstance(payload, dict):
            return {}

        legacy = payload.get("S3")
        if isinstance(legacy, dict):
            return {
                "credentials_endpoint": legacy.get("S3_CREDS_URL") or "",
                "api_key": legacy.get("S3_X_API_KEY") or "",
            }

        s3 = payload.get("s3") if isinstance(payload.get("s3"), dict) else payload
        return {
            "credentials_endpoint": s3.get("credentials_endpoint") or "",
            "api_key": s3.get("api_key") or "",
        }

    def _persist(self, resolved: Dict[str, str]) -> None:
        path = self.config_path or USER_CONFIG_FILE
        user_config = self.config_manager.load_config(path) if os.path.exists(path) else {}
        s3 = user_config.setdefault("s3", {})
        for key, value in resolved.items():
            if value:
                s3[key] = value
        self.config_manager.save_config(path, user_config)
        logger.info(f"Stored remote S3 configuration in {path}")
        if self.config_path is None:
            self.config_path = path
