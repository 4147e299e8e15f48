"""
Thin HTTP client for the Vault endpoints the provisioning workflow uses.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)


class VaultClient:
    """
    Wraps a requests.Session. Every method returns the raw Response;
    callers decide what counts as failure.
    """

    def __init__(self, address: str, token: str,
                 session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        self.address = address.rstrip("/")
        self._token = token
        self._session = session or requests.Session()
        self._timeout = timeout

    def _url(self, prefix: str, name: Optional[str] = None) -> str:
        url = f"{self.address}/v1/{prefix}"
        if name is not None:
            url += "/" + quote(name, safe="")
        return url

    def _headers(self) -> Dict[str, str]:
        return {"X-Vault-Token": self._token}

    def _get(self, url: str) -> requests.Response:
        return self._session.get(url, headers=self._headers(), timeout=self._timeout)

    def _post(self, url: str, payload: Dict[str, Any]) -> requests.Response:
        return self._session.post(url, json=payload, headers=self._headers(), timeout=self._timeout)

    # ── Database secrets engine ──────────────────────────────────────

    def get_database_config(self, config_name: str) -> requests.Response:
        url = self._url("database/config", config_name)
        logger.info("Getting database config at %s", url)
        return self._get(url)

    def update_database_config(self, config_name: str, payload: Dict[str, Any]) -> requests.Response:
        url = self._url("database/config", config_name)
        logger.info("Updating database config at %s", url)
        return self._post(url, payload)

    def create_role(self, role_name: str, payload: Dict[str, Any]) -> requests.Response:
        url = self._url("database/roles", role_name)
        logger.info("Creating database role at %s", url)
        return self._post(url, payload)

    # ── Policies and tokens ──────────────────────────────────────────

    def create_policy(self, policy_name: str, payload: Dict[str, Any]) -> requests.Response:
        url = self._url("sys/policies/acl", policy_name)
        logger.info("Creating or updating Vault policy at %s", url)
        return self._post(url, payload)

    def create_token_role(self, role_name: str, payload: Dict[str, Any]) -> requests.Response:
        url = self._url("auth/token/roles", role_name)
        logger.info("Creating token role at %s", url)
        return self._post(url, payload)

    def create_token(self, payload: Dict[str, Any]) -> requests.Response:
        url = self._url("auth/token/create")
        logger.info("Creating token at %s", url)
        return self._post(url, payload)

    def create_token_from_role(self, role_name: str) -> requests.Response:
        url = self._url("auth/token/create", role_name)
        logger.info("Creating token from role at %s", url)
        return self._post(url, {})
