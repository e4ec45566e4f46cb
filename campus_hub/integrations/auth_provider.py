"""
Client for the external auth provider's token introspection endpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderIdentity:
    subject: str
    email: str | None


class SupabaseAuthClient:
    """Resolves Supabase access tokens via ``GET /auth/v1/user``."""

    def __init__(self, base_url: str, api_key: str, *, session: requests.Session | None = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_identity(self, access_token: str) -> ProviderIdentity | None:
        """Return the token's identity, or None when the provider rejects it."""
        try:
            response = self.session.get(
                f"{self.base_url}/auth/v1/user",
                headers={"Authorization": f"Bearer {access_token}", "apikey": self.api_key},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Auth provider unreachable: %s", exc)
            return None
        if response.status_code != 200:
            logger.info("Auth provider rejected token (HTTP %s)", response.status_code)
            return None
        payload = response.json() or {}
        subject = payload.get("id")
        if not subject:
            return None
        return ProviderIdentity(subject=subject, email=payload.get("email"))
