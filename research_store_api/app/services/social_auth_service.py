"""
Verification of Google and Facebook sign-in tokens.

The storefront obtains a Google ID token or a Facebook access token in
the browser and posts it here.  The token is checked with the
provider (Google's token-info endpoint, Facebook's Graph API) and the
verified e-mail is used to find or create the local customer.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from starlette.concurrency import run_in_threadpool

from research_store_api.app.core.config import settings
from research_store_api.app.core.errors import Unauthorized

logger = logging.getLogger(__name__)

GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
FACEBOOK_ME_URL = "https://graph.facebook.com/me"
GOOGLE_ISSUERS = {"accounts.google.com", "https://accounts.google.com"}


@dataclass
class SocialProfile:
    email: str
    full_name: str
    picture: Optional[str] = None


class SocialIdentityVerifier:
    """Checks provider tokens over HTTPS and returns the verified profile."""

    def __init__(
        self,
        google_client_id: str = "",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.google_client_id = google_client_id
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get_json(self, url: str, params: Dict[str, str]) -> Dict[str, Any]:
        response = self.session.get(url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    async def _lookup(self, provider: str, url: str, params: Dict[str, str]) -> Dict[str, Any]:
        try:
            return await run_in_threadpool(self._get_json, url, params)
        except (requests.RequestException, ValueError) as exc:
            logger.warning("%s token check failed: %s", provider, exc)
            raise Unauthorized(f"{provider} authentication failed") from exc

    async def google(self, id_token: str) -> SocialProfile:
        info = await self._lookup("Google", GOOGLE_TOKENINFO_URL, {"id_token": id_token})
        if info.get("iss") not in GOOGLE_ISSUERS:
            raise Unauthorized("Google authentication failed")
        if self.google_client_id and info.get("aud") != self.google_client_id:
            logger.warning("Google token issued for another client")
            raise Unauthorized("Google authentication failed")
        email = (info.get("email") or "").lower()
        if not email or str(info.get("email_verified")).lower() != "true":
            raise Unauthorized("Google account has no verified email")
        return SocialProfile(email=email, full_name=info.get("name") or "", picture=info.get("picture"))

    async def facebook(self, access_token: str) -> SocialProfile:
        info = await self._lookup(
            "Facebook",
            FACEBOOK_ME_URL,
            {"fields": "id,name,email,picture", "access_token": access_token},
        )
        email = (info.get("email") or "").lower()
        if not email:
            raise Unauthorized("Facebook account has no email address")
        picture = ((info.get("picture") or {}).get("data") or {}).get("url")
        return SocialProfile(email=email, full_name=info.get("name") or "", picture=picture)


def get_social_verifier() -> SocialIdentityVerifier:
    """FastAPI dependency; tests replace it through ``dependency_overrides``."""
    return SocialIdentityVerifier(google_client_id=settings.google_client_id)
