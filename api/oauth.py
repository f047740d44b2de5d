"""
GitHub OAuth client used by the optional federated login.
"""

import secrets
from typing import Dict, Optional
from urllib.parse import urlencode

import httpx
import structlog

from api.config import APIConfig
from utilities.errors import Unauthenticated

logger = structlog.get_logger(__name__)

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"
USER_URL = "https://api.github.com/user"


class GitHubOAuthClient:
    """
    Minimal OAuth web-flow client for GitHub.

    Args:
        client_id: OAuth app client id
        client_secret: OAuth app client secret
        callback_url: Redirect URI registered with the OAuth app
        timeout: Upper bound for each call to GitHub, in seconds
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        callback_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.callback_url = callback_url
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_config(cls, api_config: APIConfig) -> Optional["GitHubOAuthClient"]:
        """Build a client, or None when GitHub login is not configured."""
        if not api_config.github_enabled:
            logger.warning("GITHUB_CLIENT_ID or GITHUB_CLIENT_SECRET not set, GitHub login disabled")
            return None
        return cls(
            client_id=api_config.github_client_id,
            client_secret=api_config.github_client_secret,
            callback_url=api_config.github_callback_url,
            timeout=api_config.github_timeout_seconds,
        )

    @staticmethod
    def new_state() -> str:
        return secrets.token_urlsafe(24)

    def authorization_url(self, state: str) -> str:
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "scope": "read:user user:email",
            "state": state,
        })
        return f"{AUTHORIZE_URL}?{query}"

    async def fetch_profile(self, code: str) -> Dict:
        """
        Exchange an authorization code and return the GitHub user profile.

        Raises:
            Unauthenticated: If GitHub rejects the code or cannot be reached
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                token_response = await client.post(
                    TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "code": code,
                        "redirect_uri": self.callback_url,
                    },
                    headers={"Accept": "application/json"},
                )
                token_response.raise_for_status()
                access_token = token_response.json().get("access_token")
                if not access_token:
                    raise Unauthenticated("GitHub authentication failed.")

                user_response = await client.get(
                    USER_URL,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/vnd.github+json",
                    },
                )
                user_response.raise_for_status()
                profile = user_response.json()

        except httpx.HTTPError as e:
            logger.error("GitHub OAuth request failed", error=str(e))
            raise Unauthenticated("GitHub authentication failed.")

        if "id" not in profile or "login" not in profile:
            raise Unauthenticated("GitHub authentication failed.")

        logger.info("GitHub profile fetched", github_id=profile["id"], login=profile["login"])
        return profile
