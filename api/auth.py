"""
Authentication for the FastAPI API: password hashing, token issuing and the
request guard that protects write endpoints.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import structlog
from bson import ObjectId
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from api.config import APIConfig
from utilities.errors import Unauthenticated

logger = structlog.get_logger(__name__)

# Fixed cost factor so hashes are reproducible across deployments
BCRYPT_ROUNDS = 10

# Security scheme; missing headers are handled by the cookie fallback
security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    """Identity decoded from a verified token."""
    id: str
    username: Optional[str] = None


class PasswordManager:
    """Salted one-way password hashing."""

    context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)

    @staticmethod
    def hash_password(password: str) -> str:
        return PasswordManager.context.hash(password)

    @staticmethod
    def verify_password(password: str, password_hash: Optional[str]) -> bool:
        """
        Check a plaintext password against a stored hash.

        Users created through GitHub login have no hash and never match.
        """
        if not password_hash:
            return False
        return PasswordManager.context.verify(password, password_hash)


class TokenManager:
    """Issues and verifies signed, time-limited bearer tokens."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 60 * 24):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    @classmethod
    def from_config(cls, api_config: APIConfig) -> "TokenManager":
        return cls(
            secret_key=api_config.secret_key,
            algorithm=api_config.algorithm,
            expire_minutes=api_config.access_token_expire_minutes,
        )

    @property
    def max_age_seconds(self) -> int:
        return self.expire_minutes * 60

    def create_access_token(self, user_id: str, username: Optional[str] = None) -> str:
        """
        Create a token carrying the user's identity.

        Args:
            user_id: User identifier (hex ObjectId)
            username: Username, included for convenience of clients

        Returns:
            Encoded JWT
        """
        now = datetime.utcnow()
        claims = {
            "id": user_id,
            "username": username,
            "iat": now,
            "exp": now + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        """
        Verify signature and expiry and return the claims.

        Raises:
            Unauthenticated: If the token is invalid or expired
        """
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning("Rejected access token", error=str(e))
            raise Unauthenticated("Access denied. Invalid or expired token.")

        user_id = claims.get("id")
        if not user_id or not ObjectId.is_valid(str(user_id)):
            logger.warning("Rejected access token without a user id")
            raise Unauthenticated("Access denied. Invalid or expired token.")
        return claims


def get_token_manager(request: Request) -> TokenManager:
    return request.app.state.token_manager


def extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """Bearer header first, then the token cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(request.app.state.api_config.cookie_name)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    token_manager: TokenManager = Depends(get_token_manager),
) -> CurrentUser:
    """
    Authenticate the request from its bearer token.

    Args:
        request: Incoming request (for the cookie fallback)
        credentials: HTTP authorization credentials, if any

    Returns:
        The caller's identity

    Raises:
        Unauthenticated: If no usable token is present or it fails verification
    """
    token = extract_token(request, credentials)

    # Clients that interpolate a missing variable send the string "undefined"
    if not token or token.strip().lower() == "undefined":
        logger.info("Access denied, no token", path=request.url.path)
        raise Unauthenticated("Access denied. A valid login token is required.")

    claims = token_manager.decode_access_token(token)
    return CurrentUser(id=str(claims["id"]), username=claims.get("username"))
