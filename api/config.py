"""
API configuration settings.
"""

from typing import List, Optional

from pydantic_settings import BaseSettings


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Book Club API"
    api_version: str = "1.0.0"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Security Settings
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    cookie_name: str = "jwt"
    cookie_secure: bool = False

    # GitHub OAuth (disabled unless both id and secret are set)
    github_client_id: Optional[str] = None
    github_client_secret: Optional[str] = None
    github_callback_url: str = "http://localhost:8000/auth/github/callback"
    github_timeout_seconds: float = 10.0

    # CORS Settings
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    cors_allow_headers: List[str] = ["Content-Type", "Authorization"]

    # Logging
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "extra": "ignore"  # Ignore extra fields from .env
    }

    @property
    def github_enabled(self) -> bool:
        return bool(self.github_client_id and self.github_client_secret)


# Global config instance
config = APIConfig()
