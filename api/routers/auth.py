"""
Account endpoints: registration, login/logout, profile and GitHub login.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool

from api.auth import CurrentUser, PasswordManager, TokenManager, get_current_user, get_token_manager
from api.config import APIConfig
from api.dependencies import get_api_config, get_oauth_client, get_repositories
from api.models import (
    AuthResponse, LoginRequest, MessageResponse, ProfileResponse, ProfileUser,
    RegisterRequest, RegisterResponse
)
from api.oauth import GitHubOAuthClient
from storage.repositories import Repositories
from utilities.errors import NotFound, Unauthenticated, ValidationFailed

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Authentication"])

STATE_COOKIE = "oauth_state"


def _set_token_cookie(response: Response, token: str, api_config: APIConfig, max_age: int) -> None:
    response.set_cookie(
        api_config.cookie_name,
        token,
        max_age=max_age,
        httponly=True,
        secure=api_config.cookie_secure,
        samesite="lax",
    )


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@router.post("/users/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED,
             include_in_schema=False)
async def register(payload: RegisterRequest, repositories: Repositories = Depends(get_repositories)):
    """
    Register a new user.

    - **username**: Unique username
    - **email**: Unique email address
    - **password**: Plaintext password, stored only as a bcrypt hash
    """
    password_hash = await run_in_threadpool(PasswordManager.hash_password, payload.password)
    user = await repositories.users.create_user(
        email=payload.email,
        username=payload.username,
        password_hash=password_hash,
    )
    logger.info("User registered", user_id=user["id"], username=user["username"])
    return RegisterResponse(message="User registered successfully!", user_id=user["id"])


@router.post("/login", response_model=AuthResponse)
@router.post("/users/login", response_model=AuthResponse, include_in_schema=False)
async def login(
    payload: LoginRequest,
    response: Response,
    repositories: Repositories = Depends(get_repositories),
    token_manager: TokenManager = Depends(get_token_manager),
    api_config: APIConfig = Depends(get_api_config),
):
    """
    Log in with username (or email) and password.

    The token is returned in the body and also set as an HTTP-only cookie.
    """
    if payload.username:
        user = await repositories.users.find_by_username(payload.username)
    else:
        user = await repositories.users.find_by_email(payload.email)

    valid = user is not None and await run_in_threadpool(
        PasswordManager.verify_password, payload.password, user.get("password_hash")
    )
    if not valid:
        logger.info("Login failed", username=payload.username, email=payload.email)
        raise Unauthenticated("Authentication failed: invalid credentials.")

    token = token_manager.create_access_token(user["id"], user["username"])
    _set_token_cookie(response, token, api_config, token_manager.max_age_seconds)

    logger.info("User logged in", user_id=user["id"])
    return AuthResponse(
        message="Logged in successfully",
        token=token,
        user_id=user["id"],
        username=user["username"],
    )


@router.get("/logout", response_model=MessageResponse)
@router.get("/users/logout", response_model=MessageResponse, include_in_schema=False)
async def logout(response: Response, api_config: APIConfig = Depends(get_api_config)):
    """Clear the token cookie. Bearer tokens stay valid until they expire."""
    response.delete_cookie(api_config.cookie_name, httponly=True, secure=api_config.cookie_secure)
    return MessageResponse(message="Logged out successfully.")


@router.get("/profile", response_model=ProfileResponse)
async def profile(current_user: CurrentUser = Depends(get_current_user)):
    """Return the identity carried by the caller's token."""
    return ProfileResponse(
        message="Successfully retrieved profile data.",
        user=ProfileUser(id=current_user.id, username=current_user.username),
    )


def _require_github(oauth_client: Optional[GitHubOAuthClient]) -> GitHubOAuthClient:
    if oauth_client is None:
        raise NotFound("GitHub login is not configured.")
    return oauth_client


@router.get("/auth/github/login", status_code=status.HTTP_307_TEMPORARY_REDIRECT)
async def github_login(
    oauth_client: Optional[GitHubOAuthClient] = Depends(get_oauth_client),
    api_config: APIConfig = Depends(get_api_config),
):
    """Redirect to GitHub's consent page."""
    client = _require_github(oauth_client)
    state = client.new_state()

    response = RedirectResponse(client.authorization_url(state), status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    response.set_cookie(STATE_COOKIE, state, max_age=600, httponly=True, secure=api_config.cookie_secure,
                        samesite="lax")
    return response


@router.get("/auth/github/callback", response_model=AuthResponse)
async def github_callback(
    request: Request,
    response: Response,
    code: Optional[str] = None,
    state: Optional[str] = None,
    oauth_client: Optional[GitHubOAuthClient] = Depends(get_oauth_client),
    repositories: Repositories = Depends(get_repositories),
    token_manager: TokenManager = Depends(get_token_manager),
    api_config: APIConfig = Depends(get_api_config),
):
    """
    Complete GitHub login and issue an API token.

    - **code**: Authorization code from GitHub
    - **state**: Must match the state set by /auth/github/login
    """
    client = _require_github(oauth_client)

    expected_state = request.cookies.get(STATE_COOKIE)
    if not code or not state or state != expected_state:
        raise ValidationFailed("Invalid OAuth state or missing authorization code.")

    profile_data = await client.fetch_profile(code)
    github_id = str(profile_data["id"])
    login_name = profile_data["login"]
    email = profile_data.get("email") or f"{github_id}+{login_name}@users.noreply.github.com"

    user = await repositories.users.upsert_github_user(github_id, login_name, email)

    token = token_manager.create_access_token(user["id"], user["username"])
    _set_token_cookie(response, token, api_config, token_manager.max_age_seconds)
    response.delete_cookie(STATE_COOKIE)

    logger.info("User logged in with GitHub", user_id=user["id"], github_id=github_id)
    return AuthResponse(
        message="Logged in successfully",
        token=token,
        user_id=user["id"],
        username=user["username"],
    )
