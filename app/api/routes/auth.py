import secrets
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query
import structlog

from app.config.settings import settings
from app.core.dependencies import get_github_service
from app.core.errors import ConfigurationError, ValidationError
from app.core.security import create_access_token, get_current_user
from app.models.schemas import (
    AccessTokenRequest,
    AuthResponse,
    AuthUrlResponse,
    GitHubUserProfile,
    OAuthCallbackRequest,
    SessionUser,
    SuccessResponse,
    VerifyResponse,
)
from app.repositories.interfaces.github_service import IGitHubService

logger = structlog.get_logger()

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/github-url", response_model=AuthUrlResponse)
async def get_auth_url(redirect_uri: Optional[str] = Query(None)):
    """Build the GitHub OAuth authorization URL"""
    if not settings.github_client_id:
        raise ConfigurationError("GitHub OAuth is not configured")

    allowed_redirects = set()
    for url in settings.frontend_urls:
        allowed_redirects.update({url, f"{url}/auth/github/callback"})
    allowed_redirects.add(settings.oauth_redirect_uri)
    if redirect_uri and redirect_uri.rstrip("/") not in allowed_redirects:
        raise ValidationError("Invalid redirect URI")

    # Opaque CSRF token, checked by the client on callback
    state = secrets.token_urlsafe(16)
    params = {
        "client_id": settings.github_client_id,
        "redirect_uri": redirect_uri or settings.oauth_redirect_uri,
        "scope": settings.github_oauth_scope,
        "state": state,
    }
    return AuthUrlResponse(
        auth_url=f"{settings.github_oauth_url}/authorize?{urlencode(params)}",
        state=state,
        message="Redirect user to this URL for GitHub authentication",
    )


@router.post("/github/callback", response_model=AuthResponse)
async def handle_callback(
    request: OAuthCallbackRequest,
    github_service: IGitHubService = Depends(get_github_service),
):
    """Exchange the OAuth code and issue a session token"""
    if request.error:
        raise ValidationError(f"GitHub OAuth error: {request.error}")
    if not request.code:
        raise ValidationError("Authorization code is required")

    access_token = await github_service.exchange_code_for_token(request.code)
    github_user = await github_service.get_user(access_token)
    logger.info("GitHub user authenticated", user_id=github_user.get("id"), username=github_user.get("login"))

    return AuthResponse(
        message="Authentication successful",
        token=create_access_token(github_user),
        user=GitHubUserProfile.from_github(github_user, access_token),
    )


@router.post("/refresh", response_model=AuthResponse)
async def refresh_user(
    request: AccessTokenRequest,
    github_service: IGitHubService = Depends(get_github_service),
):
    """Reload the GitHub profile and issue a fresh session token"""
    github_user = await github_service.get_user(request.access_token)
    return AuthResponse(
        message="User data refreshed successfully",
        token=create_access_token(github_user),
        user=GitHubUserProfile.from_github(github_user, request.access_token),
    )


@router.get("/verify", response_model=VerifyResponse)
async def verify_token(user: SessionUser = Depends(get_current_user)):
    return VerifyResponse(message="Token is valid", user=user)


@router.post("/logout", response_model=SuccessResponse)
async def logout(user: SessionUser = Depends(get_current_user)):
    """Sessions are stateless; the client discards its token"""
    logger.info("User logged out", user_id=user.id)
    return SuccessResponse(message="Logout successful. Please remove the token from client storage.")
