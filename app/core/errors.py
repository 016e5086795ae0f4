from datetime import datetime
from typing import Any, Dict, Optional


class AppError(Exception):
    """Operational error carrying the HTTP status it should surface as."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.details = details

    def to_dict(self, include_details: bool = False) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": False,
            "error": self.error_code,
            "message": self.message,
            "timestamp": datetime.utcnow().isoformat(),
        }
        if include_details and self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class ConfigurationError(AppError):
    status_code = 500
    error_code = "CONFIGURATION_ERROR"


# Session credential failures

class AuthError(AppError):
    status_code = 401
    error_code = "TOKEN_MISSING"


class TokenExpiredError(AuthError):
    error_code = "TOKEN_EXPIRED"


class InvalidTokenError(AuthError):
    status_code = 403
    error_code = "TOKEN_INVALID"


# Request policy

class PayloadTooLarge(AppError):
    status_code = 413
    error_code = "PAYLOAD_TOO_LARGE"


class TooManyRequests(AppError):
    status_code = 429
    error_code = "TOO_MANY_REQUESTS"


# GitHub failures

class GitHubAuthError(AppError):
    status_code = 401
    error_code = "GITHUB_UNAUTHORIZED"


class PermissionDeniedError(AppError):
    status_code = 403
    error_code = "GITHUB_FORBIDDEN"


class UpstreamNotFound(AppError):
    status_code = 404
    error_code = "NOT_FOUND"


class UpstreamConflict(AppError):
    status_code = 422
    error_code = "CONFLICT"


class UpstreamRateLimited(AppError):
    status_code = 429
    error_code = "RATE_LIMITED"


class UpstreamUnavailable(AppError):
    status_code = 502
    error_code = "UPSTREAM_UNAVAILABLE"


# AI provider failures

class InvalidCredentials(AppError):
    status_code = 401
    error_code = "AI_INVALID_CREDENTIALS"


class RateLimited(UpstreamRateLimited):
    error_code = "AI_RATE_LIMITED"


class MalformedResponse(AppError):
    status_code = 502
    error_code = "AI_MALFORMED_RESPONSE"


class NoProviderConfigured(AppError):
    status_code = 503
    error_code = "AI_NOT_CONFIGURED"


def error_for_status(status_code: int, message: str) -> AppError:
    """Translate an upstream HTTP status into the matching application error."""
    if status_code == 400:
        return ValidationError(message)
    if status_code == 401:
        return GitHubAuthError(message)
    if status_code == 403:
        return PermissionDeniedError(message)
    if status_code == 404:
        return UpstreamNotFound(message)
    if status_code in (409, 422):
        return UpstreamConflict(message)
    if status_code == 429:
        return UpstreamRateLimited(message)
    if status_code >= 500:
        return UpstreamUnavailable(message)
    return AppError(message, status_code=500)
