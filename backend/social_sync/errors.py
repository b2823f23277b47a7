"""
Error taxonomy shared by routes, services and provider integrations.

Every error carries the HTTP status it maps to and a user-facing message.
`reason` holds extra detail (usually the provider's own message) and is
always passed through `sanitize` before it is stored.
"""
from __future__ import annotations

import re

from fastapi import status

_SENSITIVE_PATTERNS = [
    (re.compile(r"Bearer\s+[A-Za-z0-9\-_\.]+", re.IGNORECASE), "Bearer ***"),
    (re.compile(r"access_token=[A-Za-z0-9\-_\.%]+", re.IGNORECASE), "access_token=***"),
    (re.compile(r"refresh_token=[A-Za-z0-9\-_\.%]+", re.IGNORECASE), "refresh_token=***"),
    (re.compile(r"client_secret=[A-Za-z0-9\-_\.%]+", re.IGNORECASE), "client_secret=***"),
]


def sanitize(text: str | None) -> str | None:
    """Strip credentials and tokens from error messages / response text."""
    if not text:
        return text
    for pattern, replacement in _SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SocialSyncError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None, reason: str | None = None):
        self.message = message or self.default_message
        self.reason = sanitize(reason)
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "reason": self.reason}


class Unauthenticated(SocialSyncError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Invalid token"


class NotConnected(SocialSyncError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Account not connected"


class NotFound(SocialSyncError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ValidationError(SocialSyncError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AlreadyPublished(SocialSyncError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Post already published"


class ProviderError(SocialSyncError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Provider request failed"


class RateLimited(ProviderError):
    default_message = "Provider rate limit exceeded"

    def __init__(self, message: str | None = None, reason: str | None = None, retry_after: float | None = None):
        super().__init__(message, reason)
        self.retry_after = retry_after


class NetworkError(ProviderError):
    default_message = "Provider unreachable"
