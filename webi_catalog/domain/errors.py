"""
Exceptions raised by the package catalog.

Exception hierarchy:
    CatalogError (base)
    ├── RateLimitExceeded
    ├── UpstreamHttpError
    └── CatalogUnavailable

Base64 decode failures and single-package failures are recovered where they
happen and never surface as exceptions to callers of the catalog service.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional


class CatalogError(Exception):
    """Base exception for all catalog errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class RateLimitExceeded(CatalogError):
    """
    GitHub refused the request with 403 because the rate limit is used up.

    ``authenticated`` tells whether the request carried a token; without one
    the fix is to configure ``GITHUB_TOKEN``, with one the only option is to
    wait until ``reset_at``.
    """

    def __init__(
        self,
        remaining: Optional[int],
        limit: Optional[int],
        reset_at: Optional[datetime],
        authenticated: bool,
    ):
        self.remaining = remaining
        self.limit = limit
        self.reset_at = reset_at
        self.authenticated = authenticated

        reset_text = reset_at.isoformat() if reset_at else "unknown"
        if authenticated:
            message = f"GitHub API rate limit exceeded for the configured token. Resets at: {reset_text}"
        else:
            message = (
                "GitHub API rate limit exceeded for unauthenticated requests. "
                f"Set GITHUB_TOKEN for a higher limit. Resets at: {reset_text}"
            )
        super().__init__(message, {"remaining": remaining, "limit": limit})


class UpstreamHttpError(CatalogError):
    """Any other non-2xx response from GitHub."""

    def __init__(self, status_code: int, url: str, reason: str = ""):
        self.status_code = status_code
        self.url = url
        super().__init__(f"GitHub API error: {status_code} {reason}".rstrip(), {"url": url})


class CatalogUnavailable(CatalogError):
    """The repository tree could not be fetched and no earlier catalog exists."""
