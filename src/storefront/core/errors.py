"""
Custom exceptions for the storefront subgraphs and coprocessor.
"""

from __future__ import annotations


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    code = "INTERNAL_SERVER_ERROR"


class ValidationError(StorefrontError):
    """Raised when a reference or operation arguments are malformed."""

    code = "BAD_USER_INPUT"

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Validation failed: {'; '.join(errors)}")


class NotFoundError(StorefrontError):
    """Raised when a root field lookup by id finds nothing."""

    code = "NOT_FOUND"


class JWKSFetchError(StorefrontError):
    """Raised when the verification keyset cannot be fetched and nothing is cached."""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"Could not fetch JWKS from '{url}': {message}")


class ConfigError(StorefrontError):
    """Raised when service configuration is invalid."""
    pass
