"""Exception hierarchy. Cycle boundaries catch AutomarketsError and report it."""

from __future__ import annotations


class AutomarketsError(Exception):
    """Base for all engine errors."""


class ProviderError(AutomarketsError):
    """Token data provider failed: network, HTTP status, or malformed payload."""


class RateLimitError(ProviderError):
    """Provider answered 429 Too Many Requests."""


class StorageError(AutomarketsError):
    """Market store write or read failed."""


class ImageCompositeError(AutomarketsError):
    """Battle image could not be downloaded or composited."""
