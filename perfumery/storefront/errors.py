"""Storefront client exceptions."""


class StorefrontError(Exception):
    """Base class for storefront client errors."""


class CartSyncError(StorefrontError):
    """A server cart call failed: network error, timeout or non-2xx reply."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class StorageError(StorefrontError):
    """Local durable storage could not be read or written."""
