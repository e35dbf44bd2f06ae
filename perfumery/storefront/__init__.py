"""Storefront client core: preference tracking and cart reconciliation.

``Storefront`` is the composition root. The UI layer builds one per client
context and hands its parts to whatever binds them to the screen.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .cart_line import CartLine, ScentNotes, item_count, subtotal
from .errors import CartSyncError, StorageError, StorefrontError
from .guest_cart import GuestCartStore
from .preferences import PreferenceTracker, ViewedProduct
from .reconciliation import AuthStatus, CartReconciler, CartState
from .server_cart import CartBackend, HttpCartBackend
from .storage import JSONFileStorage, MemoryStorage


@dataclass
class StorefrontSettings:
    api_url: str = 'http://localhost:5000'
    data_dir: Optional[str] = None
    sync_timeout: float = 5.0

    @classmethod
    def from_env(cls):
        load_dotenv()
        return cls(
            api_url=os.environ.get('STOREFRONT_API_URL', cls.api_url),
            data_dir=os.environ.get('STOREFRONT_DATA_DIR') or None,
            sync_timeout=float(os.environ.get('CART_SYNC_TIMEOUT', cls.sync_timeout)),
        )


class Storefront:
    """Owns the stores of one client context."""

    def __init__(self, storage, backend, executor=None):
        self.storage = storage
        self.backend = backend
        self.preferences = PreferenceTracker(storage)
        self.guest_cart = GuestCartStore(storage)
        self.cart = CartReconciler(self.guest_cart, backend, executor=executor)

    @classmethod
    def from_settings(cls, settings: StorefrontSettings, session=None):
        if settings.data_dir:
            storage = JSONFileStorage(settings.data_dir)
        else:
            storage = MemoryStorage()
        backend = HttpCartBackend(settings.api_url, session=session, timeout=settings.sync_timeout)
        return cls(storage, backend)

    def on_auth_status(self, status) -> None:
        """Forward a session status change to the cart engine.

        After a sign-in the tracked preferences are pushed to the account
        as well; that push is best-effort.
        """
        previous_state = self.cart.state
        self.cart.observe(status)
        if (self.cart.state is CartState.AUTHENTICATED_ACTIVE
                and previous_state is not CartState.AUTHENTICATED_ACTIVE):
            self.preferences.sync_to_server(self.backend)

    def close(self) -> None:
        self.cart.close()


__all__ = [
    'AuthStatus',
    'CartBackend',
    'CartLine',
    'CartReconciler',
    'CartState',
    'CartSyncError',
    'GuestCartStore',
    'HttpCartBackend',
    'JSONFileStorage',
    'MemoryStorage',
    'PreferenceTracker',
    'ScentNotes',
    'StorageError',
    'Storefront',
    'StorefrontError',
    'StorefrontSettings',
    'ViewedProduct',
    'item_count',
    'subtotal',
]
