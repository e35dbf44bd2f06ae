"""Cart reconciliation engine.

Keeps one logical cart reachable whether or not the shopper is signed in,
and merges the guest cart into the account cart once per sign-in.

Every cart operation is applied to the in-memory cart first. Persisting
(guest) or pushing to the server (signed in) happens afterwards; server
pushes run on a single background worker so the caller never waits on the
network.
"""

import enum
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from . import cart_line
from .cart_line import CartLine
from .errors import CartSyncError

logger = logging.getLogger(__name__)

Op = Callable[[List[CartLine]], List[CartLine]]


class AuthStatus(str, enum.Enum):
    LOADING = 'loading'
    AUTHENTICATED = 'authenticated'
    UNAUTHENTICATED = 'unauthenticated'


class CartState(enum.Enum):
    UNINITIALIZED = 'uninitialized'
    GUEST_ACTIVE = 'guest_active'
    AUTHENTICATED_ACTIVE = 'authenticated_active'


def _add_line(new_line: CartLine) -> Op:
    def op(items):
        for index, line in enumerate(items):
            if line.product_id == new_line.product_id:
                updated = list(items)
                updated[index] = line.with_quantity(line.quantity + new_line.quantity)
                return updated
        return [*items, new_line]
    return op


def _remove_line(product_id: int) -> Op:
    def op(items):
        return [line for line in items if line.product_id != product_id]
    return op


def _set_quantity(product_id: int, quantity: int) -> Op:
    def op(items):
        return [line.with_quantity(quantity) if line.product_id == product_id else line
                for line in items]
    return op


def _clear(items):
    return []


class CartReconciler:
    """Finite-state machine driving the active cart from auth transitions.

    States: ``UNINITIALIZED`` until the first resolved auth status,
    then ``GUEST_ACTIVE`` or ``AUTHENTICATED_ACTIVE``.

    Cart operations issued before the first transition, or while a
    transition is fetching/merging, are applied to the in-memory cart
    immediately and replayed onto the adopted cart once the transition
    finishes. Nothing reaches the server before the merge completes.

    When a merge fails the guest cart stays active and stays in local
    storage; until ``retry_merge`` succeeds, changes are saved locally
    rather than pushed, so the account cart is never overwritten by the
    guest list.
    """

    def __init__(self, guest_store, backend, executor: Optional[ThreadPoolExecutor] = None):
        self.guest_store = guest_store
        self.backend = backend
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix='cart-sync')
        self._lock = threading.RLock()
        self._transition_lock = threading.Lock()

        self.state = CartState.UNINITIALIZED
        self.last_sync_failed = False
        self._items: List[CartLine] = []
        self._last_status: Optional[AuthStatus] = None
        self._transitioning = False
        self._reconciled = False
        self._pending_ops: List[Op] = []
        self._sync_version = 0
        self._pending_syncs = []
        self._listeners: List[Callable[[List[CartLine]], None]] = []
        self._closed = False

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def items(self) -> List[CartLine]:
        with self._lock:
            return list(self._items)

    @property
    def item_count(self) -> int:
        return cart_line.item_count(self.items)

    @property
    def subtotal(self) -> Decimal:
        return cart_line.subtotal(self.items)

    @property
    def is_loading(self) -> bool:
        with self._lock:
            return self.state is CartState.UNINITIALIZED or self._transitioning

    @property
    def merge_pending(self) -> bool:
        """True while signed in with a guest cart that has not been merged yet."""
        with self._lock:
            return self.state is CartState.AUTHENTICATED_ACTIVE and not self._reconciled

    def subscribe(self, callback: Callable[[List[CartLine]], None]) -> Callable[[], None]:
        """Call ``callback(lines)`` after every change; returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)
        return unsubscribe

    def _notify(self, lines: List[CartLine]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for callback in listeners:
            try:
                callback(list(lines))
            except Exception:
                logger.exception('Cart listener %r failed', callback)

    # ------------------------------------------------------------------
    # Auth transitions
    # ------------------------------------------------------------------

    def observe(self, status) -> None:
        """Feed the current session status; acts only when it changes."""
        status = AuthStatus(status)
        if status is AuthStatus.LOADING:
            return
        with self._lock:
            previous = self._last_status
            if previous is status:
                return
            self._last_status = status
        self.handle_auth_transition(previous, status)

    def handle_auth_transition(self, previous, new) -> None:
        """Run the action for a session change from ``previous`` to ``new``.

        The action is chosen from the engine's own state, so repeating a
        transition that already happened is a no-op.
        """
        new = AuthStatus(new)
        if new is AuthStatus.LOADING:
            return

        with self._transition_lock:
            with self._lock:
                self._last_status = new
                if new is AuthStatus.AUTHENTICATED and self.state is CartState.AUTHENTICATED_ACTIVE:
                    return
                if new is AuthStatus.UNAUTHENTICATED and self.state is CartState.GUEST_ACTIVE:
                    return
                logger.debug('Cart transition %s -> %s from state %s',
                             previous, new.value, self.state.value)
                self._transitioning = True

            try:
                if new is AuthStatus.AUTHENTICATED:
                    lines, reconciled, failed = self._run_merge()
                    self._adopt(CartState.AUTHENTICATED_ACTIVE, lines, reconciled, failed)
                else:
                    # sign-out: the abandoned account cart is never carried over
                    self._adopt(CartState.GUEST_ACTIVE, self.guest_store.load(), False, False)
            finally:
                with self._lock:
                    self._transitioning = False

    def retry_merge(self) -> bool:
        """Re-run a merge that failed earlier. Returns True once the carts are merged."""
        with self._transition_lock:
            with self._lock:
                if self.state is not CartState.AUTHENTICATED_ACTIVE:
                    return False
                if self._reconciled:
                    return True
                self._transitioning = True
            try:
                lines, reconciled, failed = self._run_merge()
                self._adopt(CartState.AUTHENTICATED_ACTIVE, lines, reconciled, failed)
            finally:
                with self._lock:
                    self._transitioning = False
            return reconciled

    def _run_merge(self) -> Tuple[List[CartLine], bool, bool]:
        """Returns ``(lines, reconciled, failed)``."""
        guest_lines = self.guest_store.load()

        if not guest_lines:
            ok, server_lines = self._call_backend('Server cart fetch', self.backend.fetch_cart)
            if not ok:
                return [], False, True
            return server_lines, True, False

        ok, merged = self._call_backend('Cart merge', self.backend.merge_cart, guest_lines)
        if not ok:
            # keep the guest items, and keep them stored for a later retry
            return guest_lines, False, True

        self.guest_store.clear()
        logger.info('Merged %d guest cart line(s) into the account cart', len(guest_lines))
        return merged, True, False

    def _adopt(self, state: CartState, lines: List[CartLine], reconciled: bool, failed: bool) -> None:
        with self._lock:
            self.state = state
            self._items = list(lines)
            self._reconciled = reconciled
            self.last_sync_failed = failed
            ops, self._pending_ops = self._pending_ops, []
            for op in ops:
                self._items = op(self._items)
            if ops:
                self._commit_locked()
            self._transitioning = False
            snapshot = list(self._items)
        self._notify(snapshot)

    # ------------------------------------------------------------------
    # Cart operations
    # ------------------------------------------------------------------

    def add_item(self, line: CartLine) -> None:
        """Add ``line``; an existing line for the product only gains quantity."""
        if line.quantity < 1:
            logger.warning('Ignoring add of product %s with quantity %s',
                           line.product_id, line.quantity)
            return
        self._mutate(_add_line(line))

    def remove_item(self, product_id: int) -> None:
        self._mutate(_remove_line(product_id))

    def update_quantity(self, product_id: int, quantity: int) -> None:
        if quantity < 1:
            self.remove_item(product_id)
            return
        self._mutate(_set_quantity(product_id, quantity))

    def clear_cart(self) -> None:
        self.guest_store.clear()
        self._mutate(_clear)

    def refresh_cart(self) -> None:
        """Reload the active cart from its backing store, without merging."""
        self.flush()
        with self._transition_lock:
            with self._lock:
                state = self.state
                from_server = state is CartState.AUTHENTICATED_ACTIVE and self._reconciled
            if state is CartState.UNINITIALIZED:
                return

            if from_server:
                ok, lines = self._call_backend('Server cart fetch', self.backend.fetch_cart)
                if not ok:
                    with self._lock:
                        self.last_sync_failed = True
                    return
            else:
                lines = self.guest_store.load()

            with self._lock:
                if self.state is not state:
                    return
                self._items = list(lines)
                if from_server:
                    self.last_sync_failed = False
                snapshot = list(self._items)
        self._notify(snapshot)

    def _mutate(self, op: Op) -> None:
        with self._lock:
            self._items = op(self._items)
            if self.state is CartState.UNINITIALIZED or self._transitioning:
                self._pending_ops.append(op)
            else:
                self._commit_locked()
            snapshot = list(self._items)
        self._notify(snapshot)

    def _commit_locked(self) -> None:
        if self.state is CartState.AUTHENTICATED_ACTIVE and self._reconciled:
            self._schedule_sync(list(self._items))
        elif self._items:
            self.guest_store.save(self._items)
        else:
            self.guest_store.clear()

    # ------------------------------------------------------------------
    # Server sync
    # ------------------------------------------------------------------

    def _schedule_sync(self, lines: List[CartLine]) -> None:
        if self._closed:
            logger.warning('Cart engine closed; dropping server sync of %d line(s)', len(lines))
            self.last_sync_failed = True
            return
        self._sync_version += 1
        version = self._sync_version
        self._pending_syncs = [f for f in self._pending_syncs if not f.done()]
        self._pending_syncs.append(self._executor.submit(self._push, version, lines))

    def _push(self, version: int, lines: List[CartLine]) -> None:
        with self._lock:
            if version != self._sync_version:
                # a newer snapshot is queued behind this one
                return
        ok, _ = self._call_backend('Cart sync', self.backend.sync_cart, lines)
        with self._lock:
            if version == self._sync_version:
                self.last_sync_failed = not ok

    @staticmethod
    def _call_backend(operation: str, fn, *args):
        try:
            return True, fn(*args)
        except CartSyncError as exc:
            logger.warning('%s failed: %s', operation, exc)
        except Exception:
            logger.exception('%s failed unexpectedly', operation)
        return False, None

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued server pushes. Returns False if some are still running."""
        with self._lock:
            pending = list(self._pending_syncs)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self, timeout: Optional[float] = None) -> None:
        self.flush(timeout)
        with self._lock:
            self._closed = True
        if self._owns_executor:
            self._executor.shutdown(wait=False)
