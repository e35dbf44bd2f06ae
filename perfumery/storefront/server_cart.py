"""Server-side cart collaborator.

``CartBackend`` is the interface the reconciliation engine talks to;
``HttpCartBackend`` implements it against the storefront's JSON API. Every
failure (connection error, timeout, non-2xx reply, malformed body) is raised
as ``CartSyncError``.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol

import requests

from .cart_line import CartLine, dump_lines, parse_lines
from .errors import CartSyncError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class CartBackend(Protocol):
    def fetch_cart(self) -> List[CartLine]: ...

    def sync_cart(self, lines: Iterable[CartLine]) -> None: ...

    def merge_cart(self, guest_lines: Iterable[CartLine]) -> List[CartLine]: ...

    def sync_preferences(self, payload: Dict[str, Any]) -> None: ...


class HttpCartBackend:
    """Talks to ``/api/cart`` and ``/api/personalization`` over HTTP.

    The signed-in identity travels in the session cookie held by
    ``session``; pass the same ``requests.Session`` used for login.
    """

    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
            'Content-Type': 'application/json',
        })
        self.timeout = timeout

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f'{self.base_url}{path}'
        try:
            resp = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.Timeout as exc:
            raise CartSyncError(f'{method} {path} timed out after {self.timeout}s') from exc
        except requests.RequestException as exc:
            raise CartSyncError(f'{method} {path} failed: {exc}') from exc

        if not resp.ok:
            raise CartSyncError(f'{method} {path} returned {resp.status_code}',
                                status_code=resp.status_code)
        try:
            body = resp.json()
        except ValueError as exc:
            raise CartSyncError(f'{method} {path} returned a non-JSON body') from exc
        if not isinstance(body, dict):
            raise CartSyncError(f'{method} {path} returned an unexpected body')
        return body

    def fetch_cart(self) -> List[CartLine]:
        body = self._request('GET', '/api/cart/sync')
        return parse_lines(body.get('items') or [])

    def sync_cart(self, lines: Iterable[CartLine]) -> None:
        self._request('POST', '/api/cart/sync', {'items': dump_lines(lines)})

    def merge_cart(self, guest_lines: Iterable[CartLine]) -> List[CartLine]:
        body = self._request('POST', '/api/cart/merge', {'guestItems': dump_lines(guest_lines)})
        if 'mergedItems' not in body:
            raise CartSyncError('POST /api/cart/merge reply has no mergedItems')
        return parse_lines(body['mergedItems'])

    def sync_preferences(self, payload: Dict[str, Any]) -> None:
        self._request('POST', '/api/personalization/sync', {'data': payload})
