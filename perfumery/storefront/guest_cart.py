"""Guest cart persisted in client-local storage."""

import json
import logging
from typing import Iterable, List

from .cart_line import CartLine, dump_lines, parse_lines

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = 'perfume_cart'


class GuestCartStore:
    """Cart of a shopper who has not signed in.

    Never raises: unreadable snapshots load as an empty cart and failed
    writes are logged.
    """

    def __init__(self, storage, key: str = CART_STORAGE_KEY):
        self.storage = storage
        self.key = key

    def load(self) -> List[CartLine]:
        raw = self.storage.get(self.key)
        if not raw:
            return []
        try:
            records = json.loads(raw)
        except ValueError as exc:
            logger.warning('Discarding corrupt guest cart snapshot: %s', exc)
            return []
        return parse_lines(records)

    def save(self, lines: Iterable[CartLine]) -> bool:
        try:
            payload = json.dumps(dump_lines(lines))
        except (TypeError, ValueError) as exc:
            logger.warning('Failed to serialize guest cart: %s', exc)
            return False
        return self.storage.set(self.key, payload)

    def clear(self) -> bool:
        return self.storage.remove(self.key)
