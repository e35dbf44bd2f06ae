"""Preference tracking: viewed products, searches and weighted tag counters.

Every mutation writes the whole state back to local storage before it
returns. Storage problems are logged and otherwise ignored, tracking is a
best-effort enhancement.
"""

import json
import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .errors import CartSyncError

logger = logging.getLogger(__name__)

STORAGE_KEY = 'perfume_personalization'
MAX_VIEWED_PRODUCTS = 50
MAX_SEARCH_HISTORY = 20

# preference kind -> attribute on PreferenceState
PREFERENCE_KINDS = {
    'scent': 'preferred_scent_families',
    'brand': 'preferred_brands',
    'occasion': 'preferred_occasions',
    'mood': 'preferred_moods',
}

# attribute -> JSON key in the stored snapshot
_SNAPSHOT_KEYS = {
    'viewed_products': 'viewedProducts',
    'search_history': 'searchHistory',
    'preferred_scent_families': 'preferredScentFamilies',
    'preferred_brands': 'preferredBrands',
    'preferred_occasions': 'preferredOccasions',
    'preferred_moods': 'preferredMoods',
}


@dataclass
class ViewedProduct:
    product_id: int
    slug: str
    name: str
    brand: str
    scent_family: List[str] = field(default_factory=list)
    timestamp: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'productId': self.product_id,
            'slug': self.slug,
            'name': self.name,
            'brand': self.brand,
            'scentFamily': list(self.scent_family),
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional['ViewedProduct']:
        if not isinstance(data, dict):
            return None
        try:
            product_id = int(data['productId'])
            timestamp = float(data.get('timestamp') or 0)
        except (KeyError, TypeError, ValueError, OverflowError):
            return None
        if not math.isfinite(timestamp):
            timestamp = 0.0
        scent_family = data.get('scentFamily')
        if not isinstance(scent_family, list):
            scent_family = []
        return cls(
            product_id=product_id,
            slug=str(data.get('slug') or ''),
            name=str(data.get('name') or ''),
            brand=str(data.get('brand') or ''),
            scent_family=[s for s in scent_family if isinstance(s, str)],
            timestamp=timestamp,
        )


@dataclass
class PreferenceState:
    viewed_products: List[ViewedProduct] = field(default_factory=list)
    search_history: List[str] = field(default_factory=list)
    preferred_scent_families: Dict[str, int] = field(default_factory=dict)
    preferred_brands: Dict[str, int] = field(default_factory=dict)
    preferred_occasions: Dict[str, int] = field(default_factory=dict)
    preferred_moods: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'viewedProducts': [p.to_dict() for p in self.viewed_products],
            'searchHistory': list(self.search_history),
            'preferredScentFamilies': dict(self.preferred_scent_families),
            'preferredBrands': dict(self.preferred_brands),
            'preferredOccasions': dict(self.preferred_occasions),
            'preferredMoods': dict(self.preferred_moods),
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'PreferenceState':
        state = cls()
        if not isinstance(data, dict):
            return state
        viewed = data.get(_SNAPSHOT_KEYS['viewed_products'])
        if isinstance(viewed, list):
            records = (ViewedProduct.from_dict(item) for item in viewed)
            state.viewed_products = [r for r in records if r is not None][:MAX_VIEWED_PRODUCTS]
        searches = data.get(_SNAPSHOT_KEYS['search_history'])
        if isinstance(searches, list):
            state.search_history = [q for q in searches if isinstance(q, str)][:MAX_SEARCH_HISTORY]
        for attr in PREFERENCE_KINDS.values():
            counters = data.get(_SNAPSHOT_KEYS[attr])
            if isinstance(counters, dict):
                setattr(state, attr, {str(k): int(v) for k, v in counters.items() if _is_count(v)})
        return state


def _is_count(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    return value >= 0


def _counter_attr(kind: str) -> Optional[str]:
    attr = PREFERENCE_KINDS.get(kind)
    if attr is None:
        logger.warning('Ignoring unknown preference kind %r; expected one of %s',
                       kind, sorted(PREFERENCE_KINDS))
    return attr


class PreferenceTracker:
    """Turns shopper signals into durable, queryable preference weights."""

    def __init__(self, storage, key: str = STORAGE_KEY, clock: Callable[[], float] = time.time):
        self.storage = storage
        self.key = key
        self._clock = clock
        self._lock = threading.RLock()
        self.state = self._load()

    def _load(self) -> PreferenceState:
        raw = self.storage.get(self.key)
        if not raw:
            return PreferenceState()
        try:
            return PreferenceState.from_dict(json.loads(raw))
        except ValueError as exc:
            logger.warning('Discarding corrupt personalization snapshot: %s', exc)
            return PreferenceState()

    def _persist(self) -> None:
        try:
            payload = json.dumps(self.state.to_dict())
        except (TypeError, ValueError) as exc:
            logger.warning('Failed to serialize personalization data: %s', exc)
            return
        self.storage.set(self.key, payload)

    def track_product_view(self, record: ViewedProduct) -> None:
        with self._lock:
            viewed = ViewedProduct(
                product_id=record.product_id,
                slug=record.slug,
                name=record.name,
                brand=record.brand,
                scent_family=list(record.scent_family or []),
                timestamp=self._clock(),
            )
            others = [p for p in self.state.viewed_products if p.product_id != record.product_id]
            self.state.viewed_products = [viewed, *others][:MAX_VIEWED_PRODUCTS]

            families = self.state.preferred_scent_families
            for scent in viewed.scent_family:
                if scent:
                    families[scent] = families.get(scent, 0) + 1
            if record.brand:
                brands = self.state.preferred_brands
                brands[record.brand] = brands.get(record.brand, 0) + 1
            self._persist()

    def track_search(self, query: str) -> None:
        if not query or not query.strip():
            return
        with self._lock:
            lowered = query.lower()
            others = [q for q in self.state.search_history if q.lower() != lowered]
            self.state.search_history = [query, *others][:MAX_SEARCH_HISTORY]
            self._persist()

    def track_preference(self, kind: str, value: str) -> None:
        attr = _counter_attr(kind)
        if attr is None or not value:
            return
        with self._lock:
            counters = getattr(self.state, attr)
            counters[value] = counters.get(value, 0) + 1
            self._persist()

    def get_top_preferences(self, kind: str, limit: int = 5) -> List[str]:
        attr = _counter_attr(kind)
        if attr is None:
            return []
        counters = getattr(self.state, attr)
        # sorted() is stable: equal counts keep insertion order
        ranked = sorted(counters.items(), key=lambda item: item[1], reverse=True)
        return [name for name, _ in ranked[:limit]]

    def get_recent_searches(self, limit: int = 5) -> List[str]:
        return self.state.search_history[:limit]

    def get_recently_viewed(self, limit: int = 10) -> List[ViewedProduct]:
        return self.state.viewed_products[:limit]

    def clear_history(self) -> None:
        with self._lock:
            self.state = PreferenceState()
            self._persist()

    def snapshot(self, limit: int = 5) -> Dict[str, List[str]]:
        """Top tags per kind, the shape the server stores."""
        return {
            'scentFamilies': self.get_top_preferences('scent', limit),
            'brands': self.get_top_preferences('brand', limit),
            'occasions': self.get_top_preferences('occasion', limit),
            'moods': self.get_top_preferences('mood', limit),
            'viewedProductIds': [p.product_id for p in self.get_recently_viewed(limit * 4)],
        }

    def sync_to_server(self, backend) -> bool:
        """Push the top preferences to the account; failures are only logged."""
        try:
            backend.sync_preferences(self.snapshot())
        except CartSyncError as exc:
            logger.warning('Failed to sync personalization data: %s', exc)
            return False
        except Exception:
            logger.exception('Unexpected error syncing personalization data')
            return False
        return True
