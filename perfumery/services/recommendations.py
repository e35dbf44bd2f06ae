"""Recommendation query builder.

Maps the small mood/season/occasion vocabulary onto scent-note keywords and
ranks a product collection against them: trending first, then the
collection's own recency order.

Recommendations are an enhancement, so the public helpers never raise. If the
keyword query fails they fall back to active products ordered by trending,
and to an empty list if that fails as well.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import String, cast, or_

from perfumery.extensions import db
from perfumery.models import Product

logger = logging.getLogger(__name__)

SEASON_NOTES = {
    'spring': ['floral', 'green', 'citrus', 'light', 'fresh'],
    'summer': ['citrus', 'aquatic', 'fresh', 'light', 'marine'],
    'fall': ['woody', 'spicy', 'amber', 'warm', 'oriental'],
    'winter': ['oriental', 'woody', 'vanilla', 'amber', 'musk'],
}

MOOD_NOTES = {
    'fresh': ['citrus', 'green', 'aquatic', 'mint', 'bergamot'],
    'sensual': ['vanilla', 'musk', 'amber', 'jasmine', 'rose'],
    'woody': ['cedar', 'sandalwood', 'vetiver', 'oud', 'patchouli'],
    'spicy': ['pepper', 'cinnamon', 'cardamom', 'ginger', 'clove'],
    'sweet': ['vanilla', 'caramel', 'honey', 'praline', 'tonka'],
    'romantic': ['rose', 'jasmine', 'peony', 'ylang', 'tuberose'],
    'bold': ['oud', 'leather', 'tobacco', 'incense', 'smoky'],
    'mysterious': ['incense', 'amber', 'oud', 'dark', 'oriental'],
}

OCCASION_CRITERIA = {
    'office': {'notes': ['fresh', 'light', 'clean', 'citrus'], 'concentration': 'Eau de Toilette'},
    'date': {'notes': ['sensual', 'romantic', 'vanilla', 'musk', 'rose']},
    'party': {'notes': ['bold', 'sweet', 'spicy', 'oriental']},
    'daily': {'notes': ['fresh', 'light', 'citrus', 'clean'], 'concentration': 'Eau de Toilette'},
    'special': {'notes': ['oud', 'amber', 'luxury', 'rare'], 'concentration': 'Parfum'},
    'beach': {'notes': ['aquatic', 'marine', 'coconut', 'fresh', 'citrus']},
    'evening': {'notes': ['oriental', 'amber', 'woody', 'warm']},
}

DEFAULT_MOOD = 'fresh'
DEFAULT_OCCASION = 'daily'

# product note family -> families that pair well with it
COMPLEMENTARY_NOTES = {
    'citrus': ['woody', 'musk', 'amber'],
    'floral': ['woody', 'musk', 'vanilla'],
    'woody': ['citrus', 'spicy', 'amber'],
    'oriental': ['citrus', 'fresh', 'green'],
    'fresh': ['woody', 'amber', 'musk'],
    'spicy': ['sweet', 'woody', 'citrus'],
}

# individual note -> notes suggested next to it in the cart
CART_COMPLEMENTS = {
    'bergamot': ['vanilla', 'sandalwood', 'amber'],
    'citrus': ['vanilla', 'musk', 'cedar'],
    'vanilla': ['bergamot', 'rose', 'sandalwood'],
    'rose': ['oud', 'musk', 'vanilla'],
    'oud': ['rose', 'saffron', 'amber'],
    'musk': ['citrus', 'rose', 'cedar'],
    'sandalwood': ['vanilla', 'jasmine', 'bergamot'],
    'jasmine': ['sandalwood', 'musk', 'amber'],
    'amber': ['oud', 'jasmine', 'bergamot'],
    'cedar': ['citrus', 'musk', 'leather'],
    'leather': ['cedar', 'tobacco', 'oud'],
    'tobacco': ['leather', 'vanilla', 'amber'],
    'saffron': ['oud', 'rose', 'vanilla'],
    'lavender': ['vanilla', 'musk', 'amber'],
    'patchouli': ['vanilla', 'rose', 'bergamot'],
    'vetiver': ['citrus', 'amber', 'sandalwood'],
}

TAG_KINDS = ('season', 'mood', 'occasion')


@dataclass(frozen=True)
class ProductSummary:
    id: int
    name: str
    brand: str
    slug: str
    price: Decimal
    image_url: Optional[str] = None
    gender: str = 'unisex'
    concentration: Optional[str] = None
    scent_notes: Optional[Dict[str, List[str]]] = None
    is_trending: bool = False
    is_active: bool = True

    def notes(self) -> List[str]:
        notes = self.scent_notes or {}
        if not isinstance(notes, dict):
            return []
        return [n for part in ('top', 'middle', 'base') for n in (notes.get(part) or [])
                if isinstance(n, str)]

    def matches_any(self, keywords: Iterable[str]) -> bool:
        texts = [n.lower() for n in self.notes()]
        return any(k.lower() in text for k in keywords for text in texts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'brand': self.brand,
            'slug': self.slug,
            'price': f'{self.price:.2f}',
            'imageUrl': self.image_url,
            'gender': self.gender,
            'concentration': self.concentration,
            'scentNotes': self.scent_notes,
            'isTrending': self.is_trending,
        }


def resolve_keywords(kind: str, value: str) -> List[str]:
    """Keyword set for a tag; unknown tags fall back to the defaults."""
    value = (value or '').strip().lower()
    if kind == 'season':
        return list(SEASON_NOTES.get(value) or MOOD_NOTES[DEFAULT_MOOD])
    if kind == 'mood':
        return list(MOOD_NOTES.get(value) or MOOD_NOTES[DEFAULT_MOOD])
    if kind == 'occasion':
        criteria = OCCASION_CRITERIA.get(value) or OCCASION_CRITERIA[DEFAULT_OCCASION]
        return list(criteria['notes'])
    raise ValueError(f'Unknown tag kind {kind!r}; expected one of {TAG_KINDS}')


def occasion_concentration(value: str) -> Optional[str]:
    criteria = OCCASION_CRITERIA.get((value or '').strip().lower()) or OCCASION_CRITERIA[DEFAULT_OCCASION]
    return criteria.get('concentration')


def current_season(today: Optional[date] = None) -> str:
    month = (today or date.today()).month
    if month in (3, 4, 5):
        return 'spring'
    if month in (6, 7, 8):
        return 'summer'
    if month in (9, 10, 11):
        return 'fall'
    return 'winter'


# ---------------------------------------------------------------------------
# Product collections
# ---------------------------------------------------------------------------

class InMemoryProductCollection:
    """A list of summaries; list order is the collection's recency order."""

    def __init__(self, products: Sequence[ProductSummary]):
        self.products = list(products)

    def find(self, keywords=(), limit=6, exclude_ids=(), concentration=None, gender=None,
             brands=(), max_price=None, order_by_price=False):
        excluded = set(exclude_ids)
        brand_set = set(brands)
        found = []
        for product in self.products:
            if not product.is_active or product.id in excluded:
                continue
            if keywords and not product.matches_any(keywords):
                continue
            if concentration and product.concentration != concentration:
                continue
            if gender and product.gender != gender:
                continue
            if brand_set and product.brand not in brand_set:
                continue
            if max_price is not None and product.price >= max_price:
                continue
            found.append(product)
        if order_by_price:
            found.sort(key=lambda p: p.price, reverse=True)
        else:
            # stable: recency order is kept within each trending group
            found.sort(key=lambda p: not p.is_trending)
        return found[:limit]

    def active_by_trending(self, limit=6):
        active = [p for p in self.products if p.is_active]
        active.sort(key=lambda p: not p.is_trending)
        return active[:limit]


class SQLProductCollection:
    """The ``products`` table, newest first within each trending group.

    Keyword matching looks at the note values only, the same way
    ``ProductSummary.matches_any`` does. The database narrows the rows with
    an escaped ``ILIKE`` over the stored JSON where that is safe, and the
    final match runs in Python.
    """

    @staticmethod
    def _like_pattern(keyword):
        escaped = keyword.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
        return f'%{escaped}%'

    @staticmethod
    def _coarse_filterable(keywords):
        # the JSON text escapes non-ASCII, quotes and backslashes
        return all(k.isascii() and k.isprintable() and '"' not in k and '\\' not in k
                   for k in keywords)

    def find(self, keywords=(), limit=6, exclude_ids=(), concentration=None, gender=None,
             brands=(), max_price=None, order_by_price=False):
        keywords = list(keywords)
        query = Product.query.filter(Product.is_active.is_(True))
        if keywords and self._coarse_filterable(keywords):
            notes_text = cast(Product.scent_notes, String)
            query = query.filter(or_(*[
                notes_text.ilike(self._like_pattern(k), escape='\\') for k in keywords
            ]))
        if exclude_ids:
            query = query.filter(Product.id.notin_(list(exclude_ids)))
        if concentration:
            query = query.filter(Product.concentration == concentration)
        if gender:
            query = query.filter(Product.gender == gender)
        if brands:
            query = query.filter(Product.brand.in_(list(brands)))
        if max_price is not None:
            query = query.filter(Product.price < max_price)
        if order_by_price:
            query = query.order_by(Product.price.desc())
        else:
            query = query.order_by(Product.is_trending.desc(), Product.created_at.desc(),
                                   Product.id.desc())
        if not keywords:
            return [p.to_summary() for p in query.limit(limit).all()]

        found = []
        for product in query.all():
            product_summary = product.to_summary()
            if product_summary.matches_any(keywords):
                found.append(product_summary)
                if len(found) >= limit:
                    break
        return found

    def active_by_trending(self, limit=6):
        products = Product.query.filter(Product.is_active.is_(True)).order_by(
            Product.is_trending.desc(), Product.created_at.desc(), Product.id.desc()
        ).limit(limit).all()
        return [p.to_summary() for p in products]


def _rollback():
    try:
        db.session.rollback()
    except Exception:
        logger.debug('No database session to roll back', exc_info=True)


def _fallback(products, limit, label):
    try:
        return products.active_by_trending(limit)
    except Exception:
        logger.exception('%s fallback query failed', label)
        if isinstance(products, SQLProductCollection):
            _rollback()
        return []


def _safe_find(products, label, limit, fallback=True, **criteria):
    try:
        return products.find(limit=limit, **criteria)
    except Exception:
        logger.exception('%s query failed', label)
        if isinstance(products, SQLProductCollection):
            _rollback()
        if fallback:
            return _fallback(products, limit, label)
        return []


# ---------------------------------------------------------------------------
# Query builders
# ---------------------------------------------------------------------------

def pick(kind: str, value: str, products, limit: int = 6) -> List[ProductSummary]:
    """Products whose notes match the keywords for a season/mood/occasion tag."""
    keywords = resolve_keywords(kind, value)
    concentration = occasion_concentration(value) if kind == 'occasion' else None
    return _safe_find(products, f'{kind} picks', limit,
                      keywords=keywords, concentration=concentration)


def seasonal_picks(products, season: str, limit: int = 6):
    return pick('season', season, products, limit)


def mood_picks(products, mood: str, limit: int = 6):
    return pick('mood', mood, products, limit)


def occasion_picks(products, occasion: str, limit: int = 6):
    return pick('occasion', occasion, products, limit)


def trending_products(products, limit: int = 6):
    return _fallback(products, limit, 'Trending')


def _all_notes(notes) -> List[str]:
    if not isinstance(notes, dict):
        return []
    return [n for part in ('top', 'middle', 'base') for n in (notes.get(part) or [])
            if isinstance(n, str) and n.strip()]


def similar_by_notes(products, product_id: int, notes, limit: int = 4):
    """Products sharing any of the first five notes of ``notes``."""
    keywords = _all_notes(notes)[:5]
    if not keywords:
        return []
    return _safe_find(products, 'Similar-by-notes', limit, fallback=False,
                      keywords=keywords, exclude_ids=[product_id])


def same_brand(products, product_id: int, brand: str, limit: int = 4):
    if not brand:
        return []
    return _safe_find(products, 'Same-brand', limit, fallback=False,
                      brands=[brand], exclude_ids=[product_id])


def affordable_alternatives(products, product_id: int, current_price, notes, limit: int = 4):
    """Cheaper products sharing one of the first three notes, priciest first."""
    keywords = _all_notes(notes)[:3]
    if not keywords:
        return []
    return _safe_find(products, 'Affordable-alternatives', limit, fallback=False,
                      keywords=keywords, exclude_ids=[product_id],
                      max_price=Decimal(str(current_price)), order_by_price=True)


def complementary_products(products, product_id: int, notes, gender: str, limit: int = 4):
    """Same-gender products from families that pair with this product's notes."""
    families = []
    for note in (n.lower() for n in _all_notes(notes)):
        for family, pairs in COMPLEMENTARY_NOTES.items():
            if family in note:
                families.extend(p for p in pairs if p not in families)
    families = families[:5]
    if not families:
        return []
    return _safe_find(products, 'Complementary', limit, fallback=False,
                      keywords=families, exclude_ids=[product_id], gender=gender)


def cart_complements(products, cart_products: Sequence[ProductSummary], limit: int = 8, minimum: int = 4):
    """Suggestions that pair well with the products in a cart.

    Tops up with other active products when fewer than ``minimum`` match.
    """
    cart_ids = [p.id for p in cart_products]
    complements = []
    for note in (n.lower() for p in cart_products for n in p.notes()):
        for key, pairs in CART_COMPLEMENTS.items():
            if key in note:
                complements.extend(c for c in pairs if c not in complements)

    picks = []
    if complements:
        picks = _safe_find(products, 'Cart complements', limit, fallback=False,
                           keywords=complements[:5], exclude_ids=cart_ids)
    if len(picks) < minimum:
        exclude = cart_ids + [p.id for p in picks]
        picks += _safe_find(products, 'Cart top-up', limit - len(picks), fallback=False,
                            exclude_ids=exclude)
    return picks[:limit]


def personalized_picks(products, brands=(), scent_families=(), viewed_product_ids=(), limit: int = 8):
    """Favourite brands and scent families, minus products already viewed."""
    return _safe_find(products, 'Personalized', limit,
                      brands=list(brands), keywords=list(scent_families),
                      exclude_ids=list(viewed_product_ids))
