"""Cart line value type and derived cart totals."""

from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional


@dataclass(frozen=True)
class ScentNotes:
    top: List[str] = field(default_factory=list)
    middle: List[str] = field(default_factory=list)
    base: List[str] = field(default_factory=list)

    def all_notes(self) -> List[str]:
        return [*self.top, *self.middle, *self.base]

    def to_dict(self) -> Dict[str, List[str]]:
        return {'top': list(self.top), 'middle': list(self.middle), 'base': list(self.base)}

    @classmethod
    def from_value(cls, value: Any) -> Optional['ScentNotes']:
        """Coerce a JSON object into notes; anything unusable becomes None."""
        if isinstance(value, ScentNotes):
            return value
        if not isinstance(value, dict):
            return None
        return cls(
            top=_string_list(value.get('top')),
            middle=_string_list(value.get('middle')),
            base=_string_list(value.get('base')),
        )


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v) for v in value if isinstance(v, str) and v.strip()]


@dataclass(frozen=True)
class CartLine:
    """One product/quantity/price entry in a cart.

    ``unit_price`` is the price snapshot taken when the line was added; it is
    not refreshed from the catalogue.
    """
    product_id: int
    slug: str
    name: str
    brand: str
    unit_price: Decimal
    quantity: int = 1
    image_url: Optional[str] = None
    size: Optional[str] = None
    scent_notes: Optional[ScentNotes] = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def with_quantity(self, quantity: int) -> 'CartLine':
        return replace(self, quantity=quantity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'productId': self.product_id,
            'slug': self.slug,
            'name': self.name,
            'brand': self.brand,
            'price': float(self.unit_price),
            'quantity': self.quantity,
            'imageUrl': self.image_url,
            'size': self.size,
            'scentNotes': self.scent_notes.to_dict() if self.scent_notes else None,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional['CartLine']:
        """Validate and coerce a JSON record; returns None when it is unusable."""
        if not isinstance(data, dict):
            return None
        try:
            product_id = int(data.get('productId'))
            quantity = int(data.get('quantity', 1))
            unit_price = Decimal(str(data.get('price')))
        except (TypeError, ValueError, OverflowError, InvalidOperation):
            return None
        if product_id <= 0 or quantity < 1 or not unit_price.is_finite() or unit_price < 0:
            return None
        return cls(
            product_id=product_id,
            slug=str(data.get('slug') or ''),
            name=str(data.get('name') or ''),
            brand=str(data.get('brand') or ''),
            unit_price=unit_price,
            quantity=quantity,
            image_url=data.get('imageUrl') or None,
            size=data.get('size') or None,
            scent_notes=ScentNotes.from_value(data.get('scentNotes')),
        )


def parse_lines(records: Any) -> List[CartLine]:
    """Parse a list of JSON records, dropping invalid entries and duplicate ids."""
    if not isinstance(records, list):
        return []
    lines = []
    seen = set()
    for record in records:
        line = CartLine.from_dict(record)
        if line is None or line.product_id in seen:
            continue
        seen.add(line.product_id)
        lines.append(line)
    return lines


def dump_lines(lines: Iterable[CartLine]) -> List[Dict[str, Any]]:
    return [line.to_dict() for line in lines]


def item_count(lines: Iterable[CartLine]) -> int:
    return sum(line.quantity for line in lines)


def subtotal(lines: Iterable[CartLine]) -> Decimal:
    return sum((line.line_total for line in lines), Decimal('0'))
