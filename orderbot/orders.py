"""
Order filtering - city match, cancellation and fulfillment predicates

Reduces raw Shopify order documents to report rows. Everything here is pure:
malformed or missing fields fall back to defaults instead of raising, so one
bad order never aborts a run.
"""

import logging
import unicodedata
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, FrozenSet, Iterable, List, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)

# Matched in addition to the configured cities unless explicitly disabled.
DEFAULT_CITY_ALIASES: Tuple[str, ...] = ("bangalore", "bengaluru")

FULFILLED_STATUS = "fulfilled"

ADDRESS_PARTS = ("name", "address1", "address2", "city", "province", "zip", "country")


def normalize_city(value: Any) -> str:
    """Canonical key for a free-text city name.

    NFKD-decomposes, drops combining marks, trims and lower-cases, so
    ``"  Bengalūru "`` and ``"bengaluru"`` compare equal.
    """
    if not isinstance(value, str):
        return ""
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.strip().lower()


def build_allowed_cities(
    cities: Iterable[str], include_aliases: bool = True
) -> FrozenSet[str]:
    """Normalize configured city names into a lookup set."""
    allowed = {normalize_city(city) for city in cities}
    if include_aliases:
        allowed.update(DEFAULT_CITY_ALIASES)
    allowed.discard("")
    return frozenset(allowed)


@dataclass(frozen=True)
class FilterConfig:
    """Inclusion criteria for one report run."""

    allowed_cities: FrozenSet[str] = field(default_factory=frozenset)
    unfulfilled_only: bool = True

    @classmethod
    def from_cities(
        cls,
        cities: Iterable[str],
        unfulfilled_only: bool = True,
        include_aliases: bool = True,
    ) -> "FilterConfig":
        return cls(
            allowed_cities=build_allowed_cities(cities, include_aliases),
            unfulfilled_only=unfulfilled_only,
        )

    def city_allowed(self, city: str) -> bool:
        key = normalize_city(city)
        return bool(key) and key in self.allowed_cities


@dataclass(frozen=True)
class LineItem:
    title: str = ""
    quantity: int = 0
    fulfillable_quantity: int = 0


class RowRecord(NamedTuple):
    """One report row: order-level attributes plus a single line item."""

    order_number: str
    title: str
    quantity: int
    city: str
    phone: str
    address: str
    financial_status: str
    total_price: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return self._asdict()


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value)


def _first_text(*values: Any) -> str:
    for value in values:
        text = _text(value)
        if text:
            return text
    return ""


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        return int(Decimal(str(value)))
    except (InvalidOperation, ValueError, TypeError, OverflowError):
        return 0


def _as_decimal(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return parsed if parsed.is_finite() else Decimal("0")


def format_address(address: Any) -> str:
    """Single-line postal address, skipping empty parts."""
    address = _mapping(address)
    parts = (_text(address.get(part)) for part in ADDRESS_PARTS)
    return ", ".join(part for part in parts if part)


@dataclass(frozen=True)
class OrderFields:
    """Every field the filter reads from a raw order, with its default applied.

    All "missing sub-document" policy lives in :meth:`from_raw`.
    """

    order_id: str = ""
    number: str = ""
    cancelled_at: Optional[str] = None
    fulfillment_status: str = ""
    city: str = ""
    phone: str = ""
    address: str = ""
    financial_status: str = ""
    total_price: Decimal = Decimal("0")
    line_items: Tuple[LineItem, ...] = ()

    @classmethod
    def from_raw(cls, order: Any) -> "OrderFields":
        order = _mapping(order)
        shipping = _mapping(order.get("shipping_address"))
        customer = _mapping(order.get("customer"))
        default_address = _mapping(customer.get("default_address"))

        items = order.get("line_items")
        line_items = tuple(
            LineItem(
                title=_text(item.get("title")),
                quantity=_as_int(item.get("quantity")),
                fulfillable_quantity=_as_int(item.get("fulfillable_quantity")),
            )
            for item in (items if isinstance(items, list) else [])
            if isinstance(item, dict)
        )

        cancelled_at = order.get("cancelled_at")

        return cls(
            order_id=_text(order.get("id")),
            number=_first_text(order.get("name"), order.get("order_number")),
            cancelled_at=_text(cancelled_at) if cancelled_at else None,
            fulfillment_status=_text(order.get("fulfillment_status")),
            city=_first_text(shipping.get("city"), default_address.get("city")),
            phone=_first_text(
                shipping.get("phone"), order.get("phone"), customer.get("phone")
            ),
            address=format_address(shipping or default_address),
            financial_status=_text(order.get("financial_status")),
            total_price=_as_decimal(order.get("total_price")),
            line_items=line_items,
        )


def is_cancelled(order: OrderFields) -> bool:
    return order.cancelled_at is not None


def is_actually_unfulfilled(order: OrderFields) -> bool:
    """True when something is still fulfillable and Shopify disagrees it is done.

    Both conditions are required: orders with no fulfillable quantity are
    excluded whatever their status label says.
    """
    has_fulfillable = any(item.fulfillable_quantity > 0 for item in order.line_items)
    return has_fulfillable and order.fulfillment_status != FULFILLED_STATUS


def order_matches(order: OrderFields, config: FilterConfig) -> bool:
    if is_cancelled(order):
        return False
    if not config.city_allowed(order.city):
        return False
    if config.unfulfilled_only and not is_actually_unfulfilled(order):
        return False
    return True


def flatten_order(order: OrderFields) -> List[RowRecord]:
    return [
        RowRecord(
            order_number=order.number,
            title=item.title,
            quantity=item.quantity,
            city=order.city,
            phone=order.phone,
            address=order.address,
            financial_status=order.financial_status,
            total_price=order.total_price,
        )
        for item in order.line_items
    ]


def filter_and_flatten(
    records: Iterable[Dict[str, Any]], config: FilterConfig
) -> List[RowRecord]:
    """Apply every predicate and emit one row per line item, in input order."""
    rows: List[RowRecord] = []
    matched = 0
    for raw in records:
        order = OrderFields.from_raw(raw)
        if not order_matches(order, config):
            continue
        matched += 1
        rows.extend(flatten_order(order))

    label = "City-matched"
    if config.unfulfilled_only:
        label += " & strictly unfulfilled"
    logger.info(f"{label} orders: {matched} ({len(rows)} rows)")
    return rows
