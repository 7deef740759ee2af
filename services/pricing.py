"""Quote pricing: line item totals and the flat 16% VAT."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from security import generate_secure_token

VAT_RATE = Decimal("0.16")
CENT = Decimal("0.01")


@dataclass(frozen=True)
class QuoteTotals:
    subtotal: Decimal
    vat: Decimal
    total: Decimal


def to_money(value: Any) -> Decimal:
    """Convert a number (or numeric string) to a Decimal rounded to cents."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_totals(subtotal: Any) -> QuoteTotals | None:
    """
    Return subtotal, VAT and final total for a subtotal.

    None when the subtotal is unknown.
    """
    if subtotal is None:
        return None
    base = to_money(subtotal)
    vat = to_money(base * VAT_RATE)
    return QuoteTotals(subtotal=base, vat=vat, total=base + vat)


def price_items(items: list[dict[str, Any]]) -> tuple[list[dict[str, Any]], QuoteTotals]:
    """
    Compute line totals for quote items and the resulting quote totals.

    Each item needs ``quantity`` and ``unit_price``; a missing ``id`` is
    generated. Returned items are JSON-safe dicts ready for storage.
    """
    priced = []
    subtotal = Decimal("0")

    for item in items:
        quantity = Decimal(str(item.get("quantity") or 1))
        unit_price = Decimal(str(item.get("unit_price") or 0))
        line_total = to_money(quantity * unit_price)
        subtotal += line_total

        priced.append({
            "id": item.get("id") or generate_secure_token(6),
            "name": item.get("name", ""),
            "description": item.get("description") or "",
            "quantity": float(quantity),
            "unit": item.get("unit") or "pcs",
            "unit_price": float(to_money(unit_price)),
            "total": float(line_total),
            "product_id": item.get("product_id"),
        })

    return priced, calculate_totals(subtotal)
