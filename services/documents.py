"""Quote documents: printable quotation, bill of quantities and email bodies.

Every renderer is a pure function of its inputs. Dates are derived from the
quote itself, so rendering the same quote twice yields identical output.
Monetary fields render as "TBD" while the quote has no subtotal.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from services.pricing import VAT_RATE, calculate_totals, to_money

TEMPLATES_DIR = Path(__file__).parent.parent / "templates" / "documents"

QUOTE_VALIDITY_DAYS = 30
PLACEHOLDER = "TBD"

COMPANY = {
    "name": "DripTech Irrigation Solutions",
    "short_name": "DripTech",
    "tagline": "Professional irrigation systems for modern agriculture",
    "address": "Nairobi Industrial Area, Kenya",
    "phone": "+254 700 123 456",
    "email": "info@driptech.co.ke",
    "website": "www.driptech.co.ke",
}

CURRENCY_SYMBOLS = {"KSH": "KSh", "KES": "KSh", "USD": "$"}

_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)


def format_money(amount: Decimal | float | None, currency: str = "KSH") -> str:
    """Format an amount as e.g. ``KSh 116,000.00``; ``TBD`` when unknown."""
    if amount is None:
        return PLACEHOLDER
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency.upper())
    return f"{symbol} {to_money(amount):,.2f}"


def format_date(value: datetime | None) -> str:
    """Long date such as ``19 October 2026``."""
    if value is None:
        return PLACEHOLDER
    return f"{value.day} {value:%B %Y}"


def format_quantity(value: Any) -> str:
    quantity = Decimal(str(value))
    return f"{quantity.normalize():f}"


def totals_context(quote: Any) -> dict[str, str]:
    """Subtotal, VAT and total strings for a quote."""
    currency = quote.currency or "KSH"
    totals = calculate_totals(quote.total_amount)
    if totals is None:
        return {"subtotal": PLACEHOLDER, "vat": PLACEHOLDER, "total": PLACEHOLDER}
    return {
        "subtotal": format_money(totals.subtotal, currency),
        "vat": format_money(totals.vat, currency),
        "total": format_money(totals.total, currency),
    }


def _line_items(quote: Any, products: Iterable[Any] = ()) -> list[dict[str, str]]:
    """Rows for the items table, falling back to a single system line."""
    currency = quote.currency or "KSH"
    by_id = {p.id: p for p in products}
    rows = []

    for item in quote.items or []:
        product = by_id.get(item.get("product_id"))
        rows.append({
            "name": item.get("name", ""),
            "description": item.get("description") or "",
            "model": product.model if product else "",
            "category": product.category.replace("_", " ").title() if product else "",
            "unit": item.get("unit") or "pcs",
            "quantity": format_quantity(item.get("quantity") or 1),
            "unit_price": format_money(item.get("unit_price"), currency),
            "total": format_money(item.get("total"), currency),
        })

    if not rows:
        amount = format_money(quote.total_amount, currency)
        rows.append({
            "name": f"{quote.project_type} Irrigation System",
            "description": (
                f"Complete irrigation system design and installation for {quote.area_size}"
            ),
            "model": "",
            "category": "",
            "unit": "lot",
            "quantity": "1",
            "unit_price": amount,
            "total": amount,
        })

    return rows


def _base_context(quote: Any) -> dict[str, Any]:
    created = quote.created_at
    valid_until = created + timedelta(days=QUOTE_VALIDITY_DAYS) if created else None
    return {
        "company": COMPANY,
        "quote": quote,
        "quote_date": format_date(created),
        "valid_until": format_date(valid_until),
        "vat_percent": int(VAT_RATE * 100),
        "totals": totals_context(quote),
    }


def render_quote_document(quote: Any) -> str:
    """Printable quotation HTML."""
    context = _base_context(quote)
    context["items"] = _line_items(quote)
    return _env.get_template("quote.html").render(context)


def render_boq_document(quote: Any, products: Iterable[Any] = ()) -> str:
    """Printable bill of quantities HTML, enriched with catalog products."""
    context = _base_context(quote)
    context["items"] = _line_items(quote, products)
    return _env.get_template("boq.html").render(context)


def email_copy(quote: Any, kind: str = "confirmation") -> dict[str, str]:
    """Subject, opening and closing lines for a customer email."""
    if kind == "quotation":
        valid_until = _base_context(quote)["valid_until"]
        return {
            "subject": f"Quotation #{quote.id} for your {quote.project_type} project - {COMPANY['short_name']}",
            "intro": (
                f"Please find below our quotation for your {quote.project_type} project "
                f"in {quote.location}. The prices quoted are valid until {valid_until}."
            ),
            "closing": (
                "To accept this quotation or discuss any changes, reply to this email "
                f"or call us on {COMPANY['phone']}."
            ),
        }
    if kind == "confirmation":
        return {
            "subject": f"Your Irrigation Quote #{quote.id} - {COMPANY['short_name']}",
            "intro": (
                f"Thank you for your interest in our irrigation solutions. Your quote request "
                f"#{quote.id} for {quote.project_type} in {quote.location} has been received."
            ),
            "closing": "Our team will contact you within 24 hours to discuss the next steps.",
        }
    raise ValueError(f"Unknown email kind: {kind}")


def render_quote_email_html(quote: Any, kind: str = "confirmation") -> str:
    """HTML body for a customer quote email."""
    context = _base_context(quote)
    context["email"] = email_copy(quote, kind)
    return _env.get_template("quote_email.html").render(context)


def render_quote_email_text(quote: Any, kind: str = "confirmation") -> str:
    """Plain-text body for mail clients without HTML rendering."""
    context = _base_context(quote)
    context["email"] = email_copy(quote, kind)
    return _env.get_template("quote_email.txt").render(context)
