"""Tests for quote endpoints."""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from main import app
from models import Product, Quote, User

QUOTE_PAYLOAD = {
    "customerName": "John Kamau",
    "customerEmail": "john@example.com",
    "customerPhone": "+254712345678",
    "projectType": "Drip Irrigation",
    "areaSize": "2 acres",
    "cropType": "Tomatoes",
    "location": "Nakuru",
    "waterSource": "Borehole",
    "distanceToFarm": "200m",
    "requirements": "Greenhouse and open field",
}


async def count_quotes(db: AsyncSession) -> int:
    return await db.scalar(select(func.count(Quote.id)))


@pytest.mark.asyncio
async def test_submit_quote(client: AsyncClient, db_session: AsyncSession, mail_transport):
    """Test a valid submission is stored as pending and the customer is emailed."""
    response = await client.post("/api/quotes", json=QUOTE_PAYLOAD)
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["currency"] == "KSH"
    assert data["notificationSent"] is True
    assert data["message"]
    for field, value in QUOTE_PAYLOAD.items():
        assert data[field] == value

    quote = await db_session.get(Quote, data["id"])
    assert quote is not None
    assert quote.customer_name == "John Kamau"
    assert quote.water_source == "Borehole"
    assert quote.total_amount is None

    assert len(mail_transport.messages) == 1
    message = mail_transport.messages[0]
    assert message.to == "john@example.com"
    assert f"#{quote.id}" in message.subject
    assert "John Kamau" in message.text


@pytest.mark.asyncio
async def test_submit_quote_ignores_client_status_and_totals(client: AsyncClient):
    """Test clients cannot set status or pricing on submission."""
    payload = {**QUOTE_PAYLOAD, "status": "completed", "totalAmount": 1}
    response = await client.post("/api/quotes", json=payload)
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["totalAmount"] is None


@pytest.mark.asyncio
async def test_submit_quote_accepts_snake_case(client: AsyncClient):
    payload = {
        "customer_name": "Grace Achieng",
        "customer_email": "grace@example.com",
        "customer_phone": "0722 123 456",
        "project_type": "Sprinkler",
        "area_size": "5 acres",
        "location": "Kisumu",
        "water_source": "Lake",
        "distance_to_farm": "1km",
    }
    response = await client.post("/api/quotes", json=payload)
    assert response.status_code == 201
    assert response.json()["customerName"] == "Grace Achieng"


@pytest.mark.asyncio
async def test_submit_quote_missing_name(client: AsyncClient, db_session: AsyncSession, mail_transport):
    """Test an empty customer name is rejected without writing anything."""
    response = await client.post("/api/quotes", json={**QUOTE_PAYLOAD, "customerName": ""})
    assert response.status_code == 400
    data = response.json()
    assert data["detail"] == "Validation failed"
    assert "customerName" in [e["field"] for e in data["errors"]]

    assert await count_quotes(db_session) == 0
    assert mail_transport.messages == []


@pytest.mark.asyncio
async def test_submit_quote_requires_water_source(client: AsyncClient, db_session: AsyncSession):
    payload = {k: v for k, v in QUOTE_PAYLOAD.items() if k != "waterSource"}
    response = await client.post("/api/quotes", json=payload)
    assert response.status_code == 400
    assert [e["field"] for e in response.json()["errors"]] == ["waterSource"]
    assert await count_quotes(db_session) == 0


@pytest.mark.asyncio
async def test_submit_quote_invalid_email(client: AsyncClient):
    response = await client.post("/api/quotes", json={**QUOTE_PAYLOAD, "customerEmail": "not-an-email"})
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "customerEmail"


@pytest.mark.asyncio
async def test_submit_quote_invalid_phone(client: AsyncClient):
    response = await client.post("/api/quotes", json={**QUOTE_PAYLOAD, "customerPhone": "call me maybe"})
    assert response.status_code == 400
    error = response.json()["errors"][0]
    assert error["field"] == "customerPhone"
    assert error["message"] == "Invalid phone format"


@pytest.mark.asyncio
async def test_submit_quote_mail_failure_keeps_quote(
    client: AsyncClient, db_session: AsyncSession, mail_transport
):
    """Test a failing mail provider is reported but does not lose the quote."""
    mail_transport.fail = True
    response = await client.post("/api/quotes", json=QUOTE_PAYLOAD)
    assert response.status_code == 201
    assert response.json()["notificationSent"] is False
    assert await count_quotes(db_session) == 1


class FailingCommitSession(AsyncSession):
    async def commit(self):
        raise SQLAlchemyError("database is locked")


@pytest.mark.asyncio
async def test_submit_quote_database_failure(
    client: AsyncClient, db_session: AsyncSession, mail_transport
):
    """Test a failed write returns 500 and sends no confirmation."""

    async def failing_get_db():
        async with FailingCommitSession(db_session.bind, expire_on_commit=False) as session:
            yield session

    previous = app.dependency_overrides[get_db]
    app.dependency_overrides[get_db] = failing_get_db
    try:
        response = await client.post("/api/quotes", json=QUOTE_PAYLOAD)
    finally:
        app.dependency_overrides[get_db] = previous

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to submit quote request"
    assert await count_quotes(db_session) == 0
    assert mail_transport.messages == []


@pytest.mark.asyncio
async def test_submit_quote_rejects_oversized_bed_count(
    client: AsyncClient, db_session: AsyncSession, mail_transport
):
    response = await client.post("/api/quotes", json={**QUOTE_PAYLOAD, "numberOfBeds": 10**20})
    assert response.status_code == 400
    assert [e["field"] for e in response.json()["errors"]] == ["numberOfBeds"]
    assert await count_quotes(db_session) == 0
    assert mail_transport.messages == []


# --- Admin Endpoints ---


@pytest.mark.asyncio
async def test_admin_quotes_requires_auth(client: AsyncClient, test_quote: Quote):
    response = await client.get("/api/admin/quotes")
    assert response.status_code == 401
    assert response.json()["detail"] == "Not authenticated"


@pytest.mark.asyncio
async def test_admin_quotes_requires_admin(client: AsyncClient, user_headers: dict, test_quote: Quote):
    response = await client.get("/api/admin/quotes", headers=user_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"


@pytest.mark.asyncio
async def test_admin_list_quotes_filter(
    client: AsyncClient, db_session: AsyncSession, admin_headers: dict, test_quote: Quote
):
    test_quote.status = "completed"
    await db_session.commit()
    await client.post("/api/quotes", json=QUOTE_PAYLOAD)

    response = await client.get("/api/admin/quotes", headers=admin_headers)
    assert response.status_code == 200
    assert len(response.json()) == 2

    response = await client.get("/api/admin/quotes?status=completed", headers=admin_headers)
    data = response.json()
    assert [q["id"] for q in data] == [test_quote.id]


@pytest.mark.asyncio
async def test_admin_list_quotes_rejects_unknown_status(client: AsyncClient, admin_headers: dict):
    response = await client.get("/api/admin/quotes?status=archived", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "status"


@pytest.mark.asyncio
async def test_admin_get_quote_not_found(client: AsyncClient, admin_headers: dict):
    response = await client.get("/api/admin/quotes/999", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Quote not found"


@pytest.mark.asyncio
async def test_update_quote_total_amount(client: AsyncClient, admin_headers: dict, test_quote: Quote):
    """Test VAT and final total follow a new subtotal."""
    response = await client.put(
        f"/api/admin/quotes/{test_quote.id}",
        json={"totalAmount": 100000, "status": "in_progress", "notes": "Site visit done"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["totalAmount"] == 100000.0
    assert data["vatAmount"] == 16000.0
    assert data["finalTotal"] == 116000.0
    assert data["status"] == "in_progress"
    assert data["notes"] == "Site visit done"
    assert data["customerName"] == "John Kamau"


@pytest.mark.asyncio
async def test_update_quote_items(
    client: AsyncClient, admin_headers: dict, test_quote: Quote, test_product: Product
):
    """Test line items are priced and drive the quote totals."""
    items = [
        {"name": "Drip line roll", "quantity": 4, "unit": "rolls", "unitPrice": 4500, "productId": test_product.id},
        {"name": "Installation", "quantity": 1, "unit": "lot", "unitPrice": 12000},
    ]
    response = await client.put(
        f"/api/admin/quotes/{test_quote.id}",
        json={"items": items, "totalAmount": 1},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert [item["total"] for item in data["items"]] == [18000.0, 12000.0]
    assert all(item["id"] for item in data["items"])
    assert data["items"][0]["productId"] == test_product.id
    assert data["totalAmount"] == 30000.0
    assert data["vatAmount"] == 4800.0
    assert data["finalTotal"] == 34800.0


@pytest.mark.asyncio
async def test_update_quote_rejects_negative_total(
    client: AsyncClient, admin_headers: dict, test_quote: Quote
):
    response = await client.put(
        f"/api/admin/quotes/{test_quote.id}",
        json={"totalAmount": -5},
        headers=admin_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_quote_rejects_oversized_amounts(
    client: AsyncClient, db_session: AsyncSession, admin_headers: dict, test_quote: Quote
):
    """Test amounts that do not fit the money columns are rejected."""
    response = await client.put(
        f"/api/admin/quotes/{test_quote.id}",
        json={"totalAmount": 10**11},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "totalAmount"

    items = [{"name": "Pump", "quantity": 1000, "unitPrice": 9_999_999_999}]
    response = await client.put(
        f"/api/admin/quotes/{test_quote.id}",
        json={"items": items},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "items"

    await db_session.refresh(test_quote)
    assert test_quote.total_amount is None
    assert not test_quote.items


@pytest.mark.asyncio
async def test_update_quote_null_items_keeps_pricing(
    client: AsyncClient, admin_headers: dict, test_quote: Quote
):
    items = [{"name": "Installation", "quantity": 1, "unit": "lot", "unitPrice": 12000}]
    await client.put(f"/api/admin/quotes/{test_quote.id}", json={"items": items}, headers=admin_headers)

    response = await client.put(
        f"/api/admin/quotes/{test_quote.id}",
        json={"items": None, "notes": "Awaiting site visit"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert [item["name"] for item in data["items"]] == ["Installation"]
    assert data["totalAmount"] == 12000.0
    assert data["vatAmount"] == 1920.0
    assert data["finalTotal"] == 13920.0
    assert data["notes"] == "Awaiting site visit"


@pytest.mark.asyncio
async def test_update_quote_assignee(
    client: AsyncClient, db_session: AsyncSession, admin_headers: dict, test_admin: User, test_quote: Quote
):
    """Test quotes can only be assigned to existing users."""
    response = await client.put(
        f"/api/admin/quotes/{test_quote.id}",
        json={"assignedTo": 9999},
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"
    await db_session.refresh(test_quote)
    assert test_quote.assigned_to is None

    response = await client.put(
        f"/api/admin/quotes/{test_quote.id}",
        json={"assignedTo": test_admin.id},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["assignedTo"] == test_admin.id


@pytest.mark.asyncio
async def test_send_quote(
    client: AsyncClient, db_session: AsyncSession, admin_headers: dict, test_quote: Quote, mail_transport
):
    response = await client.post(f"/api/admin/quotes/{test_quote.id}/send", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "sent"
    assert data["delivered"] is True

    await db_session.refresh(test_quote)
    assert test_quote.status == "sent"
    assert test_quote.sent_at is not None

    message = mail_transport.messages[0]
    assert message.to == test_quote.customer_email
    assert message.subject == f"Quotation #{test_quote.id} for your Drip Irrigation project - DripTech"
    assert "our quotation for your Drip Irrigation project in Nakuru" in message.text
    assert "has been received" not in message.text


@pytest.mark.asyncio
async def test_send_quote_delivery_failure(
    client: AsyncClient, db_session: AsyncSession, admin_headers: dict, test_quote: Quote, mail_transport
):
    """Test the quote is still marked sent when the email fails."""
    mail_transport.fail = True
    response = await client.post(f"/api/admin/quotes/{test_quote.id}/send", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["delivered"] is False

    await db_session.refresh(test_quote)
    assert test_quote.status == "sent"


@pytest.mark.asyncio
async def test_quote_document(client: AsyncClient, admin_headers: dict, test_quote: Quote):
    response = await client.get(f"/api/admin/quotes/{test_quote.id}/document", headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "QUOTATION" in response.text
    assert "John Kamau" in response.text
    assert "TBD" in response.text


@pytest.mark.asyncio
async def test_quote_boq_includes_product_model(
    client: AsyncClient, admin_headers: dict, test_quote: Quote, test_product: Product
):
    await client.put(
        f"/api/admin/quotes/{test_quote.id}",
        json={"items": [{"name": "Drip line roll", "quantity": 2, "unitPrice": 4500, "productId": test_product.id}]},
        headers=admin_headers,
    )
    response = await client.get(f"/api/admin/quotes/{test_quote.id}/boq", headers=admin_headers)
    assert response.status_code == 200
    assert "BILL OF QUANTITIES" in response.text
    assert "DL-16" in response.text
    assert "KSh 9,000.00" in response.text
    assert "KSh 10,440.00" in response.text
