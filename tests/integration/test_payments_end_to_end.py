import json
from decimal import Decimal

from backend.orders.models import LineItem

KEY = "test-api-key"


def _run_scenario(client, order_store, provider, order):
    order_store.add(order)

    res = client.post("/api/v1/payments/astimpay_shipping_only/process", json={"order_id": 100})
    assert res.status_code == 200
    assert res.json()["redirect"] == provider.payment_url
    assert order_store.get("100").status == "pending"
    assert provider.created[0].amount == Decimal("200")

    notification = json.dumps({
        "metadata": {"order_id": 100},
        "status": "COMPLETED",
        "amount": 200,
        "transaction_id": "TX1",
    }).encode()
    headers = {"API-KEY": KEY, "Content-Type": "application/json"}
    url = "/api/v1/payments/astimpay_shipping_only/callback"

    assert client.post(url, content=notification, headers=headers).json() == {"status": "ok"}
    settled = order_store.get("100").model_copy(deep=True)
    notes = list(order_store.notes["100"])

    # Notification dupliquée: aucun changement
    assert client.post(url, content=notification, headers=headers).json() == {"status": "ok"}
    again = order_store.get("100")
    assert again.status == settled.status
    assert again.payment_data == settled.payment_data
    assert order_store.notes["100"] == notes
    return settled


def test_order_100_physical(client, order_store, provider, make_order):
    settled = _run_scenario(client, order_store, provider, make_order(shipping_total=Decimal("200")))
    assert settled.status == "processing"
    assert settled.payment_data["transaction_id"] == "TX1"
    assert settled.paid_at is None

def test_order_100_virtual(client, order_store, provider, make_order):
    order = make_order(shipping_total=Decimal("200"), items=[LineItem(product_id="p1", is_virtual=True)])
    settled = _run_scenario(client, order_store, provider, order)
    assert settled.status == "completed"
    assert settled.payment_data["transaction_id"] == "TX1"
