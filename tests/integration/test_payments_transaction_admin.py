def test_transaction_rows_for_admin(admin_client, order_store, make_order, completed_payload):
    order_store.add(make_order(status="processing", payment_method="astimpay", payment_data=completed_payload()))

    res = admin_client.get("/api/v1/payments/orders/100/transaction")

    assert res.status_code == 200
    body = res.json()
    assert body["gateway"] == "astimpay"
    assert body["status"] == "processing"
    assert {"label": "Transaction", "value": "TX1"} in body["rows"]

def test_transaction_absent_for_other_gateway(admin_client, order_store, make_order):
    order_store.add(make_order(payment_method="cod"))
    assert admin_client.get("/api/v1/payments/orders/100/transaction").status_code == 404
    assert admin_client.get("/api/v1/payments/orders/404/transaction").status_code == 404

def test_transaction_requires_admin(client, order_store):
    res = client.get("/api/v1/payments/orders/100/transaction")
    assert res.status_code == 401
