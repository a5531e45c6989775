import json
import pytest
from decimal import Decimal

from backend.payments.errors import MalformedPayload, VerificationFailed
from backend.payments.metadata import (
    build_session_metadata,
    decode_notification_body,
    parse_confirmation,
    payment_info_rows,
)
from backend.payments.models import PaymentMode


def test_session_metadata_tags_mode():
    meta = build_session_metadata(100, "https://shop/merci", PaymentMode.SHIPPING_ONLY)
    assert meta == {"order_id": "100", "redirect_url": "https://shop/merci", "payment_type": "shipping_only"}

@pytest.mark.parametrize("raw", [b"", b"   ", b"{not json", b"[1, 2]", b"\xff\xfe"])
def test_unreadable_notification_body(raw):
    with pytest.raises(MalformedPayload):
        decode_notification_body(raw)

def test_decode_notification_body(completed_payload):
    data = decode_notification_body(json.dumps(completed_payload()).encode())
    assert data["transaction_id"] == "TX1"

def test_parse_confirmation_normalizes_fields(completed_payload):
    payload = parse_confirmation(completed_payload(status="completed", amount=200, transaction_id=123), MalformedPayload)
    assert payload.status == "COMPLETED"
    assert payload.is_completed is True
    assert payload.metadata.order_id == "100"
    assert payload.amount == Decimal("200")
    assert payload.transaction_id == "123"

@pytest.mark.parametrize("metadata", [None, {}, {"order_id": ""}, "100"])
def test_parse_confirmation_requires_order_id(completed_payload, metadata):
    with pytest.raises(VerificationFailed):
        parse_confirmation(completed_payload(metadata=metadata), VerificationFailed)

def test_parse_confirmation_keeps_extra_metadata(completed_payload):
    data = completed_payload()
    data["metadata"]["payment_type"] = "full_order"
    data["metadata"]["source"] = "web"
    payload = parse_confirmation(data, MalformedPayload)
    assert payload.metadata.payment_type == "full_order"
    assert payload.model_dump(mode="json")["metadata"]["source"] == "web"

def test_info_rows_for_shipping_gateway(make_order, shipping_config, completed_payload):
    order = make_order(payment_method="astimpay_shipping_only", payment_data=completed_payload())
    rows = payment_info_rows(order, shipping_config)
    assert rows[0] == {"label": "Moyen de paiement (AstimPay (Livraison uniquement))", "value": "Bkash"}
    assert rows[1]["value"] == "01700000000"
    assert rows[2] == {"label": "Transaction", "value": "TX1"}
    assert rows[3] == {"label": "Montant livraison (PAYÉ)", "value": "200"}

def test_info_rows_fall_back_to_invoice_id(make_order, full_order_config, completed_payload):
    order = make_order(payment_method="astimpay", payment_data=completed_payload(transaction_id=None))
    rows = payment_info_rows(order, full_order_config)
    assert rows[2]["value"] == "inv_1"
    assert rows[3]["label"] == "Montant (PAYÉ)"

def test_info_rows_absent_for_other_gateway_or_no_data(make_order, full_order_config, completed_payload):
    assert payment_info_rows(make_order(payment_method="cod", payment_data=completed_payload()), full_order_config) is None
    assert payment_info_rows(make_order(payment_method="astimpay"), full_order_config) is None
