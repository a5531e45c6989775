import os
import pytest
from decimal import Decimal
from typing import Any, Dict, Generator, List, Optional
from fastapi.testclient import TestClient

os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from backend.app import app as fastapi_app
from backend.config import GATEWAY_FULL_ORDER, GATEWAY_SHIPPING_ONLY, load_gateway_config
from backend.orders.models import LineItem, Order
from backend.payments.errors import ProviderError, VerificationFailed
from backend.payments.metadata import parse_confirmation
from backend.payments.models import PaymentSessionResult
from backend.payments.views import get_provider_client
from backend.utils.security import require_admin, require_user

TEST_API_KEY = "test-api-key"
CUSTOMER_ID = "customer-1"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)


class FakeOrderStore:
    """Magasin de commandes en mémoire, même contrat que backend.orders.repository."""

    def __init__(self) -> None:
        self.orders: Dict[str, Order] = {}
        self.notes: Dict[str, List[str]] = {}
        self.cleared_carts: List[str] = []
        self.saves = 0

    def add(self, order: Order) -> Order:
        self.orders[order.id] = order.model_copy(deep=True)
        return order

    def get(self, order_id: Any) -> Order:
        return self.orders[str(order_id)]

    def get_order(self, order_id: Any) -> Optional[Order]:
        order = self.orders.get(str(order_id))
        return order.model_copy(deep=True) if order else None

    def save_order(self, order: Order) -> bool:
        current = self.orders.get(order.id)
        if current is None or current.is_settled:
            return False
        stored = order.model_copy(deep=True)
        stored.notes = []
        self.orders[order.id] = stored
        self.notes.setdefault(order.id, []).extend(order.notes)
        order.notes.clear()
        self.saves += 1
        return True

    def clear_cart(self, customer_id: Optional[str]) -> bool:
        if not customer_id:
            return False
        self.cleared_carts.append(customer_id)
        return True


class FakeProviderClient:
    """Client AstimPay simulé: sessions créées et factures vérifiables en mémoire."""

    def __init__(self) -> None:
        self.payment_url: Optional[str] = "https://pay.example.test/checkout/inv_1"
        self.message: Optional[str] = None
        self.create_error: Optional[Exception] = None
        self.invoices: Dict[str, Dict[str, Any]] = {}
        self.created: List[Any] = []
        self.verified: List[str] = []

    def create_payment(self, request):
        self.created.append(request)
        if self.create_error:
            raise self.create_error
        return PaymentSessionResult(payment_url=self.payment_url, message=self.message, invoice_id="inv_1")

    def verify_payment(self, invoice_id: str):
        self.verified.append(invoice_id)
        data = self.invoices.get(invoice_id)
        if data is None:
            raise ProviderError("Invoice not found")
        return parse_confirmation(data, VerificationFailed)

    def close(self) -> None:
        pass


@pytest.fixture(autouse=True)
def gateway_env(monkeypatch):
    """Deux passerelles configurées (clé + URL), réglages par défaut."""
    for prefix in ("ASTIMPAY_", "ASTIMPAY_SHIPPING_ONLY_"):
        monkeypatch.setenv(prefix + "API_KEY", TEST_API_KEY)
        monkeypatch.setenv(prefix + "API_URL", "https://pay.example.test")
        for name in ("EXCHANGE_RATE", "PHYSICAL_PRODUCT_STATUS", "DIGITAL_PRODUCT_STATUS", "DEBUG", "ENABLED"):
            monkeypatch.delenv(prefix + name, raising=False)

@pytest.fixture
def full_order_config():
    return load_gateway_config(GATEWAY_FULL_ORDER)

@pytest.fixture
def shipping_config():
    return load_gateway_config(GATEWAY_SHIPPING_ONLY)

@pytest.fixture
def order_store(monkeypatch) -> FakeOrderStore:
    store = FakeOrderStore()
    monkeypatch.setattr("backend.orders.repository.get_order", store.get_order)
    monkeypatch.setattr("backend.orders.repository.save_order", store.save_order)
    monkeypatch.setattr("backend.orders.repository.clear_cart", store.clear_cart)
    return store

@pytest.fixture
def provider() -> FakeProviderClient:
    return FakeProviderClient()

@pytest.fixture
def make_order():
    def _make(**overrides) -> Order:
        data: Dict[str, Any] = {
            "id": "100",
            "status": "pending",
            "currency": "BDT",
            "customer_id": CUSTOMER_ID,
            "billing_first_name": "Rahim",
            "billing_email": "rahim@example.com",
            "items": [LineItem(product_id="p1")],
            "shipping_total": Decimal("200"),
            "total": Decimal("1200"),
        }
        data.update(overrides)
        return Order(**data)
    return _make

@pytest.fixture
def completed_payload():
    def _payload(order_id: Any = 100, **overrides) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "metadata": {
                "order_id": order_id,
                "redirect_url": "https://shop.example.test/checkout/order-received/100",
            },
            "status": "COMPLETED",
            "payment_method": "bkash",
            "sender_number": "01700000000",
            "amount": "200",
            "transaction_id": "TX1",
            "invoice_id": "inv_1",
        }
        data.update(overrides)
        return data
    return _payload

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app, provider) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_provider_client] = lambda: provider
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.pop(get_provider_client, None)

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app):
    fake_user: Dict[str, Any] = {
        "id": CUSTOMER_ID,
        "email": "rahim@example.com",
        "role": "user",
        "token": "fake-token",
    }
    app.dependency_overrides[require_user] = lambda: fake_user
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

@pytest.fixture
def admin_client(app, client):
    app.dependency_overrides[require_admin] = lambda: {"id": "admin-user-id", "role": "admin", "email": "admin@example.com"}
    yield client
    app.dependency_overrides.pop(require_admin, None)
