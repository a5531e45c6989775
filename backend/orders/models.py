# module backend.orders.models
"""Modèle des commandes boutique telles que consommées par les passerelles de paiement.
- Order: commande (statut, devise, contact de facturation, lignes, totaux, données de paiement).
- LineItem: ligne de commande avec les drapeaux produit virtuel / téléchargeable.
- Les notes ajoutées pendant une transition sont en attente jusqu'à save_order().
"""
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

# Statut fournisseur d'une confirmation réussie (tel que stocké dans payment_data)
SETTLED_PAYMENT_STATUS = "COMPLETED"


class OrderStatus(str, Enum):
    PENDING = "pending"
    ON_HOLD = "on-hold"
    PROCESSING = "processing"
    COMPLETED = "completed"


class LineItem(BaseModel):
    # product_id vaut None lorsque le produit n'existe plus (ligne non résolue)
    product_id: Optional[str] = None
    is_virtual: bool = False
    is_downloadable: bool = False

    @field_validator("product_id", mode="before")
    @classmethod
    def _product_id_as_str(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @property
    def resolves(self) -> bool:
        return self.product_id is not None


class Order(BaseModel):
    id: str
    status: str = OrderStatus.PENDING.value
    currency: str
    customer_id: Optional[str] = None
    billing_first_name: str = ""
    billing_email: str = ""
    items: List[LineItem] = Field(default_factory=list)
    shipping_total: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    payment_data: Optional[Dict[str, Any]] = None
    notes: List[str] = Field(default_factory=list)

    @field_validator("id", "customer_id", mode="before")
    @classmethod
    def _ids_as_str(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator("billing_first_name", "billing_email", mode="before")
    @classmethod
    def _null_as_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("status", mode="before")
    @classmethod
    def _strip_wc_prefix(cls, v: Any) -> str:
        value = str(v or OrderStatus.PENDING.value)
        return value[3:] if value.startswith("wc-") else value

    @field_validator("shipping_total", "total", mode="before")
    @classmethod
    def _empty_amount_is_zero(cls, v: Any) -> Any:
        return "0" if v in (None, "") else v

    @property
    def is_completed(self) -> bool:
        return self.status == OrderStatus.COMPLETED.value

    @property
    def is_settled(self) -> bool:
        """Terminée, ou confirmation de paiement COMPLETED déjà enregistrée (statut processing)."""
        stored = str((self.payment_data or {}).get("status") or "").upper()
        return self.is_completed or stored == SETTLED_PAYMENT_STATUS

    def update_status(self, status: str, note: str = "") -> None:
        """Change le statut et empile une note (persistée par save_order)."""
        self.status = status.value if isinstance(status, OrderStatus) else str(status)
        if note:
            self.add_note(note)

    def add_note(self, note: str) -> None:
        self.notes.append(note)

    def mark_paid(self, transaction_id: Optional[str]) -> None:
        """Marque la commande entièrement payée (transaction + date de paiement)."""
        if transaction_id:
            self.transaction_id = transaction_id
        if self.paid_at is None:
            self.paid_at = datetime.now(timezone.utc)
