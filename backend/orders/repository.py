"""
Accès aux données 'orders' (Supabase, client service-role).
Tables: orders, order_items (+ products), order_notes, cart_items.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

import backend.infra.supabase_client as supabase_client
from backend.orders.models import LineItem, Order, OrderStatus, SETTLED_PAYMENT_STATUS

logger = logging.getLogger(__name__)

ORDER_COLUMNS = (
    "id, status, currency, customer_id, billing_first_name, billing_email, "
    "shipping_total, total, payment_method, transaction_id, paid_at, payment_data, "
    "order_items(product_id, products(id, is_virtual, is_downloadable))"
)

# Filtre PostgREST: aucune confirmation réussie déjà enregistrée sur la commande
UNSETTLED_FILTER = f"payment_data.is.null,payment_data->>status.neq.{SETTLED_PAYMENT_STATUS}"

# module backend.orders.repository
def _row_to_order(row: Dict[str, Any]) -> Order:
    items = []
    for it in row.get("order_items") or []:
        product = it.get("products") or None
        if not product:
            items.append(LineItem(product_id=None))
            continue
        items.append(LineItem(
            product_id=product.get("id") or it.get("product_id"),
            is_virtual=bool(product.get("is_virtual")),
            is_downloadable=bool(product.get("is_downloadable")),
        ))
    data = {k: v for k, v in row.items() if k != "order_items"}
    return Order(**data, items=items)

def get_order(order_id: Any) -> Optional[Order]:
    """
    Charge une commande et ses lignes (avec drapeaux produit).
    - Retourne None si la commande n'existe pas.
    - Les erreurs d'infrastructure sont journalisées puis propagées.
    """
    if order_id in (None, ""):
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select(ORDER_COLUMNS)
            .eq("id", str(order_id))
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("orders.repository.get_order failed id=%s", order_id)
        raise
    rows = res.data or []
    return _row_to_order(rows[0]) if rows else None

def save_order(order: Order) -> bool:
    """
    Écriture durable de la commande, gardée par statut (compare-and-set):
    - UPDATE ... WHERE id = :id AND status <> 'completed'
      AND (payment_data IS NULL OR payment_data->>status <> 'COMPLETED')
    - Retourne False si aucune ligne n'a été modifiée (commande réglée entre-temps).
    - Les notes en attente ne sont insérées que si la mise à jour a porté.
    """
    fields: Dict[str, Any] = {
        "status": order.status,
        "payment_data": order.payment_data,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }
    if order.payment_method:
        fields["payment_method"] = order.payment_method
    if order.transaction_id:
        fields["transaction_id"] = order.transaction_id
    if order.paid_at:
        fields["paid_at"] = order.paid_at.isoformat()

    client = supabase_client.get_service_supabase()
    try:
        res = (
            client
            .table("orders")
            .update(fields)
            .eq("id", order.id)
            .neq("status", OrderStatus.COMPLETED.value)
            .or_(UNSETTLED_FILTER)
            .execute()
        )
    except Exception:
        logger.exception("orders.repository.save_order failed id=%s", order.id)
        raise

    if not res.data:
        return False

    if order.notes:
        client.table("order_notes").insert(
            [{"order_id": order.id, "note": note} for note in order.notes]
        ).execute()
        order.notes.clear()
    return True

def clear_cart(customer_id: Optional[str]) -> bool:
    """
    Vide le panier du client après création de la session de paiement.
    - Commande invité (customer_id vide): rien à faire.
    - Best-effort: un échec est journalisé sans annuler le checkout.
    """
    if not customer_id:
        return False
    try:
        (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .delete()
            .eq("user_id", customer_id)
            .execute()
        )
        return True
    except Exception:
        logger.exception("orders.repository.clear_cart failed customer_id=%s", customer_id)
        return False
