"""
Module 'orders': accès aux commandes de la boutique (propriété du système boutique).
Le domaine paiement ne lit et n'écrit les commandes qu'au travers de ce module.
"""
from .models import Order, LineItem, OrderStatus
from .repository import get_order, save_order, clear_cart

__all__ = [
    "Order",
    "LineItem",
    "OrderStatus",
    "get_order",
    "save_order",
    "clear_cart",
]
