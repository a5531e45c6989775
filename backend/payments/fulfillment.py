from backend.orders.models import Order

# module backend.payments.fulfillment
def is_virtual(order: Order) -> bool:
    """
    Vrai si toutes les lignes résolues sont virtuelles ou téléchargeables.
    - S'arrête au premier article physique.
    - Aucune ligne résolue: considéré physique (statut le plus strict).
    """
    resolved = False
    for item in order.items:
        if not item.resolves:
            continue
        if not (item.is_virtual or item.is_downloadable):
            return False
        resolved = True
    return resolved
