"""
Taxonomie des erreurs du domaine paiement.
Levées de manière synchrone vers l'appelant, jamais rejouées en interne.
"""


class PaymentError(Exception):
    """Base des erreurs AstimPay côté boutique."""


# Checkout (initiation): la commande reste dans son statut d'origine
class InvalidOrder(PaymentError):
    pass


class NoShippableAmount(PaymentError):
    pass


class ProviderError(PaymentError):
    """Échec transport/API AstimPay, ou session créée sans URL de paiement."""


# Callbacks (redirection navigateur / notification serveur)
class VerificationFailed(PaymentError):
    pass


class Unauthenticated(PaymentError):
    pass


class MalformedPayload(PaymentError):
    pass


CHECKOUT_ERRORS = (InvalidOrder, NoShippableAmount, ProviderError)
CALLBACK_ERRORS = (VerificationFailed, Unauthenticated, MalformedPayload)
