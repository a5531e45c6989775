"""
Factory d’application recommandée pour les entrypoints (ex: backend.asgi).
Ordonne les étapes d’initialisation de manière lisible et testable.
"""
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_security_middleware, register_force_https_middleware
from .exceptions import register_exception_handlers
from .routers import register_routers

def create_app() -> FastAPI:
    """
    Construit l’app FastAPI avec le lifespan et enregistre:
      - middlewares de base (CORS, TrustedHost, en-têtes proxy) et en-têtes de sécurité
      - gestionnaire d’exceptions (JSON pour l’API, page d’erreur pour les callbacks navigateur)
      - routers (payments, health)
      - redirection HTTPS ajoutée en dernier pour s’exécuter en premier
    """
    app = FastAPI(title="AstimPay Gateway", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    register_force_https_middleware(app)
    return app
