"""
Registre central des routers.
- API v1: payments (checkout, callback AstimPay, affichage opérateur)
- Health: liveness, Supabase, rate limiting
"""
from fastapi import FastAPI
from backend.payments import views as payments_views
from backend.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    app.include_router(payments_views.router)
    app.include_router(health_router)
