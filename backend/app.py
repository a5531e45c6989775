# module backend.app
"""
Application globale: instance FastAPI construite par la factory (backend.app_setup.factory).
"""
from backend.app_setup.factory import create_app

app = create_app()
