"""
asgi.py -- Application assembly for the vault auth service.

Two ASGI apps, meant for two listeners:
  app           public API (code login, token refresh, sessions)
  internal_app  remote identity verification for other services; bind it
                to an address only those services can reach

Run with:  uvicorn asgi:app --reload
           uvicorn asgi:internal_app --port 9090
           python main.py serve       (both at once)
"""

from api.internal import internal_app
from api.main import app

__all__ = ["app", "internal_app"]
