"""
asgi.py -- ASGI entry point for the catalog auth service.

Run with:  uvicorn asgi:app --reload

The catalog routers (movies, genres, users) are mounted next to the auth
router by the hosting service; only the auth surface lives in this repo.
"""

from api.main import app

__all__ = ["app"]
