"""
Accounts API package.

Provides the FastAPI application for the accounts and billing service.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
