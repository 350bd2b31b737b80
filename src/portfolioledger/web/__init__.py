"""JSON web API for the ledger."""

from .app import create_app

__all__ = ["create_app"]
