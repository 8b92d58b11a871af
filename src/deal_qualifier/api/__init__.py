"""HTTP API for the deal qualifier (FastAPI)."""

from deal_qualifier.api.app import create_app, create_default_app

__all__ = ["create_app", "create_default_app"]
