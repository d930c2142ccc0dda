"""Read-only HTTP API over the persisted circulation data."""

from circulation.api.app import create_api_app

__all__ = ["create_api_app"]
