"""HTTP API."""

from .server import StatusServer, create_app

__all__ = ['StatusServer', 'create_app']
