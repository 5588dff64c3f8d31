"""Local HTTP surface for an embedding UI."""

from flipledger.api.server import create_app

__all__ = ["create_app"]
