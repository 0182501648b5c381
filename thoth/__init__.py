"""Thoth - authenticated chat client for the Thoth backend."""

from .main import ThothClient, create_client, client_lifespan

__version__ = "1.0.0"

__all__ = ['ThothClient', 'create_client', 'client_lifespan', '__version__']
