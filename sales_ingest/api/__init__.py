"""FastAPI application exposing the aggregate views and the triggered import."""

from .app import create_app, get_config, get_store

__all__ = ["create_app", "get_config", "get_store"]
