"""Database utilities package."""

from .base import Base, create_schema, get_engine, get_session_factory

__all__ = ["Base", "create_schema", "get_engine", "get_session_factory"]
