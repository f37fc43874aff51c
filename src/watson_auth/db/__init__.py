# src/watson_auth/db/__init__.py
"""Database configuration and utilities."""

from .session import Base, get_db, get_session_factory

__all__ = ["Base", "get_db", "get_session_factory"]
