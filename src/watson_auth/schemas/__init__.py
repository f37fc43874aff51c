# src/watson_auth/schemas/__init__.py
"""Pydantic schemas for API requests and responses."""

from .auth import MeResponse, NonceRequest, NonceResponse, VerifyRequest

__all__ = ["MeResponse", "NonceRequest", "NonceResponse", "VerifyRequest"]
