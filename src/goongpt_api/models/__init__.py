# src/goongpt_api/models/__init__.py
"""SQLAlchemy models for the GoonGPT API."""

from .kv_entry import KeyValueEntry

__all__ = ["KeyValueEntry"]
