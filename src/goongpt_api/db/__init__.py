# src/goongpt_api/db/__init__.py
"""Engine, session factory and schema helpers for the SQL store."""

from .session import SessionLocal, build_engine, create_tables

__all__ = ["SessionLocal", "build_engine", "create_tables"]
