"""Core configuration, security primitives and shared errors."""
