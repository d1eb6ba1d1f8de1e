"""
Data models for the voice assistant.
"""
from .turn import Role, Turn

__all__ = ["Role", "Turn"]
