"""Database models."""
from .ping import Ping

__all__ = ["Ping"]
