"""Domain value types."""

from .connection import ConnectionState, ReadyState, TransportMode

__all__ = ["ConnectionState", "ReadyState", "TransportMode"]
