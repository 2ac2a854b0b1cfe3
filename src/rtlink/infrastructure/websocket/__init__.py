from .transport import WebSocketTransport

__all__ = ["WebSocketTransport"]
