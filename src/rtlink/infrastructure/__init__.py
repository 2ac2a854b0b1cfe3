"""Adapters for external systems: websocket transport, HTTP fetcher, query cache."""
