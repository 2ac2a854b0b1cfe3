from .query_cache import QueryCache

__all__ = ["QueryCache"]
