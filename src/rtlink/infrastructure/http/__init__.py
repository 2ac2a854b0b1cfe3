from .fetcher import HttpFetcher

__all__ = ["HttpFetcher"]
