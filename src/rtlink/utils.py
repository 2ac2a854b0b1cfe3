"""
Utility functions for rtlink.
"""

import os
from typing import Any
from urllib.parse import urlsplit, urlunsplit


def get_project_root() -> str:
    """
    Get the project root directory (parent of src/rtlink).

    Returns:
        Absolute path to the project root directory
    """
    return os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def replace_url_path(url: str, path: str) -> str:
    """
    Return ``url`` with its path replaced, keeping scheme and host.

    Query string and fragment are dropped.

    Args:
        url: Absolute URL such as "wss://example.com/ws"
        path: New path, e.g. "/ws-alt"
    """
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


def normalize_query_key(query_key: Any) -> tuple:
    """
    Normalize a query key into a hashable tuple.

    Strings become one-element tuples; lists and tuples are converted
    element-wise (nested lists become tuples).
    """
    if isinstance(query_key, (list, tuple)):
        return tuple(normalize_query_key(k) if isinstance(k, (list, tuple)) else k for k in query_key)
    return (query_key,)

