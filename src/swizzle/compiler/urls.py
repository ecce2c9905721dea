"""Merge possibly-relative URLs into fully qualified ones."""

from __future__ import annotations

from urllib.parse import urlsplit

_DEFAULT_BASE = urlsplit("http://localhost/")


def merge_url(path: str, base_url: str = "") -> str:
    """Merge *path* onto *base_url*, returning ``scheme://host/path``.

    Each component is taken from *path* when present, then from *base_url*,
    then from ``http://localhost/``, so the result is always absolute. Query
    strings and fragments are dropped.

    Args:
        path: A ``/path`` or a full ``http://address``.
        base_url: Full base URL that may or may not be on the same host.

    Returns:
        An absolute URL.

    Example::

        >>> merge_url("/api", "http://petstore.example.com/docs")
        'http://petstore.example.com/api'
        >>> merge_url("https://other.example.com", "http://a.example.com/v1")
        'https://other.example.com/v1'
    """
    href = urlsplit(path or "")
    base = urlsplit(base_url or "")
    scheme = href.scheme or base.scheme or _DEFAULT_BASE.scheme
    host = href.netloc or base.netloc or _DEFAULT_BASE.netloc
    url_path = href.path or base.path or _DEFAULT_BASE.path
    if not url_path.startswith("/"):
        url_path = "/" + url_path
    return f"{scheme}://{host}{url_path}"
