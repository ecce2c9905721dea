"""Where the resource listing and its API declarations come from.

A :class:`DocumentSource` hands the builder two kinds of documents: the
resource listing, and one declaration per listed path. Declaration paths are
relative to the listing location, as in Swagger 1.2.

* :class:`HttpSource` -- a live endpoint, fetched with :mod:`httpx`.
* :class:`FileSource` -- a listing file with declaration files beside it.
* :class:`MemorySource` -- documents already in memory (tests, embedding).

:func:`open_source` picks the right implementation for a location string.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Mapping, Optional

import httpx

from swizzle.exceptions import MalformedSourceError
from swizzle.parser.loader import load_document


class DocumentSource(ABC):
    """Abstract provider of Swagger 1.2 documents."""

    @property
    @abstractmethod
    def location(self) -> str:
        """URL (or pseudo-URL) of the resource listing."""

    @abstractmethod
    def get_listing(self) -> dict[str, Any]:
        """Return the resource listing document."""

    @abstractmethod
    def get_declaration(self, path: str) -> dict[str, Any]:
        """Return the API declaration listed under *path*."""

    def close(self) -> None:
        """Release any held resources."""

    def __enter__(self) -> DocumentSource:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class HttpSource(DocumentSource):
    """Fetch documents over HTTP.

    Args:
        listing_url: URL of the resource listing.
        timeout: Request timeout in seconds.
        client: Optional preconfigured client (e.g. with a mock transport).
            A client passed in is not closed by :meth:`close`.
    """

    def __init__(
        self,
        listing_url: str,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._listing_url = listing_url
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    @property
    def location(self) -> str:
        return self._listing_url

    def get_listing(self) -> dict[str, Any]:
        return load_document(self._listing_url, client=self._client)

    def get_declaration(self, path: str) -> dict[str, Any]:
        return load_document(self.declaration_url(path), client=self._client)

    def declaration_url(self, path: str) -> str:
        """Resolve a listed *path* against the listing URL."""
        if path.startswith(("http://", "https://")):
            return path
        return "/".join((self._listing_url.rstrip("/"), path.lstrip("/")))

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


class FileSource(DocumentSource):
    """Read a listing file and declaration files next to it.

    A listed path such as ``/pet`` is looked up relative to the listing's
    directory as ``pet``, ``pet.json``, ``pet.yaml`` or ``pet.yml``.
    """

    _SUFFIXES = ("", ".json", ".yaml", ".yml")

    def __init__(self, listing_path: str | Path) -> None:
        self._listing_path = Path(listing_path)

    @property
    def location(self) -> str:
        return self._listing_path.resolve().as_uri()

    def get_listing(self) -> dict[str, Any]:
        return load_document(str(self._listing_path))

    def get_declaration(self, path: str) -> dict[str, Any]:
        base = self._listing_path.parent / path.strip("/")
        for suffix in self._SUFFIXES:
            candidate = base.with_name(base.name + suffix)
            if candidate.is_file():
                return load_document(str(candidate))
        raise MalformedSourceError(
            f"No declaration file found for '{path}' next to {self._listing_path}",
            document=path,
        )


class MemorySource(DocumentSource):
    """Serve documents from dictionaries.

    Args:
        listing: The resource listing.
        declarations: Declarations keyed by the path the listing uses.
        location: Pseudo-URL of the listing, used to derive the service
            base URL when none is configured.
    """

    def __init__(
        self,
        listing: Mapping[str, Any],
        declarations: Mapping[str, Mapping[str, Any]],
        location: str = "http://localhost/",
    ) -> None:
        self._listing = dict(listing)
        self._declarations = {key: dict(value) for key, value in declarations.items()}
        self._location = location
        self.requested: list[str] = []

    @property
    def location(self) -> str:
        return self._location

    def get_listing(self) -> dict[str, Any]:
        return self._listing

    def get_declaration(self, path: str) -> dict[str, Any]:
        self.requested.append(path)
        try:
            return self._declarations[path]
        except KeyError:
            raise MalformedSourceError(
                f"No declaration registered for '{path}'", document=path
            ) from None


def open_source(location: str, timeout: float = 30.0) -> DocumentSource:
    """Return an :class:`HttpSource` for URLs and a :class:`FileSource` otherwise."""
    if location.startswith(("http://", "https://")):
        return HttpSource(location, timeout=timeout)
    return FileSource(location)
