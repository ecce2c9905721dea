"""Load Swagger documents from a URL or a local file.

This module handles the I/O of fetching raw Swagger 1.2 documents and turning
them into Python dictionaries. It supports both JSON and YAML with automatic
format detection, and checks the top-level shape of the two document kinds:

* :func:`load_document` -- Load and parse a document from any supported source.
* :func:`check_resource_listing` -- Verify a resource listing declares
  Swagger 1.2 and lists its APIs.
* :func:`check_declaration` -- Verify an API declaration has an ``apis`` list.

Nothing here compiles anything; the documents are handed to
:class:`~swizzle.compiler.service.ServiceBuilder`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping, Optional

import httpx
import yaml

from swizzle.exceptions import ConnectionError_, MalformedSourceError

SWAGGER_VERSION = "1.2"
"""The only Swagger version the compiler understands."""


def load_document(source: str, client: Optional[httpx.Client] = None) -> dict[str, Any]:
    """Load a Swagger document from a URL or a file path.

    Supports JSON and YAML formats. Auto-detects format from content/extension.

    Args:
        source: A URL (http/https) or a file path.
        client: Optional :class:`httpx.Client` reused for URL sources.

    Returns:
        The parsed document as a dictionary.

    Raises:
        MalformedSourceError: If the source cannot be read or parsed.
        ConnectionError_: If a URL cannot be reached.
    """
    if source.startswith(("http://", "https://")):
        return _load_from_url(source, client)
    else:
        return _load_from_file(source)


def _load_from_url(url: str, client: Optional[httpx.Client] = None) -> dict[str, Any]:
    """Fetch a document from URL. Supports JSON and YAML responses.

    Raises:
        MalformedSourceError: On an HTTP error status or unparseable body.
        ConnectionError_: On network failure.
    """
    try:
        if client is not None:
            response = client.get(url)
        else:
            response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise MalformedSourceError(
            f"HTTP {exc.response.status_code} fetching document from {url}",
            document=url,
        ) from exc
    except httpx.RequestError as exc:
        raise ConnectionError_(f"Failed to fetch document from {url}: {exc}") from exc

    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"

    return _parse_content(response.text, hint=hint)


def _load_from_file(path: str) -> dict[str, Any]:
    """Load a document from a local file (.json, .yaml, .yml or content-sniffed)."""
    file_path = Path(path)
    if not file_path.is_file():
        raise MalformedSourceError(f"Document not found: {path}", document=path)

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise MalformedSourceError(
            f"Failed to read document {path}: {exc}", document=path
        ) from exc

    if not content.strip():
        raise MalformedSourceError(f"Document is empty: {path}", document=path)

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"

    return _parse_content(content, hint=hint)


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML. Valid
    JSON is also valid YAML, but JSON parsing is stricter and faster.

    Raises:
        MalformedSourceError: If the content cannot be parsed as either format,
            or is not a mapping.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
            if not isinstance(result, dict):
                raise MalformedSourceError(
                    f"Document must be a JSON/YAML object (got {type(result).__name__})"
                )
            return result
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise MalformedSourceError(f"Invalid JSON: {exc}") from exc

    try:
        result = yaml.safe_load(content)
        if not isinstance(result, dict):
            raise MalformedSourceError(
                "Document must be a JSON/YAML object (got "
                f"{type(result).__name__ if result is not None else 'empty document'})"
            )
        return result
    except yaml.YAMLError as exc:
        yaml_error = exc

    msg = "Failed to parse document as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise MalformedSourceError(msg)


def check_resource_listing(listing: Mapping[str, Any]) -> str:
    """Validate a resource listing and return its Swagger version.

    Raises:
        MalformedSourceError: If the document is not a Swagger resource
            listing or declares a version other than 1.2.
    """
    if "swaggerVersion" not in listing or not isinstance(listing.get("apis"), list):
        raise MalformedSourceError(
            "This doesn't look like a Swagger resource listing "
            "(expected 'swaggerVersion' and an 'apis' list)"
        )

    version = str(listing["swaggerVersion"])
    if version != SWAGGER_VERSION:
        raise MalformedSourceError(
            f"Unsupported Swagger version {version}, expected {SWAGGER_VERSION}",
            subject=version,
        )
    return version


def check_declaration(declaration: Mapping[str, Any], path: str) -> None:
    """Validate the top-level shape of an API declaration.

    Raises:
        MalformedSourceError: If ``apis`` is missing or ``models`` has the
            wrong type.
    """
    if not isinstance(declaration.get("apis"), list):
        raise MalformedSourceError(
            "API declaration has no 'apis' list", document=path
        )
    models = declaration.get("models")
    if models is not None and not isinstance(models, (dict, list)):
        raise MalformedSourceError(
            "API declaration 'models' must be an object or a list", document=path
        )


def listing_paths(listing: Mapping[str, Any]) -> list[str]:
    """Return the declaration paths of a resource listing, in order."""
    return [
        str(api["path"])
        for api in listing.get("apis", [])
        if isinstance(api, Mapping) and api.get("path")
    ]
