"""Serialise a compiled service model, and load it back.

Two formats are produced:

* **JSON** (:func:`to_json`) -- the normalized service description, using the
  camel-case field names of the export format (``baseUrl``, ``httpMethod``,
  ``$ref`` ...). :func:`from_json` reads it back into an equal
  :class:`~swizzle.models.ServiceModel`.
* **Python** (:func:`to_python`) -- a module holding the same data as a
  ``SERVICE`` dict literal, so a compiled model can be shipped as source.

Files are written atomically (:func:`write_export`).
"""

from __future__ import annotations

import json
import os
import pprint
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from swizzle.exceptions import MalformedSourceError
from swizzle.models import ServiceModel

PYTHON_VARIABLE = "SERVICE"


def to_dict(service: ServiceModel) -> dict[str, Any]:
    """Return the export-format dict of *service*."""
    return service.model_dump(mode="json", by_alias=True, exclude_none=True)


def to_json(service: ServiceModel, indent: Optional[int] = 2) -> str:
    """Serialise *service* as JSON."""
    return json.dumps(to_dict(service), indent=indent, ensure_ascii=False)


def to_python(service: ServiceModel, generated_at: Optional[datetime] = None) -> str:
    """Serialise *service* as Python source defining ``SERVICE``.

    Args:
        service: The compiled model.
        generated_at: Timestamp for the header comment; defaults to now (UTC).
    """
    stamp = (generated_at or datetime.now(timezone.utc)).isoformat(timespec="seconds")
    literal = pprint.pformat(to_dict(service), indent=1, width=88, sort_dicts=False)
    return (
        f"# Auto-generated by swizzle at {stamp}\n"
        f"# Service: {service.name} {service.api_version}\n"
        "\n"
        f"{PYTHON_VARIABLE} = {literal}\n"
    )


def from_json(text: str, document: Optional[str] = None) -> ServiceModel:
    """Load a service model exported by :func:`to_json`.

    Raises:
        MalformedSourceError: If *text* is not a valid export.
    """
    try:
        return ServiceModel.model_validate_json(text)
    except ValidationError as exc:
        raise MalformedSourceError(
            f"Not a compiled service model: {exc.error_count()} error(s)\n{exc}",
            document=document,
        ) from exc


def load_service(path: Path) -> ServiceModel:
    """Read a JSON export from *path*."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise MalformedSourceError(
            f"Failed to read {path}: {exc}", document=str(path)
        ) from exc
    return from_json(text, document=str(path))


def write_export(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data if data.endswith("\n") else data + "\n")
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise
