"""Append-only registries for compiled models and operations.

:class:`ModelRegistry` maps model names to :class:`~swizzle.models.ModelDefinition`
entries and synthesizes deterministic names for anonymous schemas.
:class:`OperationRegistry` maps operation names to
:class:`~swizzle.models.OperationDefinition` entries and refuses duplicates.

Both are mutated only by the builder during a build; the sealed
:class:`~swizzle.models.ServiceModel` receives plain copies of their contents.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Iterator, Optional

from swizzle.exceptions import NameCollisionError
from swizzle.models import ModelDefinition, OperationDefinition

logger = logging.getLogger(__name__)

ANONYMOUS_PREFIX = "anon_"
_MAX_READABLE_NAME = 32


def synthesize_anonymous_name(structure: Any) -> str:
    """Derive a stable name from the structural content of a schema.

    Keys and scalar leaves are collected in traversal order and joined with
    ``_``. Short results are returned as-is so simple schemas get readable
    names (``type_string``); anything longer than 32 characters is replaced
    by its MD5 hex digest.

    Two structurally identical schemas always produce the same name, which is
    what collapses repeated inline schemas into a single registry entry.

    Args:
        structure: A schema fragment (dict, list or scalar).

    Returns:
        The synthesized name (without the ``anon_`` prefix).
    """
    joined = "_".join(_tokens(structure))
    if len(joined) > _MAX_READABLE_NAME:
        return hashlib.md5(joined.encode("utf-8")).hexdigest()
    return joined


def _tokens(value: Any) -> list[str]:
    if isinstance(value, dict):
        pairs: Any = value.items()
    elif isinstance(value, (list, tuple)):
        pairs = enumerate(value)
    else:
        return [_scalar(value)]

    words: list[str] = []
    for key, child in pairs:
        words.append(str(key))
        if isinstance(child, (dict, list, tuple)):
            words.extend(_tokens(child))
        else:
            words.append(_scalar(child))
    return words


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ModelRegistry:
    """Name -> :class:`~swizzle.models.ModelDefinition` mapping, append-only."""

    def __init__(self) -> None:
        self._models: dict[str, ModelDefinition] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._models

    def __iter__(self) -> Iterator[ModelDefinition]:
        return iter(self._models.values())

    def __len__(self) -> int:
        return len(self._models)

    def get(self, name: str) -> Optional[ModelDefinition]:
        """Return the model registered as *name*, or ``None``."""
        return self._models.get(name)

    def names(self) -> list[str]:
        return list(self._models)

    def register(self, definition: ModelDefinition) -> ModelDefinition:
        """Add *definition* and return the entry now held under its name.

        Registering an identical definition twice is a no-op. A conflicting
        definition under an existing name is ignored with a warning and the
        first registration stays authoritative.
        """
        existing = self._models.get(definition.name)
        if existing is None:
            self._models[definition.name] = definition
            return definition
        if existing != definition:
            logger.warning(
                "Model '%s' redeclared with a different shape; keeping the first declaration",
                definition.name,
            )
        return existing

    def anonymous_name(self, structure: Any) -> str:
        """Return the registry name an anonymous *structure* is stored under."""
        return ANONYMOUS_PREFIX + synthesize_anonymous_name(structure)

    def snapshot(self) -> dict[str, ModelDefinition]:
        return dict(self._models)


class OperationRegistry:
    """Name -> :class:`~swizzle.models.OperationDefinition` mapping with collision checks."""

    def __init__(self) -> None:
        self._operations: dict[str, OperationDefinition] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def __iter__(self) -> Iterator[OperationDefinition]:
        return iter(self._operations.values())

    def __len__(self) -> int:
        return len(self._operations)

    def get(self, name: str) -> Optional[OperationDefinition]:
        return self._operations.get(name)

    def add(self, operation: OperationDefinition) -> None:
        """Register *operation*.

        Raises:
            NameCollisionError: If an operation with the same name exists.
        """
        existing = self._operations.get(operation.name)
        if existing is not None:
            raise NameCollisionError(
                f"Operation name '{operation.name}' is used by both "
                f"{existing.http_method.value} {existing.uri} and "
                f"{operation.http_method.value} {operation.uri}",
                subject=operation.name,
            )
        self._operations[operation.name] = operation

    def replace(self, operation: OperationDefinition) -> None:
        """Swap in a new definition for an already registered name."""
        if operation.name not in self._operations:
            raise KeyError(operation.name)
        self._operations[operation.name] = operation

    def snapshot(self) -> dict[str, OperationDefinition]:
        return dict(self._operations)
