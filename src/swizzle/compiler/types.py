"""Map Swagger primitive type names and format hints onto canonical types.

Swagger 1.2 spells the same primitive several ways (``int32``, ``int64``,
``double``, ``dateTime`` ...) and sometimes carries the real meaning in the
``format`` field instead of ``type``. :func:`normalize_primitive` folds all of
these onto the canonical set ``string``, ``integer``, ``number``,
``boolean``, ``date``, ``object`` and ``array``.

Unrecognised tokens pass through untouched. A type such as ``Pet`` is a model
name, and callers decide what to do with it.

See https://github.com/wordnik/swagger-core/wiki/Datatypes
"""

from __future__ import annotations

from typing import Optional

_ALIASES: dict[str, str] = {
    # empties
    "void": "",
    "null": "",
    # integers
    "integer": "integer",
    "int32": "integer",
    "int64": "integer",
    # floats
    "number": "number",
    "double": "number",
    "float": "number",
    # dates
    "date": "date",
    "dateTime": "date",
    "date-time": "date",
}

# Format hints that win over the declared base type
_DISAMBIGUATORS = frozenset({"date"})


def normalize_primitive(
    source_type: Optional[str],
    format_hint: Optional[str] = None,
    has_properties: bool = False,
) -> str:
    """Return the canonical type for a Swagger ``type`` / ``format`` pair.

    Args:
        source_type: The declared ``type`` value, possibly absent.
        format_hint: The declared ``format`` value, possibly absent.
        has_properties: Whether the fragment declares ``properties``. An
            untyped fragment with properties is an object, not a string.

    Returns:
        A canonical type name, or *source_type* unchanged when it is not a
        recognised primitive alias.

    Example::

        >>> normalize_primitive("integer", "int64")
        'integer'
        >>> normalize_primitive("string", "date-time")
        'date'
        >>> normalize_primitive("Pet")
        'Pet'
    """
    if format_hint:
        hinted = _ALIASES.get(format_hint, format_hint)
        if hinted in _DISAMBIGUATORS:
            return hinted

    canonical = _ALIASES.get(source_type, source_type) if source_type else ""
    if not canonical:
        return "object" if has_properties else "string"
    return canonical


def is_empty_type(source_type: Optional[str]) -> bool:
    """Whether *source_type* explicitly declares "no value" (``void`` or ``null``)."""
    return source_type is not None and _ALIASES.get(source_type) == ""
