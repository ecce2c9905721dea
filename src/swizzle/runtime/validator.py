"""Structural validation of decoded responses against compiled models.

Only the constraints the compiler produces are checked: ``type``, ``enum``,
``required``, ``properties``, ``items`` and ``additionalProperties``.
Validation never stops at the first problem; every violation is collected
with a dotted path such as ``Pet.tags[0].name``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from swizzle.models import ServiceModel, SchemaNode, Violation

logger = logging.getLogger(__name__)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# fromisoformat only takes 3 or 6 fractional digits before 3.11
_FRACTION = re.compile(r"\.(\d+)")


def _pad_fraction(match: re.Match[str]) -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def _is_date(value: Any) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str):
        return False
    text = _FRACTION.sub(_pad_fraction, value.replace("Z", "+00:00"), count=1)
    try:
        datetime.fromisoformat(text)
    except ValueError:
        return False
    return True


_TYPE_CHECKS = {
    "string": lambda value: isinstance(value, str),
    "integer": _is_integer,
    "number": _is_number,
    "boolean": lambda value: isinstance(value, bool),
    "date": _is_date,
    "object": lambda value: isinstance(value, Mapping),
    "array": lambda value: isinstance(value, list),
}


class SchemaValidator:
    """Validate values against the schema nodes of one service model.

    Args:
        service: The sealed service model references are resolved against.
    """

    def __init__(self, service: ServiceModel) -> None:
        self._service = service

    def validate(self, node: SchemaNode, value: Any, path: str = "") -> list[Violation]:
        """Return every violation of *node* by *value*.

        ``None`` is accepted for any node; whether a property may be missing
        is decided by its parent's ``required`` flags.
        """
        violations: list[Violation] = []
        self._visit(node, value, path or node.name or "$", violations)
        return violations

    def validate_model(self, model: str, value: Any) -> list[Violation]:
        """Validate *value* against the registered model named *model*."""
        definition = self._service.get_model(model)
        if definition is None:
            logger.debug("No model named '%s', skipping validation", model)
            return []
        return self.validate(definition, value, model)

    def _visit(
        self, node: SchemaNode, value: Any, path: str, violations: list[Violation]
    ) -> None:
        node = self._service.resolve(node)
        if value is None:
            return

        if node.enum is not None and value not in node.enum:
            violations.append(
                Violation(
                    path=path,
                    keyword="enum",
                    message=f"{value!r} is not one of {node.enum!r}",
                )
            )

        check = _TYPE_CHECKS.get(node.type or "")
        if check is None:
            # Unknown and unresolved type names are not checked
            return
        if not check(value):
            violations.append(
                Violation(
                    path=path,
                    keyword="type",
                    message=f"expected {node.type}, got {type(value).__name__}",
                )
            )
            return

        if node.type == "object":
            self._visit_object(node, value, path, violations)
        elif node.type == "array" and node.items is not None:
            for index, item in enumerate(value):
                self._visit(node.items, item, f"{path}[{index}]", violations)

    def _visit_object(
        self,
        node: SchemaNode,
        value: Mapping[str, Any],
        path: str,
        violations: list[Violation],
    ) -> None:
        properties = node.properties or {}
        for name, prop in properties.items():
            child = f"{path}.{name}"
            if value.get(name) is None:
                if prop.required:
                    violations.append(
                        Violation(path=child, keyword="required", message="is required")
                    )
                continue
            self._visit(prop, value[name], child, violations)

        if node.additional_properties is False:
            for key in value:
                if key not in properties:
                    violations.append(
                        Violation(
                            path=f"{path}.{key}",
                            keyword="additionalProperties",
                            message="is not a declared property",
                        )
                    )
