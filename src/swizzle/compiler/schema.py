"""Transform Swagger 1.2 schema fragments into normalized schema nodes.

Swagger models, properties, parameters and operation return types all share
one loosely-typed vocabulary (``type``, ``format``, ``items``, ``$ref``,
``properties``, ``required`` ...). :class:`SchemaTransformer` turns any such
fragment into a :class:`~swizzle.models.SchemaNode`, recursing into object
properties and array items.

Along the way it registers every inline array-item schema it meets as an
anonymous model in the :class:`~swizzle.compiler.registry.ModelRegistry` and
replaces the literal with a reference. Because anonymous names derive from
structure, the same literal appearing in several places resolves to a single
registry entry.

The transformer is lenient: missing types default to ``string`` (or
``object`` when properties are present) and unknown type names pass through.
The one fatal input is an array whose items name a model that has not been
registered yet, which raises :class:`~swizzle.exceptions.DanglingReferenceError`.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from swizzle.compiler.registry import ModelRegistry
from swizzle.compiler.types import normalize_primitive
from swizzle.exceptions import DanglingReferenceError
from swizzle.models import (
    PRIMITIVE_TYPES,
    STRUCTURAL_TYPES,
    ModelDefinition,
    ParameterLocation,
    SchemaNode,
)

logger = logging.getLogger(__name__)

# Keys common to both formats
_COMMON_KEYS = ("type", "enum", "items", "required", "description")
# Swagger -> normalized key translation
_RENAMED_KEYS = {"paramType": "location", "defaultValue": "default"}

_LOCATION_ALIASES = {"path": ParameterLocation.URI}


def translate_keys(
    source: Mapping[str, Any],
    common: tuple[str, ...],
    renamed: Mapping[str, str],
) -> dict[str, Any]:
    """Copy the *common* keys of *source* verbatim and rename the *renamed* ones.

    Args:
        source: A Swagger fragment.
        common: Keys whose name is the same in both formats.
        renamed: Mapping of Swagger key to normalized key.

    Returns:
        A new dict with only the translated keys.
    """
    target = {key: source[key] for key in common if key in source}
    for source_key, target_key in renamed.items():
        if source.get(source_key) is not None:
            target[target_key] = source[source_key]
    return target


def parse_location(
    value: Any, default: Optional[ParameterLocation] = None
) -> Optional[ParameterLocation]:
    """Convert a Swagger ``paramType`` to a :class:`ParameterLocation`.

    ``path`` becomes :attr:`ParameterLocation.URI`; unknown values fall back
    to *default*.
    """
    if value is None:
        return default
    if value in _LOCATION_ALIASES:
        return _LOCATION_ALIASES[value]
    try:
        return ParameterLocation(value)
    except ValueError:
        logger.debug("Unknown parameter location '%s', using %s", value, default)
        return default


class SchemaTransformer:
    """Recursive Swagger schema -> :class:`SchemaNode` converter.

    Args:
        registry: The model registry anonymous item models are added to and
            item references are checked against.
    """

    def __init__(self, registry: ModelRegistry) -> None:
        self._registry = registry
        self._references: list[str] = []

    @property
    def references(self) -> list[str]:
        """Every ``$ref`` name seen so far, for verification once the build ends."""
        return list(self._references)

    def transform(
        self,
        source: Mapping[str, Any],
        default_location: Optional[ParameterLocation] = None,
    ) -> SchemaNode:
        """Convert one Swagger fragment into a :class:`SchemaNode`.

        Args:
            source: The Swagger model, property, parameter or operation dict.
            default_location: Location used when the fragment declares no
                ``paramType``.

        Returns:
            The normalized node. Nested anonymous item models are registered
            as a side effect.

        Raises:
            DanglingReferenceError: If array items name an unregistered model.
        """
        target = translate_keys(source, _COMMON_KEYS, _RENAMED_KEYS)
        location = parse_location(target.get("location"), default_location)
        required = target.get("required") is True
        enum = target.get("enum") if isinstance(target.get("enum"), list) else None

        ref = source.get("$ref")
        if ref and "type" not in source and "items" not in source:
            self._references.append(ref)
            return SchemaNode(
                ref=ref,
                description=target.get("description"),
                required=required,
                location=location,
            )

        properties_source = source.get("properties")
        has_properties = isinstance(properties_source, Mapping)
        type_name = normalize_primitive(
            target.get("type"), source.get("format"), has_properties
        )

        items: Optional[SchemaNode] = None
        if "items" in target:
            type_name = "array"
            items = self._transform_items(target["items"])

        properties: Optional[dict[str, SchemaNode]] = None
        if has_properties:
            properties = self._transform_properties(
                properties_source, source.get("required")
            )
        elif type_name == "object":
            properties = {}

        additional = source.get("additionalProperties")
        return SchemaNode(
            type=type_name,
            description=target.get("description"),
            enum=enum,
            default=target.get("default"),
            required=required,
            location=location,
            items=items,
            properties=properties,
            additional_properties=additional if isinstance(additional, bool) else None,
        )

    def register_model(self, source: Mapping[str, Any]) -> ModelDefinition:
        """Transform a Swagger model and add it to the registry.

        Models without an ``id`` are anonymous and named from their structure.
        Distinct structures can flatten to the same name; the first one
        registered is kept and the registry warns about the other.

        Object models are closed (``additionalProperties = False``) unless the
        source sets ``additionalProperties`` explicitly, so an undeclared
        response key is reported by the validator.

        Returns:
            The registry entry for the model.
        """
        name = source.get("id")
        if name:
            logger.debug("+ adding model %s ...", name)
        else:
            name = self._registry.anonymous_name(source)
            if name not in self._registry:
                logger.debug("+ adding anonymous model: %s ...", name)

        node = self.transform(source)
        additional = node.additional_properties
        if node.type == "object" and additional is None:
            additional = False
        # required makes no sense at the root of a model
        definition = node.promote(
            ModelDefinition,
            name=name,
            required=False,
            location=None,
            additional_properties=additional,
        )
        return self._registry.register(definition)

    def _transform_items(self, items: Any) -> SchemaNode:
        if isinstance(items, str):
            items = {"type": items}
        elif not isinstance(items, Mapping):
            items = {}

        ref = items.get("$ref")
        item_type = items.get("type")
        if ref is None and isinstance(item_type, str) and _is_model_name(item_type):
            ref = item_type

        if ref:
            if ref not in self._registry:
                raise DanglingReferenceError(
                    f"'{ref}' encountered as items $ref but not defined as a model",
                    subject=ref,
                )
            return SchemaNode(ref=ref)

        # Inline literal: register it so typed arrays resolve to a named model
        model = self.register_model(items)
        return SchemaNode(ref=model.name)

    def _transform_properties(
        self, properties: Mapping[str, Any], required: Any
    ) -> dict[str, SchemaNode]:
        result: dict[str, SchemaNode] = {}
        for name, prop in properties.items():
            if not isinstance(prop, Mapping):
                prop = {}
            result[name] = self.transform(prop, default_location=ParameterLocation.JSON)

        # Swagger lists required properties on the parent; we flag each one
        if isinstance(required, list):
            for name in required:
                if name in result:
                    result[name] = result[name].model_copy(update={"required": True})
        return result


def _is_model_name(type_name: str) -> bool:
    canonical = normalize_primitive(type_name)
    return canonical not in PRIMITIVE_TYPES and canonical not in STRUCTURAL_TYPES
