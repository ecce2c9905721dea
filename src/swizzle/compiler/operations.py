"""Build normalized operation definitions from Swagger 1.2 operation objects.

One Swagger API entry (a ``path`` plus a list of ``operations``) yields one
:class:`~swizzle.models.OperationDefinition` per operation. For each one the
:class:`OperationBuilder`:

* resolves the URI template against the declaration's base path, keeping it
  relative when it lives under the service base URL;
* names it from ``nickname`` or synthesizes ``{method}_{path}``;
* transforms every parameter (default location ``query``; path parameters
  become required ``uri`` parameters);
* infers the response contract, with any registered response class taking
  precedence;
* maps ``responseMessages`` to error responses.

Response classes can also be registered after an operation was built. The
service builder re-applies them with :func:`apply_response_class` before it
checks decoders with :func:`check_response_decoder`.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit

from swizzle.compiler.registry import ModelRegistry
from swizzle.compiler.schema import SchemaTransformer, translate_keys
from swizzle.compiler.types import is_empty_type
from swizzle.exceptions import MalformedSourceError, UnregisteredClassError
from swizzle.models import (
    BUILTIN_DECODERS,
    CustomClassContract,
    ErrorResponseDefinition,
    HTTPMethod,
    ModelContract,
    ModelDefinition,
    ModelKind,
    NoneContract,
    OperationDefinition,
    ParameterDefinition,
    ParameterLocation,
    ResponseContract,
    SchemaNode,
)

logger = logging.getLogger(__name__)

_HOST_PREFIX = re.compile(r"^https?://[^/]+")
_RESPONSE_KEYS = ("type", "format", "items", "$ref", "properties", "required", "enum")


def synthesize_operation_name(method: str, uri: str) -> str:
    """Build a fallback operation name from the HTTP method and URI path.

    Example::

        >>> synthesize_operation_name("GET", "/pets/{id}")
        'get_pets_id'
    """
    path = urlsplit(uri).path.strip("/")
    slug = path.replace("/", "_").replace("{", "").replace("}", "")
    return f"{method.lower()}_{slug}"


def resolve_uri(api_path: str, base_url: str, service_base_url: str) -> str:
    """Join *api_path* onto *base_url*.

    The scheme and host are stripped again when the result lives under
    *service_base_url*, so stored templates survive a base URL change.
    """
    uri = "/".join((base_url.rstrip("/"), api_path.lstrip("/")))
    if service_base_url and uri.startswith(service_base_url):
        uri = _HOST_PREFIX.sub("", uri)
    return uri


def apply_response_class(
    operation: OperationDefinition,
    decoder: str,
    registry: ModelRegistry,
) -> OperationDefinition:
    """Return *operation* with its response forced to a ``class`` contract.

    The model the operation would otherwise have been validated against is
    kept on the contract, so decoders producing a structural result are still
    validated.
    """
    model: Optional[str] = None
    match operation.response:
        case ModelContract(type=type_name) if type_name in registry:
            model = type_name
        case CustomClassContract(model=previous):
            model = previous
        case _:
            model = None
    contract = CustomClassContract(decoder=decoder, model=model)
    return operation.model_copy(update={"response": contract})


def check_response_decoder(
    operation: OperationDefinition, overrides: Mapping[str, str]
) -> None:
    """Make sure a ``class`` contract names a decoder someone will provide.

    Raises:
        UnregisteredClassError: If the decoder is neither built in nor the
            response class registered for this operation.
    """
    contract = operation.response
    if not isinstance(contract, CustomClassContract):
        return
    if contract.decoder in BUILTIN_DECODERS:
        return
    if overrides.get(operation.name) == contract.decoder:
        return
    raise UnregisteredClassError(
        f"Response of '{operation.name}' defaulted to class '{contract.decoder}' "
        "but no such class is registered",
        subject=operation.name,
    )


class OperationBuilder:
    """Converts Swagger operations into :class:`OperationDefinition` objects.

    Args:
        transformer: Shared schema transformer (and thus model registry).
        registry: The model registry, used to resolve response model names
            and to hold synthesized array wrappers.
        service_base_url: The service base URL; URIs under it are stored
            relative.
        overrides: Response classes registered so far, keyed by operation
            name.
    """

    def __init__(
        self,
        transformer: SchemaTransformer,
        registry: ModelRegistry,
        service_base_url: str,
        overrides: Mapping[str, str],
    ) -> None:
        self._transformer = transformer
        self._registry = registry
        self._service_base_url = service_base_url
        self._overrides = overrides

    def build(
        self, source: Mapping[str, Any], api_path: str, base_url: str
    ) -> OperationDefinition:
        """Compile one Swagger operation.

        Args:
            source: The Swagger operation object.
            api_path: The ``path`` of the enclosing API entry.
            base_url: Fully qualified base URL of the declaration.

        Returns:
            The compiled operation.

        Raises:
            MalformedSourceError: If the HTTP method is not recognised.
            DanglingReferenceError: If a typed array names an unknown model.
        """
        method = _parse_method(source.get("method"))
        uri = resolve_uri(api_path, base_url, self._service_base_url)
        name = source.get("nickname") or synthesize_operation_name(method.value, uri)

        decoder = self._overrides.get(name)
        response: ResponseContract
        if decoder is not None:
            # the declared type is not transformed for overridden operations
            logger.debug("+ response class %s forced for %s", decoder, name)
            response = CustomClassContract(decoder=decoder, model=self._declared_model(source))
        else:
            response = self._infer_response(source)

        return OperationDefinition(
            name=name,
            http_method=method,
            uri=uri,
            summary=source.get("summary"),
            notes=source.get("notes"),
            parameters=self._build_parameters(source.get("parameters")),
            response=response,
            error_responses=_build_error_responses(source.get("responseMessages")),
        )

    def _declared_model(self, source: Mapping[str, Any]) -> Optional[str]:
        declared = source.get("$ref") or source.get("type")
        if isinstance(declared, str) and declared in self._registry:
            return declared
        return None

    def _build_parameters(self, params: Any) -> list[ParameterDefinition]:
        if not isinstance(params, list):
            return []
        result: list[ParameterDefinition] = []
        for index, raw in enumerate(params):
            if not isinstance(raw, Mapping):
                continue
            node = self._transformer.transform(
                raw, default_location=ParameterLocation.QUERY
            )
            required = node.required
            # Swagger doesn't allow optional path params, even if undeclared
            if node.location is ParameterLocation.URI:
                required = True
            result.append(
                node.promote(
                    ParameterDefinition,
                    name=raw.get("name") or str(index),
                    required=required,
                )
            )
        return result

    def _infer_response(self, source: Mapping[str, Any]) -> ResponseContract:
        fragment = {key: source[key] for key in _RESPONSE_KEYS if key in source}
        declared = fragment.get("type")
        if not fragment or set(fragment) <= {"format"}:
            return NoneContract()
        if is_empty_type(declared) and "items" not in fragment:
            return NoneContract()

        if isinstance(fragment.get("properties"), Mapping):
            model = self._transformer.register_model(fragment)
            return ModelContract(type=model.name)

        node = self._transformer.transform(fragment)
        match node.kind:
            case ModelKind.ARRAY:
                wrapper = self._array_model(node.items)
                return ModelContract(type=wrapper.name)
            case ModelKind.OBJECT | ModelKind.PRIMITIVE:
                return ModelContract(type=node.type)
            case None:
                target = node.target or ""
                if target in self._registry:
                    return ModelContract(type=target)
                return CustomClassContract(decoder=target)

    def _array_model(self, items: Optional[SchemaNode]) -> ModelDefinition:
        # typed array responses need a model wrapper so their items validate
        ref = items.target if items is not None else None
        if not ref:
            ref = "string"
        name = f"{ref}_array"
        existing = self._registry.get(name)
        if existing is not None:
            return existing
        logger.debug("+ adding array wrapper model %s", name)
        return self._registry.register(
            ModelDefinition(
                name=name,
                type="array",
                description=f"Array of '{ref}' objects",
                items=SchemaNode(ref=ref) if ref in self._registry else SchemaNode(type=ref),
            )
        )


def _parse_method(value: Any) -> HTTPMethod:
    method = str(value or "GET").upper()
    try:
        return HTTPMethod(method)
    except ValueError as exc:
        raise MalformedSourceError(
            f"Unsupported HTTP method '{value}'", subject=str(value)
        ) from exc


def _build_error_responses(messages: Any) -> list[ErrorResponseDefinition]:
    if not isinstance(messages, list):
        return []
    result: list[ErrorResponseDefinition] = []
    for message in messages:
        if not isinstance(message, Mapping) or "code" not in message:
            continue
        data = translate_keys(message, ("code",), {"message": "phrase"})
        result.append(
            ErrorResponseDefinition(code=int(data["code"]), phrase=data.get("phrase", ""))
        )
    return result
