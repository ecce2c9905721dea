"""Compile a Swagger 1.2 document set into a sealed service model.

:class:`ServiceBuilder` is the orchestrator. It walks the resource listing,
fetches each API declaration in listing order, registers the declaration's
models and then its operations, and finally seals everything into an
immutable :class:`~swizzle.models.ServiceModel`.

The build has two phases:

1. **Collect** -- :meth:`ServiceBuilder.build` (or manual
   :meth:`~ServiceBuilder.add_model` / :meth:`~ServiceBuilder.add_api`
   calls) fills the model and operation registries.
2. **Finalize** -- :meth:`ServiceBuilder.finalize` re-applies every
   registered response class (so classes registered *after* an operation was
   built still take effect), checks that every class decoder is provided,
   checks that every ``$ref`` resolves, and seals the result.

Configuration setters must run before the registries exist; response classes
may be registered at any point before sealing.

Example::

    builder = ServiceBuilder("petstore")
    builder.register_response_class("getPetById", "PetResult")
    with open_source("http://petstore.example.com/api/api-docs") as source:
        service = builder.build(source).finalize()
"""

from __future__ import annotations

import logging
import time
from typing import Any, Iterator, Mapping, Optional

from swizzle.compiler.operations import (
    OperationBuilder,
    apply_response_class,
    check_response_decoder,
)
from swizzle.compiler.registry import ModelRegistry, OperationRegistry
from swizzle.compiler.schema import SchemaTransformer
from swizzle.compiler.urls import merge_url
from swizzle.exceptions import (
    BuildError,
    DanglingReferenceError,
    InvalidUsageError,
    MalformedSourceError,
)
from swizzle.models import (
    BuildSettings,
    CustomClassContract,
    ModelDefinition,
    ServiceModel,
)
from swizzle.parser.loader import check_declaration, check_resource_listing, listing_paths
from swizzle.parser.sources import DocumentSource

logger = logging.getLogger(__name__)


class ServiceBuilder:
    """Builds one :class:`ServiceModel` from Swagger 1.2 documents.

    Args:
        name: Name of the API.
        description: Summary of the API. Taken from the listing's ``info``
            block when empty.
        api_version: API version. The listing's ``apiVersion`` overrides it.
        settings: Resolved build settings; explicit arguments win over
            ``settings.name`` etc.
    """

    def __init__(
        self,
        name: str = "",
        description: str = "",
        api_version: str = "",
        settings: Optional[BuildSettings] = None,
    ) -> None:
        settings = settings or BuildSettings()
        self._init: dict[str, str] = {
            "name": name or settings.name,
            "description": description or settings.description,
            "api_version": api_version or settings.api_version,
            "base_url": settings.base_url or "",
        }
        self._delay_ms = settings.delay_ms
        self._responses: dict[str, str] = dict(settings.response_classes)

        self._models: Optional[ModelRegistry] = None
        self._operations: Optional[OperationRegistry] = None
        self._transformer: Optional[SchemaTransformer] = None
        self._operation_builder: Optional[OperationBuilder] = None
        self._sealed: Optional[ServiceModel] = None

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    @property
    def started(self) -> bool:
        """Whether the registries exist (configuration is frozen)."""
        return self._models is not None

    @property
    def base_url(self) -> str:
        return self._init["base_url"]

    def set_delay(self, milliseconds: int) -> ServiceBuilder:
        """Set the pause between declaration fetches.

        Raises:
            InvalidUsageError: If the build has already started.
        """
        self._check_not_started("delay")
        self._delay_ms = max(0, int(milliseconds))
        return self

    def set_base_url(self, base_url: str) -> ServiceBuilder:
        """Set the base URL common to all operations."""
        return self._set_init_value("base_url", base_url)

    def set_api_version(self, api_version: str) -> ServiceBuilder:
        return self._set_init_value("api_version", api_version)

    def register_response_class(self, name: str, decoder: str) -> ServiceBuilder:
        """Force operation *name* to decode its responses with *decoder*.

        May be called before or after the operation is built; operations
        already in the registry are patched when the build is finalized.

        Raises:
            InvalidUsageError: If the service model has already been sealed.
        """
        if self._sealed is not None:
            raise InvalidUsageError(
                f"Too late to register a response class for '{name}': "
                "the service model is sealed"
            )
        self._responses[name] = decoder
        return self

    def _set_init_value(self, key: str, value: str) -> ServiceBuilder:
        self._check_not_started(key)
        self._init[key] = value
        return self

    def _check_not_started(self, key: str) -> None:
        if self.started:
            raise InvalidUsageError(
                f"Too late to set '{key}': the build has already started"
            )

    # ------------------------------------------------------------------ #
    # Collect phase
    # ------------------------------------------------------------------ #

    def build(self, source: DocumentSource) -> ServiceBuilder:
        """Fetch and fold every declaration listed by *source*.

        Raises:
            MalformedSourceError: If a document has the wrong shape or the
                listing is not Swagger 1.2.
            BuildError: Any other fatal compilation error, annotated with
                the declaration path being processed.
            InvalidUsageError: If this builder has already started.
        """
        self._check_not_started("source")
        logger.debug("pulling resource listing from %s", source.location)
        listing = source.get_listing()
        check_resource_listing(listing)

        paths = listing_paths(listing)
        if not paths:
            logger.warning("Resource listing doesn't define any APIs")

        version = listing.get("apiVersion")
        if version:
            logger.debug("+ set apiVersion %s", version)
            self._init["api_version"] = str(version)
        if not self._init["description"]:
            info = listing.get("info") or {}
            self._init["description"] = (
                info.get("description") or info.get("title") or self._init["name"]
            )
        if not self._init["base_url"]:
            location = source.location
            if not location.startswith(("http://", "https://")):
                location = ""
            self._init["base_url"] = merge_url("/", location)

        self._start()
        for index, path in enumerate(paths):
            if index and self._delay_ms:
                time.sleep(self._delay_ms / 1000)
            logger.debug("pulling %s ...", path)
            try:
                declaration = source.get_declaration(path)
                check_declaration(declaration, path)
                self._add_declaration(declaration)
            except BuildError as exc:
                if exc.document is None:
                    exc.document = path
                raise
        logger.debug("finished")
        return self

    def add_model(self, model: Mapping[str, Any]) -> ModelDefinition:
        """Add a Swagger model definition and return its registry entry."""
        self._check_not_sealed()
        self._start()
        assert self._transformer is not None
        return self._transformer.register_model(model)

    def add_api(self, api: Mapping[str, Any], base_url: str = "") -> ServiceBuilder:
        """Add a Swagger API entry (a path plus its operations).

        Args:
            api: Dict with ``path`` and ``operations``.
            base_url: Fully qualified base URL for the path; defaults to the
                service base URL.

        Raises:
            MalformedSourceError: If the entry has no path.
            NameCollisionError: If an operation name is already taken.
        """
        self._check_not_sealed()
        self._start()
        assert self._operation_builder is not None and self._operations is not None

        path = api.get("path")
        if not isinstance(path, str):
            raise MalformedSourceError("API entry has no 'path'")
        base_url = base_url or self.base_url

        for source in api.get("operations") or []:
            if not isinstance(source, Mapping):
                continue
            operation = self._operation_builder.build(source, path, base_url)
            logger.debug(
                "+ adding operation %s %s %s",
                operation.name,
                operation.http_method.value,
                operation.uri,
            )
            self._operations.add(operation)
        return self

    def _add_declaration(self, declaration: Mapping[str, Any]) -> None:
        for model in _ordered_models(declaration.get("models")):
            self.add_model(model)
        # Ensure a fully qualified base url for this declaration
        base_url = merge_url(declaration.get("basePath") or "", self.base_url)
        for api in declaration["apis"]:
            if isinstance(api, Mapping):
                self.add_api(api, base_url)

    def _start(self) -> None:
        if self._models is not None:
            return
        if not self._init["base_url"]:
            self._init["base_url"] = merge_url("/")
        self._models = ModelRegistry()
        self._operations = OperationRegistry()
        self._transformer = SchemaTransformer(self._models)
        self._operation_builder = OperationBuilder(
            self._transformer, self._models, self.base_url, self._responses
        )

    def _check_not_sealed(self) -> None:
        if self._sealed is not None:
            raise InvalidUsageError("The service model is sealed")

    # ------------------------------------------------------------------ #
    # Finalize phase
    # ------------------------------------------------------------------ #

    @property
    def service_model(self) -> ServiceModel:
        """The sealed service model (finalizing on first access)."""
        return self.finalize()

    def finalize(self) -> ServiceModel:
        """Apply response classes, verify references, and seal the model.

        Raises:
            UnregisteredClassError: If a class response has no decoder.
            DanglingReferenceError: If a ``$ref`` names an unknown model.
        """
        if self._sealed is not None:
            return self._sealed
        self._start()
        assert self._models is not None and self._operations is not None
        assert self._transformer is not None

        for operation in list(self._operations):
            decoder = self._responses.get(operation.name)
            if decoder is None:
                continue
            contract = operation.response
            if isinstance(contract, CustomClassContract) and contract.decoder == decoder:
                continue
            logger.debug("+ applying response class %s to %s", decoder, operation.name)
            self._operations.replace(
                apply_response_class(operation, decoder, self._models)
            )

        for name in self._responses:
            if name not in self._operations:
                logger.warning("Response class registered for unknown operation '%s'", name)

        for operation in self._operations:
            check_response_decoder(operation, self._responses)

        for ref in self._transformer.references:
            if ref not in self._models:
                raise DanglingReferenceError(
                    f"'{ref}' is referenced but never defined as a model",
                    subject=ref,
                )

        self._sealed = ServiceModel(
            name=self._init["name"],
            description=self._init["description"],
            api_version=self._init["api_version"],
            base_url=self.base_url,
            models=self._models.snapshot(),
            operations=self._operations.snapshot(),
        )
        return self._sealed


def _ordered_models(models: Any) -> list[Mapping[str, Any]]:
    """Return declaration models with array-item dependencies first.

    Swagger 1.2 stores models in a map with no meaningful order, but array
    items must reference models that are already registered. Models keep
    their declared order except where a dependency has to move ahead.
    """
    if isinstance(models, Mapping):
        entries = [
            model if model.get("id") else {"id": key, **model}
            for key, model in models.items()
            if isinstance(model, Mapping)
        ]
    elif isinstance(models, list):
        entries = [model for model in models if isinstance(model, Mapping)]
    else:
        return []

    by_id = {model["id"]: model for model in entries if model.get("id")}
    ordered: list[Mapping[str, Any]] = []
    seen: set[int] = set()

    def visit(model: Mapping[str, Any]) -> None:
        if id(model) in seen:
            return
        seen.add(id(model))
        for dependency in _item_references(model):
            if dependency in by_id:
                visit(by_id[dependency])
        ordered.append(model)

    for model in entries:
        visit(model)
    return ordered


def _item_references(fragment: Mapping[str, Any]) -> Iterator[str]:
    items = fragment.get("items")
    if isinstance(items, Mapping):
        ref = items.get("$ref") or items.get("type")
        if isinstance(ref, str):
            yield ref
        yield from _item_references(items)
    properties = fragment.get("properties")
    if isinstance(properties, Mapping):
        for prop in properties.values():
            if isinstance(prop, Mapping):
                yield from _item_references(prop)
