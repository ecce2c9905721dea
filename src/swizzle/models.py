"""Canonical Pydantic models for the compiled service model.

This is the single source of truth for data shapes in the project. The
compiler produces these models, the exporter serialises them, and the runtime
decoder consumes them. Every model is frozen: once the builder seals a
:class:`ServiceModel` nothing in it changes, so it can be shared across any
number of concurrent decode calls.

**Schema models** -- the recursive structural node and its two named roles:
    :class:`SchemaNode`, :class:`ModelDefinition`, :class:`ParameterDefinition`.

**Operation models** -- the response contract tagged union
    (:class:`NoneContract`, :class:`ModelContract`,
    :class:`CustomClassContract`), :class:`ErrorResponseDefinition` and
    :class:`OperationDefinition`.

**Root** -- :class:`ServiceModel`, plus :class:`Violation` used by the
response validator.

Field aliases (``$ref``, ``additionalProperties``, ``httpMethod`` ...) follow
the normalized export format; constructors accept either spelling.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

PRIMITIVE_TYPES = frozenset({"string", "integer", "number", "boolean", "date"})
"""Canonical primitive type names produced by the type mapper."""

STRUCTURAL_TYPES = frozenset({"object", "array"})
"""Canonical structural type names."""

BUILTIN_DECODERS = frozenset({"json", "text", "bytes"})
"""Response class names every runtime provides without registration."""

_NodeT = TypeVar("_NodeT", bound="SchemaNode")


class ModelKind(str, enum.Enum):
    """Structural kind of a schema node with a canonical type."""

    PRIMITIVE = "primitive"
    OBJECT = "object"
    ARRAY = "array"


class ParameterLocation(str, enum.Enum):
    """Where a parameter or property value lives in a request or response.

    The Swagger ``path`` location is stored as ``uri`` (URI template
    substitution).
    """

    QUERY = "query"
    URI = "uri"
    HEADER = "header"
    BODY = "body"
    JSON = "json"
    FORM = "form"


class HTTPMethod(str, enum.Enum):
    """HTTP methods an operation may declare."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


# --- Schema models ---


class SchemaNode(BaseModel):
    """A normalized type declaration.

    Used for model properties, array items and (via subclasses) registry
    models and operation parameters. A node is either *structural* (``type``
    is a canonical primitive, ``object`` or ``array``) or a *reference* to a
    registered model, expressed with ``$ref`` or with the model name as
    ``type``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: Optional[str] = None
    type: Optional[str] = None
    ref: Optional[str] = Field(default=None, alias="$ref")
    description: Optional[str] = None
    enum: Optional[list[Any]] = None
    default: Any = None
    required: bool = False
    location: Optional[ParameterLocation] = None
    items: Optional[SchemaNode] = None
    properties: Optional[dict[str, SchemaNode]] = None
    additional_properties: Optional[bool] = Field(
        default=None, alias="additionalProperties"
    )

    @property
    def kind(self) -> Optional[ModelKind]:
        """Structural kind, or ``None`` for references."""
        if self.ref:
            return None
        if self.type == "object":
            return ModelKind.OBJECT
        if self.type == "array":
            return ModelKind.ARRAY
        if self.type in PRIMITIVE_TYPES:
            return ModelKind.PRIMITIVE
        return None

    @property
    def target(self) -> Optional[str]:
        """Name of the model this node refers to, if it is a reference."""
        if self.ref:
            return self.ref
        if self.kind is None and self.type:
            return self.type
        return None

    def promote(self, cls: type[_NodeT], **updates: Any) -> _NodeT:
        """Return a copy of this node as *cls* with *updates* applied."""
        data = self.model_dump()
        data.update(updates)
        return cls(**data)


class ModelDefinition(SchemaNode):
    """A named entry in the model registry."""

    name: str


class ParameterDefinition(SchemaNode):
    """A named operation parameter with a request location."""

    name: str
    location: ParameterLocation = ParameterLocation.QUERY


# --- Operation models ---


class NoneContract(BaseModel):
    """Raw passthrough: the HTTP response is returned undecoded."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["none"] = "none"


class ModelContract(BaseModel):
    """Decode into a primitive or a registered model and validate it.

    ``type`` is either a canonical primitive name or a model name.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["model"] = "model"
    type: str

    @property
    def is_primitive(self) -> bool:
        return self.type in PRIMITIVE_TYPES or self.type in STRUCTURAL_TYPES


class CustomClassContract(BaseModel):
    """Decode through an externally registered decoder class.

    ``model`` names the registry model used for validation when the decoder
    output exposes a structural view; ``None`` disables validation.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["class"] = "class"
    decoder: str
    model: Optional[str] = None


ResponseContract = Annotated[
    Union[NoneContract, ModelContract, CustomClassContract],
    Field(discriminator="kind"),
]


class ErrorResponseDefinition(BaseModel):
    """A declared error status with its human-readable phrase."""

    model_config = ConfigDict(frozen=True)

    code: int
    phrase: str = ""


class OperationDefinition(BaseModel):
    """A compiled operation: one HTTP method on one URI template."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    http_method: HTTPMethod = Field(default=HTTPMethod.GET, alias="httpMethod")
    uri: str
    summary: Optional[str] = None
    notes: Optional[str] = None
    parameters: list[ParameterDefinition] = Field(default_factory=list)
    response: ResponseContract = Field(default_factory=NoneContract)
    error_responses: list[ErrorResponseDefinition] = Field(
        default_factory=list, alias="errorResponses"
    )

    def get_parameter(self, name: str) -> Optional[ParameterDefinition]:
        for param in self.parameters:
            if param.name == name:
                return param
        return None


# --- Root ---


class ServiceModel(BaseModel):
    """The compiled, sealed service description.

    Owns the model registry (``models``) and the operation registry
    (``operations``), both keyed by name in registration order.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str = ""
    api_version: str = Field(default="", alias="apiVersion")
    base_url: str = Field(default="", alias="baseUrl")
    models: dict[str, ModelDefinition] = Field(default_factory=dict)
    operations: dict[str, OperationDefinition] = Field(default_factory=dict)

    def get_model(self, name: str) -> Optional[ModelDefinition]:
        return self.models.get(name)

    def get_operation(self, name: str) -> Optional[OperationDefinition]:
        return self.operations.get(name)

    def resolve(self, node: SchemaNode) -> SchemaNode:
        """Follow *node* to its registered model if it is a reference.

        Unknown reference names are returned unchanged so callers can treat
        them as an extension point.
        """
        target = node.target
        if target and target in self.models:
            return self.models[target]
        return node


class BuildSettings(BaseModel):
    """Settings for one compilation, resolved by :func:`~swizzle.config.resolve_settings`.

    Serialised as JSON in a project-local ``swizzle.json`` file::

        {
            "name": "petstore",
            "base_url": "https://petstore.example.com/api/",
            "delay_ms": 500,
            "response_classes": {"getPetById": "PetResult"}
        }
    """

    name: str = Field(default="", description="Service name")
    description: str = Field(default="", description="Service summary")
    api_version: str = Field(
        default="", description="API version; the resource listing overrides it"
    )
    base_url: Optional[str] = Field(
        default=None, description="Base URL common to all operations"
    )
    delay_ms: int = Field(
        default=200, ge=0, description="Pause between declaration fetches"
    )
    timeout: float = Field(default=30.0, gt=0, description="Fetch timeout in seconds")
    response_classes: dict[str, str] = Field(
        default_factory=dict,
        description="Response class registered per operation name",
    )


class Violation(BaseModel):
    """One way a decoded response breaks its model.

    Attributes:
        path: Location of the offending value, e.g. ``Pet.tags[0].name``.
        keyword: The failed constraint (``type``, ``enum``, ``required``,
            ``additionalProperties``).
        message: Human-readable description.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    keyword: str
    message: str
