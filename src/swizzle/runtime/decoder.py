"""Decode HTTP responses according to an operation's response contract.

Each decode walks ``SELECT_STRATEGY -> DECODE -> VALIDATE -> DONE``:

* ``none`` contracts skip straight to ``DONE`` and hand back the raw
  :class:`httpx.Response`.
* ``class`` contracts are decoded by the registered
  :class:`~swizzle.runtime.results.ClassResultInterface`; the output is
  validated when the contract keeps a model and the output has a structural
  view.
* ``model`` contracts decode primitives from the body without validation,
  object models into a :class:`~swizzle.runtime.results.Result` (optionally
  wrapped by an output-shaping class after validation), and array models into
  a list.

The decoder holds no per-request state, so one instance may serve any number
of concurrent calls against the same sealed service model.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, NamedTuple, Optional

import httpx

from swizzle.exceptions import (
    DecoderContractError,
    InvalidUsageError,
    ResponseValidationError,
    UnregisteredClassError,
)
from swizzle.models import (
    CustomClassContract,
    ModelContract,
    ModelDefinition,
    ModelKind,
    NoneContract,
    OperationDefinition,
    ParameterLocation,
    SchemaNode,
    ServiceModel,
    Violation,
)
from swizzle.runtime.results import DecoderTable, Result, ResultInterface
from swizzle.runtime.validator import SchemaValidator

logger = logging.getLogger(__name__)


class DecodeState(str, enum.Enum):
    SELECT_STRATEGY = "select_strategy"
    DECODE = "decode"
    VALIDATE = "validate"
    DONE = "done"


class _Decoded(NamedTuple):
    output: Any
    # structural view validated against ``model``
    view: Any = None
    model: Optional[str] = None


class ResponseDecoder:
    """Turns raw responses into validated results for one service model.

    Args:
        service: The sealed service model.
        decoders: Host-provided response and result classes. Built-in
            decoders are always available.
    """

    def __init__(
        self, service: ServiceModel, decoders: Optional[DecoderTable] = None
    ) -> None:
        self._service = service
        self._decoders = decoders or DecoderTable()
        self._validator = SchemaValidator(service)

    @property
    def decoders(self) -> DecoderTable:
        return self._decoders

    def decode(
        self, operation: OperationDefinition | str, response: httpx.Response
    ) -> Any:
        """Decode *response* as returned by *operation*.

        Args:
            operation: The operation definition, or its name.
            response: The raw HTTP response.

        Returns:
            The raw response, a primitive value, a list, a
            :class:`~swizzle.runtime.results.Result`, or whatever the
            registered class produced.

        Raises:
            ResponseValidationError: If the decoded value violates its model.
            UnregisteredClassError: If a ``class`` decoder is not in the table.
            DecoderContractError: If a registered class lacks the required
                capability.
        """
        if isinstance(operation, str):
            operation = self._get_operation(operation)

        state = DecodeState.SELECT_STRATEGY
        decoded = _Decoded(response)
        while state is not DecodeState.DONE:
            match state:
                case DecodeState.SELECT_STRATEGY:
                    if isinstance(operation.response, NoneContract):
                        state = DecodeState.DONE
                    else:
                        state = DecodeState.DECODE
                case DecodeState.DECODE:
                    decoded = self._decode(operation, response)
                    state = DecodeState.VALIDATE if decoded.model else DecodeState.DONE
                case DecodeState.VALIDATE:
                    assert decoded.model is not None
                    violations = self._validator.validate_model(decoded.model, decoded.view)
                    if violations:
                        raise ResponseValidationError(operation.name, violations)
                    state = DecodeState.DONE
        return decoded.output

    def _get_operation(self, name: str) -> OperationDefinition:
        operation = self._service.get_operation(name)
        if operation is None:
            raise InvalidUsageError(f"Unknown operation '{name}'")
        return operation

    def _decode(self, operation: OperationDefinition, response: httpx.Response) -> _Decoded:
        match operation.response:
            case CustomClassContract() as contract:
                return self._decode_class(operation, contract, response)
            case ModelContract() as contract:
                return self._decode_model(operation, contract, response)
            case _:
                return _Decoded(response)

    # ------------------------------------------------------------------ #
    # class contracts
    # ------------------------------------------------------------------ #

    def _decode_class(
        self,
        operation: OperationDefinition,
        contract: CustomClassContract,
        response: httpx.Response,
    ) -> _Decoded:
        cls = self._decoders.get(contract.decoder)
        if cls is None:
            raise UnregisteredClassError(
                f"No response class registered as '{contract.decoder}'",
                subject=operation.name,
            )
        factory = getattr(cls, "from_response", None)
        if not callable(factory):
            raise DecoderContractError(
                f"Response class '{contract.decoder}' ({cls!r}) must implement "
                "ClassResultInterface.from_response"
            )
        output = factory(response, operation)
        if contract.model is None:
            return _Decoded(output)
        if isinstance(output, ResultInterface):
            return _Decoded(output, output.to_dict(), contract.model)
        logger.debug(
            "Output of '%s' has no structural view, skipping validation", contract.decoder
        )
        return _Decoded(output)

    # ------------------------------------------------------------------ #
    # model contracts
    # ------------------------------------------------------------------ #

    def _decode_model(
        self,
        operation: OperationDefinition,
        contract: ModelContract,
        response: httpx.Response,
    ) -> _Decoded:
        definition = self._service.get_model(contract.type)
        if contract.is_primitive or definition is None:
            return _Decoded(_primitive_body(response))

        body = self._json_body(operation, definition, response)
        if body is None:
            if not _reads_headers_or_raw_body(definition):
                raise ResponseValidationError(
                    operation.name,
                    [
                        Violation(
                            path=definition.name,
                            keyword="type",
                            message=f"expected {definition.type}, got an empty or null body",
                        )
                    ],
                )
            body = {}

        match definition.kind:
            case ModelKind.OBJECT:
                if not isinstance(body, dict):
                    # let validation report the type mismatch
                    return _Decoded(body, body, definition.name)
                result = _object_result(definition, body, response)
                return _Decoded(self._shape(definition.name, result), result, definition.name)
            case _:
                return _Decoded(body, body, definition.name)

    def _json_body(
        self,
        operation: OperationDefinition,
        definition: ModelDefinition,
        response: httpx.Response,
    ) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise ResponseValidationError(
                operation.name,
                [
                    Violation(
                        path=definition.name,
                        keyword="type",
                        message="response body is not valid JSON",
                    )
                ],
            ) from None

    def _shape(self, model: str, result: Result) -> Any:
        cls = self._decoders.result_class(model)
        if cls is None:
            return result
        if not callable(getattr(cls, "to_dict", None)):
            raise DecoderContractError(
                f"Result class for '{model}' ({cls!r}) must implement ResultInterface"
            )
        return cls(result)


def _primitive_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _reads_headers_or_raw_body(definition: ModelDefinition) -> bool:
    return any(
        prop.location in (ParameterLocation.HEADER, ParameterLocation.BODY)
        for prop in (definition.properties or {}).values()
    )


def _object_result(
    definition: ModelDefinition, body: dict[str, Any], response: httpx.Response
) -> Result:
    # undeclared body keys stay so closed models can reject them
    result = Result(body)
    for name, prop in (definition.properties or {}).items():
        if prop.location is ParameterLocation.HEADER:
            if name in response.headers:
                result[name] = _coerce_header(prop, response.headers[name])
        elif prop.location is ParameterLocation.BODY:
            result[name] = response.text
    return result


def _coerce_header(prop: SchemaNode, raw: str) -> Any:
    try:
        if prop.type == "integer":
            return int(raw)
        if prop.type == "number":
            return float(raw)
    except ValueError:
        return raw
    if prop.type == "boolean" and raw.strip().lower() in ("true", "false"):
        return raw.strip().lower() == "true"
    return raw
