"""Call operations of a compiled service model over HTTP.

:class:`ServiceClient` wraps :class:`httpx.Client`. For each call it:

- **Checks arguments** -- unknown names, missing required parameters and
  values outside a declared ``enum`` raise
  :class:`~swizzle.exceptions.InvalidUsageError`; declared defaults fill in
  missing values.
- **Routes parameters** -- ``uri`` values are substituted into the URI
  template, the rest go to the query string, headers, a JSON object body,
  a raw body or a form body according to their location.
- **Maps errors** -- HTTP error statuses raise
  :class:`~swizzle.exceptions.OperationError` with the phrase the operation
  declares for that status.
- **Decodes** -- successful responses go through the
  :class:`~swizzle.runtime.decoder.ResponseDecoder`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from swizzle.compiler.urls import merge_url
from swizzle.exceptions import ConnectionError_, InvalidUsageError, OperationError
from swizzle.models import OperationDefinition, ParameterLocation, ServiceModel
from swizzle.runtime.decoder import ResponseDecoder
from swizzle.runtime.results import DecoderTable

logger = logging.getLogger(__name__)


class ServiceClient:
    """Synchronous client for the operations of one service model.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed.

    Args:
        service: The sealed service model.
        base_url: Overrides the model's base URL.
        decoders: Response and result classes for the decoder.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (e.g. :class:`httpx.MockTransport`).

    Example::

        with ServiceClient(service, decoders=table) as client:
            pet = client.call("getPetById", petId=1)
    """

    def __init__(
        self,
        service: ServiceModel,
        base_url: Optional[str] = None,
        decoders: Optional[DecoderTable] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._service = service
        self._base_url = base_url or service.base_url
        self._decoder = ResponseDecoder(service, decoders)
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> ServiceClient:
        self._client = httpx.Client(
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def call(self, name: str, **params: Any) -> Any:
        """Call operation *name* and return its decoded response.

        Raises:
            InvalidUsageError: On an unknown operation or bad arguments.
            ConnectionError_: On network / timeout errors.
            OperationError: On an HTTP error status.
            ResponseValidationError: If the response violates its model.
        """
        operation = self._service.get_operation(name)
        if operation is None:
            raise InvalidUsageError(f"Unknown operation '{name}'")
        response = self.send(operation, params)
        self._map_response_error(operation, response)
        return self._decoder.decode(operation, response)

    def send(self, operation: OperationDefinition, params: dict[str, Any]) -> httpx.Response:
        """Send *operation* with *params* and return the raw response."""
        assert self._client is not None, "Client not initialised -- use as context manager"

        values = _check_arguments(operation, params)
        url = self.url_for(operation, values)
        kwargs: dict[str, Any] = {
            "method": operation.http_method.value,
            "url": url,
            "headers": {"Accept": "application/json"},
            "params": {},
        }
        json_body: dict[str, Any] = {}
        form: dict[str, Any] = {}
        for param in operation.parameters:
            if param.name not in values:
                continue
            value = values[param.name]
            match param.location:
                case ParameterLocation.QUERY:
                    kwargs["params"][param.name] = value
                case ParameterLocation.HEADER:
                    kwargs["headers"][param.name] = str(value)
                case ParameterLocation.JSON:
                    json_body[param.name] = value
                case ParameterLocation.FORM:
                    form[param.name] = value
                case ParameterLocation.BODY:
                    if isinstance(value, (dict, list)):
                        kwargs["json"] = value
                    else:
                        kwargs["content"] = value
        if form:
            kwargs["data"] = form
        elif json_body:
            kwargs["json"] = json_body

        logger.debug("%s %s", operation.http_method.value, url)
        try:
            return self._client.request(**kwargs)
        except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
            raise ConnectionError_(f"Calling '{operation.name}' failed: {exc}") from exc

    def url_for(self, operation: OperationDefinition, values: dict[str, Any]) -> str:
        """Expand the URI template of *operation* into a full URL."""
        path = operation.uri
        for param in operation.parameters:
            if param.location is ParameterLocation.URI and param.name in values:
                path = path.replace(
                    "{" + param.name + "}", quote(str(values[param.name]), safe="")
                )
        return merge_url(path, self._base_url)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _map_response_error(
        self, operation: OperationDefinition, response: httpx.Response
    ) -> None:
        status = response.status_code
        if status < 400:
            return
        phrase = response.reason_phrase or ""
        for error in operation.error_responses:
            if error.code == status and error.phrase:
                phrase = error.phrase
                break
        raise OperationError(operation.name, status, phrase)


def _check_arguments(operation: OperationDefinition, params: dict[str, Any]) -> dict[str, Any]:
    known = {param.name for param in operation.parameters}
    unknown = sorted(set(params) - known)
    if unknown:
        raise InvalidUsageError(
            f"Unknown parameter(s) for '{operation.name}': {', '.join(unknown)}"
        )

    values: dict[str, Any] = {}
    for param in operation.parameters:
        value = params.get(param.name)
        if value is None:
            value = param.default
        if value is None:
            if param.required:
                raise InvalidUsageError(
                    f"Missing required parameter '{param.name}' for '{operation.name}'"
                )
            continue
        if param.enum is not None and value not in param.enum:
            raise InvalidUsageError(
                f"Parameter '{param.name}' must be one of {param.enum!r}, got {value!r}"
            )
        values[param.name] = value
    return values
