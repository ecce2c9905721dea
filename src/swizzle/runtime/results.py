"""Decoded result types and the decoder table.

Two capabilities can be plugged into the runtime by the host application:

* :class:`ClassResultInterface` -- a *response class* that builds its own
  result from the raw HTTP response. Operations whose response contract is
  ``class`` are decoded by the class registered under the contract's
  ``decoder`` identifier.
* :class:`ResultInterface` -- an *output-shaping* class that wraps the
  structural :class:`Result` of a model response. It is registered per model
  name and applied after validation.

Both are looked up in a :class:`DecoderTable`. The ``json``, ``text`` and
``bytes`` decoders are always present.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Mapping, Optional

import httpx

if TYPE_CHECKING:
    from swizzle.models import OperationDefinition


class ResultInterface(ABC):
    """A decoded result with a structural (dict) view.

    Output-shaping classes are constructed with the decoded mapping as their
    only argument.
    """

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Return the structural view used for validation and display."""


class ClassResultInterface(ABC):
    """A response class that decodes raw HTTP responses itself."""

    @classmethod
    @abstractmethod
    def from_response(
        cls, response: httpx.Response, operation: OperationDefinition
    ) -> Any:
        """Build a result from *response* returned by *operation*."""


class Result(dict, ResultInterface):
    """Property-keyed decode of an object model response."""

    def to_dict(self) -> dict[str, Any]:
        return dict(self)


# ------------------------------------------------------------------ #
# Built-in decoders
# ------------------------------------------------------------------ #


class JsonDecoder(ClassResultInterface):
    @classmethod
    def from_response(cls, response: httpx.Response, operation: OperationDefinition) -> Any:
        return response.json() if response.content else None


class TextDecoder(ClassResultInterface):
    @classmethod
    def from_response(cls, response: httpx.Response, operation: OperationDefinition) -> str:
        return response.text


class BytesDecoder(ClassResultInterface):
    @classmethod
    def from_response(cls, response: httpx.Response, operation: OperationDefinition) -> bytes:
        return response.content


BUILTIN_DECODER_CLASSES: dict[str, type[ClassResultInterface]] = {
    "json": JsonDecoder,
    "text": TextDecoder,
    "bytes": BytesDecoder,
}


class DecoderTable:
    """Host-provided decoder and result classes, keyed by identifier.

    Capabilities are checked when a class is used, not when it is
    registered, so a table may be filled before the classes are complete.

    Args:
        classes: Response classes keyed by decoder identifier.
        result_classes: Output-shaping classes keyed by model name.
    """

    def __init__(
        self,
        classes: Optional[Mapping[str, Any]] = None,
        result_classes: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._classes: dict[str, Any] = dict(BUILTIN_DECODER_CLASSES)
        self._classes.update(classes or {})
        self._result_classes: dict[str, Any] = dict(result_classes or {})

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._classes

    def register(self, identifier: str, cls: Any) -> DecoderTable:
        """Register *cls* as the response class named *identifier*."""
        self._classes[identifier] = cls
        return self

    def register_result_class(self, model: str, cls: Any) -> DecoderTable:
        """Wrap decoded results of *model* in *cls*."""
        self._result_classes[model] = cls
        return self

    def get(self, identifier: str) -> Optional[Any]:
        return self._classes.get(identifier)

    def result_class(self, model: str) -> Optional[Any]:
        return self._result_classes.get(model)
