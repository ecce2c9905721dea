"""Request-time use of a compiled service model.

* :mod:`~swizzle.runtime.results` -- result interfaces and the decoder table.
* :mod:`~swizzle.runtime.validator` -- structural validation with violation paths.
* :mod:`~swizzle.runtime.decoder` -- per-contract response decoding.
* :mod:`~swizzle.runtime.client` -- an httpx client that calls operations.
"""

from swizzle.runtime.client import ServiceClient
from swizzle.runtime.decoder import DecodeState, ResponseDecoder
from swizzle.runtime.results import (
    ClassResultInterface,
    DecoderTable,
    Result,
    ResultInterface,
)
from swizzle.runtime.validator import SchemaValidator

__all__ = [
    "ClassResultInterface",
    "DecodeState",
    "DecoderTable",
    "ResponseDecoder",
    "Result",
    "ResultInterface",
    "SchemaValidator",
    "ServiceClient",
]
