"""Swagger 1.2 -> service model compiler.

The compiler is built leaf-first:

* :mod:`~swizzle.compiler.types` -- source type names to canonical primitives.
* :mod:`~swizzle.compiler.urls` -- relative to fully qualified URLs.
* :mod:`~swizzle.compiler.registry` -- model and operation registries.
* :mod:`~swizzle.compiler.schema` -- recursive schema transformation.
* :mod:`~swizzle.compiler.operations` -- operation compilation.
* :mod:`~swizzle.compiler.service` -- the :class:`ServiceBuilder` orchestrator.

Typical usage::

    from swizzle.compiler import ServiceBuilder
    from swizzle.parser import open_source

    with open_source("swagger/api-docs.json") as source:
        service = ServiceBuilder("petstore").build(source).finalize()
"""

from swizzle.compiler.operations import OperationBuilder, synthesize_operation_name
from swizzle.compiler.registry import (
    ModelRegistry,
    OperationRegistry,
    synthesize_anonymous_name,
)
from swizzle.compiler.schema import SchemaTransformer
from swizzle.compiler.service import ServiceBuilder
from swizzle.compiler.types import normalize_primitive
from swizzle.compiler.urls import merge_url

__all__ = [
    "ModelRegistry",
    "OperationBuilder",
    "OperationRegistry",
    "SchemaTransformer",
    "ServiceBuilder",
    "merge_url",
    "normalize_primitive",
    "synthesize_anonymous_name",
    "synthesize_operation_name",
]
