"""Swagger 1.2 document access -- load, check, and serve source documents.

This sub-package is the transport side of the pipeline: it turns a resource
listing location into parsed documents that the compiler can fold into a
service model.

Typical usage::

    from swizzle.parser import open_source

    with open_source("http://petstore.example.com/api/api-docs") as source:
        listing = source.get_listing()

Sub-modules:

* :mod:`~swizzle.parser.loader` -- I/O layer (URL, file), format
  detection, and top-level shape checks.
* :mod:`~swizzle.parser.sources` -- :class:`DocumentSource` implementations.
"""

from swizzle.parser.loader import (
    SWAGGER_VERSION,
    check_declaration,
    check_resource_listing,
    load_document,
)
from swizzle.parser.sources import (
    DocumentSource,
    FileSource,
    HttpSource,
    MemorySource,
    open_source,
)

__all__ = [
    "SWAGGER_VERSION",
    "check_declaration",
    "check_resource_listing",
    "load_document",
    "DocumentSource",
    "FileSource",
    "HttpSource",
    "MemorySource",
    "open_source",
]
