"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~swizzle.exceptions.SwizzleError` subclass.
Build scripts can inspect the exit code to tell a broken source document from
a failed response validation without parsing stderr.

Example::

    $ swizzle build http://api.example.com/api-docs
    $ echo $?
    7   # EXIT_MALFORMED_SOURCE -- the listing is not Swagger 1.2
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or in the wrong order."""

EXIT_OPERATION_ERROR = 5
"""The remote API answered an operation with an HTTP error status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred while fetching a source document."""

EXIT_MALFORMED_SOURCE = 7
"""A source document could not be parsed or is not Swagger 1.2."""

EXIT_BUILD_ERROR = 8
"""The source documents could not be compiled into a consistent service model."""

EXIT_VALIDATION_ERROR = 9
"""A response failed validation against its declared model."""
