"""swizzle -- Compile Swagger 1.2 API descriptions into a normalized service model.

This package reads a Swagger 1.2 *resource listing* and the *API declarations*
it points to, and compiles them into a single :class:`~swizzle.models.ServiceModel`:
a registry of named data models and a registry of callable operations, each
fully resolved (no dangling references, no relative URLs, no ambiguous
response shapes). At request time the compiled model is used to decode and
validate live HTTP responses.

Typical workflow::

    swizzle build http://petstore.example.com/api/api-docs > petstore.json
    swizzle inspect petstore.json

Modules:
    app: Typer application and CLI entry point.
    compiler: Swagger 1.2 to service model compilation.
    parser: Loading and serving the source documents.
    runtime: Response decoding, validation and the operation client.
    models: Pydantic models for the compiled service model.
    config: Build settings and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    export: JSON and Python-literal export of a compiled model.
    output: stdout/stderr formatting and logging setup with Rich.
"""

__version__ = "0.3.0"
