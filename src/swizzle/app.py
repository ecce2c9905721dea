"""Typer application and CLI entry point for swizzle.

Commands:

* ``swizzle build SOURCE`` -- compile a Swagger 1.2 resource listing (URL or
  file) into a service model and print or write it as JSON or Python.
* ``swizzle inspect MODEL`` -- list the operations (or models) of a compiled
  service model.
* ``swizzle validate MODEL OPERATION RESPONSE`` -- validate a saved JSON
  response against the model of the operation that produced it.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Every :class:`~swizzle.exceptions.SwizzleError` is printed
to stderr and turned into its ``exit_code``.
"""

from __future__ import annotations

import contextlib
import json
import logging
import signal
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Optional

import typer

from swizzle import __version__
from swizzle.exit_codes import EXIT_GENERIC_FAILURE

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="swizzle",
    help="Compile Swagger 1.2 API descriptions into a normalized service model.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


class ExportFormat(str, Enum):
    JSON = "json"
    PYTHON = "python"


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"swizzle {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log build progress to stderr."
    ),
) -> None:
    """Initialise the global output manager and logging from CLI flags."""
    from swizzle.output import OutputFormat, OutputManager, configure_logging, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet)
    set_output(output)
    configure_logging(verbose=verbose, no_color=output.no_color)


@contextlib.contextmanager
def _handle_errors() -> Iterator[None]:
    """Print a :class:`SwizzleError` and exit with its code."""
    from swizzle.exceptions import SwizzleError
    from swizzle.output import error

    try:
        yield
    except SwizzleError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _parse_registrations(values: Optional[list[str]]) -> Optional[dict[str, str]]:
    from swizzle.exceptions import InvalidUsageError

    if not values:
        return None
    classes: dict[str, str] = {}
    for value in values:
        operation, sep, decoder = value.partition("=")
        if not sep or not operation or not decoder:
            raise InvalidUsageError(
                f"--register expects OPERATION=CLASS, got '{value}'"
            )
        classes[operation.strip()] = decoder.strip()
    return classes


@app.command("build")
def build_command(
    source: str = typer.Argument(
        ..., help="Resource listing URL or file path."
    ),
    name: Optional[str] = typer.Option(None, "--name", help="Service name."),
    description: Optional[str] = typer.Option(
        None, "--description", help="Service summary."
    ),
    api_version: Optional[str] = typer.Option(
        None, "--api-version", help="API version (the listing's apiVersion wins)."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Base URL common to all operations."
    ),
    delay: Optional[int] = typer.Option(
        None, "--delay", min=0, help="Pause between declaration fetches, in ms."
    ),
    register: Optional[list[str]] = typer.Option(
        None,
        "--register",
        "-r",
        help="Response class for an operation, as OPERATION=CLASS. Repeatable.",
    ),
    fmt: ExportFormat = typer.Option(
        ExportFormat.JSON, "--format", "-f", help="Export format."
    ),
    output_file: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the export to this file."
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", help="Project config file (default: ./swizzle.json)."
    ),
) -> None:
    """Compile a Swagger 1.2 description into a service model.

    Example::

        swizzle build http://petstore.example.com/api/api-docs -o petstore.json
        swizzle build swagger/api-docs.json --register getPetById=PetResult
    """
    from swizzle.compiler import ServiceBuilder
    from swizzle.config import resolve_settings
    from swizzle.export import to_json, to_python, write_export
    from swizzle.output import print_data, success
    from swizzle.parser import open_source

    with _handle_errors():
        settings = resolve_settings(
            config_file,
            name=name,
            description=description,
            api_version=api_version,
            base_url=base_url,
            delay_ms=delay,
            response_classes=_parse_registrations(register),
        )
        builder = ServiceBuilder(settings=settings)
        with open_source(source, timeout=settings.timeout) as document_source:
            service = builder.build(document_source).finalize()

        if fmt == ExportFormat.PYTHON:
            text = to_python(service)
        else:
            text = to_json(service)

        if output_file is None:
            print_data(text)
            return
        write_export(output_file, text)
        success(
            f"Wrote {len(service.models)} models and {len(service.operations)} "
            f"operations to {output_file}"
        )


@app.command("inspect")
def inspect_command(
    model_file: Path = typer.Argument(..., help="Compiled service model (JSON)."),
    models: bool = typer.Option(
        False, "--models", "-m", help="List models instead of operations."
    ),
) -> None:
    """List the operations or models of a compiled service model.

    Example::

        swizzle inspect petstore.json
        swizzle inspect petstore.json --models
    """
    from swizzle.export import load_service
    from swizzle.output import get_output

    with _handle_errors():
        service = load_service(model_file)

    output = get_output()
    if models:
        rows = [
            [
                model.name,
                model.type or model.ref or "-",
                ", ".join(list(model.properties or {})[:5]) or "-",
            ]
            for model in service.models.values()
        ]
        output.print_table(
            ["Model", "Type", "Properties"],
            rows,
            title=f"{service.name} -- Models ({len(rows)})",
        )
        return

    rows = [
        [
            operation.name,
            operation.http_method.value,
            operation.uri,
            _describe_response(operation.response),
        ]
        for operation in service.operations.values()
    ]
    output.print_table(
        ["Operation", "Method", "URI", "Response"],
        rows,
        title=f"{service.name} {service.api_version} -- Operations ({len(rows)})",
    )


def _describe_response(contract: Any) -> str:
    from swizzle.models import CustomClassContract, ModelContract

    match contract:
        case ModelContract(type=type_name):
            return type_name
        case CustomClassContract(decoder=decoder, model=model) if model:
            return f"class {decoder} ({model})"
        case CustomClassContract(decoder=decoder):
            return f"class {decoder}"
        case _:
            return "-"


@app.command("validate")
def validate_command(
    model_file: Path = typer.Argument(..., help="Compiled service model (JSON)."),
    operation_name: str = typer.Argument(..., help="Operation that produced the response."),
    response_file: Path = typer.Argument(..., help="Saved JSON response body."),
) -> None:
    """Validate a saved response body against an operation's model.

    Exits with code 9 and lists every violation when the body does not match.

    Example::

        swizzle validate petstore.json getPetById response.json
    """
    from swizzle.exceptions import InvalidUsageError, ResponseValidationError
    from swizzle.export import load_service
    from swizzle.models import CustomClassContract, ModelContract
    from swizzle.output import success
    from swizzle.runtime import SchemaValidator

    with _handle_errors():
        service = load_service(model_file)
        operation = service.get_operation(operation_name)
        if operation is None:
            raise InvalidUsageError(f"Unknown operation '{operation_name}'")

        model: Optional[str] = None
        match operation.response:
            case ModelContract(type=type_name) if type_name in service.models:
                model = type_name
            case CustomClassContract(model=class_model):
                model = class_model
        if model is None:
            raise InvalidUsageError(
                f"Operation '{operation_name}' has no model to validate against"
            )

        try:
            data = json.loads(response_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise InvalidUsageError(f"Cannot read response {response_file}: {exc}") from exc

        violations = SchemaValidator(service).validate_model(model, data)
        if violations:
            raise ResponseValidationError(operation_name, violations)
        success(f"Response is a valid '{model}'")


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``swizzle`` console script.

    Unhandled :class:`~swizzle.exceptions.SwizzleError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions are
    logged and produce a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from swizzle.exceptions import SwizzleError
        from swizzle.output import error

        if isinstance(exc, SwizzleError):
            error(str(exc))
            sys.exit(exc.exit_code)
        logger.debug("Unexpected error", exc_info=True)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
