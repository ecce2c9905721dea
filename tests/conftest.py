"""Shared test fixtures for swizzle.

Provides the petstore Swagger 1.2 documents as dicts and as a
:class:`~swizzle.parser.MemorySource`, a compiled petstore service model,
isolated config environments, output state management, and a CLI runner.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from swizzle.compiler import ServiceBuilder
from swizzle.models import ServiceModel
from swizzle.output import OutputFormat, OutputManager, set_output
from swizzle.parser import MemorySource

FIXTURES_DIR = Path(__file__).parent / "fixtures"
PETSTORE_DIR = FIXTURES_DIR / "petstore"
PETSTORE_LISTING_URL = "http://petstore.example.com/api/api-docs"


def load_fixture(name: str) -> dict[str, Any]:
    with open(PETSTORE_DIR / name) as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during a
    test, the cached references go stale once the test finishes.
    """
    yield
    set_output(None)


# ---------------------------------------------------------------------------
# Raw document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def listing_raw() -> dict[str, Any]:
    """The petstore resource listing."""
    return load_fixture("api-docs.json")


@pytest.fixture
def pet_raw() -> dict[str, Any]:
    """The ``/pet`` API declaration."""
    return load_fixture("pet.json")


@pytest.fixture
def store_raw() -> dict[str, Any]:
    """The ``/store`` API declaration."""
    return load_fixture("store.json")


@pytest.fixture
def petstore_source(
    listing_raw: dict[str, Any], pet_raw: dict[str, Any], store_raw: dict[str, Any]
) -> MemorySource:
    """All petstore documents served from memory."""
    return MemorySource(
        listing_raw,
        {"/pet": pet_raw, "/store": store_raw},
        location=PETSTORE_LISTING_URL,
    )


# ---------------------------------------------------------------------------
# Compiled model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def builder() -> ServiceBuilder:
    """A petstore builder that does not pause between fetches."""
    return ServiceBuilder("petstore").set_delay(0)


@pytest.fixture
def petstore(builder: ServiceBuilder, petstore_source: MemorySource) -> ServiceModel:
    """The compiled petstore service model."""
    return builder.build(petstore_source).finalize()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Clear all SWIZZLE_* environment variables and chdir to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    for var in ["SWIZZLE_BASE_URL", "SWIZZLE_DELAY_MS", "SWIZZLE_API_VERSION"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    set_output(None)


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
