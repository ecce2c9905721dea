"""Tests for swizzle.compiler.service -- the ServiceBuilder orchestrator.

Covers:
- Full petstore build (models, operations, base URL, listing metadata)
- Closed models with required flags, path parameters forced required
- Synthesized names and collisions
- Response classes registered before and after operations are built
- Dangling references and unregistered classes at finalize
- Configuration freeze after the build starts
- Delay between declaration fetches
- Deterministic rebuilds
"""

from __future__ import annotations

import copy
import logging
from typing import Any

import pytest

from swizzle.compiler import ServiceBuilder
from swizzle.exceptions import (
    DanglingReferenceError,
    InvalidUsageError,
    MalformedSourceError,
    NameCollisionError,
    UnregisteredClassError,
)
from swizzle.models import (
    BuildSettings,
    CustomClassContract,
    ModelContract,
    NoneContract,
    ParameterLocation,
    ServiceModel,
)
from swizzle.parser import MemorySource

LISTING_URL = "http://petstore.example.com/api/api-docs"


def _listing(*paths: str) -> dict[str, Any]:
    return {"swaggerVersion": "1.2", "apis": [{"path": path} for path in paths]}


def _source(declarations: dict[str, dict[str, Any]], **listing: Any) -> MemorySource:
    document = _listing(*declarations)
    document.update(listing)
    return MemorySource(document, declarations, location=LISTING_URL)


def _build(declarations: dict[str, dict[str, Any]], **kwargs: Any) -> ServiceModel:
    builder = ServiceBuilder("test", **kwargs).set_delay(0)
    return builder.build(_source(declarations)).finalize()


# ------------------------------------------------------------------ #
# Petstore
# ------------------------------------------------------------------ #


class TestPetstoreBuild:
    def test_metadata(self, petstore: ServiceModel) -> None:
        assert petstore.name == "petstore"
        assert petstore.api_version == "1.0.0"
        assert petstore.description == "Sample pet store server"
        assert petstore.base_url == "http://petstore.example.com/"

    def test_declarations_fetched_in_listing_order(
        self, builder: ServiceBuilder, petstore_source: MemorySource
    ) -> None:
        builder.build(petstore_source)
        assert petstore_source.requested == ["/pet", "/store"]

    def test_models(self, petstore: ServiceModel) -> None:
        assert set(petstore.models) >= {"Pet", "Tag", "Category", "Order", "Pet_array", "anon_type_string"}
        # Tag is registered before Pet because Pet's items refer to it
        names = list(petstore.models)
        assert names.index("Tag") < names.index("Pet")

    def test_pet_is_closed_with_required_flags(self, petstore: ServiceModel) -> None:
        pet = petstore.get_model("Pet")
        assert pet.type == "object"
        assert pet.additional_properties is False
        assert pet.properties["id"].required is True
        assert pet.properties["name"].required is True
        assert pet.properties["status"].required is False
        assert pet.properties["category"].ref == "Category"
        assert pet.properties["tags"].items.ref == "Tag"

    def test_operations(self, petstore: ServiceModel) -> None:
        assert list(petstore.operations) == [
            "getPetById",
            "deletePet",
            "findPetsByStatus",
            "addPet",
            "getOrderById",
            "get_api_store_inventory",
            "ping",
        ]

    def test_uris_are_relative_to_service_base(self, petstore: ServiceModel) -> None:
        assert petstore.get_operation("getPetById").uri == "/api/pet/{petId}"
        assert petstore.get_operation("getOrderById").uri == "/api/store/order/{orderId}"

    def test_response_contracts(self, petstore: ServiceModel) -> None:
        assert petstore.get_operation("getPetById").response == ModelContract(type="Pet")
        assert petstore.get_operation("findPetsByStatus").response == ModelContract(type="Pet_array")
        assert isinstance(petstore.get_operation("deletePet").response, NoneContract)
        assert petstore.get_operation("ping").response == ModelContract(type="string")

    def test_anonymous_inventory_model(self, petstore: ServiceModel) -> None:
        contract = petstore.get_operation("get_api_store_inventory").response
        model = petstore.get_model(contract.type)
        assert model.name.startswith("anon_")
        assert set(model.properties) == {"available", "sold"}

    def test_optional_path_param_forced_required(self, petstore: ServiceModel) -> None:
        param = petstore.get_operation("deletePet").get_parameter("petId")
        assert param.location is ParameterLocation.URI
        assert param.required is True

    def test_header_property_location(self, petstore: ServiceModel) -> None:
        order = petstore.get_model("Order")
        assert order.properties["X-Rate-Limit"].location is ParameterLocation.HEADER
        assert order.properties["shipDate"].type == "date"

    def test_rebuild_is_deterministic(
        self, petstore: ServiceModel, listing_raw: dict, pet_raw: dict, store_raw: dict
    ) -> None:
        source = MemorySource(
            listing_raw, {"/pet": pet_raw, "/store": store_raw}, location=LISTING_URL
        )
        again = ServiceBuilder("petstore").set_delay(0).build(source).finalize()
        assert again == petstore


# ------------------------------------------------------------------ #
# Listing handling
# ------------------------------------------------------------------ #


class TestListing:
    def test_wrong_version_is_malformed(self) -> None:
        source = MemorySource({"swaggerVersion": "2.0", "apis": []}, {})
        with pytest.raises(MalformedSourceError):
            ServiceBuilder("x").build(source)

    def test_not_a_listing(self) -> None:
        with pytest.raises(MalformedSourceError):
            ServiceBuilder("x").build(MemorySource({"hello": "world"}, {}))

    def test_empty_listing_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="swizzle"):
            service = ServiceBuilder("x").build(MemorySource(_listing(), {})).finalize()
        assert "doesn't define any APIs" in caplog.text
        assert service.operations == {}

    def test_declaration_without_apis_names_document(self) -> None:
        with pytest.raises(MalformedSourceError) as exc_info:
            _build({"/broken": {"models": {}}})
        assert exc_info.value.document == "/broken"
        assert "(in /broken)" in str(exc_info.value)

    def test_explicit_settings_are_kept(self) -> None:
        settings = BuildSettings(name="svc", base_url="https://api.example.com/", delay_ms=0)
        builder = ServiceBuilder(settings=settings)
        service = builder.build(_source({"/a": {"apis": []}}, apiVersion="2.1")).finalize()
        assert service.name == "svc"
        assert service.base_url == "https://api.example.com/"
        assert service.api_version == "2.1"

    def test_file_location_defaults_to_localhost(self) -> None:
        source = MemorySource(_listing(), {}, location="file:///tmp/api-docs.json")
        service = ServiceBuilder("x").build(source).finalize()
        assert service.base_url == "http://localhost/"


# ------------------------------------------------------------------ #
# Names
# ------------------------------------------------------------------ #


class TestNames:
    def test_synthesized_name_strips_braces(self) -> None:
        service = _build(
            {"/pets": {"basePath": "/", "apis": [{"path": "/pets/{id}", "operations": [{"method": "GET"}]}]}}
        )
        assert list(service.operations) == ["get_pets_id"]

    def test_collision_is_fatal(self) -> None:
        declaration = {
            "basePath": "/",
            "apis": [
                {"path": "/pets/{id}", "operations": [{"method": "GET"}]},
                {"path": "/pets/id", "operations": [{"method": "GET"}]},
            ],
        }
        with pytest.raises(NameCollisionError) as exc_info:
            _build({"/pets": declaration})
        assert exc_info.value.subject == "get_pets_id"
        assert exc_info.value.document == "/pets"

    def test_nickname_collision_across_declarations(self) -> None:
        op = {"method": "GET", "nickname": "list"}
        with pytest.raises(NameCollisionError):
            _build(
                {
                    "/a": {"apis": [{"path": "/a", "operations": [op]}]},
                    "/b": {"apis": [{"path": "/b", "operations": [op]}]},
                }
            )


# ------------------------------------------------------------------ #
# Response classes
# ------------------------------------------------------------------ #


class TestResponseClasses:
    def test_registered_before_build(self, builder: ServiceBuilder, petstore_source: MemorySource) -> None:
        builder.register_response_class("getPetById", "PetResult")
        service = builder.build(petstore_source).finalize()
        assert service.get_operation("getPetById").response == CustomClassContract(
            decoder="PetResult", model="Pet"
        )

    def test_registered_after_build(self, builder: ServiceBuilder, petstore_source: MemorySource) -> None:
        builder.build(petstore_source)
        builder.register_response_class("findPetsByStatus", "PetList")
        service = builder.finalize()
        assert service.get_operation("findPetsByStatus").response == CustomClassContract(
            decoder="PetList", model="Pet_array"
        )

    def test_registered_from_settings(self, petstore_source: MemorySource) -> None:
        settings = BuildSettings(delay_ms=0, response_classes={"ping": "text"})
        service = ServiceBuilder("petstore", settings=settings).build(petstore_source).finalize()
        assert service.get_operation("ping").response == CustomClassContract(decoder="text")

    def test_unknown_operation_warns(
        self, builder: ServiceBuilder, petstore_source: MemorySource, caplog: pytest.LogCaptureFixture
    ) -> None:
        builder.register_response_class("noSuchOperation", "X")
        with caplog.at_level(logging.WARNING, logger="swizzle"):
            builder.build(petstore_source).finalize()
        assert "noSuchOperation" in caplog.text

    def test_unresolved_response_type_needs_registration(self) -> None:
        declaration = {"apis": [{"path": "/r", "operations": [{"method": "GET", "nickname": "r", "type": "Report"}]}]}
        with pytest.raises(UnregisteredClassError) as exc_info:
            _build({"/r": declaration})
        assert exc_info.value.subject == "r"

    def test_unresolved_response_type_registered_late(self) -> None:
        declaration = {"apis": [{"path": "/r", "operations": [{"method": "GET", "nickname": "r", "type": "Report"}]}]}
        builder = ServiceBuilder("x").set_delay(0)
        builder.build(_source({"/r": declaration}))
        builder.register_response_class("r", "Report")
        service = builder.finalize()
        assert service.get_operation("r").response == CustomClassContract(decoder="Report")

    def test_register_after_seal_fails(self, builder: ServiceBuilder, petstore_source: MemorySource) -> None:
        builder.build(petstore_source).finalize()
        with pytest.raises(InvalidUsageError):
            builder.register_response_class("ping", "text")


# ------------------------------------------------------------------ #
# References
# ------------------------------------------------------------------ #


class TestReferences:
    def test_property_ref_checked_at_finalize(self) -> None:
        declaration = {
            "apis": [],
            "models": {"Pet": {"id": "Pet", "properties": {"owner": {"$ref": "Owner"}}}},
        }
        builder = ServiceBuilder("x").set_delay(0).build(_source({"/pet": declaration}))
        with pytest.raises(DanglingReferenceError) as exc_info:
            builder.finalize()
        assert exc_info.value.subject == "Owner"

    def test_property_ref_may_be_declared_later(self) -> None:
        declarations = {
            "/pet": {"apis": [], "models": {"Pet": {"id": "Pet", "properties": {"owner": {"$ref": "Owner"}}}}},
            "/owner": {"apis": [], "models": {"Owner": {"id": "Owner", "properties": {"name": {"type": "string"}}}}},
        }
        service = _build(declarations)
        assert set(service.models) == {"Pet", "Owner"}

    def test_item_ref_to_unknown_model_names_document(self) -> None:
        declaration = {
            "apis": [],
            "models": {"Pet": {"id": "Pet", "properties": {"tags": {"type": "array", "items": {"$ref": "Tag"}}}}},
        }
        with pytest.raises(DanglingReferenceError) as exc_info:
            _build({"/pet": declaration})
        assert exc_info.value.document == "/pet"

    def test_model_map_without_ids_uses_keys(self) -> None:
        declaration = {"apis": [], "models": {"Tag": {"properties": {"name": {"type": "string"}}}}}
        assert "Tag" in _build({"/tag": declaration}).models


# ------------------------------------------------------------------ #
# Configuration and manual assembly
# ------------------------------------------------------------------ #


class TestConfiguration:
    def test_setters_chain(self) -> None:
        builder = ServiceBuilder("x").set_base_url("https://h.example.com/").set_api_version("3")
        service = builder.finalize()
        assert service.base_url == "https://h.example.com/"
        assert service.api_version == "3"

    @pytest.mark.parametrize(
        "call",
        [
            lambda b: b.set_delay(10),
            lambda b: b.set_base_url("http://late.example.com/"),
            lambda b: b.set_api_version("9"),
        ],
    )
    def test_too_late_after_build_starts(self, builder: ServiceBuilder, petstore_source: MemorySource, call) -> None:
        builder.build(petstore_source)
        with pytest.raises(InvalidUsageError, match="Too late"):
            call(builder)

    def test_build_twice_fails(self, builder: ServiceBuilder, petstore_source: MemorySource) -> None:
        builder.build(petstore_source)
        with pytest.raises(InvalidUsageError):
            builder.build(petstore_source)

    def test_delay_between_fetches(
        self, petstore_source: MemorySource, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        pauses: list[float] = []
        monkeypatch.setattr("swizzle.compiler.service.time.sleep", pauses.append)
        ServiceBuilder("petstore").build(petstore_source)
        assert pauses == [0.2]

    def test_manual_assembly(self) -> None:
        builder = ServiceBuilder("manual")
        builder.add_model({"id": "Pet", "properties": {"name": {"type": "string"}}})
        builder.add_api({"path": "/pets", "operations": [{"method": "GET", "nickname": "list", "type": "Pet"}]})
        service = builder.service_model
        assert service.base_url == "http://localhost/"
        assert service.get_operation("list").uri == "/pets"
        assert builder.finalize() is service

    def test_add_after_seal_fails(self) -> None:
        builder = ServiceBuilder("manual")
        builder.finalize()
        with pytest.raises(InvalidUsageError):
            builder.add_model({"id": "Pet"})

    def test_api_without_path_is_malformed(self) -> None:
        with pytest.raises(MalformedSourceError):
            ServiceBuilder("manual").add_api({"operations": []})

    def test_source_documents_are_not_mutated(self, pet_raw: dict, listing_raw: dict, store_raw: dict) -> None:
        before = copy.deepcopy(pet_raw)
        source = MemorySource(listing_raw, {"/pet": pet_raw, "/store": store_raw})
        ServiceBuilder("x").set_delay(0).build(source).finalize()
        assert pet_raw == before
