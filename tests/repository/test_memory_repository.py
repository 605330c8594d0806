"""Tests for the in-memory content repository."""

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from solr_indexer.core.exceptions import RepositoryError
from solr_indexer.repository.memory import (
    MemoryNode,
    NodeTypeRegistry,
    build_repository,
    load_repository,
    to_value,
)
from solr_indexer.repository.protocols import NodeQuery, PropertyType

EXPORT = {
    "node_types": {
        "hippostd:folder": ["nt:base"],
        "hippo:handle": ["nt:base"],
        "myproject:newsdocument": ["hippo:document"],
    },
    "root": {
        "name": "",
        "type": "rep:root",
        "children": [
            {
                "name": "content",
                "type": "hippostd:folder",
                "children": [
                    {
                        "name": "documents",
                        "type": "hippostd:folder",
                        "children": [
                            {
                                "name": "news",
                                "type": "hippo:handle",
                                "id": "handle-1",
                                "children": [
                                    {
                                        "name": "news",
                                        "type": "myproject:newsdocument",
                                        "properties": {
                                            "myproject:title": "Hello",
                                            "myproject:published": {
                                                "type": "Date",
                                                "value": "2012-02-06T22:08:51+00:00",
                                            },
                                            "hippo:availability": ["live", "preview"],
                                        },
                                    }
                                ],
                            }
                        ],
                    }
                ],
            }
        ],
    },
}


def test_registry_resolves_transitive_supertypes():
    registry = NodeTypeRegistry({"a": ["b"], "b": ["c", "a"], "c": []})

    node_type = registry.get("a")

    assert node_type.name == "a"
    assert [supertype.name for supertype in node_type.supertypes] == ["b", "c"]
    assert registry.get("unknown").supertypes == ()


def test_to_value_infers_types():
    assert to_value("x").type is PropertyType.STRING
    assert to_value(True).type is PropertyType.BOOLEAN
    assert to_value(3).type is PropertyType.LONG
    assert to_value(1.5).type is PropertyType.DOUBLE
    assert to_value(b"raw").type is PropertyType.BINARY
    typed = to_value({"type": "Decimal", "value": "1.25"})
    assert typed.type is PropertyType.DECIMAL
    assert str(typed.data) == "1.25"


def test_build_repository_from_export():
    repository = build_repository(EXPORT)
    session = repository.login()

    variant = session.get_node("/content/documents/news/news")

    assert variant.path == "/content/documents/news/news"
    assert variant.parent.identifier == "handle-1"
    assert variant.get_property("myproject:title").value.get_string() == "Hello"
    published = variant.get_property("myproject:published").value
    assert published.type is PropertyType.DATE
    assert published.data == datetime(2012, 2, 6, 22, 8, 51, tzinfo=UTC)
    availability = variant.get_property("hippo:availability")
    assert availability.multiple
    assert [value.get_string() for value in availability.values] == ["live", "preview"]


def test_load_repository_reads_json_file(tmp_path: Path):
    export_file = tmp_path / "export.json"
    export_file.write_text(json.dumps(EXPORT), encoding="utf-8")

    repository = load_repository(export_file)

    assert repository.login().get_node("/content/documents").path == "/content/documents"


def test_session_query_matches_type_prefix_and_property():
    repository = build_repository(EXPORT)
    session = repository.login()

    matches = list(
        session.query(
            NodeQuery(
                node_type="hippo:document",
                path_prefix="/content/",
                any_property=("missing", "myproject:title"),
            )
        )
    )

    assert [node.path for node in matches] == ["/content/documents/news/news"]
    assert list(session.query(NodeQuery("hippo:document", "/other/", ("myproject:title",)))) == []


def test_missing_nodes_and_properties_raise():
    session = build_repository(EXPORT).login()
    node = session.get_node("/content")

    with pytest.raises(RepositoryError):
        session.get_node("/content/nope")
    with pytest.raises(RepositoryError):
        node.get_property("nope")
    with pytest.raises(RepositoryError):
        session.get_node("/content/documents/news/news").get_property(
            "hippo:availability"
        ).value


def test_closed_session_and_unavailable_repository():
    repository = build_repository(EXPORT)
    session = repository.login()
    session.logout()

    assert not session.is_live()
    with pytest.raises(RepositoryError):
        session.get_node("/content")

    repository.available = False
    with pytest.raises(RepositoryError):
        repository.login()


def test_failing_accessors_raise():
    registry = NodeTypeRegistry()
    root = MemoryNode("", registry.get("rep:root"))
    node = root.add_child("bad", registry.get("x"), failing=["children", "identifier"])

    with pytest.raises(RepositoryError):
        list(node.children())
    with pytest.raises(RepositoryError):
        node.identifier
    assert node.primary_type.name == "x"


def test_default_identifier_is_stable_per_path():
    registry = NodeTypeRegistry()
    first = MemoryNode("", registry.get("rep:root")).add_child("a", registry.get("x"))
    second = MemoryNode("", registry.get("rep:root")).add_child("a", registry.get("x"))

    assert first.identifier == second.identifier


def test_invalid_child_name_is_rejected():
    registry = NodeTypeRegistry()
    root = MemoryNode("", registry.get("rep:root"))

    with pytest.raises(ValueError):
        root.add_child("a/b", registry.get("x"))
