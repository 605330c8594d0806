"""Helpers to translate between domain models and Solr JSON transport objects."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from solr_indexer.core.models import Scalar, SearchDocument

SOLR_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def scalar_to_json(value: Scalar) -> Any:
    """Convert a scalar field value to what the Solr JSON update handler expects."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC).strftime(SOLR_DATE_FORMAT)
    if isinstance(value, Decimal):
        return str(value)
    return value


def document_to_payload(document: SearchDocument) -> dict[str, Any]:
    """Convert a search document into a Solr JSON document."""
    payload: dict[str, Any] = {}
    for field_id, value in document.fields.items():
        if isinstance(value, tuple):
            payload[field_id] = [scalar_to_json(item) for item in value]
        else:
            payload[field_id] = scalar_to_json(value)
    return payload


def documents_to_payload(documents: Sequence[SearchDocument]) -> list[dict[str, Any]]:
    return [document_to_payload(document) for document in documents]


def delete_by_query_command(query: str) -> dict[str, Any]:
    return {"delete": {"query": query}}


def commit_command() -> dict[str, Any]:
    return {"commit": {}}


def rollback_command() -> dict[str, Any]:
    return {"rollback": {}}
