"""Domain models shared by the configuration loader, the mapper and the indexer."""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from solr_indexer.repository.protocols import Session

Scalar: TypeAlias = str | bool | int | float | Decimal | datetime
FieldValue: TypeAlias = Scalar | tuple[Scalar, ...]


@dataclass(frozen=True)
class IndexFilter:
    """Node types eligible for indexing and the field id -> property path mapping."""

    node_types: frozenset[str]
    properties: Mapping[str, str]

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))

    def is_valid(self, session: Session | None) -> bool:
        """Return False when nothing can be indexed or the session is unusable."""
        if session is None or not self.node_types or not self.properties:
            return False
        return session.is_live()

    def __str__(self) -> str:
        return (
            f"IndexFilter[node_types = {sorted(self.node_types)}, "
            f"properties = {dict(self.properties)}]"
        )


@dataclass(frozen=True)
class SearchDocument:
    """Flat search document built from one repository node."""

    fields: Mapping[str, FieldValue]

    def __post_init__(self) -> None:
        if not self.fields:
            raise ValueError("SearchDocument requires at least one field")
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def __len__(self) -> int:
        return len(self.fields)

    def get(self, field_id: str) -> FieldValue | None:
        return self.fields.get(field_id)


@dataclass(slots=True)
class RunState:
    """Per-run counters, discarded when the run ends."""

    total_documents: int = 0
    batches: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    started_monotonic: float = field(default_factory=time.monotonic)

    def record_batch(self, size: int) -> None:
        self.total_documents += size
        self.batches += 1

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self.started_monotonic
