"""Schema discovery from sampled documents."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SAMPLE_SIZE = 5


class CollectionSchema(BaseModel):
    """What is known about one collection from a handful of documents."""

    model_config = ConfigDict(populate_by_name=True)

    fields: Dict[str, List[str]] = Field(default_factory=dict)
    document_count: int = Field(0, alias="documentCount")
    sample_documents: List[Dict[str, Any]] = Field(default_factory=list, alias="sampleDocuments")


def value_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (datetime, date)):
        return "timestamp"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def field_types(documents: Iterable[Mapping[str, Any]]) -> Dict[str, List[str]]:
    """Map each field (except ``id``) to the value types seen, in first-seen order."""
    types: Dict[str, List[str]] = {}
    for document in documents:
        for key, value in document.items():
            if key == "id":
                continue
            seen = types.setdefault(key, [])
            kind = value_type(value)
            if kind not in seen:
                seen.append(kind)
    return types


def discover_schema(
    samples: Mapping[str, Iterable[Mapping[str, Any]]],
    *,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> Dict[str, CollectionSchema]:
    """Describe every collection that has at least one sampled document."""
    schema: Dict[str, CollectionSchema] = {}
    for name, rows in samples.items():
        documents = [dict(row) for row in list(rows)[:sample_size]]
        if not documents:
            continue
        schema[name] = CollectionSchema(
            fields=field_types(documents),
            document_count=len(documents),
            sample_documents=documents,
        )
    return schema


def schema_payload(schema: Mapping[str, CollectionSchema]) -> Dict[str, Any]:
    """Wire form of a schema, using the camelCase keys of the data API."""
    return {name: entry.model_dump(by_alias=True, mode="json") for name, entry in schema.items()}


__all__ = [
    "CollectionSchema",
    "DEFAULT_SAMPLE_SIZE",
    "discover_schema",
    "field_types",
    "schema_payload",
    "value_type",
]
