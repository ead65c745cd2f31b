"""Data requirements and the data-fetch collaborators.

A :class:`DataRequirements` names the collections a dashboard needs, an
optional filter per collection and a row limit. A data source answers it
with a bundle that has an entry for every requested collection; a
collection that cannot be read comes back as an empty list.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from flameview.errors import CollaboratorError

from .schema import DEFAULT_SAMPLE_SIZE, CollectionSchema, discover_schema

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 1000

FILTER_OPERATORS = ("==", "!=", "<", "<=", ">", ">=", "in", "not-in", "array-contains")

DataBundle = Dict[str, List[Dict[str, Any]]]


class FilterClause(BaseModel):
    field: str
    op: str = "=="
    value: Any = None

    @field_validator("op")
    @classmethod
    def _known_operator(cls, value: str) -> str:
        if value not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator '{value}'")
        return value

    def matches(self, row: Mapping[str, Any]) -> bool:
        if self.field not in row:
            return self.op == "!=" or self.op == "not-in"
        actual = row[self.field]
        try:
            if self.op == "==":
                return actual == self.value
            if self.op == "!=":
                return actual != self.value
            if self.op == "<":
                return actual < self.value
            if self.op == "<=":
                return actual <= self.value
            if self.op == ">":
                return actual > self.value
            if self.op == ">=":
                return actual >= self.value
            if self.op == "in":
                return actual in (self.value or ())
            if self.op == "not-in":
                return actual not in (self.value or ())
            return isinstance(actual, (list, tuple)) and self.value in actual
        except TypeError:
            return False


class DataRequirements(BaseModel):
    """Which collections to fetch for a dashboard."""

    collections: List[str] = Field(default_factory=list)
    filters: Dict[str, FilterClause] = Field(default_factory=dict)
    limit: int = Field(DEFAULT_LIMIT, ge=1)

    @field_validator("filters", mode="before")
    @classmethod
    def _normalise_filters(cls, value: Any) -> Any:
        # ``{"orders": {"status": "paid"}}`` is shorthand for an equality filter
        if not isinstance(value, Mapping):
            return value
        normalised: Dict[str, Any] = {}
        for name, clause in value.items():
            if isinstance(clause, Mapping) and "field" not in clause:
                if not clause:
                    continue
                if len(clause) != 1:
                    raise ValueError(f"Filter for '{name}' must name exactly one field")
                (field_name, expected), = clause.items()
                clause = {"field": field_name, "op": "==", "value": expected}
            normalised[name] = clause
        return normalised

    @classmethod
    def all_collections(cls, names: Iterable[str], *, limit: int = DEFAULT_LIMIT) -> "DataRequirements":
        return cls(collections=list(names), filters={}, limit=limit)

    def to_payload(self, project_id: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "collections": list(self.collections),
            "filters": {name: clause.model_dump() for name, clause in self.filters.items()},
            "limit": self.limit,
        }
        if project_id is not None:
            payload["projectId"] = project_id
        return payload


def parse_requirements(payload: Mapping[str, Any], *, default_limit: int = DEFAULT_LIMIT) -> DataRequirements:
    data = dict(payload)
    data.setdefault("limit", default_limit)
    try:
        return DataRequirements.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid data requirements: {exc}") from exc


class DataFetchClient(Protocol):
    async def fetch(self, requirements: DataRequirements) -> DataBundle: ...

    async def discover_schema(self) -> Dict[str, CollectionSchema]: ...


def complete_bundle(requested: Sequence[str], received: Mapping[str, Any]) -> DataBundle:
    """Give every requested collection an entry; unusable results become ``[]``."""
    bundle: DataBundle = {}
    for name in requested:
        rows = received.get(name)
        if not isinstance(rows, list):
            if rows is not None:
                logger.warning("Collection '%s' returned %s instead of rows", name, type(rows).__name__)
            else:
                logger.warning("Collection '%s' was not returned by the data source", name)
            bundle[name] = []
            continue
        bundle[name] = [row for row in rows if isinstance(row, dict)]
    return bundle


class InMemoryDataSource:
    """A data source over in-process collections; used by the CLI and tests."""

    def __init__(self, collections: Mapping[str, Iterable[Mapping[str, Any]]]) -> None:
        self.collections = {name: [dict(row) for row in rows] for name, rows in collections.items()}
        self.fetch_count = 0

    async def fetch(self, requirements: DataRequirements) -> DataBundle:
        self.fetch_count += 1
        bundle: DataBundle = {}
        for name in requirements.collections:
            rows = self.collections.get(name)
            if rows is None:
                logger.warning("Unknown collection '%s'", name)
                bundle[name] = []
                continue
            clause = requirements.filters.get(name)
            selected = [row for row in rows if clause is None or clause.matches(row)]
            bundle[name] = [dict(row) for row in selected[: requirements.limit]]
        return bundle

    async def discover_schema(self) -> Dict[str, CollectionSchema]:
        return discover_schema(self.collections, sample_size=DEFAULT_SAMPLE_SIZE)


class HttpDataFetchClient:
    """Client for the data API's ``/api/data`` routes."""

    name = "data-fetch"

    def __init__(
        self,
        base_url: str,
        *,
        project_id: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.project_id = project_id
        self.token = token
        self.timeout = timeout
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            headers = {"Content-Type": "application/json"}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._http_client

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        client = self._get_http_client()
        try:
            response = await client.post(path, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            raise CollaboratorError(
                f"Data API error (status {exc.response.status_code}) for {path}",
                collaborator=self.name,
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise CollaboratorError(f"Data API request to {path} failed: {exc}", collaborator=self.name) from exc

        if not isinstance(body, dict) or body.get("success") is False:
            message = body.get("message") if isinstance(body, dict) else None
            raise CollaboratorError(
                f"Data API rejected {path}: {message or 'malformed response'}",
                collaborator=self.name,
                status_code=response.status_code,
            )
        data = body.get("data")
        return data if isinstance(data, dict) else {}

    def _malformed(self, path: str, field: str, value: Any) -> CollaboratorError:
        return CollaboratorError(
            f"Data API returned a malformed '{field}' from {path}: expected an object, got {type(value).__name__}",
            collaborator=self.name,
        )

    async def fetch(self, requirements: DataRequirements) -> DataBundle:
        if not requirements.collections:
            return {}
        path = "/api/data/fetch-collections"
        data = await self._post(path, requirements.to_payload(self.project_id))
        collections = data.get("collections")
        if collections is None:
            collections = {}
        elif not isinstance(collections, dict):
            raise self._malformed(path, "collections", collections)
        return complete_bundle(requirements.collections, collections)

    async def discover_schema(self) -> Dict[str, CollectionSchema]:
        path = "/api/data/discover-schema"
        data = await self._post(path, {"projectId": self.project_id})
        raw_schema = data.get("schema")
        if raw_schema is None:
            raw_schema = {}
        elif not isinstance(raw_schema, dict):
            raise self._malformed(path, "schema", raw_schema)
        schema: Dict[str, CollectionSchema] = {}
        for name, entry in raw_schema.items():
            try:
                schema[name] = CollectionSchema.model_validate(entry)
            except ValidationError:
                logger.warning("Ignoring malformed schema entry for '%s'", name)
        return schema

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "HttpDataFetchClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


__all__ = [
    "DEFAULT_LIMIT",
    "DataBundle",
    "DataFetchClient",
    "DataRequirements",
    "FILTER_OPERATORS",
    "FilterClause",
    "HttpDataFetchClient",
    "InMemoryDataSource",
    "complete_bundle",
    "parse_requirements",
]
