"""Best-effort storage of generated dashboards.

Dashboards are stored as opaque documents in a document store keyed by
ID. Storage failures are logged and swallowed by :meth:`save_best_effort`
so a broken store never costs the user the dashboard on screen.
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

COLLECTION = "dashboards"


def _dashboard_id() -> str:
    return f"dashboard_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_message: str = Field(alias="userMessage")
    ai_response: str = Field(alias="aiResponse")
    timestamp: datetime = Field(default_factory=_utcnow)


class DashboardRecord(BaseModel):
    """One stored dashboard: its code, how to fetch its data and its chat."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=_dashboard_id)
    user_id: str = Field(alias="userId")
    project_id: Optional[str] = Field(None, alias="projectId")
    title: str = "Untitled Dashboard"
    description: Optional[str] = ""
    code: str
    data_requirements: Optional[Any] = Field(None, alias="dataRequirements")
    messages: List[MessageRecord] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=_utcnow, alias="updatedAt")
    is_deleted: bool = Field(False, alias="isDeleted")

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class DocumentStore(Protocol):
    def put(self, collection: str, key: str, document: Dict[str, Any]) -> None: ...

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]: ...

    def all(self, collection: str) -> List[Dict[str, Any]]: ...


class InMemoryDocumentStore:
    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def put(self, collection: str, key: str, document: Dict[str, Any]) -> None:
        self._collections.setdefault(collection, {})[key] = json.loads(json.dumps(document))

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        return self._collections.get(collection, {}).get(key)

    def all(self, collection: str) -> List[Dict[str, Any]]:
        return list(self._collections.get(collection, {}).values())


class JsonFileDocumentStore:
    """All collections in one JSON file, rewritten on every put."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def put(self, collection: str, key: str, document: Dict[str, Any]) -> None:
        payload = self._load()
        payload.setdefault(collection, {})[key] = document
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temporary = self.path.with_suffix(self.path.suffix + ".tmp")
        with temporary.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, default=str)
        temporary.replace(self.path)

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        return self._load().get(collection, {}).get(key)

    def all(self, collection: str) -> List[Dict[str, Any]]:
        return list(self._load().get(collection, {}).values())


class DashboardStore:
    """Dashboard records on top of a :class:`DocumentStore`."""

    def __init__(self, documents: DocumentStore) -> None:
        self.documents = documents

    def save(self, record: DashboardRecord) -> str:
        self.documents.put(COLLECTION, record.id, record.to_document())
        return record.id

    def save_best_effort(self, record: DashboardRecord) -> Optional[str]:
        try:
            return self.save(record)
        except Exception as exc:  # noqa: BLE001 - storage is best-effort
            logger.error("Failed to save dashboard %s: %s", record.id, exc, exc_info=True)
            return None

    def get(self, dashboard_id: str) -> Optional[DashboardRecord]:
        document = self.documents.get(COLLECTION, dashboard_id)
        if document is None:
            return None
        try:
            record = DashboardRecord.model_validate(document)
        except ValidationError:
            logger.warning("Stored dashboard %s is malformed", dashboard_id)
            return None
        return None if record.is_deleted else record

    def list_for_user(self, user_id: str, project_id: Optional[str] = None) -> List[DashboardRecord]:
        records = []
        for document in self.documents.all(COLLECTION):
            try:
                record = DashboardRecord.model_validate(document)
            except ValidationError:
                continue
            if record.user_id != user_id or record.is_deleted:
                continue
            if project_id is not None and record.project_id != project_id:
                continue
            records.append(record)
        return sorted(records, key=lambda record: record.updated_at, reverse=True)

    def delete(self, dashboard_id: str) -> bool:
        """Soft delete; returns ``False`` when there is nothing to delete."""
        record = self.get(dashboard_id)
        if record is None:
            return False
        updated = record.model_copy(update={"is_deleted": True, "updated_at": _utcnow()})
        self.save(updated)
        return True


__all__ = [
    "DashboardRecord",
    "DashboardStore",
    "DocumentStore",
    "InMemoryDocumentStore",
    "JsonFileDocumentStore",
    "MessageRecord",
]
