from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from legal_case_management.domain.errors import ConflictError
from legal_case_management.models.entities import MasterStatus
from legal_case_management.services.base import StoreBackedService
from legal_case_management.services.events import MASTER_DATA_UPDATED, EventBus


class MasterDataService(StoreBackedService):
    """CRUD shared by the master data tables.

    Subclasses set ``entity`` (the event name), ``list_key`` and ``search_fields``
    and override ``_prepare_create`` / ``_prepare_update`` / ``_check_delete`` for
    their own rules.
    """

    entity: str = ""
    list_key: str = "items"
    search_fields: list[str] = []
    sort_field: str = "created_at"

    def __init__(self, store, events: EventBus | None = None, settings=None):
        super().__init__(store, settings)
        self.events = events

    def _publish(self, action: str, data: dict[str, Any]) -> None:
        if self.events is None:
            return
        try:
            self.events.publish(
                MASTER_DATA_UPDATED, {"entity": self.entity, "action": action, "data": data}
            )
        except Exception as e:
            self.logger.error(f"Failed to publish {self.entity} {action} event: {e}")

    def _ensure_unique(
        self, field: str, value: Any, exclude_id: str | None = None, case_insensitive: bool = False, **scope
    ) -> None:
        if value is None:
            return
        key = f"{field}__ieq" if case_insensitive else field
        filters = {key: value, "id__ne": exclude_id, **scope}
        if self.store.find_one(self.collection, filters):
            raise ConflictError(f"{self.label} with {field} '{value}' already exists")

    def _next_number(self, field: str) -> int:
        rows = self.store.find(self.collection, {f"{field}__null": False}, sort=[(field, "DESC")], limit=1)
        return int(rows[0][field]) + 1 if rows else 1

    def _prepare_create(self, doc: dict[str, Any]) -> dict[str, Any]:
        return doc

    def _prepare_update(self, existing: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
        return changes

    def _check_delete(self, existing: dict[str, Any]) -> None:
        pass

    def create(self, data: BaseModel) -> dict[str, Any]:
        doc = data.model_dump(mode="json", exclude={"created_by"})
        doc.setdefault("status", MasterStatus.ACTIVE.value)
        doc = self._prepare_create(doc)
        record = self.store.insert(self.collection, self._stamp_new(doc, getattr(data, "created_by", None)))
        self.logger.info(f"Created {self.entity} {record['id']}")
        self._publish("create", record)
        return record

    def get(self, record_id: str) -> dict[str, Any]:
        return self._require(record_id)

    def list(
        self,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
        status: MasterStatus | None = None,
        **filters: Any,
    ) -> dict[str, Any]:
        filters["status"] = status.value if status else None
        rows, meta = self._paged(
            filters,
            page,
            limit,
            sort=[(self.sort_field, "ASC" if self.sort_field != "created_at" else "DESC")],
            search=(self.search_fields, search) if search and self.search_fields else None,
        )
        return {self.list_key: rows, **meta}

    def update(self, record_id: str, data: BaseModel) -> dict[str, Any]:
        existing = self._require(record_id)
        changes = data.model_dump(mode="json", exclude_unset=True, exclude={"updated_by"})
        changes = self._prepare_update(existing, changes)
        updated = self.store.update(
            self.collection, record_id, self._stamp_update(changes, getattr(data, "updated_by", None))
        )
        self.logger.info(f"Updated {self.entity} {record_id}")
        self._publish("update", updated)
        return updated

    def delete(self, record_id: str) -> dict[str, Any]:
        existing = self._require(record_id)
        self._check_delete(existing)
        self.store.delete(self.collection, record_id)
        self.logger.info(f"Deleted {self.entity} {record_id}")
        self._publish("delete", existing)
        return {"deleted": True, "id": record_id}
