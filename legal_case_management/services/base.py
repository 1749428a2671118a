from __future__ import annotations

import logging
from typing import Any

from legal_case_management.config import AppSettings, get_settings
from legal_case_management.domain.errors import ResourceNotFound
from legal_case_management.utils.dates import date_stamp, utc_now_iso
from legal_case_management.utils.pagination import page_meta, page_window


class StoreBackedService:
    """Shared plumbing for services that persist records in the document store."""

    collection: str = ""
    label: str = "Record"

    def __init__(self, store, settings: AppSettings | None = None):
        self.store = store
        self.settings = settings or get_settings()
        self.logger = logging.getLogger(self.__class__.__module__)

    def _require(self, record_id: str, collection: str | None = None, label: str | None = None) -> dict:
        record = self.store.get(collection or self.collection, record_id)
        if record is None:
            raise ResourceNotFound(f"{label or self.label} with ID {record_id} not found")
        return record

    def _stamp_new(self, doc: dict[str, Any], user: str | None) -> dict[str, Any]:
        now = utc_now_iso()
        who = user or self.settings.system_user
        doc.setdefault("created_at", now)
        doc["updated_at"] = now
        doc.setdefault("created_by", who)
        doc["updated_by"] = who
        return doc

    def _stamp_update(self, changes: dict[str, Any], user: str | None) -> dict[str, Any]:
        changes["updated_at"] = utc_now_iso()
        changes["updated_by"] = user or self.settings.system_user
        return changes

    def _paged(
        self,
        filters: dict[str, Any],
        page: int,
        limit: int,
        sort: list[tuple[str, str]] | None = None,
        search: tuple[list[str], str] | None = None,
        with_navigation: bool = False,
        collection: str | None = None,
    ) -> tuple[list[dict], dict[str, Any]]:
        coll = collection or self.collection
        offset, limit = page_window(page, limit, self.settings.max_page_size)
        total = self.store.count(coll, filters, search=search)
        rows = self.store.find(coll, filters, sort=sort, offset=offset, limit=limit, search=search)
        return rows, page_meta(total, page, limit, with_navigation)

    def _next_code(self, prefix: str, width: int = 4, on=None) -> str:
        """Generate ``PREFIX-YYYYMMDD-NNNN`` from a per-day counter scoped to the collection."""
        stamp = date_stamp(on)
        seq = self.store.next_sequence(f"{self.collection}:{prefix}-{stamp}")
        return f"{prefix}-{stamp}-{seq:0{width}d}"
