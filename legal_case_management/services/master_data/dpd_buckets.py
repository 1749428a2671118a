from __future__ import annotations

from typing import Any

from legal_case_management.domain.errors import ConflictError
from legal_case_management.models.entities import MasterStatus
from legal_case_management.services.master_data.common import MasterDataService


class DpdBucketService(MasterDataService):
    """Days-past-due buckets. Active buckets never overlap."""

    collection = "dpd_buckets"
    label = "DPD bucket"
    entity = "dpd_bucket"
    list_key = "dpd_buckets"
    search_fields = ["bucket_name", "module"]
    sort_field = "range_start"

    def _check_overlap(self, start: int, end: int, exclude_id: str | None = None) -> None:
        clash = self.store.find_one(
            self.collection,
            {
                "status": MasterStatus.ACTIVE.value,
                "range_start__lte": end,
                "range_end__gte": start,
                "id__ne": exclude_id,
            },
        )
        if clash:
            raise ConflictError(
                f"DPD range {start}-{end} overlaps bucket {clash['bucket_name']} "
                f"({clash['range_start']}-{clash['range_end']})"
            )

    def _prepare_create(self, doc: dict[str, Any]) -> dict[str, Any]:
        self._ensure_unique("bucket_name", doc["bucket_name"], case_insensitive=True)
        if doc["status"] == MasterStatus.ACTIVE.value:
            self._check_overlap(doc["range_start"], doc["range_end"])
        if doc.get("min_days") is None:
            doc["min_days"] = doc["range_start"]
        if doc.get("max_days") is None:
            doc["max_days"] = doc["range_end"]
        doc["bucket_id"] = self._next_number("bucket_id")
        return doc

    def _prepare_update(self, existing: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
        if changes.get("bucket_name"):
            self._ensure_unique(
                "bucket_name", changes["bucket_name"], exclude_id=existing["id"], case_insensitive=True
            )
        start = changes.get("range_start", existing["range_start"])
        end = changes.get("range_end", existing["range_end"])
        if start > end:
            raise ValueError("range_start must be less than or equal to range_end")
        if changes.get("status", existing.get("status")) == MasterStatus.ACTIVE.value:
            self._check_overlap(start, end, exclude_id=existing["id"])
        return changes

    def bucket_for_dpd(self, dpd_days: int) -> dict[str, Any] | None:
        return self.store.find_one(
            self.collection,
            {
                "status": MasterStatus.ACTIVE.value,
                "range_start__lte": dpd_days,
                "range_end__gte": dpd_days,
            },
        )
