from __future__ import annotations

from typing import Any

from legal_case_management.domain.errors import ConflictError, ResourceNotFound
from legal_case_management.services.master_data.common import MasterDataService


class StateService(MasterDataService):
    collection = "states"
    label = "State"
    entity = "state"
    list_key = "states"
    search_fields = ["state_code", "state_name"]
    sort_field = "state_id"

    def _prepare_create(self, doc: dict[str, Any]) -> dict[str, Any]:
        doc["state_code"] = doc["state_code"].strip().upper()
        self._ensure_unique("state_code", doc["state_code"])
        self._ensure_unique("state_name", doc["state_name"], case_insensitive=True)
        doc["state_id"] = self._next_number("state_id")
        return doc

    def _prepare_update(self, existing: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
        if changes.get("state_code"):
            changes["state_code"] = changes["state_code"].strip().upper()
            self._ensure_unique("state_code", changes["state_code"], exclude_id=existing["id"])
        if changes.get("state_name"):
            self._ensure_unique(
                "state_name", changes["state_name"], exclude_id=existing["id"], case_insensitive=True
            )
        return changes

    def _check_delete(self, existing: dict[str, Any]) -> None:
        in_use = self.store.count("legal_notices", {"state_id": existing["id"]})
        if in_use:
            raise ConflictError(
                f"Cannot delete state {existing['state_name']}: referenced by {in_use} legal notice(s)"
            )

    def get_by_code(self, state_code: str) -> dict[str, Any]:
        record = self.store.find_one(self.collection, {"state_code__ieq": state_code})
        if record is None:
            raise ResourceNotFound(f"State with code {state_code} not found")
        return record
