from __future__ import annotations

from typing import Any

from legal_case_management.domain.errors import ConflictError
from legal_case_management.services.master_data.common import MasterDataService


class ChannelService(MasterDataService):
    collection = "channels"
    label = "Channel"
    entity = "channel"
    list_key = "channels"
    search_fields = ["channel_id", "channel_name"]
    sort_field = "channel_name"

    def _prepare_create(self, doc: dict[str, Any]) -> dict[str, Any]:
        self._ensure_unique("channel_id", doc["channel_id"])
        return doc

    def _check_delete(self, existing: dict[str, Any]) -> None:
        in_use = self.store.count("communication_templates", {"channel_id": existing["id"]})
        if in_use:
            raise ConflictError(
                f"Cannot delete channel {existing['channel_name']}: used by {in_use} template(s)"
            )
