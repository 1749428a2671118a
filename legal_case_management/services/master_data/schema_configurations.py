from __future__ import annotations

from typing import Any

from legal_case_management.services.master_data.common import MasterDataService


class SchemaConfigurationService(MasterDataService):
    """Named source schemas for the data ingestion feed."""

    collection = "schema_configurations"
    label = "Schema configuration"
    entity = "schema_configuration"
    list_key = "schema_configurations"
    search_fields = ["schema_name", "source_type"]
    sort_field = "schema_name"

    def _prepare_create(self, doc: dict[str, Any]) -> dict[str, Any]:
        self._ensure_unique("schema_name", doc["schema_name"], case_insensitive=True)
        return doc
