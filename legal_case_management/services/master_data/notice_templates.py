from __future__ import annotations

from typing import Any

from legal_case_management.domain.errors import ResourceNotFound
from legal_case_management.services.master_data.common import MasterDataService


class NoticeTemplateService(MasterDataService):
    """Rich notice templates consumed by the template engine."""

    collection = "notice_templates"
    label = "Notice template"
    entity = "notice_template"
    list_key = "templates"
    search_fields = ["template_code", "template_name"]

    def _prepare_create(self, doc: dict[str, Any]) -> dict[str, Any]:
        doc["template_code"] = doc["template_code"].strip().upper()
        self._ensure_unique("template_code", doc["template_code"])
        if doc.get("language_id"):
            self._require(doc["language_id"], "languages", "Language")
        if not doc.get("max_characters"):
            doc["max_characters"] = self.settings.notice_max_characters
        return doc

    def _prepare_update(self, existing: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
        if changes.get("language_id"):
            self._require(changes["language_id"], "languages", "Language")
        return changes

    def get_by_code(self, template_code: str) -> dict[str, Any]:
        record = self.store.find_one(self.collection, {"template_code__ieq": template_code})
        if record is None:
            raise ResourceNotFound(f"Notice template with code {template_code} not found")
        return record
