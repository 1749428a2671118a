"""
Communication templates (SMS, email, WhatsApp message bodies).

Templates on an SMS channel are also registered with the SMS gateway so they
can be DLT-approved. Gateway problems are logged; the local record is kept.
"""

from __future__ import annotations

import time
from typing import Any

from legal_case_management.domain.errors import ConflictError
from legal_case_management.models.master_data import CommunicationTemplateCreate, CommunicationTemplateUpdate
from legal_case_management.services.master_data.common import MasterDataService
from legal_case_management.services.sms_format import strip_html, to_sms_format
from legal_case_management.services.sms_gateway import SmsGatewayClient


class CommunicationTemplateService(MasterDataService):
    collection = "communication_templates"
    label = "Template"
    entity = "template"
    list_key = "templates"
    search_fields = ["template_id", "template_name"]

    def __init__(self, store, events=None, sms_gateway: SmsGatewayClient | None = None, settings=None):
        super().__init__(store, events, settings)
        self.sms_gateway = sms_gateway

    def _is_sms_channel(self, channel_id: str | None) -> bool:
        channel = self.store.get("channels", channel_id)
        return bool(channel) and "sms" in (channel.get("channel_name") or "").lower()

    def _prepare_create(self, doc: dict[str, Any]) -> dict[str, Any]:
        self._require(doc["channel_id"], "channels", "Channel")
        self._require(doc["language_id"], "languages", "Language")
        self._ensure_unique("template_id", doc["template_id"])
        self._ensure_unique(
            "template_name",
            doc["template_name"],
            case_insensitive=True,
            channel_id=doc["channel_id"],
            language_id=doc["language_id"],
        )
        return doc

    def _prepare_update(self, existing: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
        if changes.get("template_name"):
            self._ensure_unique(
                "template_name",
                changes["template_name"],
                exclude_id=existing["id"],
                case_insensitive=True,
                channel_id=existing["channel_id"],
                language_id=existing["language_id"],
            )
        return changes

    def _check_delete(self, existing: dict[str, Any]) -> None:
        in_use = self.store.count("legal_notices", {"template_ids__contains": existing["id"]})
        if in_use:
            raise ConflictError(
                f"Cannot delete template {existing['template_name']}: used by {in_use} notice(s)"
            )

    async def _sync_sms(self, template: dict[str, Any]) -> dict[str, Any]:
        """Register the template with the gateway and return the ids it assigned (empty on failure)."""
        if self.sms_gateway is None or not self._is_sms_channel(template.get("channel_id")):
            return {}
        temp_id = f"temp_{int(time.time() * 1000)}"
        message = to_sms_format(strip_html(template["message_body"]))
        try:
            await self.sms_gateway.register_template(template["template_name"], message, template_id=temp_id)
            registered = await self.sms_gateway.list_templates()
        except Exception as e:
            self.logger.error(f"SMS template sync failed for {template['template_id']}: {e}")
            return {}

        for entry in registered:
            if entry.get("TemplateName") == template["template_name"] or entry.get("DltTemplateId") == temp_id:
                self.logger.info(f"SMS template {template['template_id']} registered as {entry.get('TemplateId')}")
                return {
                    "sms_template_id": entry.get("TemplateId"),
                    "dlt_template_id": entry.get("DltTemplateId"),
                    "is_approved": bool(entry.get("IsApproved", False)),
                }
        self.logger.warning(f"SMS template {template['template_id']} not found on gateway after registration")
        return {}

    async def create(self, data: CommunicationTemplateCreate) -> dict[str, Any]:
        record = super().create(data)
        sms_fields = await self._sync_sms(record)
        if sms_fields:
            record = self.store.update(self.collection, record["id"], self._stamp_update(sms_fields, data.created_by))
        return record

    async def update(self, record_id: str, data: CommunicationTemplateUpdate) -> dict[str, Any]:
        record = super().update(record_id, data)
        if "message_body" in data.model_fields_set or "template_name" in data.model_fields_set:
            sms_fields = await self._sync_sms(record)
            if sms_fields:
                record = self.store.update(
                    self.collection, record_id, self._stamp_update(sms_fields, data.updated_by)
                )
        return record

    def get_by_template_id(self, template_id: str) -> dict[str, Any] | None:
        return self.store.find_one(self.collection, {"template_id": template_id})

    def for_channel(self, channel_id: str, language_id: str | None = None) -> list[dict[str, Any]]:
        return self.store.find(
            self.collection,
            {"channel_id": channel_id, "language_id": language_id, "is_active": True},
            sort=[("template_name", "ASC")],
        )
