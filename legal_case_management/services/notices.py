"""
Pre-legal notices and their acknowledgements.

Creating a notice validates the loan account, templates and master data, stores
the notice, and hands each template whose channel matches a requested
communication mode to the communication service.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

from legal_case_management.domain.errors import (
    ConflictError,
    ResourceNotFound,
    ServiceUnavailable,
    ValidationFailed,
)
from legal_case_management.models.documents import DocumentCreate, UploadedFile
from legal_case_management.models.entities import (
    AcknowledgementStatus,
    CaseDocumentType,
    CommunicationMode,
    LinkedEntityType,
    MasterStatus,
    NoticeStatus,
    TriggerType,
)
from legal_case_management.models.notices import (
    AcknowledgementCreate,
    AcknowledgementUpdate,
    CommunicationRequest,
    NoticeCreate,
    NoticePreviewRequest,
    NoticeStatusUpdate,
)
from legal_case_management.services.base import StoreBackedService
from legal_case_management.services.borrowers import BorrowerDirectory
from legal_case_management.services.communication import CommunicationService
from legal_case_management.services.documents import DocumentService
from legal_case_management.services.sms_format import from_sms_format, strip_html
from legal_case_management.services.template_engine import TemplateEngine
from legal_case_management.services.template_rendering import NoticeRenderer
from legal_case_management.utils.dates import parse_date, today, utc_now

DUPLICATE_WINDOW_DAYS = 7

# channel name keyword -> communication mode
CHANNEL_MODES = [
    ("sms", CommunicationMode.SMS),
    ("whatsapp", CommunicationMode.WHATSAPP),
    ("mail", CommunicationMode.EMAIL),
    ("courier", CommunicationMode.COURIER),
    ("post", CommunicationMode.POST),
    ("physical", CommunicationMode.PHYSICAL_DELIVERY),
]


def channel_matches(channel_name: str, modes: list[str]) -> str | None:
    """Return the requested mode matching ``channel_name`` (case-insensitive, prefix tolerant)."""
    channel = (channel_name or "").strip().lower()
    if not channel:
        return None
    for mode in modes:
        wanted = (mode or "").strip().lower()
        if wanted and (wanted == channel or channel.startswith(wanted) or wanted.startswith(channel)):
            return mode
    return None


def channel_mode(channel_name: str) -> CommunicationMode | None:
    channel = (channel_name or "").lower()
    for keyword, mode in CHANNEL_MODES:
        if keyword in channel:
            return mode
    return None


def message_context(account: dict[str, Any], gathered: dict[str, Any], notice: dict[str, Any] | None = None) -> dict[str, Any]:
    """Flat account fields plus the nested notice data, for communication templates."""
    context = {k: v for k, v in account.items() if not k.startswith("_")}
    context.update(gathered)
    if notice:
        context["notice_code"] = notice.get("notice_code")
        context["notice_expiry_date"] = notice.get("notice_expiry_date")
        context["notice"] = {**gathered.get("notice", {}), "noticeCode": notice.get("notice_code")}
    return context


class NoticeService(StoreBackedService):
    collection = "legal_notices"
    label = "Legal notice"

    def __init__(
        self,
        store,
        borrowers: BorrowerDirectory,
        engine: TemplateEngine,
        renderer: NoticeRenderer,
        communication: CommunicationService,
        settings=None,
        documents: DocumentService | None = None,
    ):
        super().__init__(store, settings)
        self.borrowers = borrowers
        self.engine = engine
        self.renderer = renderer
        self.communication = communication
        self.documents = documents

    # ------------------------------------------------------------------ helpers

    def _templates(self, template_ids: list[str]) -> list[dict[str, Any]]:
        if not template_ids:
            raise ValidationFailed("At least one template is required")
        templates = [self.store.get("communication_templates", tid) for tid in template_ids]
        missing = [tid for tid, t in zip(template_ids, templates) if t is None]
        if missing:
            raise ResourceNotFound(f"Templates not found: {', '.join(missing)}")
        inactive = [
            t["id"]
            for t in templates
            if t.get("status") != MasterStatus.ACTIVE.value or not t.get("is_active", True)
        ]
        if inactive:
            raise ValueError(f"Templates are not active: {', '.join(inactive)}")
        return templates

    def _check_duplicate(self, loan_account_number: str, dpd_days: int) -> None:
        since = (utc_now() - timedelta(days=DUPLICATE_WINDOW_DAYS)).isoformat()
        existing = self.store.find_one(
            self.collection,
            {
                "loan_account_number": loan_account_number,
                "dpd_days": dpd_days,
                "created_at__gte": since,
            },
        )
        if existing:
            raise ConflictError(
                f"Notice {existing['notice_code']} already issued for {loan_account_number} "
                f"at {dpd_days} DPD within the last {DUPLICATE_WINDOW_DAYS} days"
            )

    def _with_names(self, notice: dict[str, Any]) -> dict[str, Any]:
        state = self.store.get("states", notice.get("state_id"))
        language = self.store.get("languages", notice.get("language_id"))
        names = []
        for tid in notice.get("template_ids") or []:
            template = self.store.get("communication_templates", tid)
            if template:
                names.append(template.get("template_name"))
        return {
            **notice,
            "state_name": state.get("state_name") if state else None,
            "language_name": language.get("language_name") if language else None,
            "template_names": names,
        }

    async def _dispatch(
        self,
        notice: dict[str, Any],
        account: dict[str, Any],
        templates: list[dict[str, Any]],
        modes: list[str],
    ) -> list[dict[str, Any]]:
        """Send every template whose channel matches a requested mode. Failures are logged and skipped."""
        sent = []
        gathered = self.renderer.gather_data(
            account["loan_account_number"], notice["dpd_days"], notice["legal_entity_name"]
        )
        context = message_context(account, gathered, notice)
        for template in templates:
            channel = self.store.get("channels", template.get("channel_id"))
            channel_name = channel.get("channel_name") if channel else ""
            if not channel_matches(channel_name, modes):
                self.logger.debug(
                    f"Template {template.get('template_name')} channel '{channel_name}' not in modes {modes}"
                )
                continue
            mode = channel_mode(channel_name)
            if mode is None:
                self.logger.warning(f"Unsupported channel {channel_name} for {template.get('template_name')}")
                continue
            try:
                body = self.engine.render_string(from_sms_format(template["message_body"]), context)
                if mode == CommunicationMode.SMS:
                    body = strip_html(body)
                address = {
                    CommunicationMode.SMS: account.get("borrower_mobile"),
                    CommunicationMode.WHATSAPP: account.get("borrower_mobile"),
                    CommunicationMode.EMAIL: account.get("borrower_email"),
                }.get(mode, account.get("borrower_address"))
                result = await self.communication.send(
                    CommunicationRequest(
                        recipient_id=account["loan_account_number"],
                        mode=mode,
                        recipient_address=address,
                        subject=f"Legal Notice {notice['notice_code']}",
                        content=body,
                        template_id=template["id"],
                        metadata={"notice_id": notice["id"], "notice_code": notice["notice_code"]},
                    )
                )
                sent.append({"template_id": template["id"], "mode": mode.value, **result})
            except Exception as e:
                self.logger.error(
                    f"Failed to send template {template.get('template_name')} for {notice['notice_code']}: {e}"
                )
        return sent

    # --------------------------------------------------------------- notices

    async def create(self, data: NoticeCreate) -> dict[str, Any]:
        account = self.borrowers.get_borrower(data.loan_account_number)
        templates = self._templates(data.template_ids)
        self._check_duplicate(data.loan_account_number, data.dpd_days)
        self._require(data.state_id, "states", "State")
        self._require(data.language_id, "languages", "Language")
        if data.notice_expiry_date < today():
            raise ValidationFailed("Notice expiry date cannot be in the past")

        doc = data.model_dump(mode="json", exclude={"created_by"})
        doc.update(
            {
                "notice_code": self._next_code("PLN"),
                "borrower_name": account.get("borrower_name"),
                "notice_generation_date": today().isoformat(),
                "document_path": None,
            }
        )
        notice = self.store.insert(self.collection, self._stamp_new(doc, data.created_by))
        self.logger.info(f"Created notice {notice['notice_code']} for {data.loan_account_number}")

        communications = await self._dispatch(notice, account, templates, data.communication_modes)
        return {**self._with_names(notice), "communications": communications}

    def preview(self, request: NoticePreviewRequest) -> dict[str, Any]:
        template = self._require(request.template_id, "communication_templates", "Template")
        account = self.borrowers.get_borrower(request.loan_account_number)
        gathered = self.renderer.gather_data(
            request.loan_account_number, request.dpd_days, request.legal_entity_name
        )
        rendered = self.engine.render_string(
            from_sms_format(template["message_body"]), message_context(account, gathered)
        )
        return {
            "template_id": template["id"],
            "template_name": template.get("template_name"),
            "rendered_html": rendered,
            "character_count": len(strip_html(rendered)),
        }

    def get(self, notice_id: str) -> dict[str, Any]:
        return self._with_names(self._require(notice_id))

    def list(
        self,
        page: int = 1,
        limit: int = 10,
        notice_status: NoticeStatus | None = None,
        trigger_type: TriggerType | None = None,
        loan_account_number: str | None = None,
        state_id: str | None = None,
        language_id: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        dpd_min: int | None = None,
        dpd_max: int | None = None,
    ) -> dict[str, Any]:
        filters = {
            "notice_status": notice_status.value if notice_status else None,
            "trigger_type": trigger_type.value if trigger_type else None,
            "loan_account_number__like": loan_account_number,
            "state_id": state_id,
            "language_id": language_id,
            "notice_generation_date__gte": date_from.isoformat() if date_from else None,
            "notice_generation_date__lte": date_to.isoformat() if date_to else None,
            "dpd_days__gte": dpd_min,
            "dpd_days__lte": dpd_max,
        }
        rows, meta = self._paged(filters, page, limit, sort=[("created_at", "DESC")])
        return {"notices": [self._with_names(r) for r in rows], **meta}

    def update_status(self, notice_id: str, data: NoticeStatusUpdate) -> dict[str, Any]:
        notice = self._require(notice_id)
        changes = {"notice_status": data.notice_status.value}
        if data.document_path is not None:
            changes["document_path"] = data.document_path
        if data.remarks is not None:
            changes["remarks"] = data.remarks
        updated = self.store.update(self.collection, notice_id, self._stamp_update(changes, data.updated_by))
        self.logger.info(
            f"Notice {notice['notice_code']} status {notice.get('notice_status')} -> {data.notice_status.value}"
        )
        return self._with_names(updated)

    # -------------------------------------------------------- acknowledgements

    def acknowledge(self, data: AcknowledgementCreate) -> dict[str, Any]:
        notice = self._require(data.notice_id)
        if notice.get("notice_status") == NoticeStatus.DRAFT.value:
            raise ValidationFailed("Draft notices cannot be acknowledged")
        if data.acknowledgement_date > today():
            raise ValidationFailed("Acknowledgement date cannot be in the future")

        doc = data.model_dump(mode="json", exclude={"created_by"})
        doc["acknowledgement_code"] = self._next_code("ACK")
        doc["loan_account_number"] = notice.get("loan_account_number")
        record = self.store.insert(
            "notice_acknowledgements", self._stamp_new(doc, data.created_by)
        )
        if data.status == AcknowledgementStatus.ACKNOWLEDGED:
            self.store.update(
                self.collection,
                notice["id"],
                self._stamp_update({"notice_status": NoticeStatus.ACKNOWLEDGED.value}, data.created_by),
            )
        self.logger.info(f"Recorded acknowledgement {record['acknowledgement_code']} for {notice['notice_code']}")
        return {**record, "notice_code": notice["notice_code"]}

    def get_acknowledgement(self, acknowledgement_id: str) -> dict[str, Any]:
        return self._require(acknowledgement_id, "notice_acknowledgements", "Acknowledgement")

    def list_acknowledgements(
        self,
        page: int = 1,
        limit: int = 10,
        notice_id: str | None = None,
        status: AcknowledgementStatus | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> dict[str, Any]:
        filters = {
            "notice_id": notice_id,
            "status": status.value if status else None,
            "acknowledgement_date__gte": date_from.isoformat() if date_from else None,
            "acknowledgement_date__lte": date_to.isoformat() if date_to else None,
        }
        rows, meta = self._paged(
            filters,
            page,
            limit,
            sort=[("acknowledgement_date", "DESC")],
            collection="notice_acknowledgements",
        )
        return {"acknowledgements": rows, **meta}

    def update_acknowledgement(self, acknowledgement_id: str, data: AcknowledgementUpdate) -> dict[str, Any]:
        existing = self.get_acknowledgement(acknowledgement_id)
        changes = data.model_dump(mode="json", exclude_unset=True, exclude={"updated_by"})
        ack_date = parse_date(changes.get("acknowledgement_date"))
        if ack_date and ack_date > today():
            raise ValidationFailed("Acknowledgement date cannot be in the future")
        updated = self.store.update(
            "notice_acknowledgements", acknowledgement_id, self._stamp_update(changes, data.updated_by)
        )
        if (
            changes.get("status") == AcknowledgementStatus.ACKNOWLEDGED.value
            and existing.get("status") != AcknowledgementStatus.ACKNOWLEDGED.value
        ):
            self.store.update(
                self.collection,
                existing["notice_id"],
                self._stamp_update({"notice_status": NoticeStatus.ACKNOWLEDGED.value}, data.updated_by),
            )
        return updated

    def _proof_storage(self) -> DocumentService:
        if self.documents is None:
            raise ServiceUnavailable("Document storage is not configured")
        return self.documents

    def upload_acknowledgement_proof(
        self, acknowledgement_id: str, file: UploadedFile, uploaded_by: str | None = None
    ) -> dict[str, Any]:
        """Store proof for an acknowledgement, replacing any earlier proof document."""
        documents = self._proof_storage()
        ack = self.get_acknowledgement(acknowledgement_id)
        previous_id = ack.get("proof_document_id")

        document = documents.upload(
            DocumentCreate(
                linked_entity_type=LinkedEntityType.LEGAL_NOTICE,
                linked_entity_id=ack["notice_id"],
                document_name=f"Acknowledgement proof {ack['acknowledgement_code']}",
                case_document_type=CaseDocumentType.OTHER,
                remarks_tags=["acknowledgement-proof"],
            ),
            file,
            uploaded_by=uploaded_by,
        )
        if previous_id:
            try:
                documents.delete(previous_id, deleted_by=uploaded_by, internal=True)
            except ResourceNotFound:
                self.logger.warning(f"Previous proof {previous_id} for {ack['acknowledgement_code']} already removed")

        updated = self.store.update(
            "notice_acknowledgements",
            acknowledgement_id,
            self._stamp_update(
                {"proof_of_acknowledgement": document["file_path"], "proof_document_id": document["id"]},
                uploaded_by,
            ),
        )
        self.logger.info(f"Stored proof {document['document_code']} for {ack['acknowledgement_code']}")
        return {
            "success": True,
            "acknowledgement": updated,
            "document": document,
            "replaced_existing": bool(previous_id),
            "previous_document_id": previous_id,
        }

    def acknowledgement_proof(self, acknowledgement_id: str, requester: str | None = None) -> dict[str, Any]:
        ack = self.get_acknowledgement(acknowledgement_id)
        if not ack.get("proof_document_id"):
            return {"has_proof": False, "message": "No proof file found for this acknowledgement"}
        document = self._proof_storage().get(ack["proof_document_id"], requester)
        return {
            "has_proof": True,
            "document_id": document["id"],
            "file_name": document.get("original_file_name"),
            "file_size_bytes": document.get("file_size_bytes"),
            "mime_type": document.get("mime_type"),
            "uploaded_at": document.get("created_at"),
            "uploaded_by": document.get("uploaded_by"),
        }

    def download_acknowledgement_proof(self, acknowledgement_id: str, requester: str | None = None) -> dict[str, Any]:
        ack = self.get_acknowledgement(acknowledgement_id)
        if not ack.get("proof_document_id"):
            raise ResourceNotFound(f"No proof file found for acknowledgement {ack['acknowledgement_code']}")
        return self._proof_storage().download(ack["proof_document_id"], requester)
