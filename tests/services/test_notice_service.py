from datetime import date, timedelta

import pytest

from legal_case_management.domain.errors import AccessDenied, ConflictError, ResourceNotFound, ValidationFailed
from legal_case_management.models.documents import UploadedFile
from legal_case_management.models.entities import (
    AcknowledgementStatus,
    MasterStatus,
    NoticeStatus,
    TriggerType,
)
from legal_case_management.models.notices import (
    AcknowledgementCreate,
    AcknowledgementUpdate,
    NoticeCreate,
    NoticePreviewRequest,
    NoticeStatusUpdate,
)
from legal_case_management.services.notices import channel_matches, channel_mode


@pytest.fixture
def notice_request(loan_account, state, language, sms_template, email_template):
    def _request(**overrides):
        fields = {
            "loan_account_number": loan_account["loan_account_number"],
            "dpd_days": 95,
            "trigger_type": TriggerType.DPD_THRESHOLD,
            "template_ids": [sms_template["id"], email_template["id"]],
            "communication_modes": ["SMS"],
            "state_id": state["id"],
            "language_id": language["id"],
            "notice_expiry_date": date.today() + timedelta(days=15),
            "legal_entity_name": "Recovery Finance Ltd.",
            "issued_by": "Legal Ops",
            "notice_status": NoticeStatus.SENT,
        }
        fields.update(overrides)
        return NoticeCreate(**fields)

    return _request


class TestChannelMatching:
    def test_exact_and_prefix_match(self):
        assert channel_matches("SMS", ["sms"]) == "sms"
        assert channel_matches("Email", ["EMAIL", "SMS"]) == "EMAIL"
        assert channel_matches("WhatsApp Business", ["whatsapp"]) == "whatsapp"

    def test_shortened_mode_matches_channel(self):
        assert channel_matches("sms", ["sm"]) == "sm"
        assert channel_matches("Email", ["sm"]) is None

    def test_no_match(self):
        assert channel_matches("Courier", ["SMS", "EMAIL"]) is None
        assert channel_matches("", ["SMS"]) is None

    def test_channel_mode(self):
        assert channel_mode("Bulk SMS").value == "SMS"
        assert channel_mode("E-Mail").value == "EMAIL"
        assert channel_mode("Fax") is None


class TestCreateNotice:
    @pytest.mark.asyncio
    async def test_create_sends_matching_templates(self, system, store, notice_request, sms_template):
        notice = await system.notices.create(notice_request())

        assert notice["notice_code"].startswith(f"PLN-{date.today():%Y%m%d}-")
        assert notice["borrower_name"] == "Rajesh Kumar"
        assert notice["state_name"] == "Maharashtra"
        assert notice["language_name"] == "English"
        assert notice["template_names"] == ["Reminder SMS", "Reminder Email"]

        assert len(notice["communications"]) == 1
        sent = notice["communications"][0]
        assert sent["template_id"] == sms_template["id"]
        assert sent["mode"] == "SMS"
        assert sent["delivery_status"] == "SENT"

        record = store.find_one("communications", {"message_id": sent["message_id"]})
        assert record["content"] == (
            f"Dear Rajesh Kumar, loan LN1001 is overdue by 95 days. Ref {notice['notice_code']}"
        )
        assert record["recipient_address"] == "9876543210"
        assert record["metadata"]["notice_id"] == notice["id"]

    @pytest.mark.asyncio
    async def test_shortened_mode_dispatches_to_sms_channel(self, system, notice_request, sms_template):
        notice = await system.notices.create(notice_request(communication_modes=["sm"]))

        [sent] = notice["communications"]
        assert sent["template_id"] == sms_template["id"]
        assert sent["mode"] == "SMS"

    @pytest.mark.asyncio
    async def test_templates_in_use_cannot_be_deleted(self, system, notice_request, sms_template, language):
        await system.notices.create(notice_request())

        with pytest.raises(ConflictError, match="used by 1 notice"):
            system.templates.delete(sms_template["id"])
        with pytest.raises(ConflictError):
            system.languages.delete(language["id"])

    @pytest.mark.asyncio
    async def test_email_mode_keeps_html_and_sets_subject(self, system, store, notice_request):
        notice = await system.notices.create(notice_request(communication_modes=["Email"]))

        sent = notice["communications"][0]
        assert sent["mode"] == "EMAIL"
        record = store.find_one("communications", {"message_id": sent["message_id"]})
        assert record["subject"] == f"Legal Notice {notice['notice_code']}"
        assert "<p>Dear Rajesh Kumar,</p>" in record["content"]
        assert record["recipient_address"] == "rajesh@example.com"

    @pytest.mark.asyncio
    async def test_gateway_receives_plain_text(self, store, settings, notice_request, sms_gateway):
        from legal_case_management.services.legal_system import LegalCaseSystem

        system = LegalCaseSystem(store=store, settings=settings, sms_gateway=sms_gateway)
        await system.notices.create(notice_request())

        sms_gateway.send_sms.assert_awaited_once()
        number, text = sms_gateway.send_sms.await_args.args
        assert number == "9876543210"
        assert text.startswith("Dear Rajesh Kumar")

    @pytest.mark.asyncio
    async def test_unknown_account(self, system, notice_request):
        with pytest.raises(ValidationFailed, match="not found in validated data"):
            await system.notices.create(notice_request(loan_account_number="LN404"))

    @pytest.mark.asyncio
    async def test_templates_required(self, system, notice_request):
        with pytest.raises(ValidationFailed, match="template"):
            await system.notices.create(notice_request(template_ids=[]))

    @pytest.mark.asyncio
    async def test_missing_template(self, system, notice_request):
        with pytest.raises(ResourceNotFound, match="nope"):
            await system.notices.create(notice_request(template_ids=["nope"]))

    @pytest.mark.asyncio
    async def test_inactive_template(self, system, notice_request, make_template, sms_channel, language):
        inactive = make_template(sms_channel, language, status=MasterStatus.INACTIVE.value)
        with pytest.raises(ValueError, match="not active"):
            await system.notices.create(notice_request(template_ids=[inactive["id"]]))

    @pytest.mark.asyncio
    async def test_duplicate_within_window(self, system, notice_request):
        first = await system.notices.create(notice_request())
        with pytest.raises(ConflictError, match=first["notice_code"]):
            await system.notices.create(notice_request())

        other_dpd = await system.notices.create(notice_request(dpd_days=120))
        assert other_dpd["dpd_days"] == 120

    @pytest.mark.asyncio
    async def test_unknown_state(self, system, notice_request):
        with pytest.raises(ResourceNotFound, match="State"):
            await system.notices.create(notice_request(state_id="missing"))

    @pytest.mark.asyncio
    async def test_expiry_in_past(self, system, notice_request):
        with pytest.raises(ValidationFailed, match="expiry"):
            await system.notices.create(notice_request(notice_expiry_date=date.today() - timedelta(days=1)))


class TestNoticeQueries:
    def test_preview_renders_without_storing(self, system, store, sms_template, loan_account):
        result = system.notices.preview(
            NoticePreviewRequest(template_id=sms_template["id"], loan_account_number="LN1001", dpd_days=60)
        )
        assert result["rendered_html"].startswith("Dear Rajesh Kumar, loan LN1001 is overdue by 60 days.")
        assert result["character_count"] == len(result["rendered_html"].strip())
        assert store.count("legal_notices") == 0

    @pytest.mark.asyncio
    async def test_list_and_status_update(self, system, notice_request):
        notice = await system.notices.create(notice_request())

        listing = system.notices.list(loan_account_number="ln10")
        assert listing["total"] == 1
        assert listing["notices"][0]["state_name"] == "Maharashtra"
        assert system.notices.list(notice_status=NoticeStatus.DRAFT)["total"] == 0
        assert system.notices.list(dpd_min=100)["total"] == 0

        updated = system.notices.update_status(
            notice["id"], NoticeStatusUpdate(notice_status=NoticeStatus.FAILED, remarks="Courier returned")
        )
        assert updated["notice_status"] == NoticeStatus.FAILED.value
        assert updated["remarks"] == "Courier returned"


class TestAcknowledgements:
    @pytest.mark.asyncio
    async def test_acknowledge_marks_notice(self, system, notice_request):
        notice = await system.notices.create(notice_request())

        ack = system.notices.acknowledge(
            AcknowledgementCreate(
                notice_id=notice["id"], acknowledged_by="Sunita Kumar", acknowledgement_date=date.today()
            )
        )

        assert ack["acknowledgement_code"].startswith("ACK-")
        assert ack["notice_code"] == notice["notice_code"]
        assert ack["loan_account_number"] == "LN1001"
        assert system.notices.get(notice["id"])["notice_status"] == NoticeStatus.ACKNOWLEDGED.value
        assert system.notices.list_acknowledgements(notice_id=notice["id"])["total"] == 1

    @pytest.mark.asyncio
    async def test_draft_notice_cannot_be_acknowledged(self, system, notice_request):
        notice = await system.notices.create(notice_request(notice_status=NoticeStatus.DRAFT))
        with pytest.raises(ValidationFailed, match="Draft"):
            system.notices.acknowledge(
                AcknowledgementCreate(notice_id=notice["id"], acknowledged_by="X", acknowledgement_date=date.today())
            )

    @pytest.mark.asyncio
    async def test_future_acknowledgement_date(self, system, notice_request):
        notice = await system.notices.create(notice_request())
        with pytest.raises(ValidationFailed, match="future"):
            system.notices.acknowledge(
                AcknowledgementCreate(
                    notice_id=notice["id"],
                    acknowledged_by="X",
                    acknowledgement_date=date.today() + timedelta(days=1),
                )
            )

    @pytest.mark.asyncio
    async def test_pending_acknowledgement_then_confirmed(self, system, notice_request):
        notice = await system.notices.create(notice_request())
        ack = system.notices.acknowledge(
            AcknowledgementCreate(
                notice_id=notice["id"],
                acknowledged_by="Watchman",
                acknowledgement_date=date.today(),
                status=AcknowledgementStatus.PENDING_VERIFICATION,
            )
        )
        assert system.notices.get(notice["id"])["notice_status"] == NoticeStatus.SENT.value

        system.notices.update_acknowledgement(
            ack["id"], AcknowledgementUpdate(status=AcknowledgementStatus.ACKNOWLEDGED)
        )
        assert system.notices.get(notice["id"])["notice_status"] == NoticeStatus.ACKNOWLEDGED.value

    @pytest.mark.asyncio
    async def test_proof_upload_replaces_previous_document(self, system, store, notice_request):
        notice = await system.notices.create(notice_request())
        ack = system.notices.acknowledge(
            AcknowledgementCreate(notice_id=notice["id"], acknowledged_by="Watchman", acknowledgement_date=date.today())
        )
        assert system.notices.acknowledgement_proof(ack["id"]) == {
            "has_proof": False,
            "message": "No proof file found for this acknowledgement",
        }

        first = system.notices.upload_acknowledgement_proof(
            ack["id"], UploadedFile(filename="receipt.jpg", content_type="image/jpeg", content=b"\xff\xd8one"),
            uploaded_by="clerk",
        )
        assert first["replaced_existing"] is False
        assert first["document"]["linked_entity_id"] == notice["id"]
        assert first["document"]["remarks_tags"] == ["acknowledgement-proof"]
        assert first["acknowledgement"]["proof_of_acknowledgement"] == first["document"]["file_path"]

        second = system.notices.upload_acknowledgement_proof(
            ack["id"], UploadedFile(filename="receipt.pdf", content_type="application/pdf", content=b"%PDF-1.4 two"),
            uploaded_by="clerk",
        )
        assert second["replaced_existing"] is True
        assert second["previous_document_id"] == first["document"]["id"]
        assert store.get("documents", first["document"]["id"])["status"] == "Deleted"

        proof = system.notices.acknowledgement_proof(ack["id"], requester="clerk")
        assert proof["has_proof"] is True
        assert proof["document_id"] == second["document"]["id"]
        assert proof["file_name"] == "receipt.pdf"

        download = system.notices.download_acknowledgement_proof(ack["id"], requester="clerk")
        assert download["file_path"] == second["document"]["file_path"]
        with pytest.raises(AccessDenied):
            system.notices.download_acknowledgement_proof(ack["id"])

    def test_proof_for_unknown_acknowledgement(self, system):
        with pytest.raises(ResourceNotFound):
            system.notices.acknowledgement_proof("missing")
