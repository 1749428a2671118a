"""
Notice rendering pipeline.

Gathers borrower and loan data, masks sensitive fields, scores data quality,
renders through the template engine, checks compliance and decorates the output
with document metadata, delivery instructions and an audit trail.
"""

from __future__ import annotations

import asyncio
import copy
import hashlib
import html
import logging
import re
import secrets
import time
from datetime import timedelta
from typing import Any

from legal_case_management.models.entities import CommunicationMode, OutputFormat
from legal_case_management.models.notices import RenderNoticeRequest, RenderOptions
from legal_case_management.services.borrowers import BorrowerDirectory
from legal_case_management.services.template_engine import (
    REQUIRED_DATA_FIELDS,
    TEMPLATE_VERSION,
    TemplateEngine,
    get_nested,
)
from legal_case_management.utils.dates import parse_date, today, utc_now, utc_now_iso

BATCH_SIZE = 5
RETENTION_DAYS = 2555  # seven years
GRACE_PERIOD_DAYS = 15
HIGH_URGENCY_DPD = 90

QUALITY_FIELDS = [
    "borrower.name",
    "borrower.phone",
    "loanAccount.accountNumber",
    "loanAccount.outstandingAmount",
    "notice.noticeCode",
]

MODE_LABELS = {
    CommunicationMode.EMAIL: "Email",
    CommunicationMode.SMS: "SMS",
    CommunicationMode.WHATSAPP: "WhatsApp",
    CommunicationMode.COURIER: "Courier",
    CommunicationMode.POST: "Post",
    CommunicationMode.PHYSICAL_DELIVERY: "Physical Delivery",
}

WATERMARK_STYLE = (
    "<style>.watermark { position: fixed; top: 50%; left: 50%; "
    "transform: translate(-50%, -50%) rotate(-45deg); font-size: 48px; "
    "color: rgba(0,0,0,0.1); z-index: -1; pointer-events: none; }</style>"
)


# ---------------------------------------------------------------------- masking


def mask_phone(value: str) -> str:
    return re.sub(r"(\d{2})(\d{4})(\d{4})", r"\1****\3", value)


def mask_email(value: str) -> str:
    if "@" not in value:
        return value
    user, domain = value.split("@", 1)
    return f"{user[:2]}****@{domain}"


def mask_pan(value: str) -> str:
    return re.sub(r"(.{3})(.{4})(.{3})", r"\1****\3", value)


def mask_aadhaar(value: str) -> str:
    return re.sub(r"(\d{4})\s?(\d{4})\s?(\d{4})", r"\1 **** \3", value)


_MASKERS = {
    "phone": mask_phone,
    "email": mask_email,
    "panNumber": mask_pan,
    "aadharNumber": mask_aadhaar,
}


def mask_sensitive_data(data: dict[str, Any]) -> dict[str, Any]:
    masked = copy.deepcopy(data)
    borrower = masked.get("borrower") or {}
    for field, masker in _MASKERS.items():
        if borrower.get(field):
            borrower[field] = masker(str(borrower[field]))
    return masked


# -------------------------------------------------------------------- checks


def assess_data_quality(data: dict[str, Any]) -> dict[str, Any]:
    missing = [f for f in QUALITY_FIELDS if not get_nested(data, f)]
    completeness = round((len(QUALITY_FIELDS) - len(missing)) / len(QUALITY_FIELDS) * 100)

    last_payment = parse_date(get_nested(data, "loanAccount.lastPaymentDate"))
    days_since_payment = (today() - last_payment).days if last_payment else None
    freshness = max(0, 100 - days_since_payment * 2) if days_since_payment is not None else 0
    accuracy = 95

    issues = [f"Missing field: {f}" for f in missing]
    if days_since_payment is None or days_since_payment > 30:
        issues.append("Data outdated: last payment date is more than 30 days old or unknown")
    return {
        "score": round((completeness + freshness + accuracy) / 3),
        "completeness": completeness,
        "freshness": freshness,
        "accuracy": accuracy,
        "issues": issues,
    }


def check_compliance(data: dict[str, Any], character_count: int, max_characters: int, warnings: list[str]) -> dict[str, Any]:
    violations = [f"Missing mandatory field: {f}" for f in REQUIRED_DATA_FIELDS if not get_nested(data, f)]
    if character_count > max_characters:
        violations.append(
            f"Content exceeds character limit: {character_count}/{max_characters}"
        )
    return {"is_compliant": not violations, "violations": violations, "warnings": list(warnings)}


def apply_enhancements(content: str, options: RenderOptions) -> str:
    if options.watermark:
        content = content.replace("</head>", f"{WATERMARK_STYLE}</head>", 1)
        content = re.sub(
            r"<body>", lambda _: f'<body>\n    <div class="watermark">{html.escape(options.watermark)}</div>', content, count=1
        )
    if options.custom_css:
        content = content.replace("</head>", f"<style>{options.custom_css}</style></head>", 1)
    if options.footer_text:
        content = content.replace(
            "</body>", f'<div class="document-footer"><p>{html.escape(options.footer_text)}</p></div></body>', 1
        )
    return content


def preview_notice_code() -> str:
    return f"PLN-{today().strftime('%Y%m%d')}-{secrets.randbelow(999) + 1:03d}"


class NoticeRenderer:
    """Renders pre-legal notices for a loan account from a stored notice template."""

    def __init__(self, borrowers: BorrowerDirectory, engine: TemplateEngine, settings=None):
        self.borrowers = borrowers
        self.engine = engine
        self.settings = settings or engine.settings
        self.logger = logging.getLogger(__name__)

    def gather_data(
        self,
        loan_account_number: str,
        dpd_days: int = 0,
        legal_entity_name: str = "",
        communication_modes: list[CommunicationMode] | None = None,
        requested_by: str | None = None,
    ) -> dict[str, Any]:
        account = self.borrowers.get_borrower(loan_account_number)
        principal = float(account.get("principal_outstanding") or 0)
        interest = float(account.get("interest_outstanding") or 0)
        penalty = float(account.get("penalty_amount") or 0)
        overdue = principal + interest
        total = round(overdue + penalty, 2)
        dpd = dpd_days or int(account.get("current_dpd") or 0)
        name = account.get("borrower_name") or ""
        now = today()

        return {
            "borrower": {
                "name": name,
                "firstName": name.split(" ")[0] if name else "",
                "lastName": name.split(" ")[-1] if name else "",
                "phone": account.get("borrower_mobile") or "",
                "email": account.get("borrower_email") or "",
                "address": account.get("borrower_address") or "",
                "panNumber": account.get("pan") or "",
                "aadharNumber": account.get("aadhaar") or "",
            },
            "loanAccount": {
                "accountNumber": account["loan_account_number"],
                "productType": account.get("product_type"),
                "branchCode": account.get("branch_code"),
                "loanAmount": float(account.get("loan_amount") or 0),
                "outstandingAmount": float(account.get("outstanding_amount") or 0),
                "principalOutstanding": principal,
                "interestOutstanding": interest,
                "penaltyAmount": penalty,
                "totalOutstanding": total,
                "totalDue": total,
                "dpdDays": dpd,
                "lastPaymentDate": parse_date(account.get("last_payment_date")),
                "lastPaymentAmount": float(account.get("last_payment_amount") or 0),
                "emi": float(account.get("emi_amount") or 0),
            },
            "notice": {
                "noticeCode": preview_notice_code(),
                "noticeType": "Pre-Legal Notice",
                "generationDate": now,
                "expiryDate": now + timedelta(days=GRACE_PERIOD_DAYS),
                "dueDate": now + timedelta(days=7),
                "dpdDays": dpd,
                "legalEntityName": legal_entity_name or self.settings.legal_company_name,
                "communicationModes": [MODE_LABELS[m] for m in communication_modes or []],
            },
            "legal": {
                "entityName": legal_entity_name or self.settings.legal_company_name,
                "companyName": self.settings.legal_company_name,
                "companyAddress": self.settings.legal_company_address,
                "authorizedSignatory": self.settings.legal_signatory,
            },
            "calculations": {
                "overdueDays": dpd,
                "overdueAmount": round(overdue, 2),
                "lateFees": round(penalty * 0.2, 2),
                "totalDue": total,
                "minimumPayment": round(max(5000.0, overdue * 0.1), 2),
                "gracePeriod": GRACE_PERIOD_DAYS,
            },
            "system": {
                "currentDate": now,
                "generatedBy": requested_by or self.settings.system_user,
                "version": TEMPLATE_VERSION,
            },
        }

    @staticmethod
    def document_metadata(template_id: str, data: dict[str, Any], content: str) -> dict[str, Any]:
        return {
            "document_id": f"DOC-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}",
            "document_type": "Pre-Legal Notice",
            "generated_for": get_nested(data, "borrower.name"),
            "generated_at": utc_now_iso(),
            "template_used": template_id,
            "classification": "CONFIDENTIAL",
            "retention_days": RETENTION_DAYS,
            "checksum": hashlib.sha256(content.encode("utf-8")).hexdigest(),
        }

    @staticmethod
    def delivery_instructions(dpd_days: int, modes: list[CommunicationMode]) -> dict[str, Any]:
        channels = [MODE_LABELS[m] for m in modes] or [MODE_LABELS[CommunicationMode.EMAIL]]
        return {
            "primary_mode": channels[0],
            "backup_modes": channels[1:],
            "recommended_channels": channels,
            "urgency": "HIGH" if dpd_days > HIGH_URGENCY_DPD else "MEDIUM",
            "delivery_schedule": (utc_now() + timedelta(hours=24)).isoformat(),
            "tracking_enabled": True,
        }

    def audit_trail(self, request: RenderNoticeRequest) -> dict[str, Any]:
        trail = {
            "requested_by": request.requested_by or self.settings.system_user,
            "requested_at": utc_now_iso(),
            "loan_account_number": request.loan_account_number,
            "template_id": request.template_id,
            "data_accessed": ["loan_accounts", "notice_templates"],
            "masking_applied": request.options.mask_sensitive_data,
            "security_level": "CONFIDENTIAL",
        }
        self.logger.info(
            f"Notice rendered for {request.loan_account_number} with template {request.template_id} "
            f"by {trail['requested_by']}"
        )
        return trail

    def render_notice(self, request: RenderNoticeRequest) -> dict[str, Any]:
        options = request.options
        data = self.gather_data(
            request.loan_account_number,
            request.dpd_days,
            request.legal_entity_name,
            options.communication_modes,
            request.requested_by,
        )
        if options.mask_sensitive_data:
            data = mask_sensitive_data(data)
        quality = assess_data_quality(data)

        rendered = self.engine.render(
            request.template_id,
            data,
            request.output_format,
            generated_by=request.requested_by,
        )
        metadata = rendered["metadata"]
        compliance = check_compliance(
            data,
            metadata["character_count"],
            self.settings.notice_max_characters,
            metadata["warnings"],
        )

        content = rendered["content"]
        if request.output_format != OutputFormat.PLAIN_TEXT:
            content = apply_enhancements(content, options)

        result = {
            "content": content,
            "format": rendered["format"],
            "metadata": metadata,
            "document_metadata": self.document_metadata(request.template_id, data, content),
            "data_quality": quality,
            "compliance": compliance,
            "delivery_instructions": self.delivery_instructions(
                data["loanAccount"]["dpdDays"], options.communication_modes
            ),
        }
        if options.include_audit_trail:
            result["audit_trail"] = self.audit_trail(request)
        return result

    async def render_batch(self, requests: list[RenderNoticeRequest]) -> dict[str, Any]:
        """Render notices in batches of five. Failed items are logged and reported, not raised."""
        self.logger.info(f"Starting batch rendering for {len(requests)} accounts")
        results: list[dict[str, Any]] = []
        failed: list[str] = []
        for start in range(0, len(requests), BATCH_SIZE):
            batch = requests[start : start + BATCH_SIZE]
            outcomes = await asyncio.gather(
                *(asyncio.to_thread(self.render_notice, r) for r in batch),
                return_exceptions=True,
            )
            for request, outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    self.logger.error(
                        f"Batch rendering failed for account {request.loan_account_number}: {outcome}"
                    )
                    failed.append(request.loan_account_number)
                else:
                    results.append({"loan_account_number": request.loan_account_number, **outcome})
        self.logger.info(f"Batch rendering completed: {len(results)}/{len(requests)} successful")
        return {
            "results": results,
            "failed": failed,
            "total": len(requests),
            "succeeded": len(results),
        }
