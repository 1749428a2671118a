"""
Recovery trigger detection and tracking.

Detection runs a loan account through an ordered list of validation rules and
classifies it as ELIGIBLE, INELIGIBLE or PENDING_REVIEW for legal action.
Detected events are returned to the caller; ``create`` persists a trigger.
"""

from __future__ import annotations

import time
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable

from legal_case_management.domain.errors import ResourceNotFound
from legal_case_management.models.entities import (
    EligibilityStatus,
    RuleSeverity,
    TriggerSeverity,
    TriggerStatus,
    TriggerType,
)
from legal_case_management.models.notices import TriggerCreate, TriggerStatusUpdate
from legal_case_management.services.base import StoreBackedService
from legal_case_management.services.borrowers import BorrowerDirectory
from legal_case_management.utils.dates import utc_now, utc_now_iso

RECENT_NOTICE_DAYS = 7
BLOCKING_SEVERITIES = {RuleSeverity.ERROR, RuleSeverity.CRITICAL}


def severity_for_dpd(dpd_days: int) -> TriggerSeverity:
    if dpd_days >= 180:
        return TriggerSeverity.CRITICAL
    if dpd_days >= 90:
        return TriggerSeverity.HIGH
    if dpd_days >= 60:
        return TriggerSeverity.MEDIUM
    return TriggerSeverity.LOW


@dataclass
class RuleContext:
    loan_account_number: str
    trigger_type: str
    account: dict[str, Any] | None
    dpd_days: int
    outstanding_amount: float


@dataclass
class RuleOutcome:
    rule_id: str
    passed: bool
    severity: RuleSeverity
    message: str


@dataclass
class ValidationRule:
    rule_id: str
    name: str
    severity: RuleSeverity
    check: Callable[[RuleContext], tuple[bool, str]]
    enabled: bool = True
    # severity reported when the check passes; None means the outcome is not reported
    pass_severity: RuleSeverity | None = None
    recommendation: str = ""


@dataclass
class ValidationResult:
    outcomes: list[RuleOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[RuleOutcome]:
        return [o for o in self.outcomes if not o.passed]

    @property
    def errors(self) -> list[str]:
        return [o.message for o in self.failed if o.severity in BLOCKING_SEVERITIES]

    @property
    def warnings(self) -> list[str]:
        return [o.message for o in self.failed if o.severity == RuleSeverity.WARNING]

    @property
    def info(self) -> list[str]:
        return [o.message for o in self.outcomes if o.severity == RuleSeverity.INFO]

    @property
    def eligibility(self) -> EligibilityStatus:
        if self.errors:
            return EligibilityStatus.INELIGIBLE
        if self.warnings:
            return EligibilityStatus.PENDING_REVIEW
        return EligibilityStatus.ELIGIBLE

    def as_dict(self) -> dict[str, Any]:
        return {
            "is_valid": not self.errors,
            "errors": self.errors,
            "warnings": self.warnings,
            "info": self.info,
            "failed_rules": [o.rule_id for o in self.failed],
        }


class TriggerService(StoreBackedService):
    collection = "recovery_triggers"
    label = "Trigger"

    def __init__(self, store, borrowers: BorrowerDirectory, buckets=None, settings=None):
        super().__init__(store, settings)
        self.borrowers = borrowers
        self.buckets = buckets
        self._rules = self._build_rules()

    # ------------------------------------------------------------------ rules

    def _build_rules(self) -> list[ValidationRule]:
        min_dpd = self.settings.min_notice_dpd
        high_value = self.settings.high_value_threshold
        return [
            ValidationRule(
                "BR001",
                "Minimum DPD",
                RuleSeverity.ERROR,
                lambda ctx: (
                    ctx.dpd_days >= min_dpd,
                    f"DPD {ctx.dpd_days} is below the minimum of {min_dpd} days for legal notice",
                ),
                recommendation=f"Wait until the account reaches {min_dpd} DPD",
            ),
            ValidationRule(
                "BR002",
                "Positive outstanding",
                RuleSeverity.ERROR,
                lambda ctx: (ctx.outstanding_amount > 0, "Outstanding amount must be greater than zero"),
                recommendation="Verify the outstanding balance with the loan servicing system",
            ),
            ValidationRule(
                "BR003",
                "No recent notice",
                RuleSeverity.WARNING,
                self._no_recent_notice,
                recommendation=f"Review the notice issued in the last {RECENT_NOTICE_DAYS} days before sending another",
            ),
            ValidationRule(
                "TR001",
                "Supported trigger type",
                RuleSeverity.ERROR,
                lambda ctx: (
                    ctx.trigger_type in {t.value for t in TriggerType},
                    f"Unsupported trigger type: {ctx.trigger_type}",
                ),
            ),
            ValidationRule(
                "TR002",
                "Account exists",
                RuleSeverity.ERROR,
                lambda ctx: (
                    ctx.account is not None,
                    f"Loan account {ctx.loan_account_number} not found in validated data",
                ),
                recommendation="Check that the account has been ingested",
            ),
            ValidationRule(
                "CR001",
                "DPD bucket configured",
                RuleSeverity.WARNING,
                self._bucket_configured,
                pass_severity=RuleSeverity.INFO,
                recommendation="Configure a DPD bucket covering this account's DPD",
            ),
            ValidationRule(
                "RR001",
                "High value account",
                RuleSeverity.WARNING,
                lambda ctx: (
                    ctx.outstanding_amount < high_value,
                    f"High value account: outstanding {ctx.outstanding_amount:.2f} exceeds {high_value:.2f}",
                ),
                recommendation="Escalate to a senior reviewer before legal action",
            ),
        ]

    def _no_recent_notice(self, ctx: RuleContext) -> tuple[bool, str]:
        since = (utc_now() - timedelta(days=RECENT_NOTICE_DAYS)).isoformat()
        recent = self.store.count(
            "legal_notices",
            {"loan_account_number": ctx.loan_account_number, "created_at__gte": since},
        )
        return recent == 0, f"{recent} notice(s) issued for this account in the last {RECENT_NOTICE_DAYS} days"

    def _bucket_configured(self, ctx: RuleContext) -> tuple[bool, str]:
        if self.buckets is None:
            return False, "DPD bucket lookup unavailable"
        bucket = self.buckets.bucket_for_dpd(ctx.dpd_days)
        if bucket is None:
            return False, f"No active DPD bucket covers {ctx.dpd_days} days"
        return True, f"DPD {ctx.dpd_days} falls in bucket {bucket['bucket_name']}"

    def rules(self) -> list[dict[str, Any]]:
        return [
            {
                "rule_id": r.rule_id,
                "name": r.name,
                "severity": r.severity.value,
                "enabled": r.enabled,
            }
            for r in self._rules
        ]

    def set_rule_enabled(self, rule_id: str, enabled: bool) -> dict[str, Any]:
        for rule in self._rules:
            if rule.rule_id == rule_id:
                rule.enabled = enabled
                self.logger.info(f"Rule {rule_id} {'enabled' if enabled else 'disabled'}")
                return {"rule_id": rule_id, "enabled": enabled}
        raise ResourceNotFound(f"Validation rule {rule_id} not found")

    def validate(self, ctx: RuleContext) -> ValidationResult:
        result = ValidationResult()
        for rule in self._rules:
            if not rule.enabled:
                continue
            try:
                passed, message = rule.check(ctx)
            except Exception as e:
                self.logger.error(f"Rule {rule.rule_id} raised: {e}")
                passed, message = False, f"Rule {rule.rule_id} could not be evaluated: {e}"
            if passed and rule.pass_severity is None:
                continue
            result.outcomes.append(
                RuleOutcome(rule.rule_id, passed, rule.pass_severity if passed else rule.severity, message)
            )
        return result

    def recommendations(self, result: ValidationResult) -> list[str]:
        by_id = {r.rule_id: r for r in self._rules}
        recs = [by_id[o.rule_id].recommendation for o in result.failed if by_id[o.rule_id].recommendation]
        if result.eligibility == EligibilityStatus.ELIGIBLE:
            recs.append("Account is eligible for legal notice generation")
        return recs

    # -------------------------------------------------------------- detection

    def _context(self, loan_account_number: str, trigger_type: str) -> RuleContext:
        account = self.borrowers.find_borrower(loan_account_number)
        return RuleContext(
            loan_account_number=loan_account_number,
            trigger_type=trigger_type,
            account=account,
            dpd_days=int((account or {}).get("current_dpd") or 0),
            outstanding_amount=float((account or {}).get("outstanding_amount") or 0),
        )

    def detect_for_account(
        self, loan_account_number: str, trigger_types: list[str] | None = None
    ) -> list[dict[str, Any]]:
        events = []
        for trigger_type in trigger_types or [TriggerType.DPD_THRESHOLD.value]:
            ctx = self._context(loan_account_number, trigger_type)
            result = self.validate(ctx)
            account = ctx.account or {}
            events.append(
                {
                    "id": uuid.uuid4().hex,
                    "loan_account_number": loan_account_number,
                    "borrower_name": account.get("borrower_name"),
                    "trigger_type": trigger_type,
                    "dpd_days": ctx.dpd_days,
                    "outstanding_amount": ctx.outstanding_amount,
                    "last_payment_date": account.get("last_payment_date"),
                    "detected_at": utc_now_iso(),
                    "severity": severity_for_dpd(ctx.dpd_days).value,
                    "eligibility_status": result.eligibility.value,
                    "validation": result.as_dict(),
                    "recommendations": self.recommendations(result),
                }
            )
        return events

    def run_manual_detection(
        self, account_numbers: list[str], trigger_types: list[str] | None = None
    ) -> dict[str, Any]:
        started = time.perf_counter()
        eligible, ineligible, errors = [], [], []
        for account_number in account_numbers:
            try:
                for event in self.detect_for_account(account_number, trigger_types):
                    if event["eligibility_status"] == EligibilityStatus.INELIGIBLE.value:
                        ineligible.append(event)
                    else:
                        eligible.append(event)
            except Exception as e:
                self.logger.error(f"Trigger detection failed for {account_number}: {e}")
                errors.append({"account_number": account_number, "error": str(e)})

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        self.logger.info(
            f"Manual detection over {len(account_numbers)} accounts: "
            f"{len(eligible)} eligible, {len(ineligible)} ineligible, {len(errors)} errors in {elapsed_ms}ms"
        )
        return {
            "eligible_accounts": eligible,
            "ineligible_accounts": ineligible,
            "errors": errors,
            "execution_time_ms": elapsed_ms,
        }

    # ------------------------------------------------------------------- CRUD

    def create(self, data: TriggerCreate) -> dict[str, Any]:
        account = self.borrowers.get_borrower(data.loan_account_number)
        ctx = self._context(data.loan_account_number, data.trigger_type.value)
        result = self.validate(ctx)
        doc = {
            "trigger_code": self._next_code("TRG"),
            "loan_account_number": data.loan_account_number,
            "borrower_name": account.get("borrower_name"),
            "trigger_type": data.trigger_type.value,
            "dpd_days": ctx.dpd_days,
            "outstanding_amount": ctx.outstanding_amount,
            "severity": (data.severity or severity_for_dpd(ctx.dpd_days)).value,
            "status": TriggerStatus.OPEN.value,
            "criteria": data.criteria,
            "action_required": data.action_required,
            "eligibility_status": result.eligibility.value,
            "validation": result.as_dict(),
            "remarks": None,
        }
        record = self.store.insert(self.collection, self._stamp_new(doc, data.created_by))
        self.logger.info(
            f"Created trigger {record['trigger_code']} for {data.loan_account_number} ({record['eligibility_status']})"
        )
        return record

    def get(self, trigger_id: str) -> dict[str, Any]:
        return self._require(trigger_id)

    def list(
        self,
        page: int = 1,
        limit: int = 10,
        status: TriggerStatus | None = None,
        severity: TriggerSeverity | None = None,
        trigger_type: TriggerType | None = None,
        loan_account_number: str | None = None,
    ) -> dict[str, Any]:
        filters = {
            "status": status.value if status else None,
            "severity": severity.value if severity else None,
            "trigger_type": trigger_type.value if trigger_type else None,
            "loan_account_number__like": loan_account_number,
        }
        rows, meta = self._paged(filters, page, limit, sort=[("created_at", "DESC")])
        return {"triggers": rows, **meta}

    def update_status(self, trigger_id: str, data: TriggerStatusUpdate) -> dict[str, Any]:
        trigger = self._require(trigger_id)
        changes: dict[str, Any] = {"status": data.status.value}
        if data.remarks is not None:
            changes["remarks"] = data.remarks
        updated = self.store.update(self.collection, trigger_id, self._stamp_update(changes, data.updated_by))
        self.logger.info(f"Trigger {trigger['trigger_code']} status {trigger['status']} -> {data.status.value}")
        return updated

    def statistics(self) -> dict[str, Any]:
        rows = self.store.find(self.collection, {})
        return {
            "total": len(rows),
            "by_severity": dict(Counter(r.get("severity") for r in rows)),
            "by_status": dict(Counter(r.get("status") for r in rows)),
            "by_type": dict(Counter(r.get("trigger_type") for r in rows)),
            "by_eligibility": dict(Counter(r.get("eligibility_status") for r in rows)),
        }
