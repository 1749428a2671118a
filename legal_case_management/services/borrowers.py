from __future__ import annotations

from typing import Any

from legal_case_management.domain.errors import ConflictError, ValidationFailed
from legal_case_management.models.cases import LoanAccountCreate
from legal_case_management.services.base import StoreBackedService


class BorrowerDirectory(StoreBackedService):
    """Validated borrower / loan account records fed in by data ingestion."""

    collection = "loan_accounts"
    label = "Loan account"

    def register(self, data: LoanAccountCreate, created_by: str | None = None) -> dict[str, Any]:
        if self.store.find_one(self.collection, {"loan_account_number": data.loan_account_number}):
            raise ConflictError(f"Loan account {data.loan_account_number} already exists")
        doc = data.model_dump(mode="json")
        if doc["outstanding_amount"] is None:
            doc["outstanding_amount"] = round(
                data.principal_outstanding + data.interest_outstanding + data.penalty_amount, 2
            )
        record = self.store.insert(self.collection, self._stamp_new(doc, created_by))
        self.logger.info(f"Registered loan account {data.loan_account_number}")
        return record

    def find_borrower(self, loan_account_number: str) -> dict[str, Any] | None:
        return self.store.find_one(self.collection, {"loan_account_number": loan_account_number})

    def get_borrower(self, loan_account_number: str) -> dict[str, Any]:
        """Return the borrower record or raise ValidationFailed when the account is unknown."""
        record = self.find_borrower(loan_account_number)
        if record is None:
            raise ValidationFailed(f"Loan account {loan_account_number} not found in validated data")
        return record

    def list(self, page: int = 1, limit: int = 10, search: str | None = None) -> dict[str, Any]:
        rows, meta = self._paged(
            {},
            page,
            limit,
            sort=[("loan_account_number", "ASC")],
            search=(["loan_account_number", "borrower_name"], search) if search else None,
        )
        return {"loan_accounts": rows, **meta}
