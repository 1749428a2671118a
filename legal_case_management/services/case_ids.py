"""
Case identifier generation and validation.

Identifiers take the form ``PREFIX-YYYYMMDD[-CATEGORY]-NNNN``. The sequence is a
per-day (and per-category) counter kept in the store, so concurrent requests
never receive the same number.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

from legal_case_management.domain.errors import ValidationFailed
from legal_case_management.services.base import StoreBackedService
from legal_case_management.utils.dates import date_stamp

SEQUENCE_WIDTH = 4

_PREFIX_RE = re.compile(r"^[A-Z]{2,4}$")
_CATEGORY_RE = re.compile(r"^[A-Z0-9]{1,10}$")
_SEQUENCE_RE = re.compile(r"^\d{3,4}$")


def counter_name(prefix: str, stamp: str, category_code: str | None = None) -> str:
    return f"{prefix}-{stamp}-{category_code}" if category_code else f"{prefix}-{stamp}"


def format_case_id(prefix: str, stamp: str, sequence: int, category_code: str | None = None) -> str:
    return f"{counter_name(prefix, stamp, category_code)}-{sequence:0{SEQUENCE_WIDTH}d}"


def validate_case_id(case_id: str) -> dict[str, Any]:
    """Check the structure of a case id without touching storage.

    Returns:
        Dict with ``is_valid``, ``errors`` and the parsed ``parts``.
    """
    errors: list[str] = []
    parts = (case_id or "").split("-")
    parsed: dict[str, Any] = {}

    if len(parts) not in (3, 4):
        return {
            "is_valid": False,
            "errors": ["Case ID must have 3 or 4 hyphen-separated parts"],
            "parts": parsed,
        }

    prefix, stamp = parts[0], parts[1]
    category = parts[2] if len(parts) == 4 else None
    sequence = parts[-1]
    parsed = {"prefix": prefix, "date_stamp": stamp, "category_code": category, "sequence": sequence}

    if not _PREFIX_RE.match(prefix):
        errors.append("Prefix must be 2-4 uppercase letters")
    if not re.fullmatch(r"\d{8}", stamp):
        errors.append("Date stamp must be 8 digits (YYYYMMDD)")
    else:
        try:
            datetime.strptime(stamp, "%Y%m%d")
        except ValueError:
            errors.append("Date stamp is not a valid calendar date")
    if category is not None and not _CATEGORY_RE.match(category):
        errors.append("Category code must be 1-10 uppercase alphanumerics")
    if not _SEQUENCE_RE.match(sequence):
        errors.append("Sequence must be 3 or 4 digits")

    return {"is_valid": not errors, "errors": errors, "parts": parsed}


class CaseIdService(StoreBackedService):
    collection = "legal_cases"

    def _prefix(self, prefix: str | None) -> str:
        prefix = (prefix or self.settings.case_id_prefix).upper()
        if not _PREFIX_RE.match(prefix):
            raise ValidationFailed("Prefix must be 2-4 uppercase letters")
        return prefix

    @staticmethod
    def _category(category_code: str | None) -> str | None:
        if not category_code:
            return None
        category_code = category_code.upper()
        if not _CATEGORY_RE.match(category_code):
            raise ValidationFailed("Category code must be 1-10 uppercase alphanumerics")
        return category_code

    def generate_case_id(
        self,
        prefix: str | None = None,
        category_code: str | None = None,
        on: date | None = None,
    ) -> dict[str, Any]:
        prefix = self._prefix(prefix)
        category_code = self._category(category_code)
        stamp = date_stamp(on)

        sequence = self.store.next_sequence(counter_name(prefix, stamp, category_code))
        case_id = format_case_id(prefix, stamp, sequence, category_code)
        self.logger.debug(f"Generated case id {case_id}")

        return {
            "case_id": case_id,
            "prefix": prefix,
            "date_stamp": stamp,
            "category_code": category_code,
            "sequence_number": sequence,
            "is_unique": self.is_case_id_unique(case_id),
            "format": "PREFIX-YYYYMMDD-CATEGORY-NNNN" if category_code else "PREFIX-YYYYMMDD-NNNN",
        }

    def current_sequence(
        self,
        prefix: str | None = None,
        category_code: str | None = None,
        on: date | None = None,
    ) -> dict[str, Any]:
        name = counter_name(self._prefix(prefix), date_stamp(on), self._category(category_code))
        current = self.store.get_sequence(name)
        return {
            "counter_id": name,
            "current_sequence": current or 0,
            "next_sequence": (current or 0) + 1,
            "exists": current is not None,
        }

    def reset_sequence(
        self,
        prefix: str | None = None,
        category_code: str | None = None,
        on: date | None = None,
        value: int = 0,
    ) -> dict[str, Any]:
        if value < 0:
            raise ValidationFailed("Sequence value cannot be negative")
        name = counter_name(self._prefix(prefix), date_stamp(on), self._category(category_code))
        self.store.reset_sequence(name, value)
        self.logger.warning(f"Sequence {name} reset to {value}")
        return {"counter_id": name, "current_sequence": value}

    def list_sequences(self, prefix: str | None = None) -> list[dict[str, Any]]:
        return self.store.list_sequences(prefix.upper() if prefix else None)

    def is_case_id_unique(self, case_id: str) -> bool:
        return self.store.count(self.collection, {"case_id": case_id}) == 0

    validate_case_id = staticmethod(validate_case_id)
