"""
Legal Case Management Service
Loan recovery backend covering legal cases, lawyer allocation, documents,
pre-legal notices, recovery triggers and the master data behind them.
"""

__version__ = "0.1.0"

from legal_case_management.models.entities import CaseStatus, CaseType, NoticeStatus, TriggerType
from legal_case_management.services.legal_system import LegalCaseSystem

__all__ = [
    "CaseStatus",
    "CaseType",
    "NoticeStatus",
    "TriggerType",
    "LegalCaseSystem",
]
