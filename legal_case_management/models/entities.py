from enum import Enum


class CaseType(str, Enum):
    """Kinds of legal proceedings raised against a defaulting borrower."""

    CIVIL = "Civil"
    CRIMINAL = "Criminal"
    ARBITRATION = "Arbitration"
    CHEQUE_BOUNCE = "138 Bounce"  # Negotiable Instruments Act s.138
    SARFAESI = "SARFAESI"  # Secured asset enforcement


class CaseStatus(str, Enum):
    """Court-facing status of a legal case."""

    FILED = "Filed"
    UNDER_TRIAL = "Under Trial"
    STAYED = "Stayed"
    DISMISSED = "Dismissed"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


CLOSING_CASE_STATUSES = {CaseStatus.CLOSED, CaseStatus.RESOLVED, CaseStatus.DISMISSED}


class RecordStatus(str, Enum):
    """System lifecycle flag for soft-deletable records."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    DELETED = "Deleted"


class MasterStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    DRAFT = "Draft"
    PENDING = "Pending"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class RecoveryAction(str, Enum):
    REPOSSESSION = "Repossession"
    SETTLEMENT = "Settlement"
    WARRANT_ISSUED = "Warrant Issued"
    NONE = "None"


class LawyerType(str, Enum):
    INTERNAL = "Internal"
    EXTERNAL = "External"
    SENIOR = "Senior"
    JUNIOR = "Junior"
    ASSOCIATE = "Associate"


class AllocationStatus(str, Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    REASSIGNED = "Reassigned"


class AcknowledgementStatus(str, Enum):
    """Acknowledgement state, used both for lawyers and notice recipients."""

    ACKNOWLEDGED = "Acknowledged"
    REJECTED = "Rejected"
    PENDING = "Pending"
    PENDING_VERIFICATION = "Pending Verification"


class LinkedEntityType(str, Enum):
    """Records a document can be attached to."""

    LEGAL_CASE = "Legal Case"
    LEGAL_NOTICE = "Legal Notice"
    LOAN_ACCOUNT = "Loan Account"


class CaseDocumentType(str, Enum):
    AFFIDAVIT = "Affidavit"
    SUMMONS = "Summons"
    COURT_ORDER = "Court Order"
    EVIDENCE = "Evidence"
    WITNESS_STATEMENT = "Witness Statement"
    EXPERT_REPORT = "Expert Report"
    MEDICAL_REPORT = "Medical Report"
    FINANCIAL_STATEMENT = "Financial Statement"
    PROPERTY_DOCUMENT = "Property Document"
    LEGAL_NOTICE = "Legal Notice"
    REPLY_NOTICE = "Reply Notice"
    COUNTER_AFFIDAVIT = "Counter Affidavit"
    INTERIM_ORDER = "Interim Order"
    FINAL_ORDER = "Final Order"
    JUDGMENT = "Judgment"
    SETTLEMENT_AGREEMENT = "Settlement Agreement"
    COMPROMISE_DEED = "Compromise Deed"
    POWER_OF_ATTORNEY = "Power of Attorney"
    AUTHORIZATION_LETTER = "Authorization Letter"
    IDENTITY_PROOF = "Identity Proof"
    ADDRESS_PROOF = "Address Proof"
    INCOME_PROOF = "Income Proof"
    BANK_STATEMENT = "Bank Statement"
    LOAN_AGREEMENT = "Loan Agreement"
    SECURITY_DOCUMENT = "Security Document"
    OTHER = "Other"


class DocumentStatus(str, Enum):
    ACTIVE = "Active"
    ARCHIVED = "Archived"
    DELETED = "Deleted"
    PENDING_APPROVAL = "Pending_approval"
    REJECTED = "Rejected"


class TemplateType(str, Enum):
    PRE_LEGAL = "Pre-Legal"
    LEGAL = "Legal"
    FINAL_WARNING = "Final Warning"
    ARBITRATION = "Arbitration"
    COURT_SUMMON = "Court Summon"


class NoticeStatus(str, Enum):
    DRAFT = "Draft"
    GENERATED = "Generated"
    SENT = "Sent"
    FAILED = "Failed"
    ACKNOWLEDGED = "Acknowledged"
    INACTIVE = "Inactive"


class TriggerType(str, Enum):
    DPD_THRESHOLD = "DPD Threshold"
    PAYMENT_FAILURE = "Payment Failure"
    MANUAL_TRIGGER = "Manual Trigger"
    BROKEN_PTP = "Broken PTP"  # Broken promise-to-pay
    ACKNOWLEDGEMENT_PENDING = "Acknowledgement Pending"


class TriggerSeverity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class TriggerStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    ESCALATED = "Escalated"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class EligibilityStatus(str, Enum):
    ELIGIBLE = "ELIGIBLE"
    INELIGIBLE = "INELIGIBLE"
    PENDING_REVIEW = "PENDING_REVIEW"


class RuleSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CommunicationMode(str, Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    WHATSAPP = "WHATSAPP"
    COURIER = "COURIER"
    POST = "POST"
    PHYSICAL_DELIVERY = "PHYSICAL_DELIVERY"


class DeliveryStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"
    BOUNCED = "BOUNCED"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class RecipientType(str, Enum):
    BORROWER = "borrower"
    LAWYER = "lawyer"
    ADMIN = "admin"
    USER = "user"


class TimelineEventType(str, Enum):
    CASE_CREATED = "case_created"
    STATUS_CHANGE = "status_change"
    HEARING_SCHEDULED = "hearing_scheduled"
    DOCUMENT_UPLOADED = "document_uploaded"
    LAWYER_ASSIGNED = "lawyer_assigned"
    LAWYER_REASSIGNED = "lawyer_reassigned"
    NOTE = "note"


class OutputFormat(str, Enum):
    HTML = "HTML"
    PDF = "PDF"
    PLAIN_TEXT = "PLAIN_TEXT"


class ScriptSupport(str, Enum):
    LATIN = "Latin"
    DEVANAGARI = "Devanagari"
    ARABIC = "Arabic"
    CYRILLIC = "Cyrillic"
    CHINESE = "Chinese"
    JAPANESE = "Japanese"


class ErrorType(str, Enum):
    VALIDATION = "Validation"
    SYSTEM = "System"
    NETWORK = "Network"
    API = "API"
    MAPPING = "Mapping"
    AUTHORIZATION = "Authorization"


class ErrorSeverity(str, Enum):
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"
    CRITICAL = "Critical"
