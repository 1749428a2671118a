import copy
import os
import uuid
from datetime import date, timedelta
from unittest.mock import AsyncMock

import pytest

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from legal_case_management.config import AppSettings
from legal_case_management.domain.errors import ConflictError
from legal_case_management.models.cases import LegalCaseCreate, LoanAccountCreate
from legal_case_management.models.entities import (
    CaseType,
    LawyerType,
    MasterStatus,
    ScriptSupport,
    TemplateType,
)
from legal_case_management.models.lawyers import LawyerCreate
from legal_case_management.models.master_data import (
    ChannelCreate,
    LanguageCreate,
    NoticeTemplateCreate,
    StateCreate,
)
from legal_case_management.services.legal_system import LegalCaseSystem
from legal_case_management.services.sms_gateway import SmsGatewayClient
from legal_case_management.storage.arango_store import COLLECTION_INDEXES
from legal_case_management.utils.dates import utc_now_iso

NOTICE_TEMPLATE_CONTENT = """<div class="header">LEGAL NOTICE</div>
<p>Notice No: {{ notice.noticeCode }} dated {{ notice.generationDate | format_date }}</p>
<p>To {{ borrower.name }}, Loan Account {{ loanAccount.accountNumber }}</p>
<p>Amount due: <span class="amount">{{ loanAccount.totalDue | format_currency }}</span></p>
<p>{{ legal.companyName }}</p>"""


def _rank(value):
    """Order values the way AQL does: null < bool < number < string < array < object."""
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, value)
    if isinstance(value, (int, float)):
        return (2, value)
    if isinstance(value, str):
        return (3, value)
    if isinstance(value, (list, tuple)):
        return (4, str(value))
    return (5, str(value))


def _lower(value) -> str:
    return "" if value is None else str(value).lower()


class InMemoryStore:
    """Dict-backed stand-in for ArangoStore with the same filter and sort semantics."""

    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = {}
        self.sequences: dict[str, dict] = {}

    def _coll(self, name: str) -> dict[str, dict]:
        return self.collections.setdefault(name, {})

    @staticmethod
    def _record(key: str, doc: dict) -> dict:
        record = copy.deepcopy(doc)
        record["id"] = key
        return record

    def _check_unique(self, collection: str, key: str, doc: dict) -> None:
        for fields, unique in COLLECTION_INDEXES.get(collection, []):
            if not unique:
                continue
            values = tuple(doc.get(f) for f in fields)
            if any(v is None for v in values):
                continue
            for other_key, other in self._coll(collection).items():
                if other_key != key and tuple(other.get(f) for f in fields) == values:
                    raise ConflictError(f"Duplicate value violates unique index on {collection}")

    @staticmethod
    def _field(key: str, doc: dict, field: str):
        return key if field == "id" else doc.get(field)

    def _matches(self, key: str, doc: dict, filters: dict | None, search) -> bool:
        for name, value in (filters or {}).items():
            field, _, op = name.partition("__")
            actual = self._field(key, doc, field)
            if op == "null":
                if value is None:
                    continue
                if (actual is None) != bool(value):
                    return False
                continue
            if value is None:
                continue
            if not op:
                ok = _rank(actual) == _rank(value)
            elif op == "ne":
                ok = _rank(actual) != _rank(value)
            elif op == "gt":
                ok = _rank(actual) > _rank(value)
            elif op == "gte":
                ok = _rank(actual) >= _rank(value)
            elif op == "lt":
                ok = _rank(actual) < _rank(value)
            elif op == "lte":
                ok = _rank(actual) <= _rank(value)
            elif op == "in":
                ok = any(_rank(actual) == _rank(v) for v in value)
            elif op == "contains":
                ok = isinstance(actual, list) and any(_rank(a) == _rank(value) for a in actual)
            elif op == "like":
                ok = _lower(value) in _lower(actual)
            elif op == "ieq":
                ok = _lower(actual) == _lower(value)
            else:
                raise ValueError(f"Unsupported filter operator '{op}' in '{name}'")
            if not ok:
                return False
        if search and search[1]:
            fields, term = search
            if not any(str(term).lower() in _lower(self._field(key, doc, f)) for f in fields):
                return False
        return True

    def insert(self, collection: str, doc: dict) -> dict:
        key = doc.get("id") or uuid.uuid4().hex
        body = {k: v for k, v in doc.items() if k != "id"}
        if key in self._coll(collection):
            raise ConflictError(f"Duplicate key {key} in {collection}")
        self._check_unique(collection, key, body)
        self._coll(collection)[key] = copy.deepcopy(body)
        return self._record(key, body)

    def get(self, collection: str, key: str):
        if not key:
            return None
        doc = self._coll(collection).get(key)
        return self._record(key, doc) if doc is not None else None

    def update(self, collection: str, key: str, changes: dict):
        coll = self._coll(collection)
        if key not in coll:
            return None
        merged = {**coll[key], **{k: v for k, v in changes.items() if k != "id"}}
        self._check_unique(collection, key, merged)
        coll[key] = copy.deepcopy(merged)
        return self._record(key, merged)

    def delete(self, collection: str, key: str) -> bool:
        return self._coll(collection).pop(key, None) is not None

    def find(self, collection: str, filters=None, sort=None, offset: int = 0, limit=None, search=None) -> list:
        rows = [
            (key, doc) for key, doc in self._coll(collection).items() if self._matches(key, doc, filters, search)
        ]
        for field, direction in reversed(list(sort or [])):
            rows.sort(key=lambda kv: _rank(self._field(kv[0], kv[1], field)), reverse=direction.upper() == "DESC")
        if limit is not None:
            rows = rows[offset : offset + limit]
        return [self._record(key, doc) for key, doc in rows]

    def find_one(self, collection: str, filters: dict):
        rows = self.find(collection, filters, limit=1)
        return rows[0] if rows else None

    def count(self, collection: str, filters=None, search=None) -> int:
        return len(self.find(collection, filters, search=search))

    def next_sequence(self, name: str) -> int:
        now = utc_now_iso()
        entry = self.sequences.setdefault(name, {"value": 0, "created_at": now})
        entry["value"] += 1
        entry["updated_at"] = now
        return entry["value"]

    def get_sequence(self, name: str):
        entry = self.sequences.get(name)
        return entry["value"] if entry else None

    def reset_sequence(self, name: str, value: int = 0) -> None:
        now = utc_now_iso()
        self.sequences.setdefault(name, {"created_at": now}).update({"value": value, "updated_at": now})

    def list_sequences(self, prefix=None) -> list:
        return [
            {"name": name, "value": entry["value"], "updated_at": entry.get("updated_at")}
            for name, entry in sorted(self.sequences.items())
            if prefix is None or name.startswith(prefix)
        ]

    def ping(self) -> bool:
        return True


@pytest.fixture
def settings(tmp_path):
    return AppSettings(
        rate_limit_enabled=False,
        upload_path=tmp_path / "uploads",
        sms_api_url="",
        min_notice_dpd=30,
        high_value_threshold=500000.0,
    )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def sms_gateway():
    """Mocked SMS gateway that accepts every call."""
    gateway = AsyncMock(spec=SmsGatewayClient)
    gateway.send_sms.return_value = {"ErrorCode": 0, "ErrorDescription": "Success", "Data": []}
    gateway.register_template.return_value = {"ErrorCode": 0, "Data": []}
    gateway.list_templates.return_value = []
    gateway.ping.return_value = True
    return gateway


@pytest.fixture
def system(store, settings):
    return LegalCaseSystem(store=store, settings=settings)


@pytest.fixture
def make_account(system):
    def _make(loan_account_number: str = "LN1001", **overrides) -> dict:
        fields = {
            "loan_account_number": loan_account_number,
            "borrower_name": "Rajesh Kumar",
            "borrower_mobile": "9876543210",
            "borrower_email": "rajesh@example.com",
            "borrower_address": "12 MG Road, Mumbai",
            "pan": "ABCDE1234F",
            "loan_amount": 500000,
            "principal_outstanding": 300000,
            "interest_outstanding": 40000,
            "penalty_amount": 10000,
            "current_dpd": 95,
            "product_type": "Personal Loan",
        }
        fields.update(overrides)
        return system.borrowers.register(LoanAccountCreate(**fields))

    return _make


@pytest.fixture
def loan_account(make_account):
    return make_account()


@pytest.fixture
def make_lawyer(system):
    counter = {"n": 0}

    def _make(**overrides) -> dict:
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "first_name": "Anita",
            "last_name": f"Desai{n}",
            "email": f"anita.desai{n}@lawfirm.in",
            "phone": "9820011223",
            "bar_number": f"MH/{1000 + n}/2010",
            "specialization": "Civil Recovery",
            "experience": 8,
            "lawyer_type": LawyerType.EXTERNAL,
            "max_cases": 5,
            "jurisdiction": "Mumbai",
            "success_rate": 70,
        }
        fields.update(overrides)
        return system.lawyers.create(LawyerCreate(**fields))

    return _make


@pytest.fixture
def lawyer(make_lawyer):
    return make_lawyer()


@pytest.fixture
def make_case(system, loan_account):
    def _make(**overrides) -> dict:
        fields = {
            "loan_account_number": loan_account["loan_account_number"],
            "case_type": CaseType.CIVIL,
            "court_name": "City Civil Court",
            "case_filed_date": date.today() - timedelta(days=3),
            "filing_jurisdiction": "Mumbai",
        }
        fields.update(overrides)
        return system.legal_cases.create(LegalCaseCreate(**fields))

    return _make


@pytest.fixture
def legal_case(make_case):
    return make_case()


@pytest.fixture
def state(system):
    return system.states.create(StateCreate(state_code="mh", state_name="Maharashtra"))


@pytest.fixture
def language(system):
    return system.languages.create(LanguageCreate(language_name="English", script_support=ScriptSupport.LATIN))


@pytest.fixture
def sms_channel(system):
    return system.channels.create(ChannelCreate(channel_id="CH-SMS", channel_name="SMS"))


@pytest.fixture
def email_channel(system):
    return system.channels.create(ChannelCreate(channel_id="CH-EMAIL", channel_name="Email"))


@pytest.fixture
def make_template(store):
    """Seed a communication template directly, without the gateway sync."""

    def _make(channel: dict, language: dict, **overrides) -> dict:
        doc = {
            "template_id": f"TPL-{uuid.uuid4().hex[:6].upper()}",
            "template_name": f"Reminder {channel['channel_name']}",
            "message_body": (
                "Dear {#borrower_name#}, loan {#loan_account_number#} is overdue by "
                "{#notice.dpdDays#} days. Ref {#notice_code#}"
            ),
            "template_type": TemplateType.PRE_LEGAL.value,
            "channel_id": channel["id"],
            "language_id": language["id"],
            "is_approved": True,
            "is_active": True,
            "status": MasterStatus.ACTIVE.value,
        }
        doc.update(overrides)
        return store.insert("communication_templates", doc)

    return _make


@pytest.fixture
def sms_template(make_template, sms_channel, language):
    return make_template(sms_channel, language)


@pytest.fixture
def email_template(make_template, email_channel, language):
    return make_template(
        email_channel,
        language,
        message_body="<p>Dear {{ borrower.name }},</p><p>Your account {{ loanAccount.accountNumber }} is overdue.</p>",
    )


@pytest.fixture
def notice_template(system):
    return system.notice_templates.create(
        NoticeTemplateCreate(
            template_code="pln-01",
            template_name="Pre-legal notice",
            template_type=TemplateType.PRE_LEGAL,
            template_content=NOTICE_TEMPLATE_CONTENT,
        )
    )


@pytest.fixture
def client(system):
    from fastapi.testclient import TestClient

    from legal_case_management.api.app import app

    # Lifespan is not run; the fake-backed system is injected directly
    c = TestClient(app)
    c.app.state.system = system
    return c
