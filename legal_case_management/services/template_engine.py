"""
Notice template engine.

Notice templates are Jinja2 templates (``{{ borrower.name }}``,
``{{ loanAccount.totalDue | format_currency }}``) rendered in a sandboxed
environment. Missing values render empty; values are HTML-escaped unless a
helper marks its output safe.
"""

from __future__ import annotations

import html
import math
import re
import time
from datetime import date, datetime, timedelta
from typing import Any

from jinja2 import ChainableUndefined, TemplateSyntaxError, Undefined
from jinja2.sandbox import SandboxedEnvironment
from markupsafe import Markup

from legal_case_management.domain.errors import ResourceNotFound, ValidationFailed
from legal_case_management.models.entities import OutputFormat
from legal_case_management.services.base import StoreBackedService
from legal_case_management.utils.dates import parse_datetime, today, utc_now, utc_now_iso

TEMPLATE_VERSION = "2.0"

MANDATORY_TEMPLATE_VARIABLES = [
    "borrower.name",
    "loanAccount.accountNumber",
    "notice.noticeCode",
    "notice.generationDate",
    "legal.companyName",
]

# Paths that must be present in the data before a render is attempted
REQUIRED_DATA_FIELDS = {
    "borrower.name": "Borrower name is required",
    "loanAccount.accountNumber": "Loan account number is required",
    "notice.noticeCode": "Notice code is required",
}

CONTENT_TYPES = {
    OutputFormat.HTML: "text/html",
    OutputFormat.PDF: "application/pdf",
    OutputFormat.PLAIN_TEXT: "text/plain",
}

CURRENCY_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€", "GBP": "£"}

WORDS_PER_MINUTE = 200

_VARIABLE_RE = re.compile(r"\{\{\s*([^}]+?)\s*\}\}")
_DATE_TOKEN_RE = re.compile(r"YYYY|MMM|MM|DD")
_DATE_TOKENS = {"YYYY": "%Y", "MMM": "%b", "MM": "%m", "DD": "%d"}
_TAG_RE = re.compile(r"<[^>]*>")

NOTICE_STYLESHEET = """
        body { font-family: 'Times New Roman', serif; line-height: 1.6; margin: 20px; color: #333; }
        .legal-text { text-align: justify; margin-bottom: 15px; }
        .header { text-align: center; font-weight: bold; margin-bottom: 20px; text-decoration: underline; }
        .footer { margin-top: 30px; border-top: 1px solid #ccc; padding-top: 15px; }
        .amount { font-weight: bold; color: #d9534f; }
        .highlight { background-color: #fff3cd; padding: 2px 4px; }
"""


# ---------------------------------------------------------------------- helpers


def _is_missing(value: Any) -> bool:
    return value is None or value == "" or isinstance(value, Undefined)


def _to_datetime(value: Any) -> datetime | None:
    if _is_missing(value):
        return None
    try:
        return parse_datetime(value)
    except (TypeError, ValueError):
        return None


def _to_number(value: Any) -> float | None:
    if _is_missing(value) or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def indian_grouping(integer_digits: str) -> str:
    """Group digits the Indian way: 12,34,56,789."""
    if len(integer_digits) <= 3:
        return integer_digits
    head, tail = integer_digits[:-3], integer_digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_date(value: Any, fmt: str = "DD/MM/YYYY") -> str:
    moment = _to_datetime(value)
    if moment is None:
        return ""
    return moment.strftime(_DATE_TOKEN_RE.sub(lambda m: _DATE_TOKENS[m.group(0)], fmt))


def format_currency(amount: Any, currency: str = "INR") -> str:
    number = _to_number(amount)
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    if number is None:
        return f"{symbol}0.00"
    sign = "-" if number < 0 else ""
    whole, fraction = f"{abs(number):.2f}".split(".")
    return f"{sign}{symbol}{indian_grouping(whole)}.{fraction}"


def format_number(value: Any) -> str:
    number = _to_number(value)
    if number is None:
        return "0"
    sign = "-" if number < 0 else ""
    if float(number).is_integer():
        return f"{sign}{indian_grouping(str(int(abs(number))))}"
    whole, fraction = f"{abs(number):.2f}".split(".")
    return f"{sign}{indian_grouping(whole)}.{fraction.rstrip('0')}"


def uppercase(value: Any) -> str:
    return "" if _is_missing(value) else str(value).upper()


def lowercase(value: Any) -> str:
    return "" if _is_missing(value) else str(value).lower()


def title_case(value: Any) -> str:
    if _is_missing(value):
        return ""
    return re.sub(r"\w\S*", lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), str(value))


def days_between(first: Any, second: Any) -> int:
    a, b = _to_datetime(first), _to_datetime(second)
    if a is None or b is None:
        return 0
    return math.ceil(abs((b - a).total_seconds()) / 86400)


def add_days(value: Any, days: int) -> date | str:
    moment = _to_datetime(value)
    if moment is None:
        return ""
    return (moment + timedelta(days=int(days))).date()


def ordinal(value: Any) -> str:
    number = _to_number(value)
    if number is None:
        return ""
    n = int(number)
    if 11 <= n % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def legal_paragraph(text: Any) -> Markup | str:
    if _is_missing(text):
        return ""
    return Markup('<p class="legal-text">{}</p>').format(text)


def format_communication_modes(modes: Any) -> str:
    if _is_missing(modes) or not modes:
        return ""
    modes = [str(m) for m in modes]
    if len(modes) == 1:
        return modes[0]
    if len(modes) == 2:
        return " and ".join(modes)
    return ", ".join(modes[:-1]) + ", and " + modes[-1]


TEMPLATE_HELPERS = {
    "format_date": format_date,
    "format_currency": format_currency,
    "format_number": format_number,
    "uppercase": uppercase,
    "lowercase": lowercase,
    "title_case": title_case,
    "days_between": days_between,
    "add_days": add_days,
    "ordinal": ordinal,
    "legal_paragraph": legal_paragraph,
    "format_communication_modes": format_communication_modes,
}


def create_environment() -> SandboxedEnvironment:
    env = SandboxedEnvironment(autoescape=True, undefined=ChainableUndefined)
    env.filters.update(TEMPLATE_HELPERS)
    env.globals.update(TEMPLATE_HELPERS)
    return env


def extract_variables(content: str) -> list[str]:
    """Unique data paths referenced by ``{{ ... }}`` expressions, in order of appearance."""
    found = []
    for match in _VARIABLE_RE.finditer(content or ""):
        expression = match.group(1).strip()
        name = re.split(r"[\s|(]", expression, maxsplit=1)[0].lstrip("#/!>&{}")
        if name in TEMPLATE_HELPERS:
            # helper call: the data path is its first argument, if any
            argument = re.match(rf"{name}\s*\(\s*([A-Za-z_][\w.]*)", expression)
            name = argument.group(1) if argument else ""
        if name and name not in found:
            found.append(name)
    return found


def get_nested(data: Any, path: str) -> Any:
    current = data
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def strip_tags(content: str) -> str:
    return html.unescape(_TAG_RE.sub("", content)).strip()


def wrap_html(content: str, generated_at: datetime | None = None) -> str:
    generated = (generated_at or utc_now()).strftime("%d/%m/%Y %H:%M UTC")
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Legal Notice</title>
    <style>{NOTICE_STYLESHEET}    </style>
</head>
<body>
    {content}
    <div class="footer">
        <p><small>This is a system-generated notice. Please contact us for any clarifications.</small></p>
        <p><small>Generated on {generated}</small></p>
    </div>
</body>
</html>"""


def mock_template_data() -> dict[str, Any]:
    """Representative data for previewing templates without a real account."""
    now = today()
    return {
        "borrower": {
            "name": "Mr. Rajesh Kumar Singh",
            "firstName": "Rajesh",
            "lastName": "Singh",
            "address": {
                "line1": "123, MG Road",
                "line2": "Near City Centre",
                "city": "Mumbai",
                "state": "Maharashtra",
                "pincode": "400001",
                "country": "India",
            },
            "phone": "9876543210",
            "email": "rajesh.singh@example.com",
            "panNumber": "ABCDE1234F",
            "aadharNumber": "123456789012",
        },
        "loanAccount": {
            "accountNumber": "LN4567890123",
            "productType": "Personal Loan",
            "branchCode": "MBC001",
            "sanctionAmount": 500000,
            "outstandingAmount": 387500,
            "principalOutstanding": 350000,
            "interestOutstanding": 25000,
            "penaltyAmount": 12500,
            "totalDue": 387500,
            "dpdDays": 65,
            "lastPaymentDate": date(2024, 10, 15),
            "lastPaymentAmount": 15000,
            "emi": 15000,
        },
        "notice": {
            "noticeCode": f"PLN-{now.strftime('%Y%m%d')}-001",
            "noticeType": "Pre-Legal Notice",
            "generationDate": now,
            "expiryDate": now + timedelta(days=15),
            "dueDate": now + timedelta(days=7),
            "legalEntityName": "CollectPro Recovery Services",
            "issuedBy": "Legal Officer - Priya Sharma",
            "communicationModes": ["Email", "SMS", "Courier"],
        },
        "legal": {
            "companyName": "ABC Financial Services Ltd.",
            "companyAddress": "Corporate Office, Tower A, Business District, Mumbai 400051",
            "authorizedSignatory": "Ms. Priya Sharma",
        },
        "calculations": {
            "overdueDays": 65,
            "overdueAmount": 375000,
            "lateFees": 2500,
            "totalAmountDue": 387500,
            "minimumPayment": 37500,
            "gracePeriod": 15,
        },
        "system": {"currentDate": now, "generatedBy": "preview", "version": TEMPLATE_VERSION},
    }


# ---------------------------------------------------------------------- service


class TemplateEngine(StoreBackedService):
    """Renders notice templates stored in the ``notice_templates`` collection."""

    collection = "notice_templates"
    label = "Notice template"

    def __init__(self, store, settings=None):
        super().__init__(store, settings)
        self.env = create_environment()

    def get_template(self, template_id: str) -> dict[str, Any]:
        template = self.store.get(self.collection, template_id) or self.store.find_one(
            self.collection, {"template_code": template_id}
        )
        if template is None:
            raise ResourceNotFound(f"Template {template_id} not found")
        return template

    def validate_data(self, content: str, data: dict[str, Any]) -> dict[str, Any]:
        errors = [msg for path, msg in REQUIRED_DATA_FIELDS.items() if _is_missing(get_nested(data, path))]
        warnings = [
            f"Missing or empty variable: {v}"
            for v in extract_variables(content)
            if _is_missing(get_nested(data, v))
        ]
        return {"is_valid": not errors, "errors": errors, "warnings": warnings}

    def enrich(self, data: dict[str, Any], custom_variables: dict[str, Any] | None = None, generated_by: str | None = None) -> dict[str, Any]:
        enriched = {**data, **(custom_variables or {})}
        loan = enriched.get("loanAccount") or {}
        enriched["calculations"] = {
            **(enriched.get("calculations") or {}),
            "totalAmountDue": round(
                float(loan.get("principalOutstanding") or 0)
                + float(loan.get("interestOutstanding") or 0)
                + float(loan.get("penaltyAmount") or 0),
                2,
            ),
            "gracePeriodEndDate": today() + timedelta(days=15),
        }
        enriched["system"] = {
            **(enriched.get("system") or {}),
            "currentDate": today(),
            "generatedBy": generated_by or self.settings.system_user,
            "version": TEMPLATE_VERSION,
        }
        return enriched

    def render_string(self, content: str, data: dict[str, Any]) -> str:
        try:
            return self.env.from_string(content).render(**data)
        except TemplateSyntaxError as e:
            raise ValidationFailed(f"Template syntax error: {e.message} (line {e.lineno})") from e

    def render(
        self,
        template_id: str,
        data: dict[str, Any],
        output_format: OutputFormat = OutputFormat.HTML,
        custom_variables: dict[str, Any] | None = None,
        preview: bool = False,
        generated_by: str | None = None,
    ) -> dict[str, Any]:
        started = time.perf_counter()
        template = self.get_template(template_id)
        content = template["template_content"]

        validation = self.validate_data(content, data)
        if not validation["is_valid"] and not preview:
            raise ValidationFailed(f"Template validation failed: {', '.join(validation['errors'])}")

        enriched = self.enrich(data, custom_variables, generated_by)
        rendered = self.render_string(content, enriched)

        if output_format == OutputFormat.PLAIN_TEXT:
            final = strip_tags(rendered)
        else:
            final = wrap_html(rendered)

        variables = extract_variables(content)
        words = len(rendered.split())
        metadata = {
            "template_id": template["id"],
            "template_name": template.get("template_name"),
            "template_code": template.get("template_code"),
            "generated_at": utc_now_iso(),
            "render_duration_ms": round((time.perf_counter() - started) * 1000, 2),
            "character_count": len(rendered),
            "word_count": words,
            "estimated_reading_time": math.ceil(words / WORDS_PER_MINUTE),
            "variables_used": [v for v in variables if get_nested(enriched, v) is not None],
            "missing_variables": [v for v in variables if get_nested(enriched, v) is None],
            "warnings": validation["warnings"] + (validation["errors"] if preview else []),
            "content_type": CONTENT_TYPES[output_format],
            "preview": preview,
        }
        self.logger.debug(
            f"Rendered template {template.get('template_code')} as {output_format.value} "
            f"in {metadata['render_duration_ms']}ms"
        )
        return {"content": final, "format": output_format.value, "metadata": metadata}

    def validate_template(self, content: str, max_characters: int | None = None) -> dict[str, Any]:
        max_characters = max_characters or self.settings.notice_max_characters
        errors: list[str] = []
        warnings: list[str] = []
        try:
            self.env.parse(content)
            syntax_ok = True
        except TemplateSyntaxError as e:
            errors.append(f"Template syntax error: {e.message} (line {e.lineno})")
            syntax_ok = False

        variables = extract_variables(content)
        required = [v for v in MANDATORY_TEMPLATE_VARIABLES if v in variables]
        errors.extend(
            f"Missing mandatory field: {v}" for v in MANDATORY_TEMPLATE_VARIABLES if v not in variables
        )
        length_ok = len(content) <= max_characters
        if not length_ok:
            warnings.append(f"Template may exceed character limit: {len(content)}/{max_characters}")

        return {
            "is_valid": not errors,
            "errors": errors,
            "warnings": warnings,
            "required_variables": required,
            "optional_variables": [v for v in variables if v not in required],
            "estimated_length": len(content),
            "compliance": {
                "character_limit": length_ok,
                "mandatory_fields": len(required) == len(MANDATORY_TEMPLATE_VARIABLES),
                "syntax": syntax_ok,
            },
        }

    def validate_stored_template(self, template_id: str) -> dict[str, Any]:
        template = self.get_template(template_id)
        return self.validate_template(template["template_content"], template.get("max_characters"))

    def preview(self, template_id: str, sample_data: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.render(
            template_id, sample_data or mock_template_data(), OutputFormat.HTML, preview=True
        )

    extract_variables = staticmethod(extract_variables)
    mock_template_data = staticmethod(mock_template_data)
