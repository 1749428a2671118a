"""Conversion between template placeholders (``{{ var }}``) and SMS gateway placeholders (``{#var#}``)."""

from __future__ import annotations

import html
import re

TEMPLATE_VAR_RE = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")
SMS_VAR_RE = re.compile(r"\{#\s*([\w.]+)\s*#\}")
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def to_sms_format(body: str) -> str:
    return TEMPLATE_VAR_RE.sub(lambda m: f"{{#{m.group(1)}#}}", body or "")


def from_sms_format(body: str) -> str:
    return SMS_VAR_RE.sub(lambda m: f"{{{{{m.group(1)}}}}}", body or "")


def detect_format(body: str) -> str:
    """Return ``handlebars``, ``sms``, ``mixed`` or ``plain``."""
    has_template = bool(TEMPLATE_VAR_RE.search(body or ""))
    has_sms = bool(SMS_VAR_RE.search(body or ""))
    if has_template and has_sms:
        return "mixed"
    if has_template:
        return "handlebars"
    if has_sms:
        return "sms"
    return "plain"


def extract_variables(body: str) -> list[str]:
    """Unique variable names from either placeholder style, in order of first appearance."""
    found = sorted(
        [(m.start(), m.group(1)) for m in TEMPLATE_VAR_RE.finditer(body or "")]
        + [(m.start(), m.group(1)) for m in SMS_VAR_RE.finditer(body or "")]
    )
    return list(dict.fromkeys(name for _, name in found))


def strip_html(text: str) -> str:
    return _WS_RE.sub(" ", html.unescape(_TAG_RE.sub(" ", text or ""))).strip()
