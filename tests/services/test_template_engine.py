from datetime import date

import pytest
from markupsafe import Markup

from legal_case_management.domain.errors import ResourceNotFound, ValidationFailed
from legal_case_management.models.entities import OutputFormat
from legal_case_management.services.template_engine import (
    add_days,
    days_between,
    extract_variables,
    format_communication_modes,
    format_currency,
    format_date,
    format_number,
    indian_grouping,
    legal_paragraph,
    mock_template_data,
    ordinal,
    title_case,
)


class TestHelpers:
    def test_indian_grouping(self):
        assert indian_grouping("500") == "500"
        assert indian_grouping("387500") == "3,87,500"
        assert indian_grouping("12345678") == "1,23,45,678"

    def test_format_currency(self):
        assert format_currency(387500) == "₹3,87,500.00"
        assert format_currency(None) == "₹0.00"
        assert format_currency("abc") == "₹0.00"
        assert format_currency(-1500.5, "USD") == "-$1,500.50"
        assert format_currency(10, "AED") == "AED 10.00"

    def test_format_number(self):
        assert format_number(1234.5) == "1,234.5"
        assert format_number(1000000) == "10,00,000"
        assert format_number(None) == "0"

    def test_format_date(self):
        assert format_date(date(2024, 1, 5)) == "05/01/2024"
        assert format_date("2024-01-05", "DD MMM YYYY") == "05 Jan 2024"
        assert format_date("2024-01-05T10:00:00+00:00", "YYYY-MM-DD") == "2024-01-05"
        assert format_date(None) == ""
        assert format_date("not a date") == ""

    def test_date_arithmetic(self):
        assert days_between("2024-01-01", "2024-01-31") == 30
        assert days_between(None, "2024-01-31") == 0
        assert add_days(date(2024, 1, 30), 3) == date(2024, 2, 2)

    @pytest.mark.parametrize(
        "number, expected",
        [(1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"), (11, "11th"), (12, "12th"), (21, "21st"), (112, "112th")],
    )
    def test_ordinal(self, number, expected):
        assert ordinal(number) == expected

    def test_title_case(self):
        assert title_case("hello wORLD") == "Hello World"

    def test_legal_paragraph_escapes_input(self):
        paragraph = legal_paragraph("<b>Pay</b>")
        assert isinstance(paragraph, Markup)
        assert paragraph == '<p class="legal-text">&lt;b&gt;Pay&lt;/b&gt;</p>'

    def test_format_communication_modes(self):
        assert format_communication_modes(["Email"]) == "Email"
        assert format_communication_modes(["Email", "SMS"]) == "Email and SMS"
        assert format_communication_modes(["Email", "SMS", "Courier"]) == "Email, SMS, and Courier"
        assert format_communication_modes([]) == ""

    def test_extract_variables(self):
        content = "{{ borrower.name }} owes {{ loanAccount.totalDue | format_currency }}. {{ borrower.name }}"
        assert extract_variables(content) == ["borrower.name", "loanAccount.totalDue"]

    def test_extract_variables_skips_helper_calls(self):
        content = (
            "{{ format_currency(loanAccount.totalDue) }} by "
            "{{ format_date(notice.expiryDate, 'DD/MM/YYYY') }}"
        )
        assert extract_variables(content) == ["loanAccount.totalDue", "notice.expiryDate"]
        assert extract_variables("{{ ordinal(3) }}") == []

    def test_mock_data(self):
        data = mock_template_data()
        assert data["loanAccount"]["totalDue"] == 387500
        assert data["notice"]["noticeCode"].startswith("PLN-")


class TestRenderString:
    def test_values_are_escaped(self, system):
        assert system.template_engine.render_string("{{ x }}", {"x": "<b>"}) == "&lt;b&gt;"

    def test_missing_values_render_empty(self, system):
        assert system.template_engine.render_string("[{{ a.b.c }}]", {}) == "[]"

    def test_helpers_available_as_filters(self, system):
        assert system.template_engine.render_string("{{ 5 | ordinal }}", {}) == "5th"

    def test_syntax_error(self, system):
        with pytest.raises(ValidationFailed, match="syntax"):
            system.template_engine.render_string("{% if %}", {})


class TestRender:
    def test_render_html_by_code(self, system, notice_template):
        result = system.template_engine.render("PLN-01", mock_template_data())

        assert result["format"] == "HTML"
        assert result["content"].startswith("<!DOCTYPE html>")
        assert "₹3,87,500.00" in result["content"]
        assert "Mr. Rajesh Kumar Singh" in result["content"]
        metadata = result["metadata"]
        assert metadata["template_code"] == "PLN-01"
        assert metadata["content_type"] == "text/html"
        assert metadata["missing_variables"] == []
        assert metadata["preview"] is False

    def test_render_plain_text(self, system, notice_template):
        result = system.template_engine.render(notice_template["id"], mock_template_data(), OutputFormat.PLAIN_TEXT)
        assert "<" not in result["content"]
        assert result["content"].startswith("LEGAL NOTICE")
        assert result["metadata"]["content_type"] == "text/plain"

    def test_missing_required_data(self, system, notice_template):
        data = mock_template_data()
        del data["borrower"]
        with pytest.raises(ValidationFailed, match="Borrower name is required"):
            system.template_engine.render("PLN-01", data)

    def test_preview_tolerates_missing_data(self, system, notice_template):
        data = mock_template_data()
        del data["borrower"]
        result = system.template_engine.render("PLN-01", data, preview=True)
        assert "Borrower name is required" in result["metadata"]["warnings"]
        assert "borrower.name" in result["metadata"]["missing_variables"]

    def test_enrich_adds_calculations(self, system):
        enriched = system.template_engine.enrich(mock_template_data(), {"extra": 1}, generated_by="alice")
        assert enriched["calculations"]["totalAmountDue"] == 387500.0
        assert enriched["system"]["generatedBy"] == "alice"
        assert enriched["extra"] == 1

    def test_unknown_template(self, system):
        with pytest.raises(ResourceNotFound):
            system.template_engine.render("NOPE", mock_template_data())

    def test_preview_uses_mock_data(self, system, notice_template):
        result = system.template_engine.preview(notice_template["id"])
        assert result["metadata"]["preview"] is True
        assert "LN4567890123" in result["content"]


class TestValidateTemplate:
    def test_valid_template(self, system, notice_template):
        result = system.template_engine.validate_template(notice_template["template_content"])
        assert result["is_valid"]
        assert result["required_variables"] == [
            "borrower.name",
            "loanAccount.accountNumber",
            "notice.noticeCode",
            "notice.generationDate",
            "legal.companyName",
        ]
        assert result["optional_variables"] == ["loanAccount.totalDue"]
        assert result["compliance"] == {"character_limit": True, "mandatory_fields": True, "syntax": True}

    def test_missing_mandatory_fields_and_length(self, system):
        result = system.template_engine.validate_template("Dear {{ borrower.name }}", max_characters=10)
        assert not result["is_valid"]
        assert "Missing mandatory field: legal.companyName" in result["errors"]
        assert result["warnings"] == ["Template may exceed character limit: 24/10"]
        assert result["compliance"]["character_limit"] is False

    def test_syntax_error_is_reported(self, system):
        result = system.template_engine.validate_template("{% for %}")
        assert result["compliance"]["syntax"] is False
        assert result["errors"][0].startswith("Template syntax error")

    def test_stored_template(self, system, notice_template):
        assert system.template_engine.validate_stored_template(notice_template["id"])["is_valid"]
