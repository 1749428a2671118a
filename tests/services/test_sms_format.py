from legal_case_management.services.sms_format import (
    detect_format,
    extract_variables,
    from_sms_format,
    strip_html,
    to_sms_format,
)


def test_to_sms_format():
    assert to_sms_format("Dear {{ borrower.name }}, pay {{amount}}") == "Dear {#borrower.name#}, pay {#amount#}"
    assert to_sms_format(None) == ""


def test_from_sms_format():
    assert from_sms_format("Dear {#name#}, ref {# code #}") == "Dear {{name}}, ref {{code}}"


def test_detect_format():
    assert detect_format("Hi {{ name }}") == "handlebars"
    assert detect_format("Hi {#name#}") == "sms"
    assert detect_format("{{ a }} {#b#}") == "mixed"
    assert detect_format("Hello") == "plain"


def test_extract_variables_from_both_styles():
    assert extract_variables("{#b#} {{ a }} {#b#} {{ c.d }}") == ["b", "a", "c.d"]


def test_strip_html():
    assert strip_html("<p>Dear&nbsp;Rajesh,</p>\n<p>Pay &amp; settle</p>") == "Dear Rajesh, Pay & settle"
    assert strip_html("") == ""
