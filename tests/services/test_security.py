import pytest

from legal_case_management.services.security import (
    detect_query_injection,
    sanitize_html,
    sanitize_search_term,
    validate_request_size,
)


def test_sanitize_html():
    assert sanitize_html('<a href="x">') == "&lt;a href=&quot;x&quot;&gt;"
    assert sanitize_html(None) is None


@pytest.mark.parametrize(
    "text",
    ["FOR s IN states RETURN s", "onerror=alert(1)", "< script>", "x javascript = y"],
)
def test_detect_query_injection(text):
    assert detect_query_injection(text)


def test_plain_text_is_not_injection():
    assert not detect_query_injection("Rajesh Kumar, Mumbai")
    assert not detect_query_injection(None)


class TestSanitizeSearchTerm:
    def test_cleans_and_caps(self):
        assert sanitize_search_term("  Raj\x00esh\n ") == "Rajesh"
        assert len(sanitize_search_term("a" * 250)) == 100

    def test_empty_terms_become_none(self):
        assert sanitize_search_term(None) is None
        assert sanitize_search_term("   \t") is None

    def test_injection_rejected(self):
        with pytest.raises(ValueError, match="Invalid search term"):
            sanitize_search_term("FOR x IN states")


def test_validate_request_size():
    validate_request_size(None, 1)
    validate_request_size(1024 * 1024, 1)
    with pytest.raises(ValueError, match="Maximum size: 1MB"):
        validate_request_size(1024 * 1024 + 1, 1)
