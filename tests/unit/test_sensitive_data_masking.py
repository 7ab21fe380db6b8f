import pytest

from config.settings import mask_sensitive_data

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    @pytest.mark.parametrize(
        "phone",
        ["555-010-2000", "(555) 010-2000", "+1 555.010.2000"],
    )
    def test_phone_masked(self, phone):
        event_dict = {"event": "test", "phone": f"customer phone {phone}"}
        result = mask_sensitive_data(None, None, event_dict)
        assert phone not in result["phone"]
        assert "***MASKED***" in result["phone"]

    def test_email_masked(self):
        event_dict = {"event": "test", "contact": "ana.souza+pickup@example.com"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "example.com" not in result["contact"]
        assert "***MASKED***" in result["contact"]

    def test_password_masked(self):
        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    def test_identifiers_unchanged(self):
        event_dict = {
            "event": "order.created",
            "order_number": "ORD-20240501-A1B2C3",
            "order_id": "018f2c3e-7d4a-7b8c-9d0e-1f2a3b4c5d6e",
            "qr_code": "3f2a9c1e-SHIRT-1714567890500-k3z9qa-1",
        }
        result = mask_sensitive_data(None, None, dict(event_dict))
        assert result == event_dict

    def test_non_string_values_unchanged(self):
        event_dict = {"event": "test", "scanned_count": 5551234567}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["scanned_count"] == 5551234567
