"""Unit tests for deployment record format detection."""

from contract_lifecycle.parsers import RecordFormat, detect_record_format


class TestDetectRecordFormat:
    """Test the detect_record_format function."""

    def test_detects_current_format(self):
        """Test that documents with a mode field are current-format records."""
        data = {
            "contract": "CarbonCreditToken",
            "address": "0xA",
            "network": "carbonNet",
            "mode": "proxied",
            "implementationAddress": "0xB",
            "metadata": {},
        }
        assert detect_record_format(data) == RecordFormat.CURRENT

    def test_detects_legacy_format(self):
        """Test that the original scripts' output is a legacy record."""
        data = {
            "contract": "CarbonCreditToken",
            "address": "0xA",
            "network": "carbonNet",
            "baseURI": "https://127.0.0.1/carbon-credits/metadata/",
        }
        assert detect_record_format(data) == RecordFormat.LEGACY

    def test_invalid_mode_is_still_current_format(self):
        """Test that a bad mode value is reported as corrupt later, not as legacy."""
        assert detect_record_format({"mode": "bogus"}) == RecordFormat.CURRENT

    def test_empty_document_is_legacy(self):
        """Test that an empty document is treated as legacy (and fails validation there)."""
        assert detect_record_format({}) == RecordFormat.LEGACY
