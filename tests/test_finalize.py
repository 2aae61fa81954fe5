"""
Test Inbox Finalization
"""

from datetime import datetime, timezone

import pytest

from waha_pairing.pairing.finalize import InboxNameError, build_inbox_record, validate_inbox_name


class TestValidateInboxName:
    def test_trims(self):
        assert validate_inbox_name("  Support ") == "Support"

    @pytest.mark.parametrize("name", ["", "   ", "\t\n", None])
    def test_blank_rejected(self, name):
        with pytest.raises(InboxNameError):
            validate_inbox_name(name)

    @pytest.mark.parametrize("name", [123, 4.5, ["Support"], {"name": "Support"}])
    def test_non_text_rejected(self, name):
        with pytest.raises(InboxNameError):
            validate_inbox_name(name)


class TestBuildInboxRecord:
    def test_record_fields(self):
        record = build_inbox_record("whatsapp-connector-1", " Sales ")
        data = record.to_dict()

        assert data["name"] == "Sales"
        assert data["sessionId"] == "whatsapp-connector-1"
        assert data["status"] == "connected"
        assert data["platform"] == "whatsapp"
        assert data["method"] == "qr_scan"
        assert data["id"]
        assert "metadata" not in data

        created = datetime.fromisoformat(data["createdAt"])
        assert created.tzinfo is not None
        assert abs((datetime.now(timezone.utc) - created).total_seconds()) < 5

    def test_unique_ids(self):
        assert build_inbox_record("s", "a").id != build_inbox_record("s", "a").id

    def test_metadata(self):
        record = build_inbox_record("s", "a", metadata={"team": "ops"})

        assert record.to_dict()["metadata"] == {"team": "ops"}

    def test_blank_name_rejected(self):
        with pytest.raises(InboxNameError):
            build_inbox_record("s", "  ")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
