import logging

from gymbook.core.logging_config import SecurityFilter, get_logger, mask_sensitive


def test_mask_sensitive_hides_tokens_phones_and_references():
    text = (
        "login 09121234567 with Bearer abc.def-ghi "
        "reference_number=TRX-991 token eyJhbGciOi.eyJ1c2VyX2lkIjo3fQ.sig_1"
    )
    masked = mask_sensitive(text)

    assert "09121234567" not in masked
    assert "TRX-991" not in masked
    assert "abc.def-ghi" not in masked
    assert "eyJ1c2VyX2lkIjo3fQ" not in masked
    assert "[PHONE]" in masked
    assert "reference_number=[HIDDEN]" in masked


def test_security_filter_masks_formatted_args():
    record = logging.LogRecord(
        "gymbook.test", logging.INFO, __file__, 1,
        "payment for %s recorded", ("+989121234567",), None,
    )

    assert SecurityFilter().filter(record) is True
    assert record.getMessage() == "payment for [PHONE] recorded"


def test_loggers_live_under_package_namespace():
    assert get_logger("crud.reservations").name == "gymbook.crud.reservations"
