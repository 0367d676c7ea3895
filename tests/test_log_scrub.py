"""Tests for PII scrubbing in log output."""

import io
import logging

from rodoguard.utils.log_scrub import PiiScrubbingFilter, install_pii_scrubbing, scrub_value


def _record(msg, args=()) -> logging.LogRecord:
    return logging.LogRecord("rodoguard.test", logging.INFO, __file__, 1, msg, args, None)


def test_message_redacted():
    record = _record("Client PESEL 44051401359 saved")

    assert PiiScrubbingFilter().filter(record) is True
    assert record.getMessage() == "Client PESEL [PESEL] saved"


def test_positional_args_redacted():
    record = _record("Sending reply to %s (%d attempts)", ("jan@example.pl", 3))

    PiiScrubbingFilter().filter(record)

    assert record.getMessage() == "Sending reply to [EMAIL] (3 attempts)"


def test_numeric_args_redacted():
    record = _record("Client PESEL %d, %d attempts", (92010112343, 3))

    PiiScrubbingFilter().filter(record)

    assert record.getMessage() == "Client PESEL [PESEL], 3 attempts"


def test_mismatched_args_still_scrubbed():
    record = _record("PESEL %d", ("44051401359",))

    assert PiiScrubbingFilter().filter(record) is True
    assert record.args == ("[PESEL]",)


def test_mapping_args_redacted():
    record = _record("Client %(who)s", ({"who": "Jan Kowalski"},))

    PiiScrubbingFilter().filter(record)

    assert record.getMessage() == "Client [PERSON_NAME]"


def test_scrub_nested_values():
    value = ["a@b.pl", {"phone": ("601 234 567",)}, 7, 44051401359, True, None]

    assert scrub_value(value) == [
        "[EMAIL]",
        {"phone": ("[PHONE]",)},
        7,
        "[PESEL]",
        True,
        None,
    ]


def test_scrub_depth_limit():
    deep = [[[[["a@b.pl"]]]]]

    assert scrub_value(deep) == [[[[["a@b.pl"]]]]]


def test_install_on_handler():
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    logger = logging.getLogger("rodoguard.test_scrub_handler")
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    try:
        install_pii_scrubbing(handler)
        logger.info("Stored NIP %s", "123-456-78-90")
    finally:
        logger.removeHandler(handler)

    assert stream.getvalue().strip() == "Stored NIP [NIP]"


def test_install_on_root_handlers():
    root = logging.getLogger()
    handler = logging.StreamHandler(io.StringIO())
    root.addHandler(handler)
    try:
        scrubber = install_pii_scrubbing()
        assert scrubber in handler.filters
    finally:
        root.removeHandler(handler)


def test_install_is_idempotent():
    handler = logging.StreamHandler(io.StringIO())

    install_pii_scrubbing(handler)
    install_pii_scrubbing(handler)

    assert sum(isinstance(f, PiiScrubbingFilter) for f in handler.filters) == 1
