import io
import json
import logging

from fhevm_sdk.logging_config import redact, setup_logging


def test_redact():
    assert redact(None) == "<empty>"
    assert redact("0xabc") == "0xabc"
    assert redact("0x" + "ab" * 32) == "0xabababab..."


def test_json_output_with_redacted_secrets():
    stream = io.StringIO()
    sdk_logger = setup_logging("INFO", json_logs=True, stream=stream)

    logging.getLogger("fhevm_sdk.core.permits").info(
        "permit granted", extra={"signature": "0x" + "ff" * 65}
    )

    record = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert record["event"] == "permit granted"
    assert record["level"] == "info"
    assert record["logger"] == "fhevm_sdk.core.permits"
    assert record["signature"] == "0xffffffff..."
    assert sdk_logger.propagate is False


def test_debug_level_is_console():
    stream = io.StringIO()
    sdk_logger = setup_logging("DEBUG", stream=stream)

    logging.getLogger("fhevm_sdk.session").debug("connected")

    assert sdk_logger.level == logging.DEBUG
    assert "connected" in stream.getvalue()
