import json
import logging

import pytest
import structlog

import zkpredicates
from zkpredicates.logging import clip, get_logger, scrub, setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_package_imports_and_module_loggers_emit():
    assert zkpredicates.__version__
    with structlog.testing.capture_logs() as logs:
        get_logger("x").info("hello", circuit="range_check")
        get_logger().info("anonymous")
    assert [e["event"] for e in logs] == ["hello", "anonymous"]
    assert logs[0]["circuit"] == "range_check"


def test_scrub_masks_private_values_at_any_depth():
    ev = scrub(None, "info", {
        "event": "proof_requested",
        "inputs": {"value": 30},
        "request": {"circuit": "range_check", "private_inputs": {"value": 30}, "min": 25},
        "items": [{"witness": [1, 2, 3]}],
        "token": None,
    })
    assert ev["inputs"] == "***"
    assert ev["request"] == {"circuit": "range_check", "private_inputs": "***", "min": 25}
    assert ev["items"] == [{"witness": "***"}]
    assert ev["token"] is None


def test_scrub_clips_oversized_strings():
    ev = scrub(None, "info", {"event": "proof_rejected", "signals": ["1", "9" * 5000], "detail": "short"})
    assert ev["signals"][0] == "1"
    assert ev["signals"][1].endswith("...<5000 chars>")
    assert len(ev["signals"][1]) < 80
    assert ev["detail"] == "short"
    assert clip("abc") == "abc"


def test_setup_logging_renders_scrubbed_json(capsys, restore_logging):
    setup_logging(level="DEBUG", log_format="json", service_name="zkp-test")
    get_logger("zkpredicates.test").info("proof_generated", circuit="range_check", private_value=30)
    logging.getLogger("foreign.lib").warning("plain %s", "stdlib")

    lines = [json.loads(line) for line in capsys.readouterr().err.splitlines() if line.strip()]
    ours, foreign = lines[-2], lines[-1]
    assert ours["event"] == "proof_generated"
    assert ours["logger"] == "zkpredicates.test"
    assert ours["level"] == "info"
    assert ours["service"] == "zkp-test"
    assert ours["private_value"] == "***"
    assert foreign["event"] == "plain stdlib"
    assert foreign["logger"] == "foreign.lib"
