import logging

import pytest

from lspproxy.lsplog import (
    TRACE,
    LspLogger,
    extract_method,
    filter_level,
    init_logging,
    pretty_print_json,
)

LOGGER_NAME = "lspproxy.lsplog"


def test_pretty_print_json_indents_two_spaces():
    assert pretty_print_json('{"a":1}') == '{\n  "a": 1\n}'


def test_pretty_print_round_trips():
    text = '{"method":"x","params":[1,2,{"b":null}]}'
    import json

    assert json.loads(pretty_print_json(text)) == json.loads(text)


def test_pretty_print_rejects_invalid_json():
    with pytest.raises(ValueError):
        pretty_print_json("{not json")


def test_extract_method():
    assert extract_method('{"jsonrpc":"2.0","method":"initialize","id":1}') == "initialize"
    assert extract_method('{"id":1,"result":null}') is None
    assert extract_method('{"method":3}') is None
    assert extract_method("[1]") is None
    assert extract_method("garbage") is None


def test_filter_level():
    assert filter_level(0) == logging.WARNING
    assert filter_level(1) == logging.INFO
    assert filter_level(2) == logging.DEBUG
    assert filter_level(3) == TRACE
    assert filter_level(9) == TRACE


def test_log_request_pretty(caplog):
    caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
    LspLogger("rust-analyzer", 0).log_request("initialize", '{"method":"initialize"}')
    record = caplog.records[-1]
    assert record.levelno == logging.INFO
    assert record.getMessage().startswith("LSP Request:\n")
    assert record.server == "rust-analyzer"
    assert record.server_id == 0
    assert record.direction == "outgoing"
    assert record.method == "initialize"


def test_log_response_invalid_json(caplog):
    caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
    LspLogger("srv").log_response("oops")
    record = caplog.records[-1]
    assert record.getMessage() == "LSP Response (invalid JSON)"
    assert record.raw_content == "oops"
    assert record.direction == "incoming"


def test_log_notification(caplog):
    caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
    LspLogger("srv", 2).log_notification("$/progress", "{}")
    record = caplog.records[-1]
    assert record.getMessage() == "LSP Notification:\n{}"
    assert record.message_type == "notification"


def test_log_error_and_debug(caplog):
    caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
    logger = LspLogger("srv")
    logger.log_error("boom")
    logger.log_debug("details")
    error, debug = caplog.records[-2:]
    assert error.levelno == logging.ERROR
    assert error.getMessage() == "LSP Server Error: boom"
    assert debug.levelno == logging.DEBUG
    assert debug.getMessage() == "details"


def test_init_logging_writes_file_once(tmp_path):
    root = logging.getLogger("lspproxy")
    old_level = root.level
    handler = init_logging(2, tmp_path / "logs" / "proxy.log")
    try:
        with pytest.raises(RuntimeError):
            init_logging(2, tmp_path / "other.log")
        LspLogger("srv").log_info("hello there")
        handler.flush()
        content = (tmp_path / "logs" / "proxy.log").read_text(encoding="utf-8")
        assert "hello there" in content
        assert "server=srv" in content
        assert root.level == logging.DEBUG
    finally:
        root.removeHandler(handler)
        handler.close()
        root.setLevel(old_level)