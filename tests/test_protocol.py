import pytest

from lspproxy.jsonrpc import ErrorCode, RequestId, RpcError
from lspproxy.protocol import (
    LspError,
    ParseFailure,
    ProtocolError,
    RequestTimeout,
    ServerNotificationKind,
    ServerRequestKind,
    StreamClosed,
    Unhandled,
    parse_method_call,
    parse_notification,
)


def test_workspace_configuration_parsed():
    params = {"items": [{"section": "rust-analyzer", "scopeUri": "file:///a"}]}
    request = parse_method_call("workspace/configuration", params)
    assert request.kind is ServerRequestKind.WORKSPACE_CONFIGURATION
    assert request.params == params


def test_workspace_folders_takes_no_params():
    request = parse_method_call("workspace/workspaceFolders", None)
    assert request.kind is ServerRequestKind.WORKSPACE_FOLDERS
    assert request.params is None


def test_register_capability_parsed():
    params = {"registrations": [{"id": "1", "method": "textDocument/formatting"}]}
    request = parse_method_call("client/registerCapability", params)
    assert request.kind is ServerRequestKind.REGISTER_CAPABILITY
    assert request.params["registrations"][0]["method"] == "textDocument/formatting"


def test_unregister_uses_lsp_spelling():
    params = {"unregisterations": [{"id": "1", "method": "workspace/didChangeWatchedFiles"}]}
    request = parse_method_call("client/unregisterCapability", params)
    assert request.kind is ServerRequestKind.UNREGISTER_CAPABILITY
    assert request.params == params


def test_unknown_method_is_unhandled():
    with pytest.raises(Unhandled):
        parse_method_call("workspace/unknown", {})


def test_missing_params_is_invalid_params():
    with pytest.raises(ProtocolError) as info:
        parse_method_call("client/registerCapability", None)
    assert info.value.error.code == ErrorCode.INVALID_PARAMS
    assert info.value.error.message.startswith("Invalid params: ")


def test_wrong_shape_params_rejected():
    with pytest.raises(ProtocolError):
        parse_method_call("workspace/configuration", [1, 2])
    with pytest.raises(ProtocolError):
        parse_method_call("window/workDoneProgress/create", {"token": True})


def test_show_message_request_parsed():
    params = {"type": 3, "message": "hi", "actions": [{"title": "ok"}]}
    request = parse_method_call("window/showMessageRequest", params)
    assert request.kind is ServerRequestKind.SHOW_MESSAGE_REQUEST
    assert request.params["message"] == "hi"


def test_initialized_and_exit_notifications():
    assert parse_notification("initialized", None).kind is ServerNotificationKind.INITIALIZED
    assert parse_notification("exit", None).kind is ServerNotificationKind.EXIT


def test_publish_diagnostics_parsed():
    params = {
        "uri": "file:///a.rs",
        "version": 2,
        "diagnostics": [
            {
                "range": {
                    "start": {"line": 0, "character": 0},
                    "end": {"line": 0, "character": 1},
                },
                "message": "bad",
            }
        ],
    }
    notification = parse_notification("textDocument/publishDiagnostics", params)
    assert notification.kind is ServerNotificationKind.PUBLISH_DIAGNOSTICS
    assert notification.params == params


def test_publish_diagnostics_without_uri_rejected():
    with pytest.raises(ProtocolError):
        parse_notification("textDocument/publishDiagnostics", {"diagnostics": []})


def test_progress_and_log_message():
    progress = parse_notification("$/progress", {"token": "t", "value": {"kind": "end"}})
    assert progress.kind is ServerNotificationKind.PROGRESS_MESSAGE
    log = parse_notification("window/logMessage", {"type": 4, "message": "m"})
    assert log.kind is ServerNotificationKind.LOG_MESSAGE
    assert log.params["message"] == "m"


def test_unknown_notification_is_unhandled():
    with pytest.raises(Unhandled):
        parse_notification("telemetry/event", {})


def test_error_messages():
    assert str(StreamClosed()) == "server closed the stream"
    assert str(Unhandled()) == "Unhandled"
    assert str(RequestTimeout(RequestId(3))) == "request 3 timed out"
    error = RpcError.invalid_params("x")
    assert str(ProtocolError(error)) == f"protocol error: {error}"
    assert str(ParseFailure(ValueError("v"))) == "failed to parse: v"


def test_all_errors_share_base():
    with pytest.raises(LspError):
        parse_notification("nothing/here", None)