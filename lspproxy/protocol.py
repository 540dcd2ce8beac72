"""Errors of the language-server link and the calls a language server may send."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from .jsonrpc import RpcError, parse_params


class LspError(Exception):
    """Something went wrong talking to a language server."""


class ProtocolError(LspError):
    """The other side broke the JSON-RPC protocol."""

    def __init__(self, error: RpcError) -> None:
        super().__init__(f"protocol error: {error}")
        self.error = error


class ParseFailure(LspError):
    """A message could not be decoded."""

    def __init__(self, error: Exception) -> None:
        super().__init__(f"failed to parse: {error}")
        self.error = error


class RequestTimeout(LspError):
    """A request got no answer in time."""

    def __init__(self, request_id: Any) -> None:
        super().__init__(f"request {request_id} timed out")
        self.request_id = request_id


class StreamClosed(LspError):
    """The language server closed its output stream."""

    def __init__(self) -> None:
        super().__init__("server closed the stream")


class Unhandled(LspError):
    """The method is not one the proxy handles."""

    def __init__(self) -> None:
        super().__init__("Unhandled")


Check = Callable[[Any], bool]


def _is_str(value: Any) -> bool:
    return isinstance(value, str)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number_or_str(value: Any) -> bool:
    return _is_int(value) or isinstance(value, str)


def _is_list(value: Any) -> bool:
    return isinstance(value, list)


def _is_dict(value: Any) -> bool:
    return isinstance(value, dict)


Spec = Mapping[str, "tuple[Check, bool]"]


def _matches(value: Any, spec: Spec) -> Optional[str]:
    """Return why value does not fit spec, or None if it does."""
    if not isinstance(value, dict):
        return "expected a JSON object"
    for key, (check, required) in spec.items():
        if key not in value or value[key] is None:
            if required and key not in value:
                return f"missing field `{key}`"
            if required:
                return f"field `{key}` must not be null"
            continue
        if not check(value[key]):
            return f"field `{key}` has the wrong type"
    return None


def _list_of(spec: Spec) -> Check:
    def check(value: Any) -> bool:
        return isinstance(value, list) and all(_matches(item, spec) is None for item in value)

    return check


_CONFIGURATION_ITEM: Spec = {"scopeUri": (_is_str, False), "section": (_is_str, False)}
# registerOptions may hold any JSON value, so it is not checked.
_REGISTRATION: Spec = {"id": (_is_str, True), "method": (_is_str, True)}
_UNREGISTRATION: Spec = {"id": (_is_str, True), "method": (_is_str, True)}
_MESSAGE: Spec = {"type": (_is_int, True), "message": (_is_str, True)}


def _invalid(reason: str) -> ProtocolError:
    return ProtocolError(RpcError.invalid_params(f"Invalid params: {reason}"))


def _parse_struct(params: Any, spec: Spec) -> dict:
    try:
        value = parse_params(params)
    except RpcError as exc:
        raise ProtocolError(exc) from None
    reason = _matches(value, spec)
    if reason is not None:
        raise _invalid(reason)
    return dict(value)


class ServerRequestKind(enum.Enum):
    """Requests a language server may send to the proxy, by method."""

    WORK_DONE_PROGRESS_CREATE = "window/workDoneProgress/create"
    APPLY_WORKSPACE_EDIT = "workspace/applyEdit"
    WORKSPACE_FOLDERS = "workspace/workspaceFolders"
    WORKSPACE_CONFIGURATION = "workspace/configuration"
    REGISTER_CAPABILITY = "client/registerCapability"
    UNREGISTER_CAPABILITY = "client/unregisterCapability"
    SHOW_MESSAGE_REQUEST = "window/showMessageRequest"


_REQUEST_SPECS: dict[ServerRequestKind, Optional[Spec]] = {
    ServerRequestKind.WORKSPACE_CONFIGURATION: {"items": (_list_of(_CONFIGURATION_ITEM), True)},
    ServerRequestKind.REGISTER_CAPABILITY: {"registrations": (_list_of(_REGISTRATION), True)},
    ServerRequestKind.UNREGISTER_CAPABILITY: {
        "unregisterations": (_list_of(_UNREGISTRATION), True)
    },
    ServerRequestKind.WORK_DONE_PROGRESS_CREATE: {"token": (_is_number_or_str, True)},
    ServerRequestKind.APPLY_WORKSPACE_EDIT: {"label": (_is_str, False), "edit": (_is_dict, True)},
    ServerRequestKind.WORKSPACE_FOLDERS: None,
    ServerRequestKind.SHOW_MESSAGE_REQUEST: {**_MESSAGE, "actions": (_is_list, False)},
}


@dataclass
class ServerRequest:
    """A decoded request from a language server; params is None when it takes none."""

    kind: ServerRequestKind
    params: Optional[dict] = None


def parse_method_call(method: str, params: Any) -> ServerRequest:
    """Decode a request from a language server, raising Unhandled for other methods."""
    try:
        kind = ServerRequestKind(method)
    except ValueError:
        raise Unhandled() from None
    spec = _REQUEST_SPECS[kind]
    if spec is None:
        return ServerRequest(kind)
    return ServerRequest(kind, _parse_struct(params, spec))


class ServerNotificationKind(enum.Enum):
    """Notifications from a language server that the proxy acts on."""

    INITIALIZED = "initialized"
    EXIT = "exit"
    PUBLISH_DIAGNOSTICS = "textDocument/publishDiagnostics"
    SHOW_MESSAGE = "window/showMessage"
    LOG_MESSAGE = "window/logMessage"
    PROGRESS_MESSAGE = "$/progress"


_NOTIFICATION_SPECS: dict[ServerNotificationKind, Optional[Spec]] = {
    ServerNotificationKind.INITIALIZED: None,
    ServerNotificationKind.EXIT: None,
    ServerNotificationKind.PUBLISH_DIAGNOSTICS: {
        "uri": (_is_str, True),
        "diagnostics": (_list_of({"range": (_is_dict, True), "message": (_is_str, True)}), True),
        "version": (_is_int, False),
    },
    ServerNotificationKind.SHOW_MESSAGE: _MESSAGE,
    ServerNotificationKind.LOG_MESSAGE: _MESSAGE,
    ServerNotificationKind.PROGRESS_MESSAGE: {
        "token": (_is_number_or_str, True),
        "value": (_is_dict, True),
    },
}


@dataclass
class ServerNotification:
    """A decoded notification from a language server."""

    kind: ServerNotificationKind
    params: Optional[dict] = None


def parse_notification(method: str, params: Any) -> ServerNotification:
    """Decode a notification from a language server, raising Unhandled for others."""
    try:
        kind = ServerNotificationKind(method)
    except ValueError:
        raise Unhandled() from None
    spec = _NOTIFICATION_SPECS[kind]
    if spec is None:
        return ServerNotification(kind)
    return ServerNotification(kind, _parse_struct(params, spec))