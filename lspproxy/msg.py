"""Messages exchanged with the editor, and their framing on a byte stream."""

from __future__ import annotations

import enum
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Callable, Optional, Union

from .jsonrpc import VERSION, ErrorCode, RequestId, RpcError

logger = logging.getLogger(__name__)

_CONTENT_LENGTH = re.compile(r"\+?[0-9]+")


class _Absent(enum.Enum):
    ABSENT = "absent"

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = _Absent.ABSENT
"""Marks a response that carries no result at all."""


def _field(value: dict, key: str) -> Any:
    if key not in value:
        raise ValueError(f"missing field `{key}`")
    return value[key]


def _int(value: dict, key: str) -> int:
    item = _field(value, key)
    if not isinstance(item, int) or isinstance(item, bool):
        raise ValueError(f"field `{key}` must be an integer")
    return item


def _uint(value: dict, key: str) -> int:
    item = _int(value, key)
    if item < 0:
        raise ValueError(f"field `{key}` must not be negative")
    return item


def _str(value: dict, key: str) -> str:
    item = _field(value, key)
    if not isinstance(item, str):
        raise ValueError(f"field `{key}` must be a string")
    return item


def _scalar(value: dict, key: str) -> int | str:
    item = _field(value, key)
    if isinstance(item, bool) or not isinstance(item, (int, str)):
        raise ValueError(f"field `{key}` must be an integer or a string")
    return item


@dataclass
class CompletionContext:
    line: str
    prefix: str
    start_point: int
    bounds_start: int
    trigger_kind: int

    @classmethod
    def from_dict(cls, value: dict) -> CompletionContext:
        return cls(
            line=_str(value, "line"),
            prefix=_str(value, "prefix"),
            start_point=_int(value, "startPoint"),
            bounds_start=_int(value, "boundsStart"),
            trigger_kind=_int(value, "triggerKind"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "line": self.line,
            "prefix": self.prefix,
            "startPoint": self.start_point,
            "boundsStart": self.bounds_start,
            "triggerKind": self.trigger_kind,
        }


@dataclass
class InlineCompletionContext:
    trigger_kind: int | str
    doc_version: int
    line: str

    @classmethod
    def from_dict(cls, value: dict) -> InlineCompletionContext:
        return cls(
            trigger_kind=_scalar(value, "triggerKind"),
            doc_version=_int(value, "docVersion"),
            line=_str(value, "line"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "triggerKind": self.trigger_kind,
            "docVersion": self.doc_version,
            "line": self.line,
        }


@dataclass
class ResolveContext:
    language_server_id: int
    start: int
    end: int

    @classmethod
    def from_dict(cls, value: dict) -> ResolveContext:
        return cls(
            language_server_id=_uint(value, "language-server-id"),
            start=_int(value, "start"),
            end=_int(value, "end"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "language-server-id": self.language_server_id,
            "start": self.start,
            "end": self.end,
        }


@dataclass
class WorkspaceContext:
    workspace_root: str

    @classmethod
    def from_dict(cls, value: dict) -> WorkspaceContext:
        return cls(workspace_root=_str(value, "workspace-root"))

    def to_dict(self) -> dict[str, Any]:
        return {"workspace-root": self.workspace_root}


@dataclass
class CommonContext:
    language_server_id: int

    @classmethod
    def from_dict(cls, value: dict) -> CommonContext:
        return cls(language_server_id=_uint(value, "language-server-id"))

    def to_dict(self) -> dict[str, Any]:
        return {"language-server-id": self.language_server_id}


Context = Union[
    CompletionContext,
    ResolveContext,
    CommonContext,
    WorkspaceContext,
    InlineCompletionContext,
]

_CONTEXT_KINDS = (
    CompletionContext,
    ResolveContext,
    CommonContext,
    WorkspaceContext,
    InlineCompletionContext,
)


def parse_context(value: Any) -> Context:
    """Decode a request context; the first kind whose fields fit wins."""
    if not isinstance(value, dict):
        raise ValueError("a context must be a JSON object")
    for kind in _CONTEXT_KINDS:
        try:
            return kind.from_dict(value)
        except ValueError:
            continue
    raise ValueError("data did not match any kind of context")


@dataclass
class Params:
    """The editor's params envelope: a document uri, a context and the LSP params."""

    uri: Optional[str] = None
    context: Optional[Context] = None
    params: Any = None

    @classmethod
    def from_dict(cls, value: Any) -> Params:
        if not isinstance(value, dict):
            raise ValueError("params must be a JSON object")
        uri = value.get("uri")
        if uri is not None and not isinstance(uri, str):
            raise ValueError("field `uri` must be a string")
        context = value.get("context")
        return cls(
            uri=uri,
            context=None if context is None else parse_context(context),
            params=value.get("params"),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "uri": self.uri,
            "context": None if self.context is None else self.context.to_dict(),
        }
        if self.params is not None:
            result["params"] = self.params
        return result


def _out(body: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": VERSION, **body}


@dataclass
class Request:
    id: RequestId
    method: str
    params: Params = field(default_factory=Params)

    @classmethod
    def new(cls, id: RequestId | int | str, method: str, params: Any) -> Request:
        return cls(RequestId.from_json(id), method, Params(params=params))

    @classmethod
    def from_dict(cls, value: dict) -> Request:
        return cls(
            id=RequestId.from_json(_field(value, "id")),
            method=_str(value, "method"),
            params=Params.from_dict(_field(value, "params")),
        )

    def to_out_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"id": self.id.to_json(), "method": self.method}
        if self.params.params is not None:
            body["params"] = self.params.params
        return _out(body)


@dataclass
class Response:
    id: RequestId
    result: Any = ABSENT
    error: Optional[RpcError] = None

    @classmethod
    def ok(cls, id: RequestId | int | str, result: Any) -> Response:
        return cls(RequestId.from_json(id), result=result)

    @classmethod
    def err(cls, id: RequestId | int | str, code: ErrorCode | int, message: str) -> Response:
        return cls(RequestId.from_json(id), error=RpcError(code, message))

    @classmethod
    def from_dict(cls, value: dict) -> Response:
        result = value.get("result")
        error = value.get("error")
        return cls(
            id=RequestId.from_json(_field(value, "id")),
            result=ABSENT if result is None else result,
            error=None if error is None else RpcError.from_dict(error),
        )

    def to_out_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"id": self.id.to_json()}
        if self.result is not ABSENT:
            body["result"] = self.result
        if self.error is not None:
            body["error"] = self.error.to_dict()
        return _out(body)


class ExtractError(Exception):
    """Params of a notification could not be taken out."""


class MethodMismatch(ExtractError):
    def __init__(self, notification: Notification) -> None:
        super().__init__(f"method mismatch: {notification.method}")
        self.notification = notification


class JsonError(ExtractError):
    def __init__(self, method: str, error: Exception) -> None:
        super().__init__(f"invalid params for {method}: {error}")
        self.method = method
        self.error = error


@dataclass
class Notification:
    method: str
    params: Params = field(default_factory=Params)

    @classmethod
    def new(cls, method: str, params: Any) -> Notification:
        return cls(method, Params(params=params))

    @classmethod
    def from_dict(cls, value: dict) -> Notification:
        return cls(
            method=_str(value, "method"),
            params=Params.from_dict(_field(value, "params")),
        )

    def extract(self, method: str) -> Any:
        """Return the params as plain JSON data if this is a `method` notification."""
        if self.method != method:
            raise MethodMismatch(self)
        try:
            return json.loads(json.dumps(self.params.params))
        except (TypeError, ValueError) as exc:
            raise JsonError(self.method, exc) from exc

    def to_out_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"method": self.method}
        if self.params.params is not None:
            body["params"] = self.params.params
        return _out(body)


Message = Union[Request, Response, Notification]


def parse_message(value: Any) -> Message:
    """Decode a message from the editor: a request, a response or a notification."""
    if not isinstance(value, dict):
        raise ValueError("a message must be a JSON object")
    for kind in (Request, Response, Notification):
        try:
            return kind.from_dict(value)
        except ValueError:
            continue
    raise ValueError("data did not match any kind of message")


def read_message(stream: BinaryIO) -> Optional[Message]:
    """Read one framed message; None at end of stream."""
    size: Optional[int] = None
    while True:
        line = stream.readline()
        if not line:
            return None
        if not line.endswith(b"\r\n"):
            raise ValueError(f"malformed header: {line!r}")
        header = line[:-2].decode("utf-8")
        if not header:
            break
        name, sep, value = header.partition(": ")
        if not sep:
            raise ValueError(f"malformed header: {header!r}")
        if name.isascii() and name.lower() == "content-length":
            if not _CONTENT_LENGTH.fullmatch(value):
                raise ValueError(f"invalid Content-Length: {value!r}")
            size = int(value)

    if size is None:
        raise ValueError("no Content-Length")
    body = stream.read(size)
    if len(body) < size:
        raise EOFError("stream ended inside a message body")
    text = body.decode("utf-8")
    logger.debug("< %s", text)
    return parse_message(json.loads(text))


def write_message(
    message: Message,
    stream: BinaryIO,
    encoder: Optional[Callable[[dict[str, Any]], str]] = None,
) -> None:
    """Frame and write a message; falls back to JSON if the encoder fails."""
    payload = message.to_out_dict()
    text: Optional[str] = None
    if encoder is not None:
        try:
            text = encoder(payload)
        except (TypeError, ValueError) as exc:
            logger.warning("Failed to convert json to bytecode: %s", exc)
    if text is None:
        text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    data = text.encode("utf-8")
    stream.write(b"Content-Length: %d\r\n\r\n" % len(data))
    stream.write(data)
    stream.flush()