"""JSON-RPC 2.0 types for traffic between the proxy and language servers."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Any, Union

VERSION = "2.0"

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@total_ordering
@dataclass(frozen=True)
class RequestId:
    """A request id: a 32-bit integer or a string. Integers sort before strings."""

    value: int | str

    def __post_init__(self) -> None:
        value = self.value
        if _is_int(value):
            if not _I32_MIN <= value <= _I32_MAX:
                raise ValueError(f"request id out of range: {value}")
        elif not isinstance(value, str):
            raise ValueError(f"invalid request id: {value!r}")

    @classmethod
    def from_json(cls, value: Any) -> RequestId:
        """Build an id from its JSON value."""
        if isinstance(value, RequestId):
            return value
        return cls(value)

    def to_json(self) -> int | str:
        return self.value

    def _key(self) -> tuple[bool, int | str]:
        return (isinstance(self.value, str), self.value)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RequestId):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        if isinstance(self.value, str):
            # Quoted, so that 92 and "92" read differently.
            escaped = self.value.replace("\\", "\\\\").replace('"', '\\"')
            return f'"{escaped}"'
        return str(self.value)


class ErrorCode(enum.IntEnum):
    """The reserved JSON-RPC error codes; other codes stay plain integers."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    REQUEST_CANCELED = -32800


_CODE_NAMES = {
    ErrorCode.PARSE_ERROR: "ParseError",
    ErrorCode.INVALID_REQUEST: "InvalidRequest",
    ErrorCode.METHOD_NOT_FOUND: "MethodNotFound",
    ErrorCode.INVALID_PARAMS: "InvalidParams",
    ErrorCode.INTERNAL_ERROR: "InternalError",
    ErrorCode.REQUEST_CANCELED: "RequestCanceled",
}


def error_code_from_int(code: int) -> ErrorCode | int:
    """Map a numeric code to an ErrorCode, or keep it as a server error code."""
    if not _is_int(code):
        raise ValueError(f"invalid error code: {code!r}")
    try:
        return ErrorCode(code)
    except ValueError:
        return code


def error_code_name(code: int) -> str:
    """The display name of an error code."""
    resolved = error_code_from_int(int(code))
    if isinstance(resolved, ErrorCode):
        return _CODE_NAMES[resolved]
    return f"ServerError({resolved})"


class RpcError(Exception):
    """A JSON-RPC error object, raisable as an exception."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.code = error_code_from_int(code)
        self.message = message
        self.data = data
        super().__init__(f"{error_code_name(self.code)}: {message}")

    @classmethod
    def invalid_params(cls, message: str) -> RpcError:
        return cls(ErrorCode.INVALID_PARAMS, message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result

    @classmethod
    def from_dict(cls, value: Any) -> RpcError:
        if not isinstance(value, dict):
            raise ValueError("error object must be a JSON object")
        code = value.get("code")
        message = value.get("message")
        if not _is_int(code):
            raise ValueError("error object needs an integer `code`")
        if not isinstance(message, str):
            raise ValueError("error object needs a string `message`")
        return cls(code, message, value.get("data"))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RpcError):
            return NotImplemented
        return (int(self.code), self.message, self.data) == (
            int(other.code),
            other.message,
            other.data,
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"RpcError(code={self.code!r}, message={self.message!r}, data={self.data!r})"


def _parse_version(value: Any) -> str | None:
    if value is None:
        return None
    if value != VERSION:
        raise ValueError("invalid version")
    return VERSION


def _check_params(params: Any) -> Any:
    if params is None or isinstance(params, (list, dict)):
        return params
    raise ValueError(f"params must be an array, an object or null, not {type(params).__name__}")


def parse_params(params: Any) -> Any:
    """Validate call params: null, an array or an object."""
    try:
        return _check_params(params)
    except ValueError as exc:
        raise RpcError.invalid_params(f"Invalid params: {exc}") from None


@dataclass
class MethodCall:
    """A request sent by a language server."""

    method: str
    id: RequestId
    params: Any = None
    jsonrpc: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"jsonrpc": self.jsonrpc, "method": self.method}
        if self.params is not None:
            result["params"] = self.params
        result["id"] = self.id.to_json()
        return result


@dataclass
class Notification:
    """A notification in either direction."""

    method: str
    params: Any = None
    jsonrpc: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"jsonrpc": self.jsonrpc, "method": self.method}
        if self.params is not None:
            result["params"] = self.params
        return result


@dataclass
class InvalidCall:
    """A call that is neither a request nor a notification."""

    id: RequestId = field(default_factory=lambda: RequestId("null"))


Call = Union[MethodCall, Notification, InvalidCall]


def _only_keys(value: dict, allowed: set[str]) -> None:
    unknown = set(value) - allowed
    if unknown:
        raise ValueError(f"unknown fields: {sorted(unknown)}")


def _method(value: dict) -> str:
    method = value.get("method")
    if not isinstance(method, str):
        raise ValueError("missing string field `method`")
    return method


def _parse_method_call(value: dict) -> MethodCall:
    _only_keys(value, {"jsonrpc", "method", "params", "id"})
    if "id" not in value:
        raise ValueError("missing field `id`")
    return MethodCall(
        method=_method(value),
        id=RequestId.from_json(value["id"]),
        params=_check_params(value.get("params")),
        jsonrpc=_parse_version(value.get("jsonrpc")),
    )


def _parse_notification(value: dict) -> Notification:
    _only_keys(value, {"jsonrpc", "method", "params"})
    return Notification(
        method=_method(value),
        params=_check_params(value.get("params")),
        jsonrpc=_parse_version(value.get("jsonrpc")),
    )


def _parse_invalid(value: dict) -> InvalidCall:
    _only_keys(value, {"id"})
    if "id" in value:
        return InvalidCall(RequestId.from_json(value["id"]))
    return InvalidCall()


def parse_call(value: Any) -> Call:
    """Decode a call from a language server."""
    if not isinstance(value, dict):
        raise ValueError("a call must be a JSON object")
    for parser in (_parse_method_call, _parse_notification, _parse_invalid):
        try:
            return parser(value)
        except ValueError:
            continue
    raise ValueError("data did not match any kind of call")


@dataclass
class Success:
    """A successful response from a language server."""

    result: Any
    id: RequestId
    jsonrpc: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.jsonrpc is not None:
            result["jsonrpc"] = self.jsonrpc
        result["result"] = self.result
        result["id"] = self.id.to_json()
        return result


@dataclass
class Failure:
    """A failed response from a language server."""

    error: RpcError
    id: RequestId
    jsonrpc: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.jsonrpc is not None:
            result["jsonrpc"] = self.jsonrpc
        result["error"] = self.error.to_dict()
        result["id"] = self.id.to_json()
        return result


Output = Union[Success, Failure]


def parse_output(value: Any) -> Output:
    """Decode a response from a language server."""
    if not isinstance(value, dict):
        raise ValueError("a response must be a JSON object")
    if "id" in value:
        if "result" in value:
            try:
                return Success(
                    result=value["result"],
                    id=RequestId.from_json(value["id"]),
                    jsonrpc=_parse_version(value.get("jsonrpc")),
                )
            except ValueError:
                pass
        if "error" in value:
            return Failure(
                error=RpcError.from_dict(value["error"]),
                id=RequestId.from_json(value["id"]),
                jsonrpc=_parse_version(value.get("jsonrpc")),
            )
    raise ValueError("data did not match a success or a failure response")


def output_result(output: Output) -> Any:
    """Return the result of a response, raising its error if it failed."""
    if isinstance(output, Failure):
        raise output.error
    return output.result