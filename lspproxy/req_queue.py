"""Bookkeeping for requests that are still waiting for an answer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

from .jsonrpc import ErrorCode, RequestId
from .msg import Request, Response

I = TypeVar("I")
O = TypeVar("O")


class Incoming(Generic[I]):
    """Requests received and not yet answered."""

    def __init__(self) -> None:
        self._pending: dict[RequestId, I] = {}

    def register(self, id: RequestId, data: I) -> None:
        self._pending[id] = data

    def cancel(self, id: RequestId) -> Optional[Response]:
        """Drop a pending request and return its cancellation response."""
        if id not in self._pending:
            return None
        del self._pending[id]
        return Response.err(id, ErrorCode.REQUEST_CANCELED, "canceled by client")

    def complete(self, id: RequestId) -> Optional[I]:
        return self._pending.pop(id, None)

    def is_completed(self, id: RequestId) -> bool:
        return id not in self._pending

    def entries(self) -> list[tuple[RequestId, I]]:
        return list(self._pending.items())

    def is_empty(self) -> bool:
        return not self._pending

    def values(self) -> list[I]:
        return list(self._pending.values())


class Outgoing(Generic[O]):
    """Requests sent and not yet answered, numbered from zero."""

    def __init__(self) -> None:
        self._next_id = 0
        self._pending: dict[RequestId, O] = {}

    def register(self, method: str, params: Any, data: O) -> Request:
        request_id = RequestId(self._next_id)
        self._pending[request_id] = data
        self._next_id += 1
        return Request.new(request_id, method, params)

    def complete(self, id: RequestId) -> Optional[O]:
        return self._pending.pop(id, None)


@dataclass
class ReqQueue(Generic[I, O]):
    incoming: Incoming[I] = field(default_factory=Incoming)
    outgoing: Outgoing[O] = field(default_factory=Outgoing)