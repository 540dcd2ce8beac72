"""Framed JSON-RPC traffic with one language server process."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union

from .jsonrpc import (
    VERSION,
    Call,
    Failure,
    MethodCall,
    Notification,
    Output,
    RequestId,
    Success,
    parse_call,
    parse_output,
)
from .lsplog import LspLogger, extract_method
from .protocol import LspError, ParseFailure, ProtocolError, StreamClosed

logger = logging.getLogger(__name__)

INITIALIZE = "initialize"
INITIALIZED = "initialized"
SHUTDOWN = "shutdown"
EXIT = "exit"

_LENGTH = re.compile(r"\+?[0-9]+")


class _Reader(Protocol):
    async def readline(self) -> bytes: ...

    async def readexactly(self, n: int) -> bytes: ...


class _Writer(Protocol):
    def write(self, data: bytes) -> Any: ...

    async def drain(self) -> None: ...


@dataclass
class RequestPayload:
    """A request to the server; its answer is delivered to `chan`."""

    value: MethodCall
    chan: "asyncio.Future[Any]"


@dataclass
class NotificationPayload:
    value: Notification


@dataclass
class ResponsePayload:
    value: Output


Payload = Union[RequestPayload, NotificationPayload, ResponsePayload]
ServerMessage = Union[Success, Failure, MethodCall, Notification, Any]


def encode_message(text: str) -> bytes:
    """Frame a JSON text with its Content-Length header."""
    body = text.encode("utf-8")
    return b"Content-Length: %d\r\n\r\n" % len(body) + body


def _parse_server_message(value: Any) -> Union[Output, Call]:
    try:
        return parse_output(value)
    except ValueError:
        return parse_call(value)


async def read_server_message(
    reader: _Reader, logger: Optional[LspLogger] = None
) -> Union[Output, Call]:
    """Read one framed message from a server; lines that are not headers are skipped."""
    content_length: Optional[int] = None
    while True:
        try:
            line = await reader.readline()
        except OSError as exc:
            raise LspError(f"IO Error: {exc}") from exc
        if not line:
            raise StreamClosed()
        try:
            text = line.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise LspError(f"IO Error: {exc}") from exc
        if text == "\r\n":
            break
        name, sep, value = text.strip().partition(": ")
        if sep and name == "Content-Length":
            if not _LENGTH.fullmatch(value):
                raise LspError(f"invald content length: {value!r}")
            content_length = int(value)

    if content_length is None:
        raise LspError("missing content length")
    try:
        body = await reader.readexactly(content_length)
    except (asyncio.IncompleteReadError, OSError) as exc:
        raise LspError(f"IO Error: {exc}") from exc
    try:
        message = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise LspError("invalid utf8 from server") from exc
    if logger is not None:
        logger.log_response(message)
    try:
        return _parse_server_message(json.loads(message))
    except ValueError as exc:
        raise ParseFailure(exc) from exc


def _is_initialize(payload: Payload) -> bool:
    if isinstance(payload, RequestPayload):
        return payload.value.method == INITIALIZE
    if isinstance(payload, NotificationPayload):
        return payload.value.method == INITIALIZED
    return False


def _is_shutdown(payload: Payload) -> bool:
    return isinstance(payload, RequestPayload) and payload.value.method == SHUTDOWN


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class Transport:
    """Moves messages between the proxy and one server's stdin, stdout and stderr.

    Calls from the server arrive on `incoming` as (server id, call) pairs.
    Payloads put on `outgoing` are sent; until the server is initialized only the
    initialize request and initialized notification go out, the rest wait.
    Putting None on `outgoing` ends the send loop.
    """

    def __init__(
        self,
        server_stdout: _Reader,
        server_stdin: _Writer,
        server_stderr: _Reader,
        id: int,
        name: str,
    ) -> None:
        self.id = id
        self.name = name
        self.logger = LspLogger(name, id)
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.outgoing: asyncio.Queue = asyncio.Queue()
        self._stdout = server_stdout
        self._stdin = server_stdin
        self._stderr = server_stderr
        self._pending_requests: dict[RequestId, asyncio.Future] = {}
        self._initialize = asyncio.Event()

    def start(self) -> list[asyncio.Task]:
        """Start the receive, stderr and send loops on the running event loop."""
        return [
            asyncio.ensure_future(self.recv_loop()),
            asyncio.ensure_future(self.err_loop()),
            asyncio.ensure_future(self.send_loop()),
        ]

    def notify_initialized(self) -> None:
        """Signal that the initialize request was answered."""
        self._initialize.set()

    async def recv_loop(self) -> None:
        while True:
            try:
                msg = await read_server_message(self._stdout, self.logger)
            except LspError as err:
                if not isinstance(err, StreamClosed):
                    logger.error("Exiting %s after unexpected error: %r", self.name, err)
                self._close_pending()
                try:
                    self.process_server_message(Notification(method=EXIT))
                except LspError as exc:
                    logger.error("stream closed err: <- %r", exc)
                break
            try:
                self.process_server_message(msg)
            except LspError as err:
                logger.error("ok %s err: <- %r", self.name, err)
                break

    def _close_pending(self) -> None:
        for request_id, future in self._pending_requests.items():
            if future.done():
                logger.error(
                    "Could not close request on a closed channel (id=%s)", request_id
                )
            else:
                future.set_exception(StreamClosed())
        self._pending_requests.clear()

    async def send_loop(self) -> None:
        pending: list[Payload] = []
        is_pending = True
        get_task: asyncio.Future = asyncio.ensure_future(self.outgoing.get())
        wait_task: Optional[asyncio.Future] = None
        try:
            while True:
                wait_task = asyncio.ensure_future(self._initialize.wait())
                done, _ = await asyncio.wait(
                    {get_task, wait_task}, return_when=asyncio.FIRST_COMPLETED
                )
                if wait_task in done:
                    # Initialization is handled before any queued message.
                    self._initialize.clear()
                    await self._on_initialized(pending)
                    is_pending = False
                    continue
                wait_task.cancel()
                msg = get_task.result()
                get_task = asyncio.ensure_future(self.outgoing.get())
                if msg is None:
                    logger.error("recv none msg, cause channel closed")
                    break
                if is_pending and _is_shutdown(msg):
                    break
                if is_pending and not _is_initialize(msg):
                    pending.append(msg)
                    continue
                try:
                    await self.send_payload(msg)
                except LspError as err:
                    logger.error("%s(%s) err: <- %r", self.name, self.id, err)
        finally:
            get_task.cancel()
            if wait_task is not None:
                wait_task.cancel()

    async def _on_initialized(self, pending: list[Payload]) -> None:
        initialized = Notification(method=INITIALIZED, jsonrpc=VERSION)
        await self.send_payload(NotificationPayload(initialized))
        # Pass an initialized notification on so post-init work runs.
        try:
            self.process_server_message(Notification(method=INITIALIZED))
        except LspError as err:
            logger.error("%s err: <- %r", self.name, err)
        for msg in pending:
            try:
                await self.send_payload(msg)
            except LspError as err:
                logger.error("%s err: <- %r", self.name, err)
        pending.clear()

    async def err_loop(self) -> None:
        while True:
            try:
                line = await self._stderr.readline()
            except OSError as err:
                logger.error("err~ %s err: <- %r", self.name, err)
                break
            if not line:
                logger.error("err~ %s err: <- %r", self.name, StreamClosed())
                break
            self.logger.log_error(line.decode("utf-8", "replace").strip())

    def process_server_message(self, msg: Union[Output, Call]) -> None:
        """Resolve a response, or pass a call on to `incoming`."""
        if isinstance(msg, (Success, Failure)):
            self._process_response(msg)
        else:
            self.incoming.put_nowait((self.id, msg))

    def _process_response(self, output: Output) -> None:
        if isinstance(output, Failure):
            logger.error("%s <- %s", self.name, output.error)
        future = self._pending_requests.pop(output.id, None)
        if future is None:
            logger.error(
                "Discarding Language Server response without a request (id=%s)", output.id
            )
            return
        if future.done():
            logger.error(
                "Tried sending response into a closed channel (id=%s), "
                "original request likely timed out",
                output.id,
            )
            return
        if isinstance(output, Failure):
            future.set_exception(ProtocolError(output.error))
        else:
            future.set_result(output.result)

    async def send_payload(self, payload: Payload) -> None:
        """Write a payload to the server, remembering requests until answered."""
        if isinstance(payload, RequestPayload):
            self._pending_requests[payload.value.id] = payload.chan
            text = _dumps(payload.value.to_dict())
        else:
            text = _dumps(payload.value.to_dict())
        await self._send_string(text)

    async def _send_string(self, text: str) -> None:
        method = extract_method(text)
        if method is not None:
            self.logger.log_request(method, text)
        else:
            self.logger.log_debug(f"Sending message: {text}")
        try:
            self._stdin.write(encode_message(text))
            await self._stdin.drain()
        except OSError as exc:
            raise LspError(f"IO Error: {exc}") from exc