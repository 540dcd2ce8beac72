# lspproxy

Pieces for a proxy that sits between Emacs and one or more Language
Server Protocol servers: the message formats on both sides, the
language configuration, and the framing and routing of traffic with a
server. It is a library with no dependencies outside the standard
library.

## Modules

- `lspproxy.jsonrpc`: JSON-RPC 2.0 types used with language servers.
  `RequestId` wraps a 32-bit integer or a string; integers sort before
  strings, and a string id prints quoted. `ErrorCode` holds the reserved
  codes, while `error_code_from_int` keeps any other code as a plain
  integer and `error_code_name` gives a code's display name. `RpcError`
  is an error object that can be raised. `MethodCall`, `Notification`
  and `InvalidCall` are the calls a server sends, decoded by
  `parse_call`. `Success` and `Failure` are its responses, decoded by
  `parse_output`. `output_result` returns a result or raises the error.
  `parse_params` accepts null, an array or an object.
- `lspproxy.msg`: the messages exchanged with the editor. These are
  `Request`, `Response` and `Notification`, and each carries a `Params`
  envelope (`uri`, `context`, `params`). The editor-side contexts are
  `CompletionContext`, `InlineCompletionContext`, `ResolveContext`,
  `WorkspaceContext` and `CommonContext`. `parse_context` and
  `parse_message` decode them by trying each kind in turn.
  `read_message` reads one `Content-Length`-framed message from a binary
  stream and returns `None` at end of stream. `write_message` frames a
  message and writes it. It takes an optional `encoder` that turns the
  outgoing dict into text. If that encoder raises `TypeError` or
  `ValueError`, compact JSON is written instead. `Notification.extract`
  raises `MethodMismatch` or `JsonError`, both subclasses of
  `ExtractError`.
- `lspproxy.req_queue`: bookkeeping for pending requests. `Incoming`
  tracks received requests, and its `cancel` returns a
  `REQUEST_CANCELED` response. `Outgoing` numbers the requests it sends
  from zero. `ReqQueue` holds one of each.
- `lspproxy.globs`: `Glob` and `GlobSet`, path globs with `*`, `?`,
  `**`, `[...]` classes and `{a,b}` alternation. `*` and `?` also match
  `/`. Bad patterns raise `GlobError`.
- `lspproxy.syntax`: language and language-server configuration, built
  from plain dicts (for example a parsed TOML file). The entry points
  are `Configuration.from_dict`, `LanguageConfiguration`,
  `LanguageServerConfiguration` (default `timeout` 20),
  `LanguageServerFeatures` and the `LanguageServerFeature` enum.
  `FileType` is either an extension or a glob; a glob that does not
  start with `/` or `*/` gets `*/` in front. `Loader` finds a file's
  language, by the longest matching glob first and then by extension.
  Malformed entries raise `ConfigError`.
- `lspproxy.lsp_ext`: the editor-specific extensions and their method
  names. The types are `CustomServerCapabilitiesParams`,
  `CustomizeCancelParams`, `CompletionItem`, `CommandItem`,
  `CustomProgressParams`, `VersionInlineCompletionResult`,
  `WorkspaceRestartResponse`, `GetFilesParams`, `GetFilesResponse`,
  `EmacsFile`, `FileConfig` and `ViewFileTextParams`.
- `lspproxy.protocol`: the errors of a server link, with `LspError` as
  the base. The subclasses are `ProtocolError`, `ParseFailure`,
  `RequestTimeout`, `StreamClosed` and `Unhandled`.
  `parse_method_call` decodes the requests a server may send, and
  `parse_notification` decodes the notifications the proxy acts on.
  Both raise `Unhandled` for any other method.
- `lspproxy.lsplog`: `LspLogger` logs one server's traffic through
  `logging`. Each record carries the server name, the server id and the
  message's direction, type and method, with JSON pretty-printed.
  `init_logging(log_level, log_file)` attaches a file handler to the
  `lspproxy` logger. Level 0 logs warnings, 1 info, 2 debug and 3 or
  more trace. Calling it a second time raises `RuntimeError`.
- `lspproxy.jobs`: `Jobs` is an asyncio queue of up to 1024 callbacks.
  Tasks add callbacks with `dispatch`, the main loop takes them with
  `next_callback`, and `handle_callback` runs one against the editor
  state. A failed job passed as an exception is only logged.
- `lspproxy.file_event`: `FileEventHandler` keeps each client's
  `workspace/didChangeWatchedFiles` registrations. It holds each client
  weakly. `file_changed(path)` calls
  `client.did_change_watched_files([{"uri": ..., "type": 2}])` on every
  client whose globs match. A client that has been garbage-collected is
  dropped.
- `lspproxy.transport`: `read_server_message` and `encode_message` do
  the framing with a server. `Transport` runs three asyncio loops over a
  server's stdout, stdin and stderr, started by `start()`. Calls from
  the server arrive on `incoming` as `(server id, call)` pairs. Payloads
  put on `outgoing` (`RequestPayload`, `NotificationPayload`,
  `ResponsePayload`) are sent. A request's future is resolved with the
  result, or with `ProtocolError` or `StreamClosed`. Until
  `notify_initialized()` is called, only `initialize` and `initialized`
  are sent and other payloads wait. A `shutdown` request in that state
  ends the send loop, and so does putting `None` on `outgoing`.

## Examples

```python
import io

from lspproxy.jsonrpc import RequestId
from lspproxy.msg import Response, read_message, write_message

out = io.BytesIO()
write_message(Response.ok(RequestId(1), {"ok": True}), out, None)
out.seek(0)
print(read_message(out))
```

```python
from lspproxy.syntax import Configuration, Loader

config = Configuration.from_dict({
    "language": [
        {"name": "rust", "file-types": ["rs"], "language-servers": ["rust-analyzer"]},
    ],
    "language-server": {"rust-analyzer": {"command": "rust-analyzer"}},
})
loader = Loader(config)
print(loader.language_config_for_file_name("src/main.rs").language_id)
```

```python
from lspproxy.protocol import ServerRequestKind, parse_method_call

request = parse_method_call("workspace/configuration", {"items": [{"section": "rust"}]})
assert request.kind is ServerRequestKind.WORKSPACE_CONFIGURATION
```

## What it does not do

The package has no command and no main loop. It does not start
language-server processes: a `Transport` is given the streams of a
server that the caller has started. It keeps no editor state, such as
open documents or diagnostics. It has no handlers that answer
completion, hover, code-action or other editor requests by calling
servers. Those parts are left to the program that uses these modules.

## Tests

```
pip install -e .[test]
pytest
```