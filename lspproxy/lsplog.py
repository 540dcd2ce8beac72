"""Structured logging of language-server traffic, and the log file setup."""

from __future__ import annotations

import datetime
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_ROOT_LOGGER = "lspproxy"
_FIELDS = ("server", "server_id", "direction", "message_type", "method", "raw_content")

_log = logging.getLogger(__name__)


def pretty_print_json(json_str: str) -> str:
    """Re-indent a JSON text; raises ValueError if it is not JSON."""
    return json.dumps(json.loads(json_str), indent=2, ensure_ascii=False)


def extract_method(json_str: str) -> Optional[str]:
    """The `method` of a JSON-RPC message, if it has a string one."""
    try:
        value = json.loads(json_str)
    except ValueError:
        return None
    if not isinstance(value, dict):
        return None
    method = value.get("method")
    return method if isinstance(method, str) else None


class LspLogger:
    """Logs the traffic of one language server, tagging each record with the server."""

    def __init__(
        self,
        server_name: str,
        server_id: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.server_name = server_name
        self.server_id = server_id
        self._logger = logger or _log

    def _emit(self, level: int, message: str, *args: Any, **fields: Any) -> None:
        extra = {"server": self.server_name, "server_id": self.server_id, **fields}
        self._logger.log(level, message, *args, extra=extra)

    def _traffic(
        self,
        label: str,
        content: str,
        direction: str,
        message_type: str,
        method: Optional[str] = None,
    ) -> None:
        fields: dict[str, Any] = {"direction": direction, "message_type": message_type}
        if method is not None:
            fields["method"] = method
        try:
            formatted = pretty_print_json(content)
        except ValueError:
            self._emit(
                logging.INFO, "%s (invalid JSON)", label, raw_content=content, **fields
            )
        else:
            self._emit(logging.INFO, "%s:\n%s", label, formatted, **fields)

    def log_request(self, method: str, content: str) -> None:
        self._traffic("LSP Request", content, "outgoing", "request", method)

    def log_response(self, content: str) -> None:
        self._traffic("LSP Response", content, "incoming", "response")

    def log_notification(self, method: str, content: str) -> None:
        self._traffic("LSP Notification", content, "incoming", "notification", method)

    def log_error(self, error: str) -> None:
        self._emit(logging.ERROR, "LSP Server Error: %s", error, message_type="error")

    def log_debug(self, message: str) -> None:
        self._emit(logging.DEBUG, "%s", message)

    def log_info(self, message: str) -> None:
        self._emit(logging.INFO, "%s", message)


def filter_level(log_level: int) -> int:
    """Map the command-line verbosity to a logging level."""
    if log_level <= 0:
        return logging.WARNING
    if log_level == 1:
        return logging.INFO
    if log_level == 2:
        return logging.DEBUG
    return TRACE


class _Formatter(logging.Formatter):
    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        moment = datetime.datetime.fromtimestamp(record.created).astimezone()
        return moment.isoformat(timespec="microseconds")

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        fields = [
            f"{name}={getattr(record, name)}"
            for name in _FIELDS
            if getattr(record, name, None) is not None
        ]
        return f"{text} {' '.join(fields)}" if fields else text


class _ProxyFileHandler(logging.FileHandler):
    """The file handler installed by init_logging."""


def init_logging(log_level: int, log_file: "str | os.PathLike[str]") -> logging.Handler:
    """Send the package's logs to `<dir>/<stem>.log`; may be done only once."""
    root = logging.getLogger(_ROOT_LOGGER)
    if any(isinstance(handler, _ProxyFileHandler) for handler in root.handlers):
        raise RuntimeError("Failed to initialize logging: already initialized")
    path = Path(log_file)
    stem = path.stem or "lsp-proxy"
    directory = path.parent
    directory.mkdir(parents=True, exist_ok=True)
    handler = _ProxyFileHandler(directory / f"{stem}.log", encoding="utf-8")
    handler.setFormatter(_Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)
    root.setLevel(filter_level(log_level))
    return handler