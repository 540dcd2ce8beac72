"""Building blocks of a Language Server Protocol proxy for Emacs: messages, configuration and server transport."""

__version__ = "0.5.4"

__all__ = [
    "file_event",
    "globs",
    "jobs",
    "jsonrpc",
    "lsp_ext",
    "lsplog",
    "msg",
    "protocol",
    "req_queue",
    "syntax",
    "transport",
]