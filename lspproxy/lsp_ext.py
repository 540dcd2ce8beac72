"""Protocol extensions used between the editor and the proxy."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .jsonrpc import RequestId

CUSTOM_SERVER_CAPABILITIES = "emacs/serverCapabilities"
CUSTOMIZE_CANCEL = "$/cancelRequest"
WORKSPACE_RESTART = "emacs/workspaceRestart"
GET_FILES = "emacs/getFiles"
GET_COMMANDS = "emacs/getCommands"
CUSTOM_PROGRESS = "$/progress"
DID_FOCUS_TEXT_DOCUMENT = "textDocument/didFocus"
VIEW_FILE_TEXT = "rust-analyzer/viewFileText"
RUST_ANALYZER_RELOAD_WORKSPACE = "rust-analyzer/reloadWorkspace"


def _get(value: Any, key: str, kind: type | tuple[type, ...]) -> Any:
    if not isinstance(value, dict):
        raise ValueError("expected a JSON object")
    if key not in value:
        raise ValueError(f"missing field `{key}`")
    item = value[key]
    if not isinstance(item, kind) or (kind is int and isinstance(item, bool)):
        raise ValueError(f"field `{key}` has the wrong type")
    return item


@dataclass
class CompletionItem:
    """An LSP completion item tagged with the server it came from."""

    item: dict[str, Any]
    language_server_name: str
    start: int
    end: int
    language_server_id: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "item": self.item,
            "language_server_id": self.language_server_id,
            "language_server_name": self.language_server_name,
            "start": self.start,
            "end": self.end,
        }

    @classmethod
    def from_dict(cls, value: Any) -> CompletionItem:
        server_id = value.get("language_server_id") if isinstance(value, dict) else None
        if server_id is not None and (not isinstance(server_id, int) or server_id < 0):
            raise ValueError("field `language_server_id` must be a non-negative integer")
        return cls(
            item=_get(value, "item", dict),
            language_server_name=_get(value, "language_server_name", str),
            start=_get(value, "start", int),
            end=_get(value, "end", int),
            language_server_id=server_id,
        )


_CAPABILITY_FIELDS = (
    ("support_inlay_hints", "supportInlayHints"),
    ("support_document_highlight", "supportDocumentHighlight"),
    ("support_document_symbols", "supportDocumentSymbols"),
    ("support_signature_help", "supportSignatureHelp"),
    ("support_pull_diagnostic", "supportPullDiagnostic"),
    ("support_inline_completion", "supportInlineCompletion"),
)


@dataclass
class CustomServerCapabilitiesParams:
    uri: str
    trigger_characters: list[str] = field(default_factory=list)
    support_inlay_hints: bool = False
    support_document_highlight: bool = False
    support_document_symbols: bool = False
    support_signature_help: bool = False
    support_pull_diagnostic: bool = False
    support_inline_completion: bool = False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "uri": self.uri,
            "triggerCharacters": list(self.trigger_characters),
        }
        for attr, key in _CAPABILITY_FIELDS:
            result[key] = getattr(self, attr)
        return result

    @classmethod
    def from_dict(cls, value: Any) -> CustomServerCapabilitiesParams:
        triggers = _get(value, "triggerCharacters", list)
        if not all(isinstance(t, str) for t in triggers):
            raise ValueError("field `triggerCharacters` must hold strings")
        flags = {attr: _get(value, key, bool) for attr, key in _CAPABILITY_FIELDS}
        return cls(uri=_get(value, "uri", str), trigger_characters=list(triggers), **flags)


@dataclass
class CustomizeCancelParams:
    id: RequestId
    uri: Optional[str] = None

    @classmethod
    def from_dict(cls, value: Any) -> CustomizeCancelParams:
        if not isinstance(value, dict) or "id" not in value:
            raise ValueError("missing field `id`")
        uri = value.get("uri")
        if uri is not None and not isinstance(uri, str):
            raise ValueError("field `uri` must be a string")
        return cls(id=RequestId.from_json(value["id"]), uri=uri)

    def to_dict(self) -> dict[str, Any]:
        return {"uri": self.uri, "id": self.id.to_json()}


@dataclass
class WorkspaceRestartResponse:
    paths: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"paths": list(self.paths)}


@dataclass
class FileConfig:
    path: Path
    language_id: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": str(self.path), "language_id": self.language_id}


@dataclass
class GetFilesParams:
    paths: list[Path] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"paths": [str(path) for path in self.paths]}


@dataclass
class EmacsFile:
    path: str
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "content": self.content}

    @classmethod
    def from_dict(cls, value: Any) -> EmacsFile:
        return cls(path=_get(value, "path", str), content=_get(value, "content", str))


@dataclass
class GetFilesResponse:
    files: list[EmacsFile] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"files": [f.to_dict() for f in self.files]}

    @classmethod
    def from_dict(cls, value: Any) -> GetFilesResponse:
        return cls(files=[EmacsFile.from_dict(f) for f in _get(value, "files", list)])


@dataclass
class CommandItem:
    id: str
    language_server_id: int

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "language_server_id": self.language_server_id}


@dataclass
class CustomProgressParams:
    """A server's progress notification, tagged with the server's root path."""

    root_path: str
    params: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"rootPath": self.root_path, "params": self.params}


@dataclass
class ViewFileTextParams:
    uri: str

    def to_dict(self) -> dict[str, Any]:
        return {"uri": self.uri}


@dataclass
class VersionInlineCompletionResult:
    """Inline completion items with the document version they were made for."""

    doc_version: int
    items: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"docVersion": self.doc_version, "items": list(self.items)}