"""Language and language-server configuration, and lookup of a file's language."""

from __future__ import annotations

import datetime
import enum
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Iterator, Mapping, Optional

from .globs import Glob, GlobError, GlobSet, PathLike

DEFAULT_TIMEOUT = 20


class ConfigError(ValueError):
    """A configuration value has the wrong shape."""


def _expect_dict(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise ConfigError(f"{what} must be a table")
    return value


def _str_list(value: Any, key: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"`{key}` must be a list of strings")
    return list(value)


def _to_json(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(key): _to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json(item) for item in value]
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class FileType:
    """Either a file extension or a glob compared with the file's absolute path."""

    extension: Optional[str] = None
    glob: Optional[Glob] = None

    def __post_init__(self) -> None:
        if (self.extension is None) == (self.glob is None):
            raise ValueError("a file type is either an extension or a glob")

    @classmethod
    def from_value(cls, value: Any) -> FileType:
        if isinstance(value, str):
            return cls(extension=value)
        if not isinstance(value, dict):
            raise ConfigError("invalid file type: expected string or table")
        if not value:
            raise ConfigError("expected a `suffix` key in the `file-types` entry")
        key, pattern = next(iter(value.items()))
        if key != "glob":
            raise ConfigError(f"unknown key in `file-types` list: {key}")
        if not isinstance(pattern, str):
            raise ConfigError("`glob` must be a string")
        # Relative globs get a leading wildcard so they match absolute paths.
        if not pattern.startswith("/") and not pattern.startswith("*/"):
            pattern = "*/" + pattern
        try:
            return cls(glob=Glob(pattern))
        except GlobError as exc:
            raise ConfigError(f"invalid `glob` pattern: {exc}") from exc

    def to_value(self) -> Any:
        if self.glob is not None:
            return {"glob": self.glob.glob}
        return self.extension


class LanguageServerFeature(enum.Enum):
    FORMAT = "format"
    GOTO_DECLARATION = "goto-declaration"
    GOTO_DEFINITION = "goto-definition"
    GOTO_TYPE_DEFINITION = "goto-type-definition"
    GOTO_REFERENCE = "goto-reference"
    GOTO_IMPLEMENTATION = "goto-implementation"
    SIGNATURE_HELP = "signature-help"
    HOVER = "hover"
    DOCUMENT_HIGHLIGHT = "document-highlight"
    COMPLETION = "completion"
    INLINE_COMPLETION = "inline-completion"
    COMPLETION_RESOLVE = "completion-resolve"
    CODE_ACTION = "code-action"
    WORKSPACE_COMMAND = "workspace-command"
    DOCUMENT_SYMBOLS = "document-symbols"
    WORKSPACE_SYMBOLS = "workspace-symbols"
    DIAGNOSTICS = "diagnostics"
    RENAME_SYMBOL = "rename-symbol"
    INLAY_HINTS = "inlay-hints"
    PULL_DIAGNOSTICS = "pull-diagnostics"

    def __str__(self) -> str:
        # Display shares the type-definition name for references.
        if self is LanguageServerFeature.GOTO_REFERENCE:
            return LanguageServerFeature.GOTO_TYPE_DEFINITION.value
        return self.value


_FEATURE_ORDER = {feature: index for index, feature in enumerate(LanguageServerFeature)}


def _feature_set(value: Any, key: str) -> set[LanguageServerFeature]:
    names = _str_list(value, key)
    try:
        return {LanguageServerFeature(name) for name in names}
    except ValueError as exc:
        raise ConfigError(f"unknown feature in `{key}`: {exc}") from exc


def _feature_list(features: set[LanguageServerFeature]) -> list[str]:
    return [feature.value for feature in sorted(features, key=_FEATURE_ORDER.__getitem__)]


_FEATURES_KEYS = {
    "only-features",
    "except-features",
    "name",
    "support-workspace",
    "library-directories",
    "config-files",
}


@dataclass
class LanguageServerFeatures:
    """A language server used for a language, with the features taken from it."""

    name: str
    only: set[LanguageServerFeature] = field(default_factory=set)
    excluded: set[LanguageServerFeature] = field(default_factory=set)
    support_workspace: bool = False
    library_directories: list[str] = field(default_factory=list)
    config_files: list[str] = field(default_factory=list)

    def has_features(self, feature: LanguageServerFeature) -> bool:
        return (not self.only or feature in self.only) and feature not in self.excluded

    @classmethod
    def from_value(cls, value: Any) -> LanguageServerFeatures:
        if isinstance(value, str):
            return cls(name=value)
        value = _expect_dict(value, "a language server entry")
        unknown = set(value) - _FEATURES_KEYS
        if unknown:
            raise ConfigError(f"unknown fields in language server entry: {sorted(unknown)}")
        name = value.get("name")
        if not isinstance(name, str):
            raise ConfigError("language server entry needs a string `name`")
        support_workspace = value.get("support-workspace", False)
        if not isinstance(support_workspace, bool):
            raise ConfigError("`support-workspace` must be a boolean")
        return cls(
            name=name,
            only=_feature_set(value.get("only-features", []), "only-features"),
            excluded=_feature_set(value.get("except-features", []), "except-features"),
            support_workspace=support_workspace,
            library_directories=_str_list(
                value.get("library-directories", []), "library-directories"
            ),
            config_files=_str_list(value.get("config-files", []), "config-files"),
        )

    def to_value(self) -> Any:
        if not self.only and not self.excluded:
            return self.name
        result: dict[str, Any] = {}
        if self.only:
            result["only-features"] = _feature_list(self.only)
        if self.excluded:
            result["except-features"] = _feature_list(self.excluded)
        result["name"] = self.name
        result["support-workspace"] = self.support_workspace
        if self.library_directories:
            result["library-directories"] = list(self.library_directories)
        if self.config_files:
            result["config-files"] = list(self.config_files)
        return result


_LANGUAGE_KEYS = {"name", "language-id", "roots", "file-types", "language-servers"}


@dataclass
class LanguageConfiguration:
    language_id: str
    file_types: list[FileType]
    language_server_language_id: Optional[str] = None
    roots: list[str] = field(default_factory=list)
    language_servers: list[LanguageServerFeatures] = field(default_factory=list)

    @classmethod
    def from_dict(cls, value: Any) -> LanguageConfiguration:
        value = _expect_dict(value, "a language entry")
        unknown = set(value) - _LANGUAGE_KEYS
        if unknown:
            raise ConfigError(f"unknown fields in language entry: {sorted(unknown)}")
        name = value.get("name")
        if not isinstance(name, str):
            raise ConfigError("language entry needs a string `name`")
        server_language_id = value.get("language-id")
        if server_language_id is not None and not isinstance(server_language_id, str):
            raise ConfigError("`language-id` must be a string")
        if "file-types" not in value:
            raise ConfigError("missing field `file-types`")
        file_types = value["file-types"]
        if not isinstance(file_types, list):
            raise ConfigError("`file-types` must be a list")
        servers = value.get("language-servers", [])
        if not isinstance(servers, list):
            raise ConfigError("`language-servers` must be a list")
        return cls(
            language_id=name,
            file_types=[FileType.from_value(item) for item in file_types],
            language_server_language_id=server_language_id,
            roots=_str_list(value.get("roots", []), "roots"),
            language_servers=[LanguageServerFeatures.from_value(item) for item in servers],
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.language_id}
        if self.language_server_language_id is not None:
            result["language-id"] = self.language_server_language_id
        result["roots"] = list(self.roots)
        result["file-types"] = [file_type.to_value() for file_type in self.file_types]
        if self.language_servers:
            result["language-servers"] = [ls.to_value() for ls in self.language_servers]
        return result


@dataclass
class LanguageServerConfiguration:
    command: str
    args: list[str] = field(default_factory=list)
    environment: dict[str, str] = field(default_factory=dict)
    config: Any = None
    timeout: int = DEFAULT_TIMEOUT
    experimental: Any = None

    @classmethod
    def from_dict(cls, value: Any) -> LanguageServerConfiguration:
        value = _expect_dict(value, "a language server configuration")
        command = value.get("command")
        if not isinstance(command, str):
            raise ConfigError("language server configuration needs a string `command`")
        environment = _expect_dict(value.get("environment", {}), "`environment`")
        if not all(isinstance(k, str) and isinstance(v, str) for k, v in environment.items()):
            raise ConfigError("`environment` must map strings to strings")
        timeout = value.get("timeout", DEFAULT_TIMEOUT)
        if not isinstance(timeout, int) or isinstance(timeout, bool) or timeout < 0:
            raise ConfigError("`timeout` must be a non-negative integer")
        config = value.get("config")
        experimental = value.get("experimental")
        return cls(
            command=command,
            args=_str_list(value.get("args", []), "args"),
            environment=dict(environment),
            config=None if config is None else _to_json(config),
            timeout=timeout,
            experimental=None if experimental is None else _to_json(experimental),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"command": self.command}
        if self.args:
            result["args"] = list(self.args)
        if self.environment:
            result["environment"] = dict(self.environment)
        result["timeout"] = self.timeout
        return result


@dataclass
class Configuration:
    language: list[LanguageConfiguration]
    language_server: dict[str, LanguageServerConfiguration] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, value: Any) -> Configuration:
        value = _expect_dict(value, "the configuration")
        if "language" not in value:
            raise ConfigError("missing field `language`")
        languages = value["language"]
        if not isinstance(languages, list):
            raise ConfigError("`language` must be a list")
        servers = _expect_dict(value.get("language-server", {}), "`language-server`")
        return cls(
            language=[LanguageConfiguration.from_dict(item) for item in languages],
            language_server={
                name: LanguageServerConfiguration.from_dict(item)
                for name, item in servers.items()
            },
        )


def _extension(path: PathLike) -> Optional[str]:
    name = PurePath(path).name
    if not name or name == "..":
        return None
    head, dot, tail = name.rpartition(".")
    if not dot or not head:
        return None
    return tail


class Loader:
    """Finds the language configuration of a file by glob or by extension."""

    def __init__(self, config: Configuration) -> None:
        self._language_configs: list[LanguageConfiguration] = []
        self._ids_by_extension: dict[str, int] = {}
        globs: list[Glob] = []
        self._glob_language_ids: list[int] = []
        for language in config.language:
            language_id = len(self._language_configs)
            for file_type in language.file_types:
                if file_type.glob is not None:
                    globs.append(file_type.glob)
                    self._glob_language_ids.append(language_id)
                else:
                    self._ids_by_extension[file_type.extension] = language_id
            self._language_configs.append(language)
        self._globs = GlobSet(globs)
        self._language_server_configs = dict(config.language_server)

    def _id_by_glob(self, path: PathLike) -> Optional[int]:
        best: Optional[int] = None
        best_len = -1
        globs = list(self._globs)
        for index in self._globs.matches(path):
            # On equal length the later glob wins.
            if len(globs[index]) >= best_len:
                best_len = len(globs[index])
                best = self._glob_language_ids[index]
        return best

    def language_config_for_file_name(self, path: PathLike) -> Optional[LanguageConfiguration]:
        language_id = self._id_by_glob(path)
        if language_id is None:
            extension = _extension(path)
            if extension is not None:
                language_id = self._ids_by_extension.get(extension)
        if language_id is None:
            return None
        return self._language_configs[language_id]

    def language_config_for_language_id(self, id: str) -> Optional[LanguageConfiguration]:
        return next((c for c in self._language_configs if c.language_id == id), None)

    def language_configs(self) -> Iterator[LanguageConfiguration]:
        return iter(self._language_configs)

    def language_server_configs(self) -> Mapping[str, LanguageServerConfiguration]:
        return self._language_server_configs