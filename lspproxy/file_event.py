"""Forwarding of saved-file events to language servers that asked to watch them."""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .globs import Glob, GlobError, GlobSet, PathLike

logger = logging.getLogger(__name__)

FILE_CHANGED = 2
"""The LSP FileChangeType sent for every event; nothing finer is known."""


def _client_name(client: Any) -> str:
    name = getattr(client, "name", "?")
    return name() if callable(name) else str(name)


def _weak(client: Any) -> "weakref.ReferenceType[Any]":
    if isinstance(client, weakref.ReferenceType):
        return client
    return weakref.ref(client)


@dataclass
class _ClientState:
    client: Optional["weakref.ReferenceType[Any]"] = None
    registered: dict[str, GlobSet] = field(default_factory=dict)


def _build_globset(options: Any) -> GlobSet:
    watchers = options.get("watchers", []) if isinstance(options, dict) else []
    globs: list[Glob] = []
    for watcher in watchers:
        pattern = watcher.get("globPattern") if isinstance(watcher, dict) else None
        # Only plain string patterns are watched; relative patterns are skipped.
        if not isinstance(pattern, str):
            continue
        try:
            globs.append(Glob(pattern))
        except GlobError:
            continue
    return GlobSet(globs)


class FileEventHandler:
    """Keeps each client's didChangeWatchedFiles registrations and notifies on changes."""

    def __init__(self) -> None:
        self._state: dict[int, _ClientState] = {}

    def register(
        self, client_id: int, client: Any, registration_id: str, options: Any
    ) -> None:
        """Register (or replace) the watchers of one registration of a client."""
        logger.debug(
            "Registering didChangeWatchedFiles for client '%s' with id '%s'",
            client_id,
            registration_id,
        )
        entry = self._state.setdefault(client_id, _ClientState())
        entry.client = _weak(client)
        entry.registered[registration_id] = _build_globset(options)

    def unregister(self, client_id: int, registration_id: str) -> None:
        logger.debug(
            "Unregistering didChangeWatchedFiles with id '%s' for client '%s'",
            registration_id,
            client_id,
        )
        entry = self._state.get(client_id)
        if entry is None:
            return
        entry.registered.pop(registration_id, None)
        if not entry.registered:
            del self._state[client_id]

    def file_changed(self, path: PathLike) -> None:
        """Tell every client watching the path that the file changed."""
        logger.debug("Received file event for %r", path)
        for client_id, entry in list(self._state.items()):
            if not any(globs.is_match(path) for globs in entry.registered.values()):
                continue
            client = entry.client() if entry.client is not None else None
            if client is None:
                logger.warning("LSP client was dropped: %s", client_id)
                del self._state[client_id]
                continue
            try:
                uri = Path(path).as_uri()
            except ValueError:
                continue
            logger.debug(
                "Sending didChangeWatchedFiles notification to client '%s'",
                _client_name(client),
            )
            try:
                client.did_change_watched_files([{"uri": uri, "type": FILE_CHANGED}])
            except Exception as exc:  # the client's own failure must not stop the others
                logger.warning(
                    "Failed to send didChangeWatchedFiles notification to client: %s", exc
                )

    def remove_client(self, client_id: int) -> None:
        logger.debug("Removing LSP client: %s", client_id)
        self._state.pop(client_id, None)

    def registered_clients(self) -> dict[int, frozenset[str]]:
        """Registration ids held for each client."""
        return {
            client_id: frozenset(entry.registered)
            for client_id, entry in self._state.items()
        }