"""Shell-style path globs: `*`, `?`, `**`, `[...]` classes and `{a,b}` alternation."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Iterable, Union

PathLike = Union[str, bytes, "os.PathLike[str]", "os.PathLike[bytes]"]


class GlobError(ValueError):
    """A glob pattern could not be parsed."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"error parsing glob '{pattern}': {reason}")
        self.pattern = pattern
        self.reason = reason


def _path_text(path: PathLike) -> str:
    text = os.fspath(path)
    if isinstance(text, bytes):
        return text.decode("utf-8", "surrogateescape")
    return text


def _recursive(pattern: str, i: int, parts: list[str], in_alt: bool) -> int:
    """Translate a `**` at position i; return the position after it."""
    n = len(pattern)
    after = i + 2
    nxt = pattern[after] if after < n else None
    if i == 0:
        if nxt is None:
            parts.append(".*")
            return after
        if nxt == "/":
            parts.append("(?:/?|.*/)")
            return after + 1
        parts.append(".*")
        return after
    prev = pattern[i - 1]
    if prev != "/" or not parts or parts[-1] != "/":
        parts.append(".*")
        return after
    if nxt is None or (in_alt and nxt in ",}"):
        parts[-1] = "/.*"
        return after
    if nxt == "/":
        parts[-1] = "(?:/|/.*/)"
        return after + 1
    parts.append(".*")
    return after


def _char_class(pattern: str, i: int, parts: list[str]) -> int:
    """Translate a `[...]` class starting at position i; return the position after it."""
    n = len(pattern)
    j = i + 1
    negated = False
    if j < n and pattern[j] in "!^":
        negated = True
        j += 1
    items: list[str] = []
    first = True
    while True:
        if j >= n:
            raise GlobError(pattern, "unclosed character class; missing ']'")
        ch = pattern[j]
        if ch == "]" and not first:
            j += 1
            break
        first = False
        if j + 2 < n and pattern[j + 1] == "-" and pattern[j + 2] != "]":
            low, high = ch, pattern[j + 2]
            if low > high:
                raise GlobError(pattern, f"invalid range; '{low}' > '{high}'")
            items.append(f"{re.escape(low)}-{re.escape(high)}")
            j += 3
        else:
            items.append(re.escape(ch))
            j += 1
    parts.append("[" + ("^" if negated else "") + "".join(items) + "]")
    return j


def _translate(pattern: str) -> str:
    parts: list[str] = []
    in_alt = False
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == "\\":
            if i + 1 >= n:
                raise GlobError(pattern, "dangling '\\'")
            parts.append(re.escape(pattern[i + 1]))
            i += 2
        elif c == "*":
            if pattern.startswith("**", i):
                i = _recursive(pattern, i, parts, in_alt)
            else:
                parts.append(".*")
                i += 1
        elif c == "?":
            parts.append(".")
            i += 1
        elif c == "[":
            i = _char_class(pattern, i, parts)
        elif c == "{":
            if in_alt:
                raise GlobError(pattern, "nested alternate groups are not allowed")
            in_alt = True
            parts.append("(?:")
            i += 1
        elif c == "}":
            if not in_alt:
                raise GlobError(pattern, "unopened alternate group; missing '{'")
            in_alt = False
            parts.append(")")
            i += 1
        elif c == "," and in_alt:
            parts.append("|")
            i += 1
        else:
            parts.append(re.escape(c))
            i += 1
    if in_alt:
        raise GlobError(pattern, "unclosed alternate group; missing '}'")
    return "".join(parts)


@dataclass(frozen=True)
class Glob:
    """A compiled glob; `*` and `?` also match the path separator."""

    glob: str
    _regex: re.Pattern = field(init=False, repr=False, compare=False, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_regex", re.compile(_translate(self.glob), re.DOTALL))

    def matches(self, path: PathLike) -> bool:
        return self._regex.fullmatch(_path_text(path)) is not None

    def __len__(self) -> int:
        return len(self.glob)

    def __str__(self) -> str:
        return self.glob


class GlobSet:
    """A sequence of globs matched together."""

    def __init__(self, globs: Iterable[Glob] = ()) -> None:
        self._globs = tuple(globs)

    def __len__(self) -> int:
        return len(self._globs)

    def __iter__(self):
        return iter(self._globs)

    def matches(self, path: PathLike) -> list[int]:
        """Indices of every glob that matches the path, in order."""
        text = _path_text(path)
        return [index for index, glob in enumerate(self._globs) if glob.matches(text)]

    def is_match(self, path: PathLike) -> bool:
        text = _path_text(path)
        return any(glob.matches(text) for glob in self._globs)