"""Small values persisted in a file under the user's home or the data directory."""

from __future__ import annotations

import os
import stat
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PERMISSIONS = 0o644
DEFAULT_DATA_DIR = ".cq"


class IsDirectoryError(IsADirectoryError):
    """Raised when the persisted file's path exists but is a directory."""

    def __init__(self, path: str) -> None:
        super().__init__(f"file is directory: {path}")
        self.path = path


def _write(path: str, content: str) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, DEFAULT_PERMISSIONS)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(content)


def _read(path: str) -> str:
    """Return the file's contents, or "" if it does not exist."""
    try:
        info = os.stat(path)
    except FileNotFoundError:
        return ""
    if stat.S_ISDIR(info.st_mode):
        raise IsDirectoryError(path)
    with open(path, encoding="utf-8") as handle:
        return handle.read()


def _home_dir() -> str | None:
    try:
        return str(Path.home())
    except (RuntimeError, KeyError):
        return None


@dataclass
class Value:
    """A persisted value and where it lives."""

    content: str = ""
    created: bool = False
    path: str = ""

    def update(self, content: str) -> None:
        """Overwrite the backing file with new content."""
        _write(self.path, content)
        self.content = content


class PersistentFile:
    """Reads a named file from ``~/.cq`` then the data directory, generating it if absent."""

    def __init__(
        self,
        filename: str,
        generate: Callable[[], str],
        *,
        data_dir: str | os.PathLike[str] = DEFAULT_DATA_DIR,
        home: str | os.PathLike[str] | None = None,
    ) -> None:
        self.filename = filename
        self.generate = generate
        self.data_dir = os.fspath(data_dir)
        self.home = os.fspath(home) if home is not None else None

    def _read_order(self) -> list[str]:
        order = []
        home = self.home if self.home is not None else _home_dir()
        if home is not None:
            order.append(os.path.join(home, ".cq"))
        order.append(self.data_dir)
        return order

    def _write_order(self) -> list[str]:
        return [self.data_dir]

    def get(self) -> Value:
        """Return the stored value, generating and writing it if none is found.

        An empty generated value yields an empty Value and writes nothing.
        """
        last_error: OSError | None = None
        for prefix in self._read_order():
            path = os.path.join(prefix, self.filename)
            try:
                content = _read(path)
            except IsDirectoryError:
                raise
            except OSError as exc:
                last_error = exc
                continue
            last_error = None
            if content:
                return Value(content=content, created=False, path=path)
        if last_error is not None:
            raise last_error

        content = self.generate()
        if not content:
            return Value()

        for prefix in self._write_order():
            path = os.path.join(prefix, self.filename)
            try:
                os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
                _write(path, content)
            except OSError as exc:
                last_error = exc
                continue
            return Value(content=content, created=True, path=path)
        assert last_error is not None
        raise last_error