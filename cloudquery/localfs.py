"""Local filesystem helpers, including streamed HTTP downloads."""

from __future__ import annotations

import os
import stat
from collections.abc import Callable, Iterable, Iterator

import requests

ProgressUpdater = Callable[[Iterable[bytes], int], Iterable[bytes]]

_CHUNK_SIZE = 64 * 1024


class DownloadError(Exception):
    """Raised when a download answers with a status other than 200."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"got {status_code} http code instead expected 200")
        self.status_code = status_code


class LocalFs:
    """Operations on the local filesystem."""

    def download_file(
        self,
        filepath: str | os.PathLike[str],
        url: str,
        progress_updater: ProgressUpdater | None = None,
    ) -> None:
        """Stream url into filepath, replacing it only once the download completes.

        Data is written to ``<filepath>.tmp`` first. A progress updater receives
        the chunk stream and the content length (-1 if unknown) and returns
        the stream to write.
        """
        target = os.fspath(filepath)
        temporary = target + ".tmp"
        with open(temporary, "wb") as out:
            with requests.get(url, stream=True) as response:
                if response.status_code != 200:
                    raise DownloadError(response.status_code)
                try:
                    length = int(response.headers.get("Content-Length", -1))
                except ValueError:
                    length = -1
                chunks: Iterable[bytes] = response.iter_content(chunk_size=_CHUNK_SIZE)
                if progress_updater is not None:
                    chunks = progress_updater(chunks, length)
                for chunk in chunks:
                    out.write(chunk)
        os.replace(temporary, target)

    def walk_path_tree(self, path: str | os.PathLike[str]) -> Iterator[tuple[str, os.stat_result]]:
        """Yield every path under path, the root first, in lexical order, with its lstat."""
        yield from self._walk(os.fspath(path))

    def _walk(self, path: str) -> Iterator[tuple[str, os.stat_result]]:
        info = os.lstat(path)
        yield path, info
        if stat.S_ISDIR(info.st_mode):
            for name in sorted(os.listdir(path)):
                yield from self._walk(os.path.join(path, name))

    def mkdir_all(self, path: str | os.PathLike[str], mode: int = 0o777) -> None:
        """Create path and any missing parents; an existing directory is fine."""
        os.makedirs(path, mode=mode, exist_ok=True)

    def remove(self, path: str | os.PathLike[str]) -> None:
        """Remove a file or an empty directory."""
        if os.path.isdir(path) and not os.path.islink(path):
            os.rmdir(path)
        else:
            os.remove(path)

    def chmod(self, path: str | os.PathLike[str], mode: int) -> None:
        os.chmod(path, mode)