"""Source drivers that read migrations from a directory-like tree.

Any object that behaves like a directory node can be used: a
:class:`pathlib.Path`, or the in-memory :class:`MapFS`. A node needs
``name``, ``iterdir()``, ``is_dir()``, ``joinpath(*parts)`` and ``open(mode)``.
"""

from __future__ import annotations

import errno
import io
import os
import posixpath
from collections.abc import Iterator, Mapping
from typing import IO, Any, BinaryIO, Protocol

from migrate.source.driver import Driver, register
from migrate.source.migration import (
    DuplicateMigrationError,
    Migration,
    Migrations,
    parse,
)


class _Node(Protocol):
    @property
    def name(self) -> str: ...

    def iterdir(self) -> Iterator[Any]: ...

    def is_dir(self) -> bool: ...

    def joinpath(self, *parts: str) -> Any: ...

    def open(self, mode: str = ...) -> IO[Any]: ...


def _not_exist(op: str, path: str) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, op, path)


class PartialDriver(Driver):
    """Every driver method except :meth:`open`, working over a directory tree.

    Call :meth:`init` before use.
    """

    def __init__(self) -> None:
        self._migrations = Migrations()
        self._fs: Any = None
        self._root: Any = None
        self._path = ""

    def init(self, fs: _Node, path: str) -> None:
        """Index the migration files found in ``path`` inside ``fs``."""
        relative = path.strip("/")
        root = fs if relative in ("", ".") else fs.joinpath(relative)
        migrations = Migrations()
        for entry in root.iterdir():
            if entry.is_dir():
                continue
            try:
                migration = parse(entry.name)
            except ValueError:
                continue
            if not migrations.append(migration):
                raise DuplicateMigrationError(migration, entry.name)
        self._fs = fs
        self._root = root
        self._path = path
        self._migrations = migrations

    def close(self) -> None:
        """Close the underlying tree if it can be closed."""
        closer = getattr(self._fs, "close", None)
        if callable(closer):
            closer()

    def first(self) -> int:
        version = self._migrations.first()
        if version is None:
            raise _not_exist("first", self._path)
        return version

    def prev(self, version: int) -> int:
        previous = self._migrations.prev(version)
        if previous is None:
            raise _not_exist(f"prev for version {version}", self._path)
        return previous

    def next(self, version: int) -> int:
        following = self._migrations.next(version)
        if following is None:
            raise _not_exist(f"next for version {version}", self._path)
        return following

    def read_up(self, version: int) -> tuple[BinaryIO, str]:
        return self._read(self._migrations.up(version), "read up", version)

    def read_down(self, version: int) -> tuple[BinaryIO, str]:
        return self._read(self._migrations.down(version), "read down", version)

    def _read(
        self, migration: Migration | None, op: str, version: int
    ) -> tuple[BinaryIO, str]:
        if migration is None:
            raise _not_exist(f"{op} for version {version}", self._path)
        return self._open(migration.raw), migration.identifier

    def _open(self, name: str) -> BinaryIO:
        try:
            return self._root.joinpath(name).open("rb")
        except OSError:
            raise
        except Exception as exc:
            target = posixpath.join(self._path, name)
            raise OSError(f"open {target}: {exc}") from exc


class FsDriver(PartialDriver):
    """A driver over a tree given directly; it cannot be opened from a URL."""

    def open(self, url: str) -> Driver:
        raise RuntimeError("open() cannot be called on the fs passthrough driver")


def new(fs: _Node, path: str) -> FsDriver:
    """Return a driver reading migrations from ``path`` inside ``fs``."""
    driver = FsDriver()
    driver.init(fs, path)
    return driver


class MapFS:
    """A read-only in-memory tree built from slash-separated paths to contents."""

    def __init__(self, files: Mapping[str, str | bytes]) -> None:
        self._files: dict[str, bytes] = {
            key.strip("/"): value.encode() if isinstance(value, str) else bytes(value)
            for key, value in files.items()
        }
        self._path = ""

    @classmethod
    def _at(cls, files: dict[str, bytes], path: str) -> MapFS:
        node = cls.__new__(cls)
        node._files = files
        node._path = path
        return node

    def __repr__(self) -> str:
        return f"MapFS(/{self._path})"

    @property
    def name(self) -> str:
        return posixpath.basename(self._path)

    def is_file(self) -> bool:
        return self._path in self._files

    def is_dir(self) -> bool:
        if not self._path:
            return True
        prefix = self._path + "/"
        return any(key.startswith(prefix) for key in self._files)

    def iterdir(self) -> Iterator[MapFS]:
        if not self.is_dir():
            if self.is_file():
                raise NotADirectoryError(
                    errno.ENOTDIR, os.strerror(errno.ENOTDIR), "/" + self._path
                )
            raise FileNotFoundError(
                errno.ENOENT, os.strerror(errno.ENOENT), "/" + self._path
            )
        prefix = self._path + "/" if self._path else ""
        children = sorted(
            {
                key[len(prefix):].split("/", 1)[0]
                for key in self._files
                if key.startswith(prefix) and len(key) > len(prefix)
            }
        )
        for child in children:
            yield MapFS._at(self._files, prefix + child)

    def joinpath(self, *parts: str) -> MapFS:
        joined = posixpath.normpath(posixpath.join("/", self._path, *parts))
        return MapFS._at(self._files, joined.lstrip("/"))

    def __truediv__(self, part: str) -> MapFS:
        return self.joinpath(part)

    def open(self, mode: str = "r") -> IO[Any]:
        if not self.is_file():
            raise FileNotFoundError(
                errno.ENOENT, os.strerror(errno.ENOENT), "/" + self._path
            )
        data = self._files[self._path]
        if "b" in mode:
            return io.BytesIO(data)
        return io.StringIO(data.decode())

    def read_bytes(self) -> bytes:
        with self.open("rb") as handle:
            return handle.read()

    def read_text(self, encoding: str = "utf-8") -> str:
        return self.read_bytes().decode(encoding)


class VFS(PartialDriver):
    """A driver reading migrations from an in-memory tree."""

    @classmethod
    def with_instance(
        cls, mapping: Mapping[str, str | bytes] | MapFS, search_path: str
    ) -> VFS:
        """Build a driver over ``mapping``; ``search_path`` defaults to the root."""
        if not search_path:
            search_path = "/"
        fs = mapping if isinstance(mapping, MapFS) else MapFS(mapping)
        driver = cls()
        driver.init(fs, search_path)
        return driver

    def open(self, url: str) -> Driver:
        raise RuntimeError("VFS cannot be opened from a URL; use VFS.with_instance")


register("vfs", VFS())