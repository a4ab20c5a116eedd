"""Source driver reading migrations from a local directory."""

from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import unquote, urlsplit

from migrate.source.driver import register
from migrate.source.fs import PartialDriver


def parse_url(url: str) -> str:
    """Return the absolute directory named by a ``file://`` URL.

    Host and path are joined so that ``file://./dir`` and ``file://dir`` are
    relative; an empty path means the current working directory.
    """
    parts = urlsplit(url)
    path = parts.netloc + unquote(parts.path)
    if not path:
        return os.getcwd()
    if not path.startswith("/"):
        return os.path.abspath(path)
    return path


class FileDriver(PartialDriver):
    """A driver reading migrations from a directory on disk."""

    def __init__(self, url: str = "", path: str = "") -> None:
        super().__init__()
        self.url = url
        self.path = path

    def open(self, url: str) -> FileDriver:
        directory = parse_url(url)
        driver = FileDriver(url, directory)
        driver.init(Path(directory), ".")
        return driver


register("file", FileDriver())