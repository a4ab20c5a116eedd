"""Source driver reading migrations from a GitHub repository."""

from __future__ import annotations

import base64
import errno
import io
import posixpath
from dataclasses import dataclass
from typing import Any, BinaryIO, Protocol
from urllib.parse import quote, unquote, urlsplit

import requests

from migrate.source.driver import Driver, register
from migrate.source.migration import Migration, Migrations, parse

_TIMEOUT = 30.0
_DEFAULT_BASE_URL = "https://api.github.com/"


class _ContentsClient(Protocol):
    def get_contents(self, owner: str, repo: str, path: str, ref: str = "") -> Any: ...


class _GithubClient:
    """Reads repository contents through the REST API.

    ``get_contents`` returns a mapping for a file and a list for a directory.
    """

    def __init__(
        self,
        base_url: str = _DEFAULT_BASE_URL,
        *,
        token: str | None = None,
        auth: tuple[str, str] | None = None,
        verify: bool = True,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._session = session or requests.Session()
        self._session.verify = verify
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"
        if auth is not None:
            self._session.auth = auth

    def get_contents(self, owner: str, repo: str, path: str, ref: str = "") -> Any:
        url = (
            f"{self.base_url}repos/{quote(owner, safe='')}/{quote(repo, safe='')}"
            f"/contents/{quote(path)}"
        )
        params = {"ref": ref} if ref else None
        response = self._session.get(url, params=params, timeout=_TIMEOUT)
        response.raise_for_status()
        return response.json()


def _decode_content(file: dict[str, Any]) -> bytes:
    encoding = file.get("encoding") or ""
    content = file.get("content") or ""
    if encoding == "base64":
        return base64.b64decode(content)
    if encoding == "":
        return content.encode()
    raise ValueError(f"unsupported content encoding: {encoding}")


@dataclass
class GithubConfig:
    """Repository coordinates of the migrations directory."""

    owner: str = ""
    repo: str = ""
    path: str = ""
    ref: str = ""


def _not_exist(op: str, path: str) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, op, path)


class Github(Driver):
    """A driver reading migrations from a directory in a repository."""

    def __init__(
        self, client: _ContentsClient | None = None, config: GithubConfig | None = None
    ) -> None:
        self.client = client
        self.config = config if config is not None else GithubConfig()
        self.migrations = Migrations()

    def open(self, url: str) -> Github:
        parts = urlsplit(url)
        token = None
        if parts.username is not None:
            if parts.password is None:
                raise ValueError("no username:token provided")
            token = unquote(parts.password)
        segments = parts.path.strip("/").split("/")
        if not segments[0]:
            raise ValueError("invalid repo")
        config = GithubConfig(
            owner=parts.netloc.rpartition("@")[2],
            repo=segments[0],
            path="/".join(segments[1:]),
            ref=parts.fragment,
        )
        return with_instance(_GithubClient(token=token), config)

    def _read_directory(self) -> None:
        if self.client is None:
            raise RuntimeError("Github driver has no client")
        contents = self.client.get_contents(
            self.config.owner, self.config.repo, self.config.path, self.config.ref
        )
        if isinstance(contents, dict):
            raise ValueError("no directory")
        for entry in contents:
            name = entry["name"]
            try:
                migration = parse(name)
            except ValueError:
                continue
            if not self.migrations.append(migration):
                raise ValueError(f"unable to parse file {name}")

    def close(self) -> None:
        """Nothing to release."""

    def first(self) -> int:
        version = self.migrations.first()
        if version is None:
            raise _not_exist("first", self.config.path)
        return version

    def prev(self, version: int) -> int:
        previous = self.migrations.prev(version)
        if previous is None:
            raise _not_exist(f"prev for version {version}", self.config.path)
        return previous

    def next(self, version: int) -> int:
        following = self.migrations.next(version)
        if following is None:
            raise _not_exist(f"next for version {version}", self.config.path)
        return following

    def read_up(self, version: int) -> tuple[BinaryIO, str]:
        return self._read(self.migrations.up(version), version)

    def read_down(self, version: int) -> tuple[BinaryIO, str]:
        return self._read(self.migrations.down(version), version)

    def _read(self, migration: Migration | None, version: int) -> tuple[BinaryIO, str]:
        if migration is not None and self.client is not None:
            file = self.client.get_contents(
                self.config.owner,
                self.config.repo,
                posixpath.join(self.config.path, migration.raw),
                self.config.ref,
            )
            if isinstance(file, dict):
                return io.BytesIO(_decode_content(file)), migration.identifier
        raise _not_exist(f"read version {version}", self.config.path)


def with_instance(client: _ContentsClient, config: GithubConfig) -> Github:
    """Return a driver reading the directory described by ``config`` through ``client``."""
    driver = Github(client, config)
    driver._read_directory()
    return driver


register("github", Github())