"""Source driver reading migrations from an S3 bucket."""

from __future__ import annotations

import errno
import io
import posixpath
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from dataclasses import dataclass
from typing import BinaryIO, Protocol
from urllib.parse import quote, urlsplit

import requests

from migrate.source.driver import Driver, register
from migrate.source.migration import Migration, Migrations, parse

_TIMEOUT = 30.0


class _S3Client(Protocol):
    def list_objects(self, bucket: str, prefix: str, delimiter: str) -> Iterable[str]: ...

    def get_object(self, bucket: str, key: str) -> BinaryIO: ...


@dataclass
class S3Config:
    """Bucket and key prefix the migrations live under."""

    bucket: str
    prefix: str = ""


def parse_uri(uri: str) -> S3Config:
    """Turn ``s3://bucket/some/prefix`` into a config with prefix ``some/prefix/``."""
    parts = urlsplit(uri)
    prefix = parts.path.strip("/")
    if prefix:
        prefix += "/"
    return S3Config(bucket=parts.netloc.rpartition("@")[2], prefix=prefix)


def _local_name(tag: str) -> str:
    return tag.rpartition("}")[2]


class _HttpS3Client:
    """Anonymous access to public buckets over the S3 REST interface."""

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session = session or requests.Session()

    @staticmethod
    def _url(bucket: str, key: str = "") -> str:
        return f"https://{bucket}.s3.amazonaws.com/{quote(key)}"

    def list_objects(self, bucket: str, prefix: str, delimiter: str) -> list[str]:
        response = self._session.get(
            self._url(bucket),
            params={"prefix": prefix, "delimiter": delimiter},
            timeout=_TIMEOUT,
        )
        response.raise_for_status()
        root = ET.fromstring(response.content)
        return [
            child.text or ""
            for contents in root
            if _local_name(contents.tag) == "Contents"
            for child in contents
            if _local_name(child.tag) == "Key"
        ]

    def get_object(self, bucket: str, key: str) -> BinaryIO:
        response = self._session.get(self._url(bucket, key), timeout=_TIMEOUT)
        response.raise_for_status()
        return io.BytesIO(response.content)


def _not_exist() -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, "file does not exist")


class S3Driver(Driver):
    """A driver reading migrations stored as objects in a bucket."""

    def __init__(self, client: _S3Client | None = None, config: S3Config | None = None) -> None:
        self._client = client
        self._config = config if config is not None else S3Config(bucket="")
        self._migrations = Migrations()

    def open(self, url: str) -> S3Driver:
        return with_instance(_HttpS3Client(), parse_uri(url))

    def _load_migrations(self) -> None:
        if self._client is None:
            raise RuntimeError("S3 driver has no client")
        keys = self._client.list_objects(self._config.bucket, self._config.prefix, "/")
        for key in keys:
            try:
                migration = parse(posixpath.basename(key))
            except ValueError:
                continue
            if not self._migrations.append(migration):
                raise ValueError(f"unable to parse file {key}")

    def close(self) -> None:
        """Nothing to release."""

    def first(self) -> int:
        version = self._migrations.first()
        if version is None:
            raise _not_exist()
        return version

    def prev(self, version: int) -> int:
        previous = self._migrations.prev(version)
        if previous is None:
            raise _not_exist()
        return previous

    def next(self, version: int) -> int:
        following = self._migrations.next(version)
        if following is None:
            raise _not_exist()
        return following

    def read_up(self, version: int) -> tuple[BinaryIO, str]:
        return self._open(self._migrations.up(version))

    def read_down(self, version: int) -> tuple[BinaryIO, str]:
        return self._open(self._migrations.down(version))

    def _open(self, migration: Migration | None) -> tuple[BinaryIO, str]:
        if migration is None or self._client is None:
            raise _not_exist()
        key = posixpath.join(self._config.prefix, migration.raw)
        body = self._client.get_object(self._config.bucket, key)
        return body, migration.identifier


def with_instance(client: _S3Client, config: S3Config) -> S3Driver:
    """Return a driver listing migrations through ``client``."""
    driver = S3Driver(client, config)
    driver._load_migrations()
    return driver


register("s3", S3Driver())