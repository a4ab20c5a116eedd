"""Source driver reading migrations from embedded assets."""

from __future__ import annotations

import errno
import io
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, BinaryIO

from migrate.source.driver import Driver, register
from migrate.source.migration import Migration, Migrations, parse

AssetFunc = Callable[[str], bytes]


@dataclass
class AssetSource:
    """Names of the available assets and a function returning their bodies."""

    names: list[str]
    asset_func: AssetFunc


def resource(names: list[str], asset_func: AssetFunc) -> AssetSource:
    """Bundle asset ``names`` with the function that loads them."""
    return AssetSource(names=list(names), asset_func=asset_func)


@dataclass(eq=False)
class Bindata(Driver):
    """A driver over an :class:`AssetSource`."""

    path: str = "<bindata>"
    asset_source: AssetSource | None = None
    migrations: Migrations = field(default_factory=Migrations)

    def open(self, url: str) -> Driver:
        raise ValueError("bindata sources cannot be opened from a URL; use with_instance")

    def close(self) -> None:
        """Assets live in memory; closing does nothing."""

    def _missing(self, op: str) -> FileNotFoundError:
        return FileNotFoundError(errno.ENOENT, op, self.path)

    def _version(self, found: int | None, op: str) -> int:
        if found is None:
            raise self._missing(op)
        return found

    def first(self) -> int:
        return self._version(self.migrations.first(), "first")

    def prev(self, version: int) -> int:
        return self._version(self.migrations.prev(version), f"prev for version {version}")

    def next(self, version: int) -> int:
        return self._version(self.migrations.next(version), f"next for version {version}")

    def read_up(self, version: int) -> tuple[BinaryIO, str]:
        return self._load(self.migrations.up(version), version)

    def read_down(self, version: int) -> tuple[BinaryIO, str]:
        return self._load(self.migrations.down(version), version)

    def _load(self, migration: Migration | None, version: int) -> tuple[BinaryIO, str]:
        if migration is None or self.asset_source is None:
            raise self._missing(f"read version {version}")
        return io.BytesIO(self.asset_source.asset_func(migration.raw)), migration.identifier


def with_instance(instance: Any) -> Bindata:
    """Return a driver over ``instance``, which must be an :class:`AssetSource`."""
    if not isinstance(instance, AssetSource):
        raise TypeError("expects AssetSource")
    driver = Bindata(asset_source=instance)
    for name in instance.names:
        try:
            migration = parse(name)
        except ValueError:
            continue
        if not driver.migrations.append(migration):
            raise ValueError(f"unable to parse file {name}")
    return driver


register("bindata", Bindata())