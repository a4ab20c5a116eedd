"""The source driver interface and the global driver registry."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import BinaryIO
from urllib.parse import urlsplit

_drivers_lock = threading.RLock()
_drivers: dict[str, Driver] = {}


class Driver(ABC):
    """Interface every migration source driver implements.

    Lookups that find nothing raise :class:`FileNotFoundError`.
    """

    @abstractmethod
    def open(self, url: str) -> Driver:
        """Return a new driver configured from ``url``."""

    @abstractmethod
    def close(self) -> None:
        """Release what the driver holds."""

    @abstractmethod
    def first(self) -> int:
        """Return the first available version."""

    @abstractmethod
    def prev(self, version: int) -> int:
        """Return the version before ``version``."""

    @abstractmethod
    def next(self, version: int) -> int:
        """Return the version after ``version``."""

    @abstractmethod
    def read_up(self, version: int) -> tuple[BinaryIO, str]:
        """Return an unread body and an identifier for the up migration."""

    @abstractmethod
    def read_down(self, version: int) -> tuple[BinaryIO, str]:
        """Return an unread body and an identifier for the down migration."""

    def __enter__(self) -> Driver:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_source(url: str) -> Driver:
    """Open the driver registered for the scheme of ``url``."""
    scheme = urlsplit(url).scheme
    if not scheme:
        raise ValueError("source driver: invalid URL scheme")
    with _drivers_lock:
        driver = _drivers.get(scheme)
    if driver is None:
        raise ValueError(f"source driver: unknown driver '{scheme}' (forgotten import?)")
    return driver.open(url)


def register(name: str, driver: Driver) -> None:
    """Register ``driver`` under ``name``; a name may be registered once."""
    with _drivers_lock:
        if driver is None:
            raise ValueError("Register driver is nil")
        if name in _drivers:
            raise ValueError(f"Register called twice for driver {name}")
        _drivers[name] = driver


def list_drivers() -> list[str]:
    """Return the names of the registered drivers."""
    with _drivers_lock:
        return sorted(_drivers)