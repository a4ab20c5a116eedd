"""Source driver reading migrations from a GitHub Enterprise server."""

from __future__ import annotations

from typing import BinaryIO
from urllib.parse import parse_qs, unquote, urlsplit

from migrate.source.driver import Driver, register
from migrate.source.github import GithubConfig, _GithubClient, with_instance

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def parse_bool(val: str, fallback: bool) -> bool:
    """Parse a boolean spelled the usual ways, returning ``fallback`` otherwise."""
    if val in _TRUE:
        return True
    if val in _FALSE:
        return False
    return fallback


class GithubEE(Driver):
    """A driver for an enterprise server; wraps a :class:`Github` driver."""

    def __init__(self, driver: Driver | None = None) -> None:
        self.driver = driver

    @property
    def _inner(self) -> Driver:
        if self.driver is None:
            raise RuntimeError("GithubEE driver has not been opened")
        return self.driver

    def open(self, url: str) -> GithubEE:
        parts = urlsplit(url)
        verify_tls = True
        option = parse_qs(parts.query, keep_blank_values=True).get("verify-tls", [""])[0]
        if option:
            verify_tls = parse_bool(option, verify_tls)
        if parts.username is None or parts.password is None:
            raise ValueError("no username:token provided")
        host = parts.netloc.rpartition("@")[2]
        client = _GithubClient(
            f"https://{host}/api/v3/",
            auth=(unquote(parts.username), unquote(parts.password)),
            verify=verify_tls,
        )
        segments = parts.path.strip("/").split("/")
        if len(segments) < 2 or not segments[0]:
            raise ValueError("invalid repo")
        config = GithubConfig(
            owner=segments[0],
            repo=segments[1],
            path="/".join(segments[2:]),
            ref=parts.fragment,
        )
        return GithubEE(with_instance(client, config))

    def close(self) -> None:
        self._inner.close()

    def first(self) -> int:
        return self._inner.first()

    def prev(self, version: int) -> int:
        return self._inner.prev(version)

    def next(self, version: int) -> int:
        return self._inner.next(version)

    def read_up(self, version: int) -> tuple[BinaryIO, str]:
        return self._inner.read_up(version)

    def read_down(self, version: int) -> tuple[BinaryIO, str]:
        return self._inner.read_down(version)


register("github-ee", GithubEE())