"""Small helpers shared across the package."""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


class MultiError(Exception):
    """An error that bundles several errors together.

    ``None`` entries are dropped. The message joins the non-empty messages
    of the held errors with ``" and "``.
    """

    def __init__(self, *args: BaseException | None) -> None:
        self.errors: list[BaseException] = [e for e in args if e is not None]
        super().__init__(*self.errors)

    def __str__(self) -> str:
        return " and ".join(msg for msg in map(str, self.errors) if msg)


def suint(n: int) -> int:
    """Return ``n`` as an unsigned value, refusing negative input."""
    if n < 0:
        raise ValueError(f"suint({n}) expects input >= 0")
    return n


def filter_custom_query(url: str) -> str:
    """Return ``url`` with every query parameter starting with ``x-`` removed.

    The remaining parameters are re-encoded sorted by key.
    """
    parts = urlsplit(url)
    values: dict[str, list[str]] = {}
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        values.setdefault(key, []).append(value)
    kept = [
        (key, value)
        for key in sorted(values)
        if not key.startswith("x-")
        for value in values[key]
    ]
    return urlunsplit(parts._replace(query=urlencode(kept)))