"""Reference: the normalized charm or bundle identifier.

Canonical string format is::

    "schema:[user/]name[/series][/revision]"

and the store request path uses the compact legacy shape::

    "[~user/][series/]name[-revision]"
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

STORE_SCHEMA = "cs"
LOCAL_SCHEMA = "local"
SCHEMAS = frozenset({STORE_SCHEMA, LOCAL_SCHEMA})

UNSET_REVISION = -1

_SAFE_BYTES = frozenset(b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789.-")


@dataclass(frozen=True, slots=True)
class Reference:
    """Immutable charm or bundle reference.

    Instances are built by the parser or field by field. Use
    :meth:`with_revision` to derive a copy with another revision.
    """

    schema: str
    user: str
    name: str
    revision: int = UNSET_REVISION
    series: str = ""

    @property
    def has_revision(self) -> bool:
        return self.revision >= 0

    def with_revision(self, revision: int) -> Reference:
        """Return a copy of this reference with ``revision`` replaced.

        ``revision`` must be non-negative or ``UNSET_REVISION``.
        """

        if revision < 0 and revision != UNSET_REVISION:
            raise ValueError(f"invalid revision: {revision}")
        return dataclasses.replace(self, revision=revision)

    def with_series(self, series: str) -> Reference:
        return dataclasses.replace(self, series=series)

    def string(self) -> str:
        parts: list[str] = []
        if self.user:
            parts.append(self.user)
        parts.append(self.name)
        if self.series:
            parts.append(self.series)
        if self.revision >= 0:
            parts.append(str(self.revision))
        return f"{self.schema}:{'/'.join(parts)}"

    def path(self) -> str:
        """Return the path used to request this archive from the store.

        The store API only understands the old ``~user/series/name-rev``
        layout, so this does not round-trip through the newer grammars.
        """

        parts: list[str] = []
        if self.user:
            parts.append(f"~{self.user}")
        if self.series:
            parts.append(self.series)
        if self.revision >= 0:
            parts.append(f"{self.name}-{self.revision}")
        else:
            parts.append(self.name)
        return "/".join(parts)

    def __str__(self) -> str:
        return self.string()


def quote(unsafe: str) -> str:
    """Translate ``unsafe`` into a string usable as a file name.

    ASCII letters, ASCII digits, dot and dash stay the same; every other byte
    of the UTF-8 encoding becomes its lowercase hex value between underscores.
    """

    out: list[str] = []
    for b in unsafe.encode("utf-8"):
        if b in _SAFE_BYTES:
            out.append(chr(b))
        else:
            out.append(f"_{b:02x}_")
    return "".join(out)
