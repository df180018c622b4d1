"""BIP-32 derivation paths.

A path string such as ``m/44'/60'/160720'/0'`` is parsed into an
:class:`HDPath`, an immutable sequence of :class:`ChildNumber` values in
derivation order (root to leaf).

Validation happens in two stages: a loose check that the string starts with
the ``m/`` root marker, then a parse of every segment. A malformed segment
raises :class:`ChildIndexError` naming that segment. With ``strict=True``
the whole string is matched against the anchored grammar first and any
mismatch is a :class:`PathFormatError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple, overload
import re

from walletkeys.core.exceptions import ChildIndexError, PathFormatError

HARDENED_OFFSET = 0x80000000
ROOT_MARKER = "m/"
HARDENED_MARKER = "'"

_STRICT_PATH_RE = re.compile(r"m(/[0-9]+'?)+")
_DIGITS_RE = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class ChildNumber:
    """A child index tagged normal or hardened; ``index`` is never shifted."""

    index: int
    hardened: bool = False

    def __post_init__(self):
        if isinstance(self.index, bool) or not isinstance(self.index, int):
            raise ChildIndexError(str(self.index), "child index must be an integer")
        if not 0 <= self.index < HARDENED_OFFSET:
            raise ChildIndexError(str(self.index), "child index out of range [0, 2^31)")

    @property
    def raw_index(self) -> int:
        """Index as serialized during derivation (offset by 2^31 when hardened)."""
        return self.index + HARDENED_OFFSET if self.hardened else self.index

    def __str__(self) -> str:
        return f"{self.index}{HARDENED_MARKER}" if self.hardened else str(self.index)


def normal(index: int) -> ChildNumber:
    return ChildNumber(index, hardened=False)


def hardened(index: int) -> ChildNumber:
    return ChildNumber(index, hardened=True)


def _parse_segment(segment: str) -> ChildNumber:
    raw = segment
    is_hardened = raw.endswith(HARDENED_MARKER)
    if is_hardened:
        raw = raw[: -len(HARDENED_MARKER)]

    if not raw:
        raise ChildIndexError(segment, "cannot parse integer from empty string")
    if not _DIGITS_RE.fullmatch(raw):
        raise ChildIndexError(segment, "invalid digit found in string")

    value = int(raw)
    if value >= HARDENED_OFFSET:
        raise ChildIndexError(segment, "number too large for a child index")
    return ChildNumber(value, hardened=is_hardened)


@dataclass(frozen=True)
class HDPath:
    """Ordered, non-empty sequence of child numbers."""

    children: Tuple[ChildNumber, ...]

    def __init__(self, children: Iterable[ChildNumber]):
        items = tuple(children)
        if not items:
            raise PathFormatError("HD path must contain at least one child")
        for child in items:
            if not isinstance(child, ChildNumber):
                raise TypeError(f"expected ChildNumber, got {type(child).__name__}")
        object.__setattr__(self, "children", items)

    @classmethod
    def parse(cls, path: str, strict: bool = False) -> "HDPath":
        """
        Parse a BIP-32 path string.

        Args:
            path: path such as ``m/44'/60'/0'/0``.
            strict: match the fully anchored grammar before parsing segments.

        Raises:
            PathFormatError: if the root marker is missing (or, in strict mode,
                the string does not match the grammar).
            ChildIndexError: if a segment is not a valid child index, including
                values from 2^31 up to 2^32 - 1: a ChildNumber keeps the unshifted
                index, so those would collide with hardened children.
        """
        if not isinstance(path, str):
            raise PathFormatError(f"HD path must be a string, got {type(path).__name__}")
        if strict and not _STRICT_PATH_RE.fullmatch(path):
            raise PathFormatError(f"Invalid HD path format: {path!r}")
        if not path.startswith(ROOT_MARKER):
            raise PathFormatError(f"Invalid HD path format: {path!r} must start with {ROOT_MARKER!r}")

        raw = path[len(ROOT_MARKER):]
        return cls(_parse_segment(segment) for segment in raw.split("/"))

    def __iter__(self) -> Iterator[ChildNumber]:
        return iter(self.children)

    def __len__(self) -> int:
        return len(self.children)

    @overload
    def __getitem__(self, item: int) -> ChildNumber: ...

    @overload
    def __getitem__(self, item: slice) -> Tuple[ChildNumber, ...]: ...

    def __getitem__(self, item):
        return self.children[item]

    def __str__(self) -> str:
        return "m/" + "/".join(str(child) for child in self.children)


def parse(path: str, strict: bool = False) -> HDPath:
    """Module-level shortcut for :meth:`HDPath.parse`."""
    return HDPath.parse(path, strict=strict)
