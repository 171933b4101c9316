from __future__ import annotations

import re
import string
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from unity_changeset.errors import InvalidInputError

_VERSION_KEY_RE = re.compile(r"^(\d+)\.?(\d+)?\.?(\d+)?([a-zA-Z]+)?(\d+)?")
_FULL_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)([a-zA-Z]+)(\d+)")
_HUB_LINK_RE = re.compile(r"^unityhub://(\d{4,}\.\d+\.\d+[abfp]\d+)/(\w{12})$")

# Letter -> position in the version order. 'a'(alpha)=0, 'b'(beta)=1,
# 'f'(final)=5, 'p'(patch)=15; missing letters fill with 'a' or 'z'.
LIFECYCLE_ORDINALS: Dict[str, int] = {
    letter: index for index, letter in enumerate(string.ascii_uppercase)
}

_RADIX = 100
_FLOOR_FILL = (0, 0, 0, "a", 0)
_CEILING_FILL = (9999, 99, 99, "z", 99)


class ReleaseStream(str, Enum):
    LTS = "LTS"
    SUPPORTED = "SUPPORTED"
    TECH = "TECH"
    BETA = "BETA"
    ALPHA = "ALPHA"
    UNDEFINED = "UNDEFINED"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ReleaseStream":
        text = (value or "").strip().upper()
        try:
            return cls(text)
        except ValueError:
            return cls.UNDEFINED


class ReleaseEntitlement(str, Enum):
    XLTS = "XLTS"


class Lifecycle(str, Enum):
    ALPHA = "a"
    BETA = "b"
    FINAL = "f"
    PATCH = "p"


def lifecycle_ordinal(letter: str) -> int:
    return LIFECYCLE_ORDINALS[letter[0].upper()]


def to_number(version: str, ceiling: bool = False) -> int:
    """
    Encode a (possibly partial) version string as a comparable integer.

    Fields are packed in radix 100: major, minor, patch, lifecycle ordinal and
    build. Absent fields take the minimum when ``ceiling`` is False and the
    maximum when it is True, so "2018.3" works as an inclusive lower or upper
    bound. Strings without a leading number encode to 0.
    """
    match = _VERSION_KEY_RE.match(version or "") if isinstance(version, str) else None
    if not match:
        return 0

    fill = _CEILING_FILL if ceiling else _FLOOR_FILL
    groups = match.groups()
    major, minor, patch = (int(g) if g is not None else fill[i] for i, g in enumerate(groups[:3]))
    letter = groups[3] or fill[3]
    build = int(groups[4]) if groups[4] is not None else fill[4]

    return _pack(major, minor, patch, lifecycle_ordinal(letter), build)


def _pack(*parts: int) -> int:
    number = 0
    for part in parts:
        number = number * _RADIX + part
    return number


MIN_VERSION_NUMBER = 0
MAX_VERSION_NUMBER = _pack(*_CEILING_FILL[:3], lifecycle_ordinal(_CEILING_FILL[3]), _CEILING_FILL[4])


def _normalize_entitlements(entitlements: Iterable[Any]) -> Tuple[str, ...]:
    normalized = []
    for item in entitlements:
        text = str(getattr(item, "value", item)).strip().upper()
        if not text:
            continue
        try:
            normalized.append(ReleaseEntitlement(text))
        except ValueError:
            normalized.append(text)
    return tuple(normalized)


@dataclass(frozen=True)
class UnityChangeset:
    version: str
    changeset: str
    stream: ReleaseStream = ReleaseStream.UNDEFINED
    entitlements: Tuple[str, ...] = ()
    minor: str = field(init=False)
    lifecycle: str = field(init=False)
    lts: bool = field(init=False)
    xlts: bool = field(init=False)
    version_number: int = field(init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.version, str) or not self.version:
            raise InvalidInputError("Version must be a non-empty string")
        if not isinstance(self.changeset, str) or not self.changeset:
            raise InvalidInputError("Changeset must be a non-empty string")
        if not isinstance(self.entitlements, (list, tuple)):
            raise InvalidInputError("Entitlements must be a list")

        match = _FULL_VERSION_RE.match(self.version)
        if not match:
            raise InvalidInputError(f"Invalid Unity version: {self.version}")

        stream = self.stream if isinstance(self.stream, ReleaseStream) else ReleaseStream.parse(self.stream)
        entitlements = _normalize_entitlements(self.entitlements)
        object.__setattr__(self, "stream", stream)
        object.__setattr__(self, "entitlements", entitlements)
        object.__setattr__(self, "minor", f"{match.group(1)}.{match.group(2)}")
        object.__setattr__(self, "lifecycle", match.group(4))
        object.__setattr__(self, "lts", stream is ReleaseStream.LTS)
        object.__setattr__(self, "xlts", ReleaseEntitlement.XLTS in entitlements)
        object.__setattr__(self, "version_number", to_number(self.version, ceiling=False))

    def __str__(self) -> str:
        return f"{self.version}\t{self.changeset}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "changeset": self.changeset,
            "stream": self.stream.value,
            "entitlements": [str(getattr(e, "value", e)) for e in self.entitlements],
            "lts": self.lts,
            "xlts": self.xlts,
            "minor": self.minor,
            "lifecycle": self.lifecycle,
            "version_number": self.version_number,
        }

    @classmethod
    def from_db(cls, row: str) -> "UnityChangeset":
        """
        Parse one DB row: ``version<TAB>changeset[<TAB>stream[<TAB>entitlements]]``.
        Entitlements are comma separated.
        """
        columns = row.rstrip("\r\n").split("\t")
        if len(columns) < 2:
            raise InvalidInputError(f"Invalid changeset row: {row!r}")
        stream = ReleaseStream.parse(columns[2]) if len(columns) > 2 else ReleaseStream.UNDEFINED
        entitlements = [e for e in columns[3].split(",") if e.strip()] if len(columns) > 3 else []
        return cls(columns[0].strip(), columns[1].strip(), stream, tuple(entitlements))

    @staticmethod
    def is_valid_href(href: str) -> bool:
        return bool(_HUB_LINK_RE.match(href or ""))

    @classmethod
    def from_href(cls, href: str) -> "UnityChangeset":
        match = _HUB_LINK_RE.match(href or "")
        if not match:
            raise InvalidInputError(f"Not a Unity Hub link: {href!r}")
        return cls(match.group(1), match.group(2))
