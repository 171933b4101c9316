from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional

from unity_changeset.errors import InvalidInputError, UnsupportedModeError
from unity_changeset.release import ReleaseStream

_SAFE_VERSION_RE = re.compile(r"[^a-zA-Z0-9.\-]")


class SearchMode(str, Enum):
    ALL = "all"
    DEFAULT = "default"
    PRE_RELEASE = "pre-release"
    LTS = "lts"
    XLTS = "xlts"
    SUPPORTED = "supported"


class GroupMode(str, Enum):
    ALL = "all"
    LATEST_PATCH = "latest-patch"
    OLDEST_PATCH = "oldest-patch"
    LATEST_LIFECYCLE = "latest-lifecycle"


class OutputMode(str, Enum):
    CHANGESET = "changeset"
    VERSION_ONLY = "version"
    MINOR_VERSION_ONLY = "minor-version"


class FormatMode(str, Enum):
    NONE = "none"
    JSON = "json"
    PRETTY_JSON = "pretty-json"


def coerce_mode(mode_cls: type, value: Any, label: str) -> Any:
    if isinstance(value, mode_cls):
        return value
    try:
        return mode_cls(value)
    except ValueError:
        raise UnsupportedModeError(f"The given {label} mode '{value}' was not supported") from None


def search_mode_to_streams(search_mode: SearchMode) -> List[ReleaseStream]:
    search_mode = coerce_mode(SearchMode, search_mode, "search")
    if search_mode is SearchMode.ALL:
        return [
            ReleaseStream.LTS,
            ReleaseStream.SUPPORTED,
            ReleaseStream.TECH,
            ReleaseStream.BETA,
            ReleaseStream.ALPHA,
        ]
    if search_mode is SearchMode.DEFAULT:
        return [ReleaseStream.LTS, ReleaseStream.SUPPORTED, ReleaseStream.TECH]
    if search_mode is SearchMode.PRE_RELEASE:
        return [ReleaseStream.ALPHA, ReleaseStream.BETA]
    if search_mode in (SearchMode.LTS, SearchMode.XLTS):
        return [ReleaseStream.LTS]
    if search_mode is SearchMode.SUPPORTED:
        return [ReleaseStream.SUPPORTED]
    raise UnsupportedModeError(f"The given search mode '{search_mode}' was not supported")


def sanitize_version(version: Any) -> str:
    if not isinstance(version, str):
        raise InvalidInputError("Version must be a string")
    if _SAFE_VERSION_RE.search(version):
        raise InvalidInputError("Version contains invalid characters")
    return version


def validate_filter_options(options: Mapping[str, Any]) -> None:
    """
    Check raw option values before they become a FilterOptions.
    """
    for key, label in (("min", "Min version"), ("max", "Max version"), ("grep", "Grep pattern")):
        value = options.get(key)
        if value and not isinstance(value, str):
            raise InvalidInputError(f"{label} must be a string")
    grep = options.get("grep")
    if grep:
        try:
            re.compile(grep, re.IGNORECASE)
        except re.error as exc:
            raise InvalidInputError("Invalid grep pattern") from exc


@dataclass(frozen=True)
class FilterOptions:
    min: str = ""
    max: str = ""
    grep: str = ""
    all_lifecycles: bool = False
    xlts: bool = False
    pattern: Optional[re.Pattern] = field(init=False, default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        validate_filter_options({"min": self.min, "max": self.max, "grep": self.grep})
        for name in ("min", "max", "grep"):
            if getattr(self, name) is None:
                object.__setattr__(self, name, "")
        for name in ("all_lifecycles", "xlts"):
            if not isinstance(getattr(self, name), bool):
                raise InvalidInputError(f"{name} must be a boolean")
        if self.grep:
            object.__setattr__(self, "pattern", re.compile(self.grep, re.IGNORECASE))

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]] = None) -> "FilterOptions":
        raw = dict(options or {})
        unknown = sorted(set(raw) - {"min", "max", "grep", "all_lifecycles", "xlts"})
        if unknown:
            raise InvalidInputError(f"Unsupported filter options: {', '.join(unknown)}")
        validate_filter_options(raw)
        return cls(**raw)
