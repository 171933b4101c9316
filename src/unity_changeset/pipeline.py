from __future__ import annotations

import json
from typing import Callable, Dict, Hashable, List, Optional, Sequence, TypeVar, Union

from unity_changeset.errors import InvalidInputError, UnsupportedModeError
from unity_changeset.options import FilterOptions, FormatMode, GroupMode, OutputMode, coerce_mode
from unity_changeset.release import MAX_VERSION_NUMBER, MIN_VERSION_NUMBER, UnityChangeset, to_number

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

OutputItem = Union[UnityChangeset, str]


def group_by(items: Sequence[T], key: Callable[[T], K]) -> Dict[K, List[T]]:
    groups: Dict[K, List[T]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def sort_changesets(changesets: Sequence[UnityChangeset]) -> List[UnityChangeset]:
    """Newest first; ties keep their input order."""
    return sorted(changesets, key=lambda c: c.version_number, reverse=True)


def _require_descending(changesets: Sequence[UnityChangeset]) -> None:
    for previous, current in zip(changesets, changesets[1:]):
        if previous.version_number < current.version_number:
            raise InvalidInputError(
                "Changesets must be sorted by version number (newest first); "
                f"found {previous.version} before {current.version}"
            )


def _active_lifecycle_subgroup(group: List[UnityChangeset]) -> List[UnityChangeset]:
    lifecycle = group[0].lifecycle
    return [c for c in group if c.lifecycle == lifecycle]


def filter_changesets(
    changesets: Sequence[UnityChangeset],
    options: Optional[FilterOptions] = None,
) -> List[UnityChangeset]:
    """
    Narrow a newest-first changeset list by version range, regex, XLTS
    entitlement and (unless ``all_lifecycles``) the active lifecycle of each
    minor version. The active lifecycle is the lifecycle of the first entry of
    each minor group in the unfiltered input. Order is preserved.
    """
    if not isinstance(changesets, (list, tuple)) or not changesets:
        return []
    options = options or FilterOptions()
    _require_descending(changesets)

    lowest = to_number(options.min, ceiling=False) if options.min else MIN_VERSION_NUMBER
    highest = to_number(options.max, ceiling=True) if options.max else MAX_VERSION_NUMBER
    active_lifecycles: Optional[Dict[str, str]] = None
    if not options.all_lifecycles:
        active_lifecycles = {
            minor: group[0].lifecycle for minor, group in group_by(changesets, lambda c: c.minor).items()
        }

    results = []
    for c in changesets:
        if c.xlts and not options.xlts:
            continue
        if not lowest <= c.version_number <= highest:
            continue
        if options.pattern is not None and not options.pattern.search(c.version):
            continue
        if active_lifecycles is not None and active_lifecycles[c.minor] != c.lifecycle:
            continue
        results.append(c)
    return results


def group_changesets(changesets: Sequence[UnityChangeset], group_mode: GroupMode) -> List[UnityChangeset]:
    """
    Reduce each minor version to its representative(s). The input must be
    sorted newest first (see ``sort_changesets``); this is checked, not fixed.
    """
    group_mode = coerce_mode(GroupMode, group_mode, "group")
    if not isinstance(changesets, (list, tuple)) or not changesets:
        return []
    _require_descending(changesets)

    if group_mode is GroupMode.ALL:
        return list(changesets)

    groups = group_by(changesets, lambda c: c.minor).values()
    if group_mode is GroupMode.LATEST_PATCH:
        return [group[0] for group in groups]
    if group_mode is GroupMode.OLDEST_PATCH:
        return [_active_lifecycle_subgroup(group)[-1] for group in groups]
    if group_mode is GroupMode.LATEST_LIFECYCLE:
        return [c for group in groups for c in _active_lifecycle_subgroup(group)]
    raise UnsupportedModeError(f"The given group mode '{group_mode}' was not supported")


def select_output(changesets: Sequence[UnityChangeset], output_mode: OutputMode) -> List[OutputItem]:
    output_mode = coerce_mode(OutputMode, output_mode, "output")
    if output_mode is OutputMode.CHANGESET:
        return list(changesets)
    if output_mode is OutputMode.VERSION_ONLY:
        return [c.version for c in changesets]
    if output_mode is OutputMode.MINOR_VERSION_ONLY:
        return [c.minor for c in changesets]
    raise UnsupportedModeError(f"The given output mode '{output_mode}' was not supported")


def _jsonable(item: OutputItem):
    return item.to_dict() if isinstance(item, UnityChangeset) else item


def format_output(items: Sequence[OutputItem], format_mode: FormatMode) -> str:
    format_mode = coerce_mode(FormatMode, format_mode, "format")
    if format_mode is FormatMode.NONE:
        return "\n".join(str(item) for item in items)
    if format_mode is FormatMode.JSON:
        return json.dumps([_jsonable(item) for item in items], separators=(",", ":"))
    if format_mode is FormatMode.PRETTY_JSON:
        return json.dumps([_jsonable(item) for item in items], indent=2)
    raise UnsupportedModeError(f"The given format mode '{format_mode}' was not supported")
