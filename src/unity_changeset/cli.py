from __future__ import annotations

import argparse
import sys
from importlib import metadata
from typing import Optional, Sequence

from unity_changeset.catalog import CatalogProvider
from unity_changeset.changesets import SOURCES, build_catalog, get_unity_changeset, list_changesets
from unity_changeset.config import load_config
from unity_changeset.errors import InvalidInputError, NotFoundError, ProviderUnavailableError
from unity_changeset.options import FilterOptions, FormatMode, GroupMode, OutputMode, SearchMode

PROG = "unity-changeset"
_COMMANDS = ("get", "list")
_TOP_LEVEL_FLAGS = ("-h", "--help", "--version")
_VALUE_OPTIONS = ("--config", "--source")

_LIST_EXAMPLES = """examples:
  unity-changeset list                                            List changesets.
  unity-changeset list --all --json                               All versions in json format.
  unity-changeset list --version-only --min 2018.3 --max 2019.4   All versions from 2018.3 to 2019.4.
  unity-changeset list --version-only --grep '(2018.4|2019.4)'    All versions in 2018.4 and 2019.4.
  unity-changeset list --lts --latest-patch                       Latest patch versions (LTS only).
"""


def _package_version() -> str:
    try:
        return metadata.version(PROG)
    except metadata.PackageNotFoundError:
        return "-"


def _catalog_for(args: argparse.Namespace, parser: argparse.ArgumentParser) -> CatalogProvider:
    try:
        config = load_config(args.config)
    except ValueError as exc:
        parser.error(str(exc))
    return build_catalog(config, source=args.source)


def _cmd_get(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    catalog = _catalog_for(args, parser)
    try:
        changeset = get_unity_changeset(args.version, catalog=catalog)
    except (NotFoundError, InvalidInputError):
        print("The given version was not found.", file=sys.stderr)
        return 1
    print(changeset.changeset)
    return 0


def _search_mode(args: argparse.Namespace) -> SearchMode:
    if args.all:
        return SearchMode.ALL
    if args.pre_release:
        return SearchMode.PRE_RELEASE
    if args.lts:
        return SearchMode.XLTS if args.xlts else SearchMode.LTS
    if args.supported:
        return SearchMode.SUPPORTED
    return SearchMode.DEFAULT


def _group_mode(args: argparse.Namespace) -> GroupMode:
    if args.latest_patch or args.minor_version_only:
        return GroupMode.LATEST_PATCH
    if args.oldest_patch:
        return GroupMode.OLDEST_PATCH
    return GroupMode.ALL


def _output_mode(args: argparse.Namespace) -> OutputMode:
    if args.version_only:
        return OutputMode.VERSION_ONLY
    if args.minor_version_only:
        return OutputMode.MINOR_VERSION_ONLY
    return OutputMode.CHANGESET


def _format_mode(args: argparse.Namespace) -> FormatMode:
    if args.json:
        return FormatMode.JSON
    if args.pretty_json:
        return FormatMode.PRETTY_JSON
    return FormatMode.NONE


def _cmd_list(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    try:
        filter_options = FilterOptions(
            min=args.min or "",
            max=args.max or "",
            grep=args.grep or "",
            all_lifecycles=bool(args.all_lifecycles and not args.latest_lifecycle),
            xlts=args.xlts,
        )
    except InvalidInputError as exc:
        parser.error(str(exc))

    catalog = _catalog_for(args, parser)
    result = list_changesets(
        _search_mode(args),
        filter_options,
        _group_mode(args),
        _output_mode(args),
        _format_mode(args),
        catalog=catalog,
    )
    print(result)
    return 0


def _common_options(with_defaults: bool) -> argparse.ArgumentParser:
    """
    ``--config``/``--source`` are accepted before or after the command. The
    subcommand copies carry no defaults so they never reset a value given
    before the command.
    """
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        default=None if with_defaults else argparse.SUPPRESS,
        help="Optional config file path override.",
    )
    common.add_argument(
        "--source",
        choices=SOURCES,
        default="auto" if with_defaults else argparse.SUPPRESS,
        help="Release catalog: GraphQL API with DB fallback (auto), API only, DB only, or archive page.",
    )
    return common


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Find Unity changesets.",
        parents=[_common_options(with_defaults=True)],
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_package_version()}")
    subparsers = parser.add_subparsers(dest="command", required=True)
    common = _common_options(with_defaults=False)

    get_parser = subparsers.add_parser(
        "get",
        parents=[common],
        help="Get the changeset of a specific version (default command).",
        epilog="example: unity-changeset 2018.4.36f1  ('6cd387d23174' will be output)",
    )
    get_parser.add_argument("version", help="Unity version, e.g. 2018.4.36f1.")
    get_parser.set_defaults(func=_cmd_get)

    list_parser = subparsers.add_parser(
        "list",
        parents=[common],
        help="List Unity changesets.",
        epilog=_LIST_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    search = list_parser.add_argument_group("Search options").add_mutually_exclusive_group()
    search.add_argument("--all", action="store_true", help="Search in all streams (alpha/beta included).")
    search.add_argument(
        "--supported",
        action="store_true",
        help="Search in the 'SUPPORTED' stream (including Unity 6000).",
    )
    search.add_argument("--lts", action="store_true", help="Search in the 'LTS' stream.")
    search.add_argument(
        "--pre-release",
        "--beta",
        dest="pre_release",
        action="store_true",
        help="Search in the 'ALPHA' and 'BETA' streams.",
    )

    filters = list_parser.add_argument_group("Filter options")
    filters.add_argument(
        "--xlts",
        action="store_true",
        help="Include XLTS entitlement versions (require 'Enterprise' or 'Industry' license to install).",
    )
    filters.add_argument("--min", metavar="VERSION", default="", help="Minimum version (included).")
    filters.add_argument("--max", metavar="VERSION", default="", help="Maximum version (included).")
    filters.add_argument("--grep", metavar="REGEX", default="", help="Regular expression (e.g. '20(18|19).4.*').")
    lifecycles = filters.add_mutually_exclusive_group()
    lifecycles.add_argument("--latest-lifecycle", action="store_true", help="Only the latest lifecycle (default).")
    lifecycles.add_argument("--all-lifecycles", action="store_true", help="All lifecycles.")

    groups = list_parser.add_argument_group("Group options").add_mutually_exclusive_group()
    groups.add_argument("--latest-patch", action="store_true", help="The latest patch versions only.")
    groups.add_argument(
        "--oldest-patch",
        action="store_true",
        help="The oldest patch versions in the latest lifecycle only.",
    )

    output = list_parser.add_argument_group("Output options")
    only = output.add_mutually_exclusive_group()
    only.add_argument(
        "--version-only",
        "--versions",
        dest="version_only",
        action="store_true",
        help="Outputs only the version (no changesets).",
    )
    only.add_argument(
        "--minor-version-only",
        "--minor-versions",
        dest="minor_version_only",
        action="store_true",
        help="Outputs only the minor version (no changesets).",
    )
    formats = output.add_mutually_exclusive_group()
    formats.add_argument("--json", action="store_true", help="Output in json format.")
    formats.add_argument("--pretty-json", action="store_true", help="Output in pretty json format.")
    list_parser.set_defaults(func=_cmd_list)
    return parser


def _normalize_argv(argv: Sequence[str]) -> list[str]:
    """Insert ``get`` before the first positional when it is not a command."""
    args = list(argv)
    i = 0
    while i < len(args) and args[i].startswith("-"):
        if args[i] in _TOP_LEVEL_FLAGS:
            return args
        i += 2 if args[i] in _VALUE_OPTIONS else 1
    if i < len(args) and args[i] not in _COMMANDS:
        args.insert(i, "get")
    return args


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    raw_args = list(sys.argv[1:] if argv is None else argv)
    if not raw_args:
        parser.error("a Unity version or a command is required")
    args = parser.parse_args(_normalize_argv(raw_args))
    try:
        return args.func(args, parser)
    except ProviderUnavailableError as exc:
        print(f"[{PROG}] {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
