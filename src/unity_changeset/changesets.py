from __future__ import annotations

from typing import List, Optional

from unity_changeset.archive import ArchiveCatalog
from unity_changeset.cache import ResponseCache
from unity_changeset.catalog import CatalogProvider, DbCatalog, FallbackCatalog, GraphQLCatalog, QueryScope
from unity_changeset.config import Config
from unity_changeset.errors import NotFoundError, UnsupportedModeError
from unity_changeset.graphql import UnityGraphQLClient
from unity_changeset.options import (
    FilterOptions,
    FormatMode,
    GroupMode,
    OutputMode,
    SearchMode,
    coerce_mode,
    sanitize_version,
    search_mode_to_streams,
)
from unity_changeset.pipeline import filter_changesets, format_output, group_changesets, select_output, sort_changesets
from unity_changeset.release import ReleaseEntitlement, UnityChangeset

SOURCES = ("auto", "api", "db", "archive")

_default_catalog: Optional[CatalogProvider] = None


def build_catalog(config: Optional[Config] = None, source: str = "auto") -> CatalogProvider:
    config = config or Config()
    if source not in SOURCES:
        raise UnsupportedModeError(f"The given source '{source}' was not supported")
    if source == "db":
        return DbCatalog(config.db)
    if source == "archive":
        return ArchiveCatalog(config.archive)
    api = GraphQLCatalog(UnityGraphQLClient(config.api, cache=ResponseCache(config.cache.ttl_seconds)))
    if source == "api":
        return api
    return FallbackCatalog(api, DbCatalog(config.db))


def _get_catalog(catalog: Optional[CatalogProvider]) -> CatalogProvider:
    """
    Reuse one default catalog per process so the API response cache is shared
    between calls that do not pass their own catalog.
    """
    global _default_catalog
    if catalog is not None:
        return catalog
    if _default_catalog is None:
        _default_catalog = build_catalog()
    return _default_catalog


def get_unity_changeset(version: str, catalog: Optional[CatalogProvider] = None) -> UnityChangeset:
    version = sanitize_version(version)
    releases = _get_catalog(catalog).fetch_releases(QueryScope(version=version))
    for release in releases:
        if release.version == version:
            return release
    raise NotFoundError(f"The given version '{version}' was not found.")


def search_changesets(search_mode: SearchMode, catalog: Optional[CatalogProvider] = None) -> List[UnityChangeset]:
    search_mode = coerce_mode(SearchMode, search_mode, "search")
    streams = tuple(search_mode_to_streams(search_mode))
    if search_mode is SearchMode.LTS:
        scope = QueryScope(streams=streams, per_major=True)
    elif search_mode is SearchMode.XLTS:
        scope = QueryScope(streams=streams, entitlements=(ReleaseEntitlement.XLTS,), per_major=True)
    else:
        scope = QueryScope(version=".", streams=streams)
    return _get_catalog(catalog).fetch_releases(scope)


def list_changesets(
    search_mode: SearchMode,
    filter_options: Optional[FilterOptions] = None,
    group_mode: GroupMode = GroupMode.ALL,
    output_mode: OutputMode = OutputMode.CHANGESET,
    format_mode: FormatMode = FormatMode.NONE,
    catalog: Optional[CatalogProvider] = None,
) -> str:
    results = sort_changesets(search_changesets(search_mode, catalog))
    results = filter_changesets(results, filter_options or FilterOptions())
    results = group_changesets(results, group_mode)
    return format_output(select_output(results, output_mode), format_mode)
