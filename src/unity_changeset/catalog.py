from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import requests

from unity_changeset.config import DbConfig
from unity_changeset.errors import InvalidInputError, ProviderUnavailableError
from unity_changeset.graphql import UnityGraphQLClient
from unity_changeset.release import Lifecycle, ReleaseEntitlement, ReleaseStream, UnityChangeset

_PRE_RELEASE_STREAMS = {
    Lifecycle.ALPHA.value: ReleaseStream.ALPHA,
    Lifecycle.BETA.value: ReleaseStream.BETA,
}


@dataclass(frozen=True)
class QueryScope:
    version: str = "."
    streams: Tuple[ReleaseStream, ...] = ()
    entitlements: Tuple[ReleaseEntitlement, ...] = ()
    per_major: bool = False


class CatalogProvider(ABC):
    name = "catalog"

    @abstractmethod
    def fetch_releases(self, scope: QueryScope) -> List[UnityChangeset]:
        raise NotImplementedError


def _stream_matches(release: UnityChangeset, streams: Tuple[ReleaseStream, ...]) -> bool:
    if not streams:
        return True
    if release.stream is not ReleaseStream.UNDEFINED:
        return release.stream in streams
    # Rows without stream data: infer from the lifecycle letter.
    inferred = _PRE_RELEASE_STREAMS.get(release.lifecycle)
    if inferred is not None:
        return inferred in streams
    return any(s not in _PRE_RELEASE_STREAMS.values() for s in streams)


def matches_scope(release: UnityChangeset, scope: QueryScope) -> bool:
    if scope.version and scope.version not in release.version:
        return False
    if not _stream_matches(release, scope.streams):
        return False
    return all(e in scope.entitlements for e in release.entitlements)


def filter_to_scope(releases: Iterable[UnityChangeset], scope: QueryScope) -> List[UnityChangeset]:
    return [r for r in releases if matches_scope(r, scope)]


class GraphQLCatalog(CatalogProvider):
    name = "api"

    def __init__(self, client: Optional[UnityGraphQLClient] = None):
        self.client = client or UnityGraphQLClient()

    def fetch_releases(self, scope: QueryScope) -> List[UnityChangeset]:
        if scope.per_major:
            return self.client.get_unity_releases_in_lts(scope.entitlements)
        return self.client.get_unity_releases(scope.version, scope.streams, scope.entitlements)


def parse_db(text: str) -> List[UnityChangeset]:
    releases = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            releases.append(UnityChangeset.from_db(line))
        except InvalidInputError as exc:
            raise ProviderUnavailableError(f"Invalid changeset DB line {line_no}: {exc}") from exc
    return releases


class DbCatalog(CatalogProvider):
    """Static tab-separated changeset list, filtered client-side."""

    name = "db"

    def __init__(self, config: Optional[DbConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or DbConfig()
        self.session = session

    def fetch_text(self) -> str:
        http = self.session if self.session is not None else requests
        try:
            response = http.get(self.config.url, timeout=self.config.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ProviderUnavailableError(f"Unable to fetch changeset DB from {self.config.url}: {exc}") from exc
        return response.text

    def fetch_releases(self, scope: QueryScope) -> List[UnityChangeset]:
        return filter_to_scope(parse_db(self.fetch_text()), scope)


class FallbackCatalog(CatalogProvider):
    """
    Ask ``primary``; use ``fallback`` only when ``primary`` is unavailable.
    An empty answer from ``primary`` is still an answer.
    """

    def __init__(self, primary: CatalogProvider, fallback: CatalogProvider):
        self.primary = primary
        self.fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"

    def fetch_releases(self, scope: QueryScope) -> List[UnityChangeset]:
        try:
            return self.primary.fetch_releases(scope)
        except ProviderUnavailableError as exc:
            print(
                f"[unity-changeset] {self.primary.name} unavailable ({exc}); falling back to {self.fallback.name}.",
                file=sys.stderr,
            )
            return self.fallback.fetch_releases(scope)
