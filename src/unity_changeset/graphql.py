from __future__ import annotations

import concurrent.futures
from typing import Any, Dict, List, Optional, Sequence

import requests

from unity_changeset.cache import ResponseCache, cache_key
from unity_changeset.config import ApiConfig
from unity_changeset.errors import InvalidInputError, ProviderUnavailableError
from unity_changeset.release import ReleaseEntitlement, ReleaseStream, UnityChangeset

RELEASES_QUERY = """
query GetRelease($limit: Int, $skip: Int, $version: String!, $stream: [UnityReleaseStream!], $entitlements: [UnityReleaseEntitlement!])
{
  getUnityReleases(
    limit: $limit
    skip: $skip
    stream: $stream
    version: $version
    entitlements: $entitlements
  ) {
    totalCount
    edges {
      node {
        version
        shortRevision
        stream
        entitlements
      }
    }
    pageInfo {
      hasNextPage
    }
  }
}
"""

MAJOR_VERSIONS_QUERY = """
query GetReleaseMajorVersions($entitlements: [UnityReleaseEntitlement!])
{
  getUnityReleaseMajorVersions(
    stream: []
    platform: []
    architecture: []
    entitlements: $entitlements
  ) {
    version
  }
}
"""


def _invalid(detail: str) -> ProviderUnavailableError:
    return ProviderUnavailableError(f"Invalid response from Unity GraphQL API: {detail}")


def _enum_values(values: Sequence[Any]) -> List[str]:
    return [str(getattr(v, "value", v)) for v in values]


class UnityGraphQLClient:
    # Without an injected session every request goes through requests.post,
    # which opens and closes its own session, so fan-out threads share nothing.

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        cache: Optional[ResponseCache] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or ApiConfig()
        self.cache = cache if cache is not None else ResponseCache()
        self.session = session

    def _post(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        http = self.session if self.session is not None else requests
        try:
            response = http.post(
                self.config.endpoint,
                json={"query": query, "variables": variables},
                timeout=self.config.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise ProviderUnavailableError(
                "Network error: Unable to connect to Unity GraphQL API. "
                "Please check your internet connection."
            ) from exc
        except requests.RequestException as exc:
            raise ProviderUnavailableError(f"Unexpected error: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and payload.get("errors"):
            messages = ", ".join(str(e.get("message", e)) for e in payload["errors"] if e)
            raise ProviderUnavailableError(f"GraphQL API error: {messages}")
        if response.status_code >= 400:
            raise ProviderUnavailableError(f"HTTP error: {response.status_code} {response.reason}")
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
            raise _invalid("missing data")
        return payload["data"]

    def request(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        key = cache_key(query, variables)
        data = self.cache.get(key)
        if data is None:
            data = self._post(query, variables)
            self.cache.put(key, data)
        return data

    def get_unity_releases(
        self,
        version: str,
        streams: Sequence[ReleaseStream] = (),
        entitlements: Sequence[ReleaseEntitlement] = (),
    ) -> List[UnityChangeset]:
        variables: Dict[str, Any] = {
            "limit": self.config.page_size,
            "skip": 0,
            "version": version,
            "stream": _enum_values(streams),
            "entitlements": _enum_values(entitlements),
        }
        results: List[UnityChangeset] = []
        while True:
            data = self.request(RELEASES_QUERY, dict(variables))
            releases = data.get("getUnityReleases")
            if not isinstance(releases, dict) or not isinstance(releases.get("edges"), list):
                raise _invalid("missing getUnityReleases.edges")

            for edge in releases["edges"]:
                node = edge.get("node") if isinstance(edge, dict) else None
                if not node:
                    raise _invalid("missing edge.node")
                try:
                    release = UnityChangeset(
                        node.get("version"),
                        node.get("shortRevision"),
                        ReleaseStream.parse(node.get("stream")),
                        tuple(node.get("entitlements") or ()),
                    )
                except InvalidInputError as exc:
                    raise _invalid(str(exc)) from exc
                results.append(release)

            page_info = releases.get("pageInfo") or {}
            if page_info.get("hasNextPage") is not True:
                break
            variables["skip"] += variables["limit"]
        return results

    def get_unity_release_major_versions(self, entitlements: Sequence[ReleaseEntitlement] = ()) -> List[str]:
        data = self.request(MAJOR_VERSIONS_QUERY, {"entitlements": _enum_values(entitlements)})
        majors = data.get("getUnityReleaseMajorVersions")
        if not isinstance(majors, list):
            raise _invalid("missing getUnityReleaseMajorVersions")
        versions = []
        for item in majors:
            version = item.get("version") if isinstance(item, dict) else None
            if not version:
                raise _invalid("missing version in major versions")
            versions.append(version)
        return versions

    def get_unity_releases_in_lts(self, entitlements: Sequence[ReleaseEntitlement] = ()) -> List[UnityChangeset]:
        """
        Query the LTS stream once per major version. Sub-queries run in
        parallel; results are concatenated in major-version order.
        """
        majors = self.get_unity_release_major_versions(entitlements)
        if not majors:
            return []
        max_workers = min(self.config.max_workers, len(majors))
        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            per_major = executor.map(
                lambda major: self.get_unity_releases(major, [ReleaseStream.LTS], entitlements),
                majors,
            )
            return [c for releases in per_major for c in releases]
