from __future__ import annotations

import re
from typing import List, Optional

import requests
from bs4 import BeautifulSoup

from unity_changeset.catalog import CatalogProvider, QueryScope, filter_to_scope
from unity_changeset.config import ArchiveConfig
from unity_changeset.errors import ProviderUnavailableError
from unity_changeset.release import UnityChangeset

_HUB_LINK_IN_TEXT_RE = re.compile(r"unityhub://[^/\s\"'<>]+/[0-9a-f]+")


def scrape_hub_links(html_text: str) -> List[UnityChangeset]:
    """
    Collect ``unityhub://<version>/<changeset>`` links from an archive page.

    Anchors are read first; a plain-text pass then picks up links that only
    appear in scripts or XML feeds. Duplicates keep their first position.
    """
    soup = BeautifulSoup(html_text, "lxml")
    hrefs = [a.get("href", "") for a in soup.find_all("a", href=True)]
    hrefs.extend(_HUB_LINK_IN_TEXT_RE.findall(html_text))

    seen = set()
    results: List[UnityChangeset] = []
    for href in hrefs:
        href = href.strip()
        if href in seen or not UnityChangeset.is_valid_href(href):
            continue
        seen.add(href)
        results.append(UnityChangeset.from_href(href))
    return results


class ArchiveCatalog(CatalogProvider):
    name = "archive"

    def __init__(self, config: Optional[ArchiveConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or ArchiveConfig()
        self.session = session

    def fetch_releases(self, scope: QueryScope) -> List[UnityChangeset]:
        http = self.session if self.session is not None else requests
        try:
            response = http.get(self.config.url, timeout=self.config.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ProviderUnavailableError(f"Unable to fetch release archive from {self.config.url}: {exc}") from exc
        return filter_to_scope(scrape_hub_links(response.text), scope)
