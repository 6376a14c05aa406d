"""
Repology uniqueness data.

Repology tracks versions by comparing packages across distributions. A
project that only this repository packages gives Repology nothing to compare
against, so such packages cannot be updated through it. The set of those
"unique" project names is fetched once per run.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable
from urllib.parse import quote

from .common import RegistryFetchError
from .config import Config
from .transport import request_with_retry

logger = logging.getLogger(__name__)

# Repology returns at most this many projects per request
PAGE_SIZE = 200

METHOD_LABEL = "repology"


def fetch_unique_package_names(config: Config) -> set[str]:
    """
    Fetch every project Repology knows only from the configured repository.

    Pages are requested from the last name of the previous page onwards
    until a short page arrives.

    Raises:
        RegistryFetchError: If any page cannot be fetched or decoded
    """
    endpoints = config.endpoints
    query = f"?inrepo={quote(endpoints.repology_repo)}&repos=1"
    names: set[str] = set()
    start = ""

    while True:
        if start:
            url = f"{endpoints.repology_api_base}/projects/{quote(start, safe='')}/{query}"
        else:
            url = f"{endpoints.repology_api_base}/projects/{query}"

        logger.debug(f"Fetching Repology projects from {url}")
        response = request_with_retry(url, config.preferences)
        if not response.ok:
            raise RegistryFetchError(
                f"Failed to fetch unique packages from Repology (HTTP code: {response.status_text})"
            )
        try:
            page = response.json()
        except (ValueError, UnicodeDecodeError) as e:
            raise RegistryFetchError(f"Invalid response from Repology: {e}") from e
        if not isinstance(page, dict):
            raise RegistryFetchError("Invalid response from Repology: expected an object")

        new_names = set(page) - names
        names.update(page)
        if len(page) < PAGE_SIZE or not new_names:
            break
        start = max(page)

    logger.debug(f"Repology lists {len(names)} packages unique to {endpoints.repology_repo}")
    return names


class UniquePackageCache:
    """
    Run-scoped set of packages unique to this repository.

    The set is fetched on first use and never again, even when the fetch
    returned no names.
    """

    def __init__(self, fetcher: Callable[[], Iterable[str]]):
        self._fetcher = fetcher
        self._names: frozenset[str] = frozenset()
        self._populated = False

    @classmethod
    def from_config(cls, config: Config) -> "UniquePackageCache":
        return cls(lambda: fetch_unique_package_names(config))

    @property
    def populated(self) -> bool:
        return self._populated

    def names(self) -> frozenset[str]:
        if not self._populated:
            self._names = frozenset(self._fetcher())
            self._populated = True
        return self._names

    def is_unique(self, package_name: str) -> bool:
        """True if Repology knows ``package_name`` only from this repository."""
        return package_name in self.names()
