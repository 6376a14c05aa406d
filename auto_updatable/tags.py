"""
Tag lookup on source hosting services.

``get_tag`` asks GitHub or GitLab for the tag an updater would pick and
returns a classified ``TagResult`` instead of raising.

Tag types:
    latest-release-tag: tag of the latest published release
    newest-tag: most recently created tag, release or not
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Union
from urllib.parse import quote

from .config import Config
from .locator import SourceLocator
from .transport import HttpResponse, request_with_retry

logger = logging.getLogger(__name__)


class TagType(str, Enum):
    LATEST_RELEASE = "latest-release-tag"
    NEWEST = "newest-tag"

    @classmethod
    def default_for(cls, locator: SourceLocator) -> "TagType":
        """A cloned repository has no release archives, only tags."""
        return cls.NEWEST if locator.is_repository_clone else cls.LATEST_RELEASE


class Provider(str, Enum):
    GITHUB = "github"
    GITLAB = "gitlab"

    @property
    def domain(self) -> str:
        return f"{self.value}.com"


@dataclass(frozen=True)
class TagFound:
    tag: str


@dataclass(frozen=True)
class NoTagFound:
    tag_type: TagType

    @property
    def message(self) -> str:
        return f"No '{self.tag_type.value}' found."


@dataclass(frozen=True)
class AuthMissing:
    variable: str

    @property
    def message(self) -> str:
        return f"{self.variable} environment variable not set."


@dataclass(frozen=True)
class HttpFailure:
    status: int

    @property
    def no_connection(self) -> bool:
        return self.status == 0

    @property
    def message(self) -> str:
        return f"HTTP code: {self.status:03d}"


@dataclass(frozen=True)
class LookupFailed:
    message: str


TagResult = Union[TagFound, NoTagFound, AuthMissing, HttpFailure, LookupFailed]

# Newest tag by commit date; the REST API only lists tags alphabetically
GITHUB_NEWEST_TAG_QUERY = """
query($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    refs(refPrefix: "refs/tags/", first: 1, orderBy: {field: TAG_COMMIT_DATE, direction: DESC}) {
      edges { node { name } }
    }
  }
}
"""


def _unexpected(response: HttpResponse) -> HttpFailure:
    return HttpFailure(response.status)


def _decode(response: HttpResponse) -> tuple[object | None, LookupFailed | None]:
    try:
        return response.json(), None
    except (ValueError, UnicodeDecodeError) as e:
        return None, LookupFailed(f"Invalid JSON response: {e}")


def github_get_tag(locator: SourceLocator, tag_type: TagType, config: Config) -> TagResult:
    """Look up a tag on GitHub. A token is mandatory for both API calls."""
    endpoints = config.endpoints
    token = os.environ.get(endpoints.github_token_env, "")
    if not token:
        return AuthMissing(endpoints.github_token_env)

    repository = locator.github_repository()
    if repository is None:
        return LookupFailed(f"Cannot determine GitHub repository from {locator.url}")

    headers = {
        "Authorization": f"token {token}",
        "Accept": "application/vnd.github+json",
    }

    if tag_type is TagType.LATEST_RELEASE:
        url = f"{endpoints.github_api_base}/repos/{repository}/releases/latest"
        logger.debug(f"GitHub {repository}: requesting {tag_type.value}")
        response = request_with_retry(url, config.preferences, headers=headers)
        if response.status == 404:
            return NoTagFound(tag_type)
        if not response.ok:
            return _unexpected(response)
        data, error = _decode(response)
        if error:
            return error
        tag = data.get("tag_name", "") if isinstance(data, dict) else ""
        return TagFound(tag) if tag else NoTagFound(tag_type)

    owner, name = repository.split("/", 1)
    payload = json.dumps({
        "query": GITHUB_NEWEST_TAG_QUERY,
        "variables": {"owner": owner, "name": name},
    }).encode("utf-8")
    logger.debug(f"GitHub {repository}: requesting {tag_type.value}")
    response = request_with_retry(
        f"{endpoints.github_api_base}/graphql",
        config.preferences,
        method="POST",
        headers={**headers, "Content-Type": "application/json"},
        data=payload,
    )
    if not response.ok:
        return _unexpected(response)
    data, error = _decode(response)
    if error:
        return error
    if not isinstance(data, dict):
        return LookupFailed("Unexpected GraphQL response")
    if data.get("errors"):
        messages = "; ".join(str(e.get("message", e)) for e in data["errors"] if isinstance(e, dict))
        return LookupFailed(messages or "GraphQL query failed")

    repo_data = (data.get("data") or {}).get("repository") or {}
    edges = (repo_data.get("refs") or {}).get("edges") or []
    if not edges:
        return NoTagFound(tag_type)
    tag = (edges[0].get("node") or {}).get("name", "")
    return TagFound(tag) if tag else NoTagFound(tag_type)


def gitlab_get_tag(locator: SourceLocator, tag_type: TagType, config: Config) -> TagResult:
    """Look up a tag on GitLab. Public projects need no token."""
    endpoints = config.endpoints
    project = locator.gitlab_project()
    if project is None:
        return LookupFailed(f"Cannot determine GitLab project from {locator.url}")

    headers = {}
    token = os.environ.get(endpoints.gitlab_token_env, "")
    if token:
        headers["Private-Token"] = token

    project_path = quote(project, safe="")
    if tag_type is TagType.LATEST_RELEASE:
        url = f"{endpoints.gitlab_api_base}/projects/{project_path}/releases/permalink/latest"
    else:
        url = f"{endpoints.gitlab_api_base}/projects/{project_path}/repository/tags?order_by=updated&sort=desc&per_page=1"

    logger.debug(f"GitLab {project}: requesting {tag_type.value}")
    response = request_with_retry(url, config.preferences, headers=headers)
    if response.status == 404 and tag_type is TagType.LATEST_RELEASE:
        return NoTagFound(tag_type)
    if not response.ok:
        return _unexpected(response)

    data, error = _decode(response)
    if error:
        return error

    if tag_type is TagType.LATEST_RELEASE:
        tag = data.get("tag_name", "") if isinstance(data, dict) else ""
    else:
        tag = data[0].get("name", "") if isinstance(data, list) and data and isinstance(data[0], dict) else ""
    return TagFound(tag) if tag else NoTagFound(tag_type)


_LOOKUPS = {
    Provider.GITHUB: github_get_tag,
    Provider.GITLAB: gitlab_get_tag,
}


class TagLookup:
    """Tag Lookup Adapter bound to a configuration."""

    def __init__(self, config: Config):
        self.config = config

    def get_tag(self, provider: Provider, source_url: str, tag_type: TagType | None = None) -> TagResult:
        """
        Look up the tag ``provider`` reports for ``source_url``.

        Args:
            provider: Hosting service to ask
            source_url: Package source URL, optionally with the git+ marker
            tag_type: Tag selection; None picks the default for the locator

        Returns:
            Classified TagResult
        """
        locator = SourceLocator.parse(source_url)
        if tag_type is None:
            tag_type = TagType.default_for(locator)
        return _LOOKUPS[provider](locator, tag_type, self.config)
