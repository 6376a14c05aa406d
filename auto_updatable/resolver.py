"""
Update-method resolution.

Runs an ordered list of detection strategies against a package source and
returns the first success as a ``Verdict``:

1. GitHub tags
2. GitLab tags
3. Repology (package not unique to this repository)

Expected failures of a strategy are logged and the next strategy is tried.
Environment problems (no connectivity, missing token, Repology unreachable)
raise ``FatalError`` and end the run.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Sequence

from .common import MissingCredentialError, NoConnectivityError
from .config import Config
from .locator import SourceLocator
from .repology import METHOD_LABEL, UniquePackageCache
from .tags import (
    AuthMissing,
    HttpFailure,
    LookupFailed,
    NoTagFound,
    Provider,
    TagFound,
    TagLookup,
    TagResult,
    TagType,
)

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    HOSTING_TAG = "hosting-tag"
    REGISTRY_ABSENCE = "registry-absence"
    NOT_UPDATABLE = "not-updatable"


@dataclass(frozen=True)
class Verdict:
    """
    Result of resolving a package's update method.

    Attributes:
        outcome: Which strategy succeeded, or NOT_UPDATABLE
        tag_type: Set only when the newest-tag fallback was needed
        method: Set only for registry verdicts
        provider: Hosting provider of a hosting-tag verdict
        tag: Tag reported by the provider
    """
    outcome: Outcome
    tag_type: TagType | None = None
    method: str | None = None
    provider: Provider | None = None
    tag: str | None = None

    @property
    def updatable(self) -> bool:
        return self.outcome is not Outcome.NOT_UPDATABLE

    def describe(self) -> str:
        if self.outcome is Outcome.HOSTING_TAG:
            detail = f"{self.provider.value if self.provider else 'hosting'} tag {self.tag or '?'}"
            if self.tag_type:
                detail += f" ({self.tag_type.value})"
            return detail
        if self.outcome is Outcome.REGISTRY_ABSENCE:
            return f"via {self.method}"
        return "no detection method succeeded"


NOT_UPDATABLE = Verdict(Outcome.NOT_UPDATABLE)


class TagLookupAdapter(Protocol):
    def get_tag(self, provider: Provider, source_url: str, tag_type: TagType | None = None) -> TagResult:
        ...


class Strategy(Protocol):
    name: str

    def attempt(
        self,
        locator: SourceLocator,
        package_name: str,
        tag_type: TagType | None = None,
    ) -> Verdict | None:
        ...


def classify_failure(provider: Provider, result: TagResult, package_name: str) -> None:
    """
    Handle a non-success TagResult.

    Raises for fatal signals, logs the rest. NoTagFound is handled by the
    caller before this point.
    """
    if isinstance(result, HttpFailure):
        if result.no_connection:
            raise NoConnectivityError(
                f"Failed to connect to {provider.value}. Please check your internet connection."
            )
        logger.warning(f"{package_name}: failed to get tag from {provider.value}. {result.message}")
    elif isinstance(result, AuthMissing):
        raise MissingCredentialError(result.message)
    elif isinstance(result, NoTagFound):
        logger.warning(f"{package_name}: {provider.value}: {result.message}")
    elif isinstance(result, LookupFailed):
        logger.warning(f"{package_name}: {provider.value}: {result.message}")


class HostingTagStrategy:
    """Tag lookup on one hosting provider, with the newest-tag fallback."""

    def __init__(self, provider: Provider, lookup: TagLookupAdapter):
        self.provider = provider
        self.lookup = lookup
        self.name = provider.value

    def attempt(
        self,
        locator: SourceLocator,
        package_name: str,
        tag_type: TagType | None = None,
    ) -> Verdict | None:
        """
        Args:
            locator: Parsed package source
            package_name: Package name, used in messages
            tag_type: Declared tag type of the package; None lets the
                adapter pick the default for the locator
        """
        if not locator.matches_domain(self.provider.domain):
            return None

        result = self.lookup.get_tag(self.provider, locator.raw, tag_type)
        if isinstance(result, TagFound):
            return Verdict(Outcome.HOSTING_TAG, provider=self.provider, tag=result.tag)

        if (
            isinstance(result, NoTagFound)
            and not locator.is_repository_clone
            and tag_type is not TagType.NEWEST
        ):
            logger.debug(f"{package_name}: {result.message} Trying {TagType.NEWEST.value}")
            result = self.lookup.get_tag(self.provider, locator.raw, TagType.NEWEST)
            if isinstance(result, TagFound):
                return Verdict(
                    Outcome.HOSTING_TAG,
                    tag_type=TagType.NEWEST,
                    provider=self.provider,
                    tag=result.tag,
                )

        classify_failure(self.provider, result, package_name)
        return None


class RegistryStrategy:
    """Repology: updatable when the package is not unique to this repository."""

    name = METHOD_LABEL

    def __init__(self, cache: UniquePackageCache, delay_seconds: float = 1.0):
        self.cache = cache
        self.delay_seconds = delay_seconds

    def attempt(
        self,
        locator: SourceLocator,
        package_name: str,
        tag_type: TagType | None = None,
    ) -> Verdict | None:
        # Courtesy pause, Repology is a shared service
        time.sleep(self.delay_seconds)
        if self.cache.is_unique(package_name):
            logger.warning(f"{package_name}: package is unique to this repository on Repology")
            return None
        return Verdict(Outcome.REGISTRY_ABSENCE, method=METHOD_LABEL)


class Resolver:
    """Runs strategies in order; the first verdict wins."""

    def __init__(self, strategies: Sequence[Strategy]):
        self.strategies = list(strategies)

    def resolve(self, source_url: str, package_name: str, tag_type: TagType | None = None) -> Verdict:
        """
        Determine how ``package_name`` can be auto-updated.

        Args:
            source_url: TERMUX_PKG_SRCURL of the package
            package_name: Package name
            tag_type: Tag type the package already declares, if any

        Returns:
            First successful Verdict, or NOT_UPDATABLE

        Raises:
            FatalError: On environment problems that make further checks pointless
        """
        locator = SourceLocator.parse(source_url)
        for strategy in self.strategies:
            verdict = strategy.attempt(locator, package_name, tag_type)
            if verdict is not None:
                logger.debug(f"{package_name}: {strategy.name} succeeded")
                return verdict
        return NOT_UPDATABLE


def build_strategies(
    lookup: TagLookupAdapter,
    cache: UniquePackageCache,
    registry_delay_seconds: float = 1.0,
) -> list[Strategy]:
    """Default strategy order: GitHub, GitLab, Repology."""
    return [
        HostingTagStrategy(Provider.GITHUB, lookup),
        HostingTagStrategy(Provider.GITLAB, lookup),
        RegistryStrategy(cache, registry_delay_seconds),
    ]


def build_resolver(config: Config, cache: UniquePackageCache | None = None) -> Resolver:
    """Resolver wired to the real services described by ``config``."""
    if cache is None:
        cache = UniquePackageCache.from_config(config)
    return Resolver(build_strategies(
        TagLookup(config),
        cache,
        config.preferences.registry_delay_seconds,
    ))
