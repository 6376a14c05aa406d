"""
Tests for update-method resolution (auto_updatable/resolver.py).
"""

import logging
from unittest.mock import MagicMock, patch

import pytest

from auto_updatable.common import MissingCredentialError, NoConnectivityError, RegistryFetchError
from auto_updatable.config import Config, Preferences
from auto_updatable.repology import UniquePackageCache
from auto_updatable.resolver import (
    NOT_UPDATABLE,
    HostingTagStrategy,
    Outcome,
    RegistryStrategy,
    Resolver,
    Verdict,
    build_resolver,
    build_strategies,
)
from auto_updatable.tags import (
    AuthMissing,
    HttpFailure,
    LookupFailed,
    NoTagFound,
    Provider,
    TagFound,
    TagLookup,
    TagType,
)


class FakeLookup:
    """Tag Lookup Adapter returning scripted results and recording calls."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def get_tag(self, provider, source_url, tag_type=None):
        self.calls.append((provider, source_url, tag_type))
        return self.results.pop(0)


def make_resolver(lookup, unique=()):
    fetcher = MagicMock(return_value=list(unique))
    cache = UniquePackageCache(fetcher)
    return Resolver(build_strategies(lookup, cache, registry_delay_seconds=1.0)), fetcher


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("auto_updatable.resolver.time.sleep") as mock_sleep:
        yield mock_sleep


class TestHostingTags:
    """Hosting-tag strategies."""

    def test_tag_on_first_call(self):
        lookup = FakeLookup(TagFound("v1.0"))
        resolver, fetcher = make_resolver(lookup)

        verdict = resolver.resolve("https://github.com/example/foo", "foo")

        assert verdict.updatable
        assert verdict.outcome is Outcome.HOSTING_TAG
        assert verdict.tag_type is None
        assert verdict.method is None
        assert verdict.provider is Provider.GITHUB
        assert lookup.calls == [(Provider.GITHUB, "https://github.com/example/foo", None)]
        fetcher.assert_not_called()

    def test_gitlab_source_skips_github(self):
        lookup = FakeLookup(TagFound("1.2"))
        resolver, _ = make_resolver(lookup)

        verdict = resolver.resolve("https://gitlab.com/group/proj/-/archive/1.2/proj.tar.gz", "proj")

        assert verdict.provider is Provider.GITLAB
        assert [call[0] for call in lookup.calls] == [Provider.GITLAB]

    def test_newest_tag_fallback(self):
        lookup = FakeLookup(NoTagFound(TagType.LATEST_RELEASE), TagFound("v2.0-beta"))
        resolver, fetcher = make_resolver(lookup)

        verdict = resolver.resolve("https://github.com/example/foo/archive/v2.0.tar.gz", "foo")

        assert verdict.updatable
        assert verdict.tag_type is TagType.NEWEST
        assert lookup.calls[1][2] is TagType.NEWEST
        fetcher.assert_not_called()

    def test_clone_source_has_no_fallback(self):
        lookup = FakeLookup(NoTagFound(TagType.NEWEST))
        resolver, fetcher = make_resolver(lookup, unique=["other"])

        verdict = resolver.resolve("git+https://github.com/example/foo", "foo")

        assert len(lookup.calls) == 1
        assert verdict.outcome is Outcome.REGISTRY_ABSENCE
        assert verdict.method == "repology"
        fetcher.assert_called_once()

    def test_declared_newest_tag_is_not_retried(self):
        lookup = FakeLookup(NoTagFound(TagType.NEWEST))
        resolver, _ = make_resolver(lookup)

        resolver.resolve("https://github.com/example/foo", "foo", TagType.NEWEST)

        assert lookup.calls == [(Provider.GITHUB, "https://github.com/example/foo", TagType.NEWEST)]

    def test_fallback_failure_moves_on(self, caplog):
        lookup = FakeLookup(NoTagFound(TagType.LATEST_RELEASE), NoTagFound(TagType.NEWEST))
        resolver, _ = make_resolver(lookup, unique=["foo"])

        with caplog.at_level(logging.WARNING, logger="auto_updatable"):
            verdict = resolver.resolve("https://github.com/example/foo", "foo")

        assert verdict == NOT_UPDATABLE
        assert "No 'newest-tag' found." in caplog.text

    def test_no_connection_is_fatal(self):
        lookup = FakeLookup(HttpFailure(0))
        resolver, fetcher = make_resolver(lookup)

        with pytest.raises(NoConnectivityError, match="Failed to connect to github"):
            resolver.resolve("https://github.com/example/foo", "foo")
        fetcher.assert_not_called()

    def test_no_connection_on_fallback_is_fatal(self):
        lookup = FakeLookup(NoTagFound(TagType.LATEST_RELEASE), HttpFailure(0))
        resolver, _ = make_resolver(lookup)

        with pytest.raises(NoConnectivityError):
            resolver.resolve("https://github.com/example/foo", "foo")

    def test_missing_credential_is_fatal(self):
        lookup = FakeLookup(AuthMissing("GITHUB_TOKEN"))
        resolver, _ = make_resolver(lookup)

        with pytest.raises(MissingCredentialError, match="GITHUB_TOKEN environment variable not set."):
            resolver.resolve("https://github.com/example/foo", "foo")

    def test_http_failure_moves_to_registry(self, caplog):
        lookup = FakeLookup(HttpFailure(502))
        resolver, _ = make_resolver(lookup)

        with caplog.at_level(logging.WARNING, logger="auto_updatable"):
            verdict = resolver.resolve("https://github.com/example/foo", "foo")

        assert verdict.outcome is Outcome.REGISTRY_ABSENCE
        assert "HTTP code: 502" in caplog.text

    def test_other_error_moves_on(self, caplog):
        lookup = FakeLookup(LookupFailed("Could not resolve to a Repository"))
        resolver, _ = make_resolver(lookup, unique=["foo"])

        with caplog.at_level(logging.WARNING, logger="auto_updatable"):
            verdict = resolver.resolve("https://github.com/example/foo", "foo")

        assert not verdict.updatable
        assert "Could not resolve to a Repository" in caplog.text


class TestRegistry:
    """Registry uniqueness strategy."""

    def test_absent_from_unique_set(self, no_sleep):
        lookup = FakeLookup()
        resolver, _ = make_resolver(lookup, unique=["termux-api"])

        verdict = resolver.resolve("https://example.org/foo-1.0.tar.gz", "foo")

        assert verdict == Verdict(Outcome.REGISTRY_ABSENCE, method="repology")
        assert lookup.calls == []
        no_sleep.assert_called_once_with(1.0)

    def test_present_in_unique_set(self, caplog):
        resolver, _ = make_resolver(FakeLookup(), unique=["termux-api"])

        with caplog.at_level(logging.WARNING, logger="auto_updatable"):
            verdict = resolver.resolve("https://example.org/termux-api.tar.gz", "termux-api")

        assert verdict == NOT_UPDATABLE
        assert not verdict.updatable
        assert "unique" in caplog.text

    def test_cache_shared_across_packages(self, no_sleep):
        resolver, fetcher = make_resolver(FakeLookup(), unique=["a"])

        resolver.resolve("https://example.org/a.tar.gz", "a")
        resolver.resolve("https://example.org/b.tar.gz", "b")
        resolver.resolve("https://example.org/c.tar.gz", "c")

        fetcher.assert_called_once()
        assert no_sleep.call_count == 3

    def test_empty_unique_set_fetched_once(self):
        resolver, fetcher = make_resolver(FakeLookup(), unique=[])

        assert resolver.resolve("https://example.org/a.tar.gz", "a").updatable
        assert resolver.resolve("https://example.org/b.tar.gz", "b").updatable
        fetcher.assert_called_once()

    def test_fetch_failure_is_fatal(self):
        cache = UniquePackageCache(MagicMock(side_effect=RegistryFetchError("unreachable")))
        resolver = Resolver([RegistryStrategy(cache, 0)])

        with pytest.raises(RegistryFetchError):
            resolver.resolve("https://example.org/a.tar.gz", "a")


class TestVerdict:
    """Verdict helpers."""

    def test_describe(self):
        assert Verdict(Outcome.HOSTING_TAG, provider=Provider.GITHUB, tag="v1").describe() == "github tag v1"
        assert "(newest-tag)" in Verdict(
            Outcome.HOSTING_TAG, tag_type=TagType.NEWEST, provider=Provider.GITLAB, tag="v2"
        ).describe()
        assert Verdict(Outcome.REGISTRY_ABSENCE, method="repology").describe() == "via repology"

    def test_custom_strategy_order(self):
        strategy = MagicMock()
        strategy.name = "custom"
        strategy.attempt.return_value = Verdict(Outcome.REGISTRY_ABSENCE, method="custom")

        verdict = Resolver([strategy]).resolve("https://example.org/x", "x", TagType.NEWEST)

        assert verdict.method == "custom"
        locator, name, tag_type = strategy.attempt.call_args[0]
        assert locator.host == "example.org"
        assert name == "x"
        assert tag_type is TagType.NEWEST

    def test_hosting_strategy_skips_other_domains(self):
        lookup = FakeLookup()
        strategy = HostingTagStrategy(Provider.GITHUB, lookup)
        resolver = Resolver([strategy])

        assert resolver.resolve("https://codeberg.org/a/b", "b") == NOT_UPDATABLE
        assert lookup.calls == []


class TestBuildResolver:
    """Wiring of the real adapters."""

    def test_build_resolver(self):
        config = Config(preferences=Preferences(registry_delay_seconds=0.25))
        resolver = build_resolver(config)

        names = [s.name for s in resolver.strategies]
        assert names == ["github", "gitlab", "repology"]
        assert isinstance(resolver.strategies[0].lookup, TagLookup)
        assert resolver.strategies[2].delay_seconds == 0.25
        assert not resolver.strategies[2].cache.populated
