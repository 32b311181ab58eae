"""Tests for identity/configuration records, metadata normalization and the TTL cache."""

import time

import pytest

from cache import MemoryCache, cache_key
from metadata.models import Configuration, ConfigurationError, Identity, RawRelease, ResolvedMetadata


class TestIdentity:
    def test_slug_defaults_to_plugin_directory(self):
        identity = Identity.create("my-plugin/my-plugin.php", "acme/my-plugin")
        assert identity.slug == "my-plugin"
        assert identity.plugin_dir == "my-plugin"

    def test_single_file_plugin_slug(self):
        assert Identity.create("hello.php", "acme/hello").slug == "hello"

    def test_explicit_slug(self):
        assert Identity.create("a/a.php", "acme/a", "custom").slug == "custom"

    @pytest.mark.parametrize(
        "plugin,repository",
        [("", "acme/a"), ("a/a.php", ""), ("a/a.php", "acme"), ("../a.php", "acme/a"), ("/a/a.php", "acme/a")],
    )
    def test_invalid_references(self, plugin, repository):
        with pytest.raises(ConfigurationError):
            Identity.create(plugin, repository)


class TestConfiguration:
    def test_defaults(self):
        config = Configuration.from_mapping({})
        assert config.token is None
        assert config.prefer_json is True
        assert config.cache_duration == 21600
        assert config.timeout == 30
        assert config.max_file_size == 52428800

    def test_aliases_and_values(self):
        config = Configuration.from_mapping({"auth": "abc", "prefer_json": False, "timeout": 5})
        assert config.token == "abc"
        assert config.prefer_json is False
        assert config.timeout == 5

    def test_unknown_keys_rejected(self):
        with pytest.raises(ConfigurationError) as exc:
            Configuration.from_mapping({"cache_durration": 10})
        assert "cache_durration" in str(exc.value)

    @pytest.mark.parametrize("options", [{"timeout": 0}, {"max_file_size": "big"}, {"prefer_json": "yes"}])
    def test_invalid_values_rejected(self, options):
        with pytest.raises(ConfigurationError):
            Configuration.from_mapping(options)

    def test_token_from_environment(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert Configuration.from_mapping(None).token == "env-token"
        assert Configuration.from_mapping({"auth": "explicit"}).token == "explicit"


class TestResolvedMetadata:
    def test_nulls_and_unknown_keys_normalized(self):
        metadata = ResolvedMetadata.from_mapping(
            {
                "name": "X",
                "slug": "x",
                "version": 2,
                "tested": None,
                "sections": None,
                "icons": {"1x": "a.png", "2x": None},
                "unexpected": [1, 2],
            }
        )
        assert metadata.version == "2"
        assert metadata.tested_up_to == ""
        assert metadata.sections == {}
        assert metadata.icons == {"1x": "a.png"}

    def test_round_trips_through_cache_form(self):
        metadata = ResolvedMetadata(name="X", slug="x", version="1.0", sections={"faq": "<p>q</p>"})
        assert ResolvedMetadata.from_mapping(metadata.to_dict()) == metadata

    def test_raw_release_from_api_skips_bad_assets(self):
        release = RawRelease.from_api(
            {"tag_name": "v1", "assets": [{"name": "a.zip", "browser_download_url": "u", "size": 3}, "junk"]}
        )
        assert [a.name for a in release.assets] == ["a.zip"]
        assert RawRelease.from_dict(release.to_dict()) == release


class TestMemoryCache:
    def test_set_get_delete(self):
        cache = MemoryCache()
        cache.set("json:x", {"a": 1}, 60)
        assert cache.get("json:x") == {"a": 1}
        cache.delete("json:x")
        assert cache.get("json:x") is None
        cache.delete("json:x")

    def test_expiry(self, monkeypatch):
        cache = MemoryCache()
        cache.set("release:x", {"a": 1}, 10)
        real_time = time.time
        monkeypatch.setattr(time, "time", lambda: real_time() + 11)
        assert cache.get("release:x") is None

    def test_values_are_copied(self):
        cache = MemoryCache()
        value = {"sections": {"a": "b"}}
        cache.set("json:x", value, 60)
        value["sections"]["a"] = "changed"
        cache.get("json:x")["sections"]["a"] = "changed again"
        assert cache.get("json:x") == {"sections": {"a": "b"}}

    def test_evicts_oldest_over_limit(self):
        cache = MemoryCache(max_entries=2)
        cache.set("json:a", 1, 60)
        cache.set("json:b", 2, 60)
        cache.set("json:c", 3, 60)
        assert cache.stats()["total_entries"] == 2
        assert cache.get("json:c") == 3

    def test_cache_key(self):
        assert cache_key("release", "my-plugin") == "release:my-plugin"
        with pytest.raises(ValueError):
            cache_key("bogus", "my-plugin")
