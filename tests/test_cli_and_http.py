"""Tests for the CLI entry point, config loading, HTTP client and logging helpers."""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest
import requests

from common.http_client import HttpResponse, RequestsHttpClient, TransportError, build_headers
from common.logging_utils import configure_logging, extra_context, safe_url
from constants import ExitCodes
from metadata.models import ConfigurationError
import plugin_updater
from updater import PluginUpdater

from conftest import JSON_URL, LATEST_URL, FakeHttpClient, json_response, plugin_json, release_payload


@pytest.fixture
def isolated_root_logger(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)
    monkeypatch.setenv("PLUGIN_UPDATER_LOG_LEVEL", "WARNING")
    return root


class TestLoadConfigFile:
    def test_yaml_updater_section(self, tmp_path):
        path = tmp_path / "updater.yml"
        path.write_text("updater:\n  prefer_json: false\n  timeout: 10\n", encoding="utf-8")
        assert plugin_updater.load_config_file(str(path)) == {"prefer_json": False, "timeout": 10}

    def test_json_file(self, tmp_path):
        path = tmp_path / "updater.json"
        path.write_text(json.dumps({"cache_duration": 60}), encoding="utf-8")
        assert plugin_updater.load_config_file(str(path)) == {"cache_duration": 60}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            plugin_updater.load_config_file(str(tmp_path / "nope.yml"))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            plugin_updater.load_config_file(str(path))

    def test_no_path(self):
        assert plugin_updater.load_config_file(None) == {}


@pytest.mark.usefixtures("isolated_root_logger")
class TestMain:
    def _install_fake(self, http):
        original = PluginUpdater.get_instance.__func__

        def fake_get_instance(cls, plugin, repository, options=None, **kwargs):
            kwargs.setdefault("http", http)
            return original(cls, plugin, repository, options, **kwargs)

        return patch.object(PluginUpdater, "get_instance", classmethod(fake_get_instance))

    def test_update_available(self, capsys):
        http = FakeHttpClient(
            {LATEST_URL: json_response(release_payload()), JSON_URL: json_response(plugin_json())}
        )
        with self._install_fake(http):
            code = plugin_updater.main(
                ["-p", "my-plugin/my-plugin.php", "-r", "acme/my-plugin", "-i", "1.2.0", "--host-version", "6.5"]
            )

        assert code == ExitCodes.SUCCESS.value
        assert json.loads(capsys.readouterr().out)["new_version"] == "1.3.0"

    def test_up_to_date(self, capsys):
        http = FakeHttpClient(
            {LATEST_URL: json_response(release_payload()), JSON_URL: json_response(plugin_json())}
        )
        with self._install_fake(http):
            code = plugin_updater.main(["-p", "my-plugin/my-plugin.php", "-r", "acme/my-plugin", "-i", "1.3.0"])

        assert code == ExitCodes.NO_UPDATE.value
        assert json.loads(capsys.readouterr().out) == {"available": False, "latest_version": "1.3.0"}

    def test_resolution_failure(self):
        with self._install_fake(FakeHttpClient()):
            code = plugin_updater.main(["-p", "my-plugin/my-plugin.php", "-r", "acme/my-plugin"])
        assert code == ExitCodes.RESOLUTION_FAILED.value

    def test_bad_repository(self):
        code = plugin_updater.main(["-p", "my-plugin/my-plugin.php", "-r", "not-a-repo"])
        assert code == ExitCodes.CONFIG_ERROR.value

    def test_info(self, capsys):
        http = FakeHttpClient(
            {LATEST_URL: json_response(release_payload()), JSON_URL: json_response(plugin_json())}
        )
        with self._install_fake(http):
            code = plugin_updater.main(["-p", "my-plugin/my-plugin.php", "-r", "acme/my-plugin", "--info"])

        assert code == ExitCodes.SUCCESS.value
        assert json.loads(capsys.readouterr().out)["name"] == "My Plugin"


class TestRequestsHttpClient:
    def test_get_returns_response(self):
        session = MagicMock()
        session.get.return_value = MagicMock(status_code=200, headers={"X-Test": "1"}, text="{}")

        response = RequestsHttpClient(session).get("https://api.example", {"Accept": "x"}, 5)

        assert response == HttpResponse(200, {"X-Test": "1"}, "{}")
        session.get.assert_called_once_with("https://api.example", headers={"Accept": "x"}, timeout=5)

    def test_timeout_becomes_transport_error(self):
        session = MagicMock()
        session.get.side_effect = requests.Timeout("slow")

        with pytest.raises(TransportError) as exc:
            RequestsHttpClient(session).get("https://api.example", {}, 5)
        assert exc.value.timed_out is True

    def test_connection_error(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(TransportError):
            RequestsHttpClient(session).get("https://api.example", {}, 5)

    def test_download_writes_file(self, tmp_path):
        res = MagicMock(status_code=200)
        res.iter_content.return_value = [b"PK\x03\x04", b"rest"]
        session = MagicMock()
        session.get.return_value.__enter__.return_value = res
        dest = tmp_path / "a.zip"

        RequestsHttpClient(session).download("https://dl.example/a.zip", str(dest), {}, 5)

        assert dest.read_bytes() == b"PK\x03\x04rest"

    def test_download_failure_removes_partial_file(self, tmp_path):
        def chunks(chunk_size):
            yield b"partial"
            raise requests.ConnectionError("reset")

        res = MagicMock(status_code=200)
        res.iter_content.side_effect = chunks
        session = MagicMock()
        session.get.return_value.__enter__.return_value = res
        dest = tmp_path / "a.zip"

        with pytest.raises(TransportError):
            RequestsHttpClient(session).download("https://dl.example/a.zip", str(dest), {}, 5)
        assert not dest.exists()

    def test_download_http_error(self, tmp_path):
        session = MagicMock()
        session.get.return_value.__enter__.return_value = MagicMock(status_code=404)
        dest = tmp_path / "a.zip"

        with pytest.raises(TransportError) as exc:
            RequestsHttpClient(session).download("https://dl.example/a.zip", str(dest), {}, 5)
        assert exc.value.status_code == 404
        assert not dest.exists()

    def test_download_stops_past_size_limit(self, tmp_path):
        consumed = []

        def chunks(chunk_size):
            for i in range(100):
                consumed.append(i)
                yield b"x" * 10

        res = MagicMock(status_code=200)
        res.iter_content.side_effect = chunks
        session = MagicMock()
        session.get.return_value.__enter__.return_value = res
        dest = tmp_path / "a.zip"

        RequestsHttpClient(session).download("https://dl.example/a.zip", str(dest), {}, 5, max_bytes=25)

        assert len(consumed) == 3
        assert dest.stat().st_size == 30

    def test_build_headers(self):
        assert build_headers(None)["Accept"] == "application/json"
        assert build_headers("t")["Authorization"] == "Bearer t"


class TestLoggingUtils:
    def test_safe_url_masks_credentials(self):
        assert safe_url("https://user:pw@host/p?token=abc&page=2") == "https://***@host/p?token=%2A%2A%2A&page=2"
        assert safe_url("") == ""

    def test_extra_context_drops_none(self):
        assert extra_context(a=1, b=None) == {"a": 1}

    def test_configure_logging_is_idempotent(self, monkeypatch, isolated_root_logger):
        monkeypatch.setenv("PLUGIN_UPDATER_LOG_LEVEL", "DEBUG")
        root = logging.getLogger()

        configure_logging()
        configure_logging()

        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
