"""Tests for the YAML configuration loader."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from healthmon.config.loader import ConfigLoader
from healthmon.config.models import ProbeKind
from healthmon.errors import ConfigurationError

CONFIG_PATH = Path(__file__).parents[2] / "config" / "config.example.yaml"


def test_example_config_loads(config):
    assert config.monitoring.interval_seconds == 30
    assert config.monitoring.history_size == 100
    assert [t.name for t in config.targets] == ["example-site", "status-api", "local-postgres"]
    assert config.reports.formats == ["json", "html"]


def test_example_config_substitutes_environment(config):
    status_api = config.targets[1]

    assert status_api.address == "https://status.example.test/health"
    assert status_api.expected_status == 204


def test_example_config_infers_tcp(config):
    assert config.targets[2].kind == ProbeKind.TCP
    assert config.targets[0].kind == ProbeKind.HTTP


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        ConfigLoader.load_from_file("/nonexistent/healthmon.yaml")


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    config = ConfigLoader.load_from_file(str(path))

    assert config.targets == []
    assert config.monitoring.interval_seconds == 30.0


def test_invalid_target_in_file(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("targets:\n  - name: broken\n    address: ''\n")

    with pytest.raises(ValidationError):
        ConfigLoader.load_from_file(str(path))


def test_substitute_env_vars(monkeypatch):
    monkeypatch.setenv("HM_HOST", "db.internal")
    monkeypatch.delenv("HM_MISSING", raising=False)

    result = ConfigLoader._substitute_env_vars({
        "address": "${HM_HOST}:5432",
        "list": ["${HM_HOST}", 5],
        "missing": "x${HM_MISSING}y",
    })

    assert result == {
        "address": "db.internal:5432",
        "list": ["db.internal", 5],
        "missing": "xy",
    }


def test_load_from_dict():
    config = ConfigLoader.load_from_dict({
        "monitoring": {"interval_seconds": 5},
        "targets": [{"name": "cache", "address": "localhost:6379"}],
    })

    assert config.monitoring.interval_seconds == 5
    assert config.targets[0].kind == ProbeKind.TCP


def test_default_placeholder(monkeypatch):
    monkeypatch.delenv("HM_UNSET", raising=False)
    monkeypatch.setenv("HM_SET", "live")

    result = ConfigLoader._substitute_env_vars("${HM_UNSET:-fallback}/${HM_SET:-ignored}")

    assert result == "fallback/live"


def test_example_config_default_host(monkeypatch):
    monkeypatch.delenv("STATUS_API_HOST", raising=False)

    config = ConfigLoader.load_from_file(str(CONFIG_PATH))

    assert config.targets[1].address == "https://status.example.com/health"


def test_config_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("monitoring:\n  interval_seconds: 7\n")
    monkeypatch.setenv("HEALTHMON_CONFIG", str(path))

    assert ConfigLoader.resolve_path() == str(path)
    assert ConfigLoader.resolve_path("explicit.yaml") == "explicit.yaml"
    assert ConfigLoader.load_from_file().monitoring.interval_seconds == 7


def test_non_mapping_document(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ConfigurationError, match="mapping"):
        ConfigLoader.load_from_file(str(path))
