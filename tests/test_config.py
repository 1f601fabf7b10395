"""Tests for settings resolution."""

import pytest
import yaml

from qbdev.config import DEFAULT_API_URL, DEFAULT_TIMEOUT, load_settings, normalize_realm
from qbdev.errors import QbDevError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("QB_REALM", "QB_USER_TOKEN", "QB_API_URL"):
        monkeypatch.delenv(key, raising=False)


def test_defaults_for_empty_project(tmp_path):
    settings = load_settings(tmp_path)
    assert settings.root == tmp_path
    assert settings.realm == ""
    assert settings.user_token == ""
    assert settings.api_url == DEFAULT_API_URL
    assert settings.timeout == DEFAULT_TIMEOUT
    assert settings.apps_dir == tmp_path / "apps"


def test_reads_dotenv(tmp_path):
    (tmp_path / ".env").write_text("QB_REALM=acme.quickbase.com\nQB_USER_TOKEN=tok_abc\n")
    settings = load_settings(tmp_path)
    assert settings.realm == "acme.quickbase.com"
    assert settings.user_token == "tok_abc"


def test_environment_wins_over_dotenv(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("QB_USER_TOKEN=from_file\n")
    monkeypatch.setenv("QB_USER_TOKEN", "from_env")
    assert load_settings(tmp_path).user_token == "from_env"


def test_reads_project_file(tmp_path):
    with open(tmp_path / "qbdev.yaml", "w") as f:
        yaml.safe_dump(
            {
                "projectName": "crm-tools",
                "quickbase": {"realm": "https://acme.quickbase.com/"},
                "deploy": {"timeout": 90},
            },
            f,
        )
    settings = load_settings(tmp_path)
    assert settings.project_name == "crm-tools"
    assert settings.realm == "acme.quickbase.com"
    assert settings.timeout == 90.0


def test_env_realm_wins_over_project_file(tmp_path, monkeypatch):
    with open(tmp_path / "qbdev.yaml", "w") as f:
        yaml.safe_dump({"quickbase": {"realm": "old.quickbase.com"}}, f)
    monkeypatch.setenv("QB_REALM", "new.quickbase.com")
    assert load_settings(tmp_path).realm == "new.quickbase.com"


def test_api_url_override(tmp_path, monkeypatch):
    monkeypatch.setenv("QB_API_URL", "http://localhost:8080/v1")
    assert load_settings(tmp_path).api_url == "http://localhost:8080/v1"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("acme.quickbase.com", "acme.quickbase.com"),
        ("https://acme.quickbase.com", "acme.quickbase.com"),
        ("http://acme.quickbase.com/", "acme.quickbase.com"),
        ("  acme.quickbase.com  ", "acme.quickbase.com"),
        ("", ""),
    ],
)
def test_normalize_realm(raw, expected):
    assert normalize_realm(raw) == expected


def test_non_mapping_sections_ignored(tmp_path):
    (tmp_path / "qbdev.yaml").write_text("projectName: crm\nquickbase: acme\ndeploy: [1, 2]\n")
    settings = load_settings(tmp_path)
    assert settings.project_name == "crm"
    assert settings.realm == ""
    assert settings.timeout == DEFAULT_TIMEOUT


@pytest.mark.parametrize("timeout", ["soon", "true", "[1]"])
def test_bad_timeout_names_the_key(tmp_path, timeout):
    (tmp_path / "qbdev.yaml").write_text(f"deploy:\n  timeout: {timeout}\n")
    with pytest.raises(QbDevError) as exc_info:
        load_settings(tmp_path)
    assert "deploy.timeout" in str(exc_info.value)
