"""Project configuration.

Settings are resolved once per command from the project root: the ``.env``
file (via python-dotenv, never overriding the real environment), the
process environment, and the optional ``qbdev.yaml`` written by ``init``.
The resulting ``Settings`` value is handed explicitly to the API client
and the schema store.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from dotenv import dotenv_values

from qbdev.errors import QbDevError

DEFAULT_API_URL = "https://api.quickbase.com/v1"
DEFAULT_TIMEOUT = 30.0
PROJECT_FILE = "qbdev.yaml"


@dataclass(frozen=True)
class Settings:
    """Everything a command needs to reach the realm and the project files."""

    root: Path
    realm: str = ""
    user_token: str = ""
    api_url: str = DEFAULT_API_URL
    project_name: str = ""
    timeout: float = DEFAULT_TIMEOUT

    @property
    def apps_dir(self) -> Path:
        return self.root / "apps"

    @property
    def schemas_dir(self) -> Path:
        return self.root / "schemas"

    @property
    def migrations_dir(self) -> Path:
        return self.root / "migrations"

    @property
    def project_file(self) -> Path:
        return self.root / PROJECT_FILE


def normalize_realm(realm: str) -> str:
    """Strip a URL scheme and trailing slash from a realm hostname."""
    realm = (realm or "").strip()
    for prefix in ("https://", "http://"):
        if realm.startswith(prefix):
            realm = realm[len(prefix):]
    return realm.rstrip("/")


def load_project_file(root: Path) -> dict:
    """Read ``qbdev.yaml`` if present. Returns an empty dict otherwise."""
    path = root / PROJECT_FILE
    if not path.exists():
        return {}
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return data if isinstance(data, dict) else {}


def load_settings(root: str | Path | None = None) -> Settings:
    """Build ``Settings`` for the project rooted at *root* (default: cwd)."""
    root_path = Path(root) if root else Path.cwd()

    dotenv = {k: v for k, v in dotenv_values(root_path / ".env").items() if v is not None}
    env = {**dotenv, **os.environ}
    project = load_project_file(root_path)
    quickbase = _section(project, "quickbase")
    deploy = _section(project, "deploy")

    return Settings(
        root=root_path,
        realm=normalize_realm(env.get("QB_REALM") or str(quickbase.get("realm") or "")),
        user_token=env.get("QB_USER_TOKEN", ""),
        api_url=env.get("QB_API_URL") or DEFAULT_API_URL,
        project_name=project.get("projectName", ""),
        timeout=_timeout(deploy.get("timeout", DEFAULT_TIMEOUT)),
    )


def _section(project: dict, key: str) -> dict:
    # Sections that are not mappings are ignored, like a non-mapping file.
    value = project.get(key)
    return value if isinstance(value, dict) else {}


def _timeout(value) -> float:
    error = QbDevError(f"{PROJECT_FILE}: deploy.timeout must be a number, got {value!r}")
    if isinstance(value, bool):
        raise error
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise error from e
