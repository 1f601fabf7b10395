"""Schema store — application schemas as YAML files in the project.

Documents live at ``<project>/apps/<name>.yaml``. Every document is
validated and defaulted on its way in (``load``) and on its way out
(``save``), so callers always work with fully-defaulted models.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from qbdev.config import Settings
from qbdev.errors import SchemaNotFoundError, SchemaValidationError
from qbdev.models.app_schema import Application
from qbdev.schema.validator import apply_defaults, validate_document

logger = logging.getLogger(__name__)

SCHEMA_SUFFIX = ".yaml"


@dataclass
class ValidationResult:
    """Outcome of validating one stored document."""

    name: str
    issues: list[str] = field(default_factory=list)
    app: Application | None = None

    @property
    def passed(self) -> bool:
        return not self.issues


class SchemaStore:
    """File-backed store for application schema documents."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.apps_dir = settings.apps_dir

    def ensure_directories(self) -> None:
        for directory in (
            self.settings.apps_dir,
            self.settings.schemas_dir,
            self.settings.migrations_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> Path:
        return self.apps_dir / f"{name}{SCHEMA_SUFFIX}"

    def exists(self, name: str) -> bool:
        return self.path_for(name).exists()

    def list_names(self) -> list[str]:
        """Names of every stored document, sorted."""
        if not self.apps_dir.exists():
            return []
        return sorted(p.stem for p in self.apps_dir.glob(f"*{SCHEMA_SUFFIX}"))

    def load(self, name: str) -> Application:
        """Load, validate and default the document stored under *name*.

        Raises:
            SchemaNotFoundError: no document with that name.
            SchemaValidationError: the document does not match the shape.
        """
        return parse_document(name, self._read(name))

    def load_all(self) -> dict[str, Application]:
        return {name: self.load(name) for name in self.list_names()}

    def save(self, name: str, app: Application | dict) -> Application:
        """Validate *app* and write it under *name*. Returns the defaulted form."""
        data = app.to_dict() if isinstance(app, Application) else app
        validated = parse_document(name, data)

        self.ensure_directories()
        path = self.path_for(name)
        with open(path, "w") as f:
            yaml.safe_dump(
                validated.to_dict(),
                f,
                sort_keys=False,
                default_flow_style=False,
                allow_unicode=True,
                indent=2,
            )
        logger.debug("Wrote schema %s to %s", name, path)
        return validated

    def validate(self, name: str) -> ValidationResult:
        """Validate a stored document without raising on shape issues."""
        try:
            return ValidationResult(name=name, app=self.load(name))
        except SchemaValidationError as e:
            return ValidationResult(name=name, issues=e.issues)

    def _read(self, name: str):
        path = self.path_for(name)
        if not path.exists():
            raise SchemaNotFoundError(f"App schema not found: {name} ({path})")
        try:
            with open(path) as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SchemaValidationError(name, [f"Invalid YAML: {e}"]) from e


def parse_document(name: str, data) -> Application:
    """Validate a raw document and build the defaulted ``Application``."""
    issues = validate_document(data)
    if issues:
        raise SchemaValidationError(name, issues)
    return Application.from_dict(apply_defaults(data))
