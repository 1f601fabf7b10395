"""Project scaffold — the layout ``qb-dev init`` creates.

Structure:
    <project>/
    ├── qbdev.yaml          # project name, realm, deploy settings
    ├── .env                # QB_REALM / QB_USER_TOKEN (not committed)
    ├── .gitignore
    ├── README.md
    ├── apps/
    │   └── example-app.yaml
    ├── schemas/
    ├── migrations/
    └── scripts/
"""

from __future__ import annotations

from pathlib import Path

import yaml

from qbdev.config import DEFAULT_TIMEOUT, PROJECT_FILE, normalize_realm

PROJECT_DIRS = ("apps", "schemas", "migrations", "scripts")

_ENV_TEMPLATE = """\
QB_REALM={realm}
QB_USER_TOKEN={user_token}
"""

_GITIGNORE_TEMPLATE = """\
.env
__pycache__/
.venv/
.DS_Store
*.log
.qbdev-cache/
"""

_EXAMPLE_APP_TEMPLATE = """\
name: Example App
description: This is an example Quickbase application
dateFormat: MM-DD-YYYY
timeZone: US/Eastern

tables:
  - name: Contacts
    description: Store contact information
    singleRecordName: Contact
    pluralRecordName: Contacts
    fields:
      - label: First Name
        fieldType: text
        required: true
      - label: Last Name
        fieldType: text
        required: true
      - label: Email
        fieldType: email
        unique: true
      - label: Phone
        fieldType: phone
      - label: Company
        fieldType: text
      - label: Notes
        fieldType: rich-text
      - label: Created Date
        fieldType: datetime
        appearsByDefault: true
    reports:
      - name: All Contacts
        type: table
        query:
          sortBy:
            - fieldId: 2
              order: ASC
      - name: Recent Contacts
        type: table
        query:
          where: "{7.OAF.'7 days'}"
          sortBy:
            - fieldId: 7
              order: DESC

  - name: Companies
    description: Store company information
    singleRecordName: Company
    pluralRecordName: Companies
    fields:
      - label: Company Name
        fieldType: text
        required: true
        unique: true
      - label: Industry
        fieldType: text
      - label: Website
        fieldType: url
      - label: Address
        fieldType: address
      - label: Notes
        fieldType: rich-text
"""

_README_TEMPLATE = """\
# {project_name}

This is a Quickbase development project managed with qb-dev.

## Getting Started

1. Install the tooling:
   ```bash
   pip install qb-dev
   ```

2. Configure your environment:
   - Edit `.env` with your Quickbase credentials
   - Adjust `qbdev.yaml` as needed

3. Create or modify app schemas in the `apps/` directory

4. Deploy your apps:
   ```bash
   qb-dev deploy example-app
   ```

## Commands

- `qb-dev init` - Initialize a new project
- `qb-dev deploy [app-name]` - Deploy an app to Quickbase
- `qb-dev pull <app-id> [app-name]` - Pull an existing app from Quickbase
- `qb-dev validate [app-name]` - Validate an app schema
- `qb-dev diff <app-name>` - Compare local and remote schemas

## Project Structure

- `apps/` - Application schema files (YAML)
- `schemas/` - Reusable schema components
- `migrations/` - Data migration scripts
- `scripts/` - Custom automation scripts
"""


class ProjectScaffold:
    """Creates the qb-dev project layout under a root directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.project_file = self.root / PROJECT_FILE

    @property
    def is_initialized(self) -> bool:
        return self.project_file.exists()

    def initialize(self, project_name: str, realm: str, user_token: str) -> dict:
        """Write the project skeleton.

        Directories are created if missing. ``qbdev.yaml`` and ``.env`` are
        always (re)written; the README, ``.gitignore`` and the example app
        are only written when absent so user edits survive a re-init.

        Returns:
            dict with keys ``directories`` and ``files`` listing the paths
            that were created or written.
        """
        realm = normalize_realm(realm)
        created_dirs: list[Path] = []
        created_files: list[Path] = []

        for name in PROJECT_DIRS:
            directory = self.root / name
            directory.mkdir(parents=True, exist_ok=True)
            created_dirs.append(directory)

        config = {
            "projectName": project_name,
            "quickbase": {"realm": realm},
            "deploy": {"timeout": DEFAULT_TIMEOUT},
        }
        self.project_file.write_text(yaml.safe_dump(config, sort_keys=False))
        created_files.append(self.project_file)

        env_path = self.root / ".env"
        env_path.write_text(_ENV_TEMPLATE.format(realm=realm, user_token=user_token))
        created_files.append(env_path)

        for path, content in (
            (self.root / ".gitignore", _GITIGNORE_TEMPLATE),
            (self.root / "README.md", _README_TEMPLATE.format(project_name=project_name)),
            (self.root / "apps" / "example-app.yaml", _EXAMPLE_APP_TEMPLATE),
        ):
            if not path.exists():
                path.write_text(content)
                created_files.append(path)

        return {"directories": created_dirs, "files": created_files}
