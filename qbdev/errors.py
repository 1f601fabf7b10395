"""Error types raised by qb-dev.

Everything the CLI knows how to report derives from ``QbDevError``; any
other exception is a bug and is allowed to propagate.
"""

from __future__ import annotations


class QbDevError(Exception):
    """Base class for expected qb-dev failures."""


class TransportError(QbDevError):
    """A remote API call failed.

    Carries the HTTP status (0 when no response was received), the API's
    message and the raw response body, unmodified.
    """

    def __init__(self, status: int, message: str, body: str = ""):
        self.status = status
        self.message = message
        self.body = body
        super().__init__(self._format())

    def _format(self) -> str:
        text = f"Quickbase API error ({self.status}): {self.message}" if self.status else self.message
        if self.body:
            text += f"\n{self.body}"
        return text


class NotFoundError(TransportError):
    """The remote entity does not exist (HTTP 404)."""


class SchemaNotFoundError(QbDevError):
    """No local schema document exists under the requested name."""


class SchemaValidationError(QbDevError):
    """A schema document does not match the expected shape.

    ``issues`` holds every violation found, not just the first.
    """

    def __init__(self, name: str, issues: list[str]):
        self.name = name
        self.issues = list(issues)
        lines = "\n".join(f"  - {i}" for i in self.issues)
        super().__init__(f"Schema '{name}' is invalid ({len(self.issues)} issue(s)):\n{lines}")


class DeployError(QbDevError):
    """An apply run could not complete."""
