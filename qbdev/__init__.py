"""qb-dev — build and maintain Quickbase applications as code."""

__version__ = "1.0.0"
