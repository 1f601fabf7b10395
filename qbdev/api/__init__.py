"""Remote data gateway for the Quickbase REST API."""

from qbdev.api.client import QuickbaseClient

__all__ = ["QuickbaseClient"]
