"""Reconciliation between local schemas and a remote Quickbase application.

This package provides the primitives for:
- Fetch: projecting remote state into the local schema shape
- Diff: detecting structural drift between local and remote
- Deploy: applying a local schema through idempotent create-or-update calls
"""
