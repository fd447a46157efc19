"""Nimitz exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each store operation raises a specific error type for debuggability.
"""

from __future__ import annotations


class NimitzError(Exception):
    """Base exception for all Nimitz failures."""


class NimitzConfigError(NimitzError):
    """Raised for invalid runtime configuration."""


class NimitzStoreError(NimitzError):
    """Raised for store access, query, and corner-pair failures."""


class NimitzDirectoryError(NimitzStoreError):
    """Raised when a warzone data directory cannot be created."""


class NimitzFutureVersionError(NimitzError):
    """Raised when a store was written by a newer schema version."""


class NimitzMigrationError(NimitzError):
    """Raised when a schema migration step fails and is rolled back."""


class NimitzMetadataError(NimitzError):
    """Raised when a cell metadata payload cannot be decoded."""
