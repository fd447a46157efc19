"""Storage and versioning layer.

This module persists zone volumes and structure templates in SQLite.
It powers schema migration, windowed loads, and full rebuild saves.
"""
