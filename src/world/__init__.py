"""Live world collaborators.

This package defines the cell accessor contract the stores consume.
It also ships a dictionary-backed world for tooling and tests.
"""
