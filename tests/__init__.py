"""Test suite for the pytest-dyna package.

This package contains unit and integration tests validating tree
construction, execution semantics, reporting, discovery, and the pytest
and command-line integrations.
"""
