# src/fixpoint/testing/__init__.py
"""Test-runner integration."""

from fixpoint.testing.pytest_plugin import use_data, use_datasources

__all__ = ["use_data", "use_datasources"]
