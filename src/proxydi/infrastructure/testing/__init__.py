"""
Testing utilities module.

Provides helpers and utilities for testing applications using proxydi.
"""

from .utilities import MockScope, TestContainer, create_mock_container, isolated_catalog

__all__ = [
    "TestContainer",
    "create_mock_container",
    "MockScope",
    "isolated_catalog",
]
