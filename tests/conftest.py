"""Shared pytest fixtures for proxydi tests."""

import pytest

from proxydi.application.catalog import default_catalog
from proxydi.application.container import Container


@pytest.fixture(autouse=True)
def clean_catalog():
    """Forget injectable and middleware declarations made by a test."""
    yield
    default_catalog.clear()


@pytest.fixture()
def container() -> Container:
    """Root container with default settings."""
    return Container()


@pytest.fixture()
def permissive_container() -> Container:
    """Root container accepting plain values as dependencies."""
    return Container({"allow_register_anything": True})
