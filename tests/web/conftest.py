"""Shared fixtures for web tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from velolink.client import VelolinkClient
from velolink.config import Settings
from velolink.input.invoker import NullActionInvoker
from velolink.web.app import create_app


def _make_velolink_client(settings: Settings | None = None, **kwargs) -> VelolinkClient:
    """Build a client with no device attached and a recording invoker."""
    kwargs.setdefault("report_writer", MagicMock())
    return VelolinkClient(settings or Settings(), NullActionInvoker(), **kwargs)


@pytest.fixture
def make_velolink_client():
    """Factory fixture for clients with custom settings or config path."""
    return _make_velolink_client


@pytest.fixture
def velolink_client() -> VelolinkClient:
    return _make_velolink_client()


@pytest.fixture
def client(velolink_client):
    """FastAPI test client."""
    with TestClient(create_app(velolink_client)) as c:
        yield c
