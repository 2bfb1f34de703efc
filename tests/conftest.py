"""Shared pytest fixtures for the PowerPoint to PDF service tests."""

import time

import pytest
from fastapi.testclient import TestClient

from pptx_pdf_service.config import ServiceConfig
from pptx_pdf_service.webapi import create_app


class FakeConverter:
    """Stand-in for LibreOffice.

    Produces a fake PDF derived from the input so each caller can check it got
    its own output back. Raises `error` instead when one is set.
    """

    def __init__(self, error: Exception | None = None, delay: float = 0.0) -> None:
        self.error = error
        self.delay = delay
        self.calls: list[tuple[bytes, str]] = []

    def convert(self, data: bytes, target_format: str) -> bytes:
        self.calls.append((data, target_format))
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return b"%PDF-1.4\n" + data[::-1]


@pytest.fixture
def scratch_dir(tmp_path):
    """Isolated scratch directory (created by the app on startup)."""
    return tmp_path / "uploads"


@pytest.fixture
def converter():
    return FakeConverter()


@pytest.fixture
def make_client(scratch_dir, converter):
    """Factory for test clients with config overrides.

    Yields a callable returning a started TestClient; all clients are closed
    after the test completes.
    """
    clients = []

    def _make(**overrides) -> TestClient:
        config = ServiceConfig(scratch_dir=scratch_dir, **overrides)
        client = TestClient(create_app(config, converter=converter))
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def pptx_bytes():
    """10 KB of arbitrary bytes; the service never inspects content."""
    return b"PK\x03\x04fake presentation " * 512
