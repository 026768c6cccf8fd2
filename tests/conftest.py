"""Shared fixtures for the deployment layer."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest

from site_publisher.deploy.transport import HttpTransport, RetryPolicy
from tests.fakes import FakeBuilder, FakeRunner


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_runner() -> Callable[..., FakeRunner]:
    return FakeRunner


@pytest.fixture
def make_builder() -> Callable[..., FakeBuilder]:
    return FakeBuilder


Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def make_transport() -> Iterator[Callable[[Handler], HttpTransport]]:
    """Return a factory wiring an ``HttpTransport`` to an ``httpx.MockTransport`` handler."""
    created: list[HttpTransport] = []

    def _factory(handler: Handler) -> HttpTransport:
        transport = HttpTransport(
            httpx.Client(transport=httpx.MockTransport(handler)),
            retry=RetryPolicy(max_retries=2, base_delay_seconds=0.0, max_delay_seconds=0.0),
        )
        created.append(transport)
        return transport

    yield _factory
    for transport in created:
        transport.close()


@pytest.fixture
def artifact_dir(tmp_path: Path) -> Path:
    public = tmp_path / "site" / "public"
    (public / "blog").mkdir(parents=True)
    (public / "index.html").write_text("<h1>home</h1>", encoding="utf-8")
    (public / "blog" / "post.html").write_text("<p>post</p>", encoding="utf-8")
    return public
