"""Shared test fixtures for EdgeGuard tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from core.collector import Category, HardwareCollector, HardwareSnapshot, to_category_value
from core.identity_store import IdentityStore

HAL_HOST = "testhost"


class FakeHal:
    """In-memory HAL facts service served through ``httpx.MockTransport``.

    ``responses`` maps a category to the JSON document it returns;
    ``failures`` maps a category to an exception raised instead.
    """

    def __init__(self, default: Any = None) -> None:
        doc = {"cpu": "x86"} if default is None else default
        self.responses: dict[Category, Any] = {c: doc for c in Category}
        self.raw: dict[Category, bytes] = {}
        self.status: dict[Category, int] = {}
        self.failures: dict[Category, Exception] = {}
        self.requests: list[httpx.Request] = []

    def _category(self, request: httpx.Request) -> Category:
        path = request.url.path.removeprefix("/hal/hwc/")
        for category in Category:
            if category.path == path:
                return category
        raise AssertionError(f"unexpected HAL path {request.url.path}")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        category = self._category(request)
        if category in self.failures:
            raise self.failures[category]
        status = self.status.get(category, 200)
        if category in self.raw:
            return httpx.Response(status, content=self.raw[category])
        return httpx.Response(status, content=json.dumps(self.responses[category]).encode())

    def collector(self, host: str = HAL_HOST) -> HardwareCollector:
        client = httpx.Client(transport=httpx.MockTransport(self.handler))
        return HardwareCollector(host, client=client)


@pytest.fixture
def fake_hal() -> FakeHal:
    return FakeHal()


@pytest.fixture
def store(tmp_path: Path) -> IdentityStore:
    return IdentityStore(tmp_path / "id" / "salt-key", tmp_path / "id" / "hw-id")


@pytest.fixture
def make_snapshot() -> Callable[..., HardwareSnapshot]:
    """Build a snapshot; keyword arguments override individual categories."""

    def _make(**overrides: Any) -> HardwareSnapshot:
        docs: dict[str, Any] = {c.value: {"cpu": "x86"} for c in Category}
        docs.update(overrides)
        return HardwareSnapshot(
            {Category(name): to_category_value(doc) for name, doc in docs.items()}
        )

    return _make
