"""Tests for core/collector.py — HAL fact collection and snapshot shape."""

from __future__ import annotations

import httpx
import pytest

from core.collector import (
    Category,
    CollectionError,
    HardwareCollector,
    HardwareSnapshot,
    ObjectValue,
    WrappedValue,
    to_category_value,
)


class TestCategory:
    def test_canonical_order(self) -> None:
        assert [c.value for c in Category] == ["lscpu", "lspci", "lsusb", "lshw", "cpuinfo"]

    def test_cpuinfo_path(self) -> None:
        """cpuinfo is served from proc/cpuinfo; the rest use their own name."""
        assert Category.CPUINFO.path == "proc/cpuinfo"
        assert Category.LSHW.path == "lshw"


class TestCategoryValue:
    def test_object_kept_verbatim(self) -> None:
        value = to_category_value({"cpu": "x86", "cores": 4})
        assert isinstance(value, ObjectValue)
        assert value.as_object() == {"cpu": "x86", "cores": 4}

    @pytest.mark.parametrize("doc", [[1, 2], "text", 42, True, None])
    def test_non_object_wrapped(self, doc: object) -> None:
        value = to_category_value(doc)
        assert isinstance(value, WrappedValue)
        assert value.as_object() == {"data": doc}


class TestHardwareSnapshot:
    def test_missing_category_rejected(self) -> None:
        categories = {c: to_category_value({}) for c in Category if c is not Category.LSUSB}
        with pytest.raises(ValueError, match="lsusb"):
            HardwareSnapshot(categories)

    def test_normalized_uses_canonical_order(self) -> None:
        categories = {c: to_category_value([c.value]) for c in reversed(list(Category))}
        snapshot = HardwareSnapshot(categories)
        normalized = snapshot.normalized()
        assert list(normalized) == [c.value for c in Category]
        assert normalized["lspci"] == {"data": ["lspci"]}


class TestCollect:
    def test_requests_all_endpoints(self, fake_hal) -> None:
        """Each category is fetched from /hal/hwc/<path> on port 54331."""
        with fake_hal.collector() as collector:
            collector.collect()

        urls = [str(r.url) for r in fake_hal.requests]
        assert urls == [
            "http://testhost:54331/hal/hwc/lscpu",
            "http://testhost:54331/hal/hwc/lspci",
            "http://testhost:54331/hal/hwc/lsusb",
            "http://testhost:54331/hal/hwc/lshw",
            "http://testhost:54331/hal/hwc/proc/cpuinfo",
        ]
        assert all(r.method == "GET" for r in fake_hal.requests)

    def test_snapshot_contents(self, fake_hal) -> None:
        fake_hal.responses[Category.LSPCI] = [{"slot": "00:02.0"}]
        with fake_hal.collector() as collector:
            snapshot = collector.collect()

        assert snapshot[Category.LSCPU].as_object() == {"cpu": "x86"}
        assert snapshot[Category.LSPCI].as_object() == {"data": [{"slot": "00:02.0"}]}

    def test_network_failure_aborts(self, fake_hal) -> None:
        """A transport error on any category discards the whole snapshot."""
        fake_hal.failures[Category.LSHW] = httpx.ConnectError("connection refused")
        with fake_hal.collector() as collector:
            with pytest.raises(CollectionError) as excinfo:
                collector.collect()

        assert excinfo.value.category is Category.LSHW
        assert "connection refused" in str(excinfo.value)

    def test_timeout_aborts(self, fake_hal) -> None:
        fake_hal.failures[Category.LSCPU] = httpx.ReadTimeout("timed out")
        with fake_hal.collector() as collector:
            with pytest.raises(CollectionError) as excinfo:
                collector.collect()
        assert excinfo.value.category is Category.LSCPU
        # Nothing after the failing category is fetched
        assert len(fake_hal.requests) == 1

    def test_invalid_json_aborts(self, fake_hal) -> None:
        fake_hal.raw[Category.CPUINFO] = b"<html>not json</html>"
        with fake_hal.collector() as collector:
            with pytest.raises(CollectionError) as excinfo:
                collector.collect()
        assert excinfo.value.category is Category.CPUINFO
        assert "parse JSON" in str(excinfo.value)

    def test_error_status_body_still_parsed(self, fake_hal) -> None:
        """A non-2xx status is not itself a failure; the body is parsed."""
        fake_hal.status[Category.LSUSB] = 500
        fake_hal.responses[Category.LSUSB] = {"error": "lsusb missing"}
        with fake_hal.collector() as collector:
            snapshot = collector.collect()
        assert snapshot[Category.LSUSB].as_object() == {"error": "lsusb missing"}

    def test_injected_client_not_closed(self, fake_hal) -> None:
        client = httpx.Client(transport=httpx.MockTransport(fake_hal.handler))
        with HardwareCollector("testhost", client=client):
            pass
        assert not client.is_closed
        client.close()

    def test_custom_port(self, fake_hal) -> None:
        client = httpx.Client(transport=httpx.MockTransport(fake_hal.handler))
        collector = HardwareCollector("hal.local", port=8080, client=client)
        assert collector.url_for(Category.CPUINFO) == "http://hal.local:8080/hal/hwc/proc/cpuinfo"
