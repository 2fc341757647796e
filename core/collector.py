"""Hardware collector — assembles a snapshot from the HAL facts service.

The hardware-abstraction layer (HAL) exposes raw facts as JSON at
``http://<host>:54331/hal/hwc/<path>``. Each of the five categories is
fetched in a fixed order; any failure discards the whole snapshot.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Any

import httpx

logger = logging.getLogger(__name__)

HAL_PORT = 54331
_DEFAULT_TIMEOUT = 10.0  # seconds


class Category(StrEnum):
    """Hardware fact categories, in canonical serialization order."""

    LSCPU = "lscpu"
    LSPCI = "lspci"
    LSUSB = "lsusb"
    LSHW = "lshw"
    CPUINFO = "cpuinfo"

    @property
    def path(self) -> str:
        """HAL endpoint path for this category."""
        if self is Category.CPUINFO:
            return "proc/cpuinfo"
        return self.value


@dataclass(frozen=True)
class ObjectValue:
    """A category whose HAL response was a JSON object."""

    fields: dict[str, Any]

    def as_object(self) -> dict[str, Any]:
        return self.fields


@dataclass(frozen=True)
class WrappedValue:
    """A category whose HAL response was an array, scalar or null."""

    value: Any

    def as_object(self) -> dict[str, Any]:
        return {"data": self.value}


CategoryValue = ObjectValue | WrappedValue


def to_category_value(parsed: Any) -> CategoryValue:
    """Tag a parsed JSON document as an object or a wrapped value."""
    if isinstance(parsed, dict):
        return ObjectValue(parsed)
    return WrappedValue(parsed)


class HardwareSnapshot:
    """All five categories of hardware facts from one poll.

    Raises ``ValueError`` if any category is missing: a partial snapshot
    is never valid.
    """

    def __init__(self, categories: dict[Category, CategoryValue]) -> None:
        missing = [c.value for c in Category if c not in categories]
        if missing:
            raise ValueError(f"Snapshot missing categories: {', '.join(missing)}")
        self._categories = MappingProxyType(
            {c: categories[c] for c in Category}
        )

    @property
    def categories(self) -> MappingProxyType[Category, CategoryValue]:
        return self._categories

    def __getitem__(self, category: Category) -> CategoryValue:
        return self._categories[category]

    def normalized(self) -> dict[str, dict[str, Any]]:
        """Return ``{category_name: object}`` in canonical category order."""
        return {c.value: v.as_object() for c, v in self._categories.items()}

    def __repr__(self) -> str:
        return f"HardwareSnapshot({', '.join(c.value for c in self._categories)})"


class CollectionError(Exception):
    """Raised when any HAL category cannot be fetched or parsed."""

    def __init__(self, category: Category, cause: str) -> None:
        super().__init__(f"{category.value}: {cause}")
        self.category = category
        self.cause = cause


class HardwareCollector:
    """Fetches hardware facts from the HAL service.

    Usage::

        with HardwareCollector("iofog") as collector:
            snapshot = collector.collect()
    """

    def __init__(
        self,
        hal_host: str,
        *,
        port: int = HAL_PORT,
        timeout: float = _DEFAULT_TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = f"http://{hal_host}:{port}/hal/hwc"
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def __enter__(self) -> HardwareCollector:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def url_for(self, category: Category) -> str:
        return f"{self._base_url}/{category.path}"

    def _fetch(self, category: Category) -> CategoryValue:
        url = self.url_for(category)
        try:
            resp = self._client.get(url)
        except httpx.HTTPError as exc:
            raise CollectionError(category, f"failed to fetch {url}: {exc}") from exc

        if resp.is_error:
            logger.debug("HAL returned %d for %s", resp.status_code, url)

        try:
            parsed = json.loads(resp.content)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise CollectionError(
                category, f"failed to parse JSON from {url}: {exc}"
            ) from exc
        return to_category_value(parsed)

    def collect(self) -> HardwareSnapshot:
        """Fetch every category and return a complete snapshot."""
        categories: dict[Category, CategoryValue] = {}
        for category in Category:
            categories[category] = self._fetch(category)
        logger.debug("Collected hardware facts from %s", self._base_url)
        return HardwareSnapshot(categories)
