"""Shared fakes: an in-memory HTTP session and a controllable clock."""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import pytest

from importvalidator.config import ValidatorConfig
from importvalidator.models import PackageMetadata, Resolution

REGISTRY_URL = "https://registry.npmjs.org"
DOWNLOADS_URL = "https://api.npmjs.org/downloads"


def registry_url(name: str) -> str:
    return f"{REGISTRY_URL}/{quote(name, safe='@')}"


def downloads_url(name: str) -> str:
    return f"{DOWNLOADS_URL}/point/last-month/{quote(name, safe='@/')}"


def package_doc(name: str, version: str = "1.0.0", **extra: Any) -> Dict[str, Any]:
    doc = {
        "name": name,
        "description": f"{name} package",
        "dist-tags": {"latest": version},
        "license": "MIT",
    }
    doc.update(extra)
    return doc


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


Scripted = Union[FakeResponse, Exception]


class FakeSession:
    """Stand-in for ``requests.Session``.

    Each URL maps to a list of scripted outcomes consumed in order; the last
    one repeats. Unknown URLs answer 404.
    """

    def __init__(self, routes: Optional[Dict[str, List[Scripted]]] = None) -> None:
        self.routes: Dict[str, List[Scripted]] = {k: list(v) for k, v in (routes or {}).items()}
        self.calls: List[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def add_package(self, name: str, downloads: Optional[int] = 1000, **extra: Any) -> None:
        self.routes[registry_url(name)] = [FakeResponse(200, package_doc(name, **extra))]
        if downloads is not None:
            self.routes[downloads_url(name)] = [FakeResponse(200, {"downloads": downloads})]

    def script(self, name: str, *outcomes: Scripted) -> None:
        self.routes[registry_url(name)] = list(outcomes)

    def registry_calls(self, name: str) -> int:
        return self.calls.count(registry_url(name))

    def get(self, url: str, timeout: Any = None, headers: Any = None) -> FakeResponse:
        with self._lock:
            self.calls.append(url)
            queue = self.routes.get(url)
            if not queue:
                return FakeResponse(404, {"error": "Not found"})
            outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True


class FakeClock:
    """Epoch-millisecond clock advanced by hand."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class StubRegistry:
    """Registry double: ``existing`` names resolve, ``failing`` names raise."""

    def __init__(self, existing=(), failing=()) -> None:
        self.existing = set(existing)
        self.failing = set(failing)
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def resolve(self, name: str) -> Resolution:
        with self._lock:
            self.calls.append(name)
        if name in self.failing:
            raise RuntimeError(f"registry exploded on {name}")
        if name in self.existing:
            return Resolution(True, PackageMetadata(name, latest_version="1.0.0"))
        return Resolution(False, None)

    def clear_cache(self) -> None:
        self.calls.clear()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def config() -> ValidatorConfig:
    return ValidatorConfig()
