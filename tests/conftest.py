from __future__ import annotations

import logging
import os
from collections.abc import Callable, Generator
from typing import Any

import pytest

from slbctl.errors import ListenerNotFoundError, RemoteApiError
from slbctl.listener_requests import build_request
from slbctl.models import Listener, Protocol
from slbctl.slb_api import SlbApi


@pytest.fixture(scope="session", autouse=True)
def _set_env_test_file() -> None:
    if "SLBCTL_ENV_FILE" not in os.environ:
        os.environ["SLBCTL_ENV_FILE"] = ".env.test"


def attributes_from_params(params: dict[str, Any], status: str) -> dict[str, Any]:
    """What a describe call returns for a listener created with `params`."""
    attrs = {k: v for k, v in params.items() if k != "LoadBalancerId"}
    attrs["Status"] = status
    return attrs


class StubApi:
    """In-memory stand-in for SlbApi keeping one listener per port."""

    def __init__(self, *, polls_until_stopped: int = 0, report_protocols: bool = True) -> None:
        self.readonly = False
        self.calls: list[tuple[Any, ...]] = []
        self.remote: dict[int, tuple[Protocol, dict[str, Any]]] = {}
        self.polls_until_stopped = polls_until_stopped
        self.report_protocols = report_protocols
        self.failures: dict[tuple[str, int], RemoteApiError] = {}
        self._pending: dict[int, int] = {}

    def seed(self, listener: Listener, *, status: str = "running") -> None:
        params = build_request("lb-test", listener).to_params()
        self.remote[listener.load_balancer_port] = (listener.protocol, attributes_from_params(params, status))

    def fail(self, op: str, port: int, error: RemoteApiError) -> None:
        self.failures[(op, port)] = error

    def _maybe_fail(self, op: str, port: int) -> None:
        error = self.failures.get((op, port))
        if error is not None:
            raise error

    def listener_ports(self, load_balancer_id: str) -> dict[int, Protocol | None]:  # noqa: ARG002
        self.calls.append(("listener_ports",))
        return {port: (proto if self.report_protocols else None) for port, (proto, _) in self.remote.items()}

    def create_listener(self, protocol: Protocol, request: Any) -> dict[str, Any]:
        params = request.to_params()
        port = int(params["ListenerPort"])
        self.calls.append(("create", protocol.value, port))
        self._maybe_fail("create", port)
        self.remote[port] = (protocol, attributes_from_params(params, "configuring"))
        self._pending[port] = self.polls_until_stopped
        return {"RequestId": "req-create"}

    def describe_listener(self, load_balancer_id: str, port: int, protocol: Protocol) -> dict[str, Any]:  # noqa: ARG002
        self.calls.append(("describe", protocol.value, port))
        entry = self.remote.get(port)
        if entry is None or entry[0] is not protocol:
            raise ListenerNotFoundError(
                "not found", code="UnsupportedOperationonfixedprotocalport", port=port
            )
        _, attrs = entry
        pending = self._pending.get(port)
        if pending is not None:
            if pending <= 0:
                attrs["Status"] = "stopped"
                del self._pending[port]
            else:
                self._pending[port] = pending - 1
        return dict(attrs)

    def start_listener(self, load_balancer_id: str, port: int) -> None:  # noqa: ARG002
        self.calls.append(("start", port))
        self._maybe_fail("start", port)
        self.remote[port][1]["Status"] = "running"

    def delete_listener(self, load_balancer_id: str, port: int) -> None:  # noqa: ARG002
        self.calls.append(("delete", port))
        self._maybe_fail("delete", port)
        self.remote.pop(port, None)

    def ops(self, *names: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] in names]


class FakeClock:
    def __init__(self) -> None:
        self.now_s = 0.0
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.now_s

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now_s += seconds


@pytest.fixture
def make_stub_api() -> Callable[..., StubApi]:
    return StubApi


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def restore_root_logger() -> Generator[None, None, None]:
    """configure_logging replaces the root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        if h not in handlers:
            h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def bool_env(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


@pytest.fixture(scope="session")
def slb_api() -> Generator[SlbApi, None, None]:
    region_id = os.getenv("SLBCTL_REGION_ID")
    access_key_id = os.getenv("SLBCTL_ACCESS_KEY_ID")
    access_key_secret = os.getenv("SLBCTL_ACCESS_KEY_SECRET")
    if not (region_id and access_key_id and access_key_secret):
        pytest.skip("Need SLBCTL_REGION_ID, SLBCTL_ACCESS_KEY_ID and SLBCTL_ACCESS_KEY_SECRET")

    with SlbApi(
        access_key_id=access_key_id,
        access_key_secret=access_key_secret,
        region_id=region_id,
        endpoint=os.getenv("SLBCTL_ENDPOINT") or "https://slb.aliyuncs.com",
        verify_tls=bool_env("SLBCTL_VERIFY_TLS", True),
    ) as api:
        yield api
