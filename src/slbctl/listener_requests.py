from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Union

from .models import Flag, HealthCheckType, Listener, Protocol, Scheduler, StickySessionType
from .validator import validate

_ALWAYS_SENT: frozenset[str] = frozenset({"load_balancer_id", "listener_port", "backend_server_port", "bandwidth"})
_WIRE_OVERRIDES: dict[str, str] = {"health_check_uri": "HealthCheckURI"}


def wire_name(attr: str) -> str:
    override = _WIRE_OVERRIDES.get(attr)
    if override is not None:
        return override
    return "".join(part.capitalize() for part in attr.split("_"))


class _RequestParams:
    protocol: ClassVar[Protocol]

    @property
    def action(self) -> str:
        return f"CreateLoadBalancer{self.protocol.api_name}Listener"

    def to_params(self) -> dict[str, Any]:
        """Wire parameters; unset optional values are left out."""
        params: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            if f.name not in _ALWAYS_SENT and value in (None, "", 0):
                continue
            params[wire_name(f.name)] = value
        return params


@dataclass(frozen=True)
class TcpListenerRequest(_RequestParams):
    protocol: ClassVar[Protocol] = Protocol.TCP

    load_balancer_id: str
    listener_port: int
    backend_server_port: int
    bandwidth: int
    scheduler: Scheduler | None = None
    persistence_timeout: int = 0
    health_check_type: HealthCheckType | None = None
    health_check_domain: str = ""
    health_check_uri: str = ""
    health_check_connect_port: int = 0
    healthy_threshold: int = 0
    unhealthy_threshold: int = 0
    health_check_connect_timeout: int = 0
    health_check_interval: int = 0
    health_check_http_code: str = ""


@dataclass(frozen=True)
class UdpListenerRequest(_RequestParams):
    protocol: ClassVar[Protocol] = Protocol.UDP

    load_balancer_id: str
    listener_port: int
    backend_server_port: int
    bandwidth: int
    persistence_timeout: int = 0
    health_check_connect_timeout: int = 0
    health_check_interval: int = 0


@dataclass(frozen=True)
class HttpListenerRequest(_RequestParams):
    protocol: ClassVar[Protocol] = Protocol.HTTP

    load_balancer_id: str
    listener_port: int
    backend_server_port: int
    bandwidth: int
    scheduler: Scheduler | None = None
    sticky_session: Flag | None = None
    sticky_session_type: StickySessionType | None = None
    cookie_timeout: int = 0
    cookie: str = ""
    health_check: Flag | None = None
    health_check_domain: str = ""
    health_check_uri: str = ""
    health_check_connect_port: int = 0
    healthy_threshold: int = 0
    unhealthy_threshold: int = 0
    health_check_timeout: int = 0
    health_check_interval: int = 0
    health_check_http_code: str = ""


@dataclass(frozen=True)
class HttpsListenerRequest:
    """HTTP listener arguments plus the server certificate."""

    protocol: ClassVar[Protocol] = Protocol.HTTPS

    http: HttpListenerRequest
    server_certificate_id: str

    @property
    def action(self) -> str:
        return f"CreateLoadBalancer{self.protocol.api_name}Listener"

    def to_params(self) -> dict[str, Any]:
        params = self.http.to_params()
        params[wire_name("server_certificate_id")] = self.server_certificate_id
        return params


ListenerRequest = Union[TcpListenerRequest, UdpListenerRequest, HttpListenerRequest, HttpsListenerRequest]


def _tcp_request(load_balancer_id: str, listener: Listener) -> TcpListenerRequest:
    return TcpListenerRequest(
        load_balancer_id=load_balancer_id,
        listener_port=listener.load_balancer_port,
        backend_server_port=listener.instance_port,
        bandwidth=listener.bandwidth,
        scheduler=listener.scheduler,
        persistence_timeout=listener.persistence_timeout,
        health_check_type=listener.health_check_type,
        health_check_domain=listener.health_check_domain,
        health_check_uri=listener.health_check_uri,
        health_check_connect_port=listener.health_check_connect_port,
        healthy_threshold=listener.healthy_threshold,
        unhealthy_threshold=listener.unhealthy_threshold,
        health_check_connect_timeout=listener.health_check_timeout,
        health_check_interval=listener.health_check_interval,
        health_check_http_code=listener.health_check_http_code,
    )


def _udp_request(load_balancer_id: str, listener: Listener) -> UdpListenerRequest:
    return UdpListenerRequest(
        load_balancer_id=load_balancer_id,
        listener_port=listener.load_balancer_port,
        backend_server_port=listener.instance_port,
        bandwidth=listener.bandwidth,
        persistence_timeout=listener.persistence_timeout,
        health_check_connect_timeout=listener.health_check_timeout,
        health_check_interval=listener.health_check_interval,
    )


def _http_request(load_balancer_id: str, listener: Listener) -> HttpListenerRequest:
    return HttpListenerRequest(
        load_balancer_id=load_balancer_id,
        listener_port=listener.load_balancer_port,
        backend_server_port=listener.instance_port,
        bandwidth=listener.bandwidth,
        scheduler=listener.scheduler,
        sticky_session=listener.sticky_session,
        sticky_session_type=listener.sticky_session_type,
        cookie_timeout=listener.cookie_timeout,
        cookie=listener.cookie,
        health_check=listener.health_check,
        health_check_domain=listener.health_check_domain,
        health_check_uri=listener.health_check_uri,
        health_check_connect_port=listener.health_check_connect_port,
        healthy_threshold=listener.healthy_threshold,
        unhealthy_threshold=listener.unhealthy_threshold,
        health_check_timeout=listener.health_check_timeout,
        health_check_interval=listener.health_check_interval,
        health_check_http_code=listener.health_check_http_code,
    )


def _https_request(load_balancer_id: str, listener: Listener) -> HttpsListenerRequest:
    http = _http_request(load_balancer_id, listener)
    return HttpsListenerRequest(http=http, server_certificate_id=listener.ssl_certificate_id)


_BUILDERS: dict[Protocol, Callable[[str, Listener], ListenerRequest]] = {
    Protocol.TCP: _tcp_request,
    Protocol.UDP: _udp_request,
    Protocol.HTTP: _http_request,
    Protocol.HTTPS: _https_request,
}

_missing = set(Protocol) - set(_BUILDERS)
if _missing:
    raise RuntimeError(f"No request builder registered for: {sorted(p.value for p in _missing)}")


def request_for(load_balancer_id: str, listener: Listener) -> ListenerRequest:
    """Build the create request for a listener that already passed `validate`."""
    if not load_balancer_id:
        raise ValueError("load_balancer_id is required")
    return _BUILDERS[listener.protocol](load_balancer_id, listener)


def build_request(load_balancer_id: str, listener: Listener) -> ListenerRequest:
    validate(listener)
    return request_for(load_balancer_id, listener)
