from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import replace
from enum import Enum
from typing import Any, TypeVar

from . import utils
from .configmanager import ConfigManager
from .models import (
    Flag,
    HealthCheckHttpCode,
    HealthCheckType,
    Listener,
    Protocol,
    Scheduler,
    StickySessionType,
)

logger = ConfigManager.get_logger(__name__)

TEnum = TypeVar("TEnum", bound=Enum)

_HTTP_CODE_VALUES: tuple[str, ...] = tuple(c.value for c in HealthCheckHttpCode)


def _int(raw: Mapping[str, Any], key: str) -> int:
    return utils.normalize_int(raw.get(key), default=0)


def _str(raw: Mapping[str, Any], key: str) -> str:
    return utils.normalize_str(raw.get(key))


def _http_codes(raw: Mapping[str, Any]) -> str:
    value = raw.get("HealthCheckHttpCode")
    try:
        return utils.parse_http_codes(value, _HTTP_CODE_VALUES, field="HealthCheckHttpCode")
    except ValueError:
        logger.warning("Keeping unrecognized HealthCheckHttpCode=%r in listener attributes", value)
        return utils.normalize_str(value)


def _enum(enum_cls: type[TEnum], raw: Mapping[str, Any], key: str) -> TEnum | None:
    value = raw.get(key)
    converted = utils.enum_or_none(enum_cls, value)
    if converted is None and utils.normalize_str(value):
        logger.warning("Ignoring unknown %s=%r in listener attributes", key, value)
    return converted


def tcp_listener_from_attributes(raw: Mapping[str, Any]) -> Listener:
    return Listener(
        load_balancer_port=_int(raw, "ListenerPort"),
        instance_port=_int(raw, "BackendServerPort"),
        protocol=Protocol.TCP,
        bandwidth=_int(raw, "Bandwidth"),
        scheduler=_enum(Scheduler, raw, "Scheduler"),
        persistence_timeout=_int(raw, "PersistenceTimeout"),
        health_check_type=_enum(HealthCheckType, raw, "HealthCheckType"),
        health_check_domain=_str(raw, "HealthCheckDomain"),
        health_check_uri=_str(raw, "HealthCheckURI"),
        health_check_connect_port=_int(raw, "HealthCheckConnectPort"),
        healthy_threshold=_int(raw, "HealthyThreshold"),
        unhealthy_threshold=_int(raw, "UnhealthyThreshold"),
        health_check_timeout=_int(raw, "HealthCheckConnectTimeout"),
        health_check_interval=_int(raw, "HealthCheckInterval"),
        health_check_http_code=_http_codes(raw),
    )


def udp_listener_from_attributes(raw: Mapping[str, Any]) -> Listener:
    return Listener(
        load_balancer_port=_int(raw, "ListenerPort"),
        instance_port=_int(raw, "BackendServerPort"),
        protocol=Protocol.UDP,
        bandwidth=_int(raw, "Bandwidth"),
        persistence_timeout=_int(raw, "PersistenceTimeout"),
        health_check_timeout=_int(raw, "HealthCheckConnectTimeout"),
        health_check_interval=_int(raw, "HealthCheckInterval"),
    )


def http_listener_from_attributes(raw: Mapping[str, Any]) -> Listener:
    return Listener(
        load_balancer_port=_int(raw, "ListenerPort"),
        instance_port=_int(raw, "BackendServerPort"),
        protocol=Protocol.HTTP,
        bandwidth=_int(raw, "Bandwidth"),
        scheduler=_enum(Scheduler, raw, "Scheduler"),
        sticky_session=_enum(Flag, raw, "StickySession"),
        sticky_session_type=_enum(StickySessionType, raw, "StickySessionType"),
        cookie_timeout=_int(raw, "CookieTimeout"),
        cookie=_str(raw, "Cookie"),
        health_check=_enum(Flag, raw, "HealthCheck"),
        health_check_domain=_str(raw, "HealthCheckDomain"),
        health_check_uri=_str(raw, "HealthCheckURI"),
        health_check_connect_port=_int(raw, "HealthCheckConnectPort"),
        healthy_threshold=_int(raw, "HealthyThreshold"),
        unhealthy_threshold=_int(raw, "UnhealthyThreshold"),
        health_check_timeout=_int(raw, "HealthCheckTimeout"),
        health_check_interval=_int(raw, "HealthCheckInterval"),
        health_check_http_code=_http_codes(raw),
    )


def https_listener_from_attributes(raw: Mapping[str, Any]) -> Listener:
    http = http_listener_from_attributes(raw)
    return replace(http, protocol=Protocol.HTTPS, ssl_certificate_id=_str(raw, "ServerCertificateId"))


_CONVERTERS: dict[Protocol, Callable[[Mapping[str, Any]], Listener]] = {
    Protocol.TCP: tcp_listener_from_attributes,
    Protocol.UDP: udp_listener_from_attributes,
    Protocol.HTTP: http_listener_from_attributes,
    Protocol.HTTPS: https_listener_from_attributes,
}

_missing = set(Protocol) - set(_CONVERTERS)
if _missing:
    raise RuntimeError(f"No listener converter registered for: {sorted(p.value for p in _missing)}")


def normalize(raw: Mapping[str, Any], protocol: Protocol | str) -> Listener:
    """Convert one `DescribeLoadBalancer<Proto>ListenerAttribute` payload to a Listener."""
    proto = protocol if isinstance(protocol, Protocol) else Protocol.parse(protocol)
    return _CONVERTERS[proto](raw)
