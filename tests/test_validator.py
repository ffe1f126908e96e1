from __future__ import annotations

from dataclasses import replace

import pytest

from slbctl.errors import ListenerValidationError
from slbctl.models import Flag, Listener, Protocol, StickySessionType, ValidationErrorKind
from slbctl.validator import check_listener, validate

_BASE = Listener(
    load_balancer_port=80,
    instance_port=8080,
    protocol=Protocol.HTTP,
    bandwidth=-1,
    sticky_session=Flag.OFF,
    health_check=Flag.OFF,
)

_FULL_HEALTH_CHECK = {
    "health_check": Flag.ON,
    "health_check_uri": "/health",
    "health_check_domain": "example.com",
    "health_check_connect_port": 8080,
    "healthy_threshold": 3,
    "unhealthy_threshold": 3,
    "health_check_timeout": 5,
    "health_check_interval": 2,
    "health_check_http_code": "http_2xx",
}


@pytest.mark.parametrize(
    ("overrides", "expected"),
    [
        ({}, None),
        (_FULL_HEALTH_CHECK, None),
        ({**_FULL_HEALTH_CHECK, "health_check_uri": ""}, ValidationErrorKind.HEALTH_CHECK_INCOMPLETE),
        ({**_FULL_HEALTH_CHECK, "healthy_threshold": 0}, ValidationErrorKind.HEALTH_CHECK_INCOMPLETE),
        ({"health_check": Flag.ON}, ValidationErrorKind.HEALTH_CHECK_INCOMPLETE),
        ({"sticky_session": Flag.ON}, ValidationErrorKind.STICKY_SESSION_TYPE_MISSING),
        (
            {"sticky_session": Flag.ON, "sticky_session_type": StickySessionType.INSERT},
            ValidationErrorKind.COOKIE_TIMEOUT_MISSING,
        ),
        (
            {"sticky_session": Flag.ON, "sticky_session_type": StickySessionType.INSERT, "cookie_timeout": 600},
            None,
        ),
        (
            {"sticky_session": Flag.ON, "sticky_session_type": StickySessionType.SERVER},
            ValidationErrorKind.COOKIE_MISSING,
        ),
        (
            {"sticky_session": Flag.ON, "sticky_session_type": StickySessionType.SERVER, "cookie": "SID"},
            None,
        ),
        # Cookie settings only matter when sticky sessions are on.
        ({"sticky_session_type": StickySessionType.SERVER}, None),
    ],
)
def test_http_rules(overrides: dict[str, object], expected: ValidationErrorKind | None) -> None:
    assert check_listener(replace(_BASE, **overrides)) is expected


def test_health_check_rule_is_checked_before_sticky_session() -> None:
    listener = replace(_BASE, health_check=Flag.ON, sticky_session=Flag.ON)
    assert check_listener(listener) is ValidationErrorKind.HEALTH_CHECK_INCOMPLETE


def test_https_requires_certificate() -> None:
    https = replace(_BASE, protocol=Protocol.HTTPS)
    assert check_listener(https) is ValidationErrorKind.CERTIFICATE_REQUIRED
    assert check_listener(replace(https, ssl_certificate_id="cert-1")) is None


def test_https_reports_http_rule_before_missing_certificate() -> None:
    https = replace(_BASE, protocol=Protocol.HTTPS, sticky_session=Flag.ON)
    assert check_listener(https) is ValidationErrorKind.STICKY_SESSION_TYPE_MISSING


@pytest.mark.parametrize("protocol", [Protocol.TCP, Protocol.UDP])
def test_tcp_and_udp_are_always_valid(protocol: Protocol) -> None:
    listener = Listener(load_balancer_port=53, instance_port=53, protocol=protocol, bandwidth=-1)
    assert check_listener(listener) is None
    validate(listener)


def test_validate_raises_with_kind_and_listener() -> None:
    listener = replace(_BASE, sticky_session=Flag.ON)
    with pytest.raises(ListenerValidationError) as exc:
        validate(listener)
    assert exc.value.kind is ValidationErrorKind.STICKY_SESSION_TYPE_MISSING
    assert exc.value.listener is listener
    assert "80/http" in str(exc.value)
