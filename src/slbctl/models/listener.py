from __future__ import annotations

import zlib
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from typing import Any

from .. import utils
from .kinds import (
    Flag,
    HealthCheckHttpCode,
    HealthCheckType,
    Protocol,
    Scheduler,
    StickySessionType,
)

IDENTITY_FIELDS: tuple[str, ...] = ("load_balancer_port", "instance_port", "protocol", "bandwidth")

_HEALTH_CHECK_DETAIL_FIELDS: tuple[str, ...] = (
    "health_check_domain",
    "health_check_uri",
    "health_check_connect_port",
    "healthy_threshold",
    "unhealthy_threshold",
    "health_check_timeout",
    "health_check_interval",
    "health_check_http_code",
)

_HTTP_FIELDS: frozenset[str] = frozenset({
    *IDENTITY_FIELDS,
    "scheduler",
    "sticky_session",
    "sticky_session_type",
    "cookie_timeout",
    "cookie",
    "health_check",
    *_HEALTH_CHECK_DETAIL_FIELDS,
})

PROTOCOL_FIELDS: dict[Protocol, frozenset[str]] = {
    Protocol.TCP: frozenset({
        *IDENTITY_FIELDS,
        "scheduler",
        "persistence_timeout",
        "health_check_type",
        *_HEALTH_CHECK_DETAIL_FIELDS,
    }),
    Protocol.UDP: frozenset({
        *IDENTITY_FIELDS,
        "persistence_timeout",
        "health_check_timeout",
        "health_check_interval",
    }),
    Protocol.HTTP: _HTTP_FIELDS,
    Protocol.HTTPS: _HTTP_FIELDS | {"ssl_certificate_id"},
}

# Config keys accepted in place of the canonical field names.
_ALIASES: dict[str, str] = {
    "lb_port": "load_balancer_port",
    "lb_protocol": "protocol",
    "server_certificate_id": "ssl_certificate_id",
}

_HTTP_CODE_VALUES: tuple[str, ...] = tuple(c.value for c in HealthCheckHttpCode)


@dataclass(frozen=True)
class Listener:
    """Canonical, protocol-agnostic listener configuration.

    Fields that do not apply to the listener's protocol stay at their zero value
    (`0`, `""` or `None`); see `PROTOCOL_FIELDS`.
    """

    load_balancer_port: int
    instance_port: int
    protocol: Protocol
    bandwidth: int
    ssl_certificate_id: str = ""
    scheduler: Scheduler | None = None
    sticky_session: Flag | None = None
    sticky_session_type: StickySessionType | None = None
    cookie_timeout: int = 0
    cookie: str = ""
    persistence_timeout: int = 0
    health_check: Flag | None = None
    health_check_type: HealthCheckType | None = None
    health_check_domain: str = ""
    health_check_uri: str = ""
    health_check_connect_port: int = 0
    healthy_threshold: int = 0
    unhealthy_threshold: int = 0
    health_check_timeout: int = 0
    health_check_interval: int = 0
    health_check_http_code: str = ""

    @property
    def natural_index(self) -> str:
        return f"{self.load_balancer_port}/{self.protocol.value}"

    @property
    def identity(self) -> str:
        return (
            f"{self.instance_port}-{self.load_balancer_port}-{self.protocol.value.lower()}-"
            f"{self.bandwidth}-{self.ssl_certificate_id}-"
        )

    @property
    def fingerprint(self) -> int:
        return zlib.crc32(self.identity.encode("utf-8"))

    @property
    def defined_fields(self) -> frozenset[str]:
        return PROTOCOL_FIELDS[self.protocol]

    def restricted(self) -> Listener:
        """Copy with every field the protocol does not define reset to its zero value."""
        allowed = self.defined_fields
        changes = {
            name: zero
            for name, zero in ZERO_VALUES.items()
            if name not in allowed and getattr(self, name) != zero
        }
        if not changes:
            return self
        return replace(self, **changes)

    def undefined_fields_set(self) -> list[str]:
        allowed = self.defined_fields
        return [
            name
            for name, zero in ZERO_VALUES.items()
            if name not in allowed and getattr(self, name) != zero
        ]

    def differing_fields(self, other: Listener) -> list[str]:
        """Fields set on this listener (non-zero) whose value differs on `other`.

        Zero-valued fields are left to the remote default and never count as a difference.
        """
        return [
            f.name
            for f in fields(self)
            if getattr(self, f.name) not in (None, "", 0) and getattr(self, f.name) != getattr(other, f.name)
        ]

    @classmethod
    def from_config(cls, payload: Mapping[str, Any]) -> Listener:
        """Parse one declared listener, applying per-protocol defaults.

        The result is not restricted; call `restricted()` to drop fields that do
        not apply to the protocol.
        """
        data: dict[str, Any] = {}
        for key, value in payload.items():
            k = str(key).strip().lower()
            data[_ALIASES.get(k, k)] = value

        unknown = sorted(set(data) - set(ZERO_VALUES) - set(IDENTITY_FIELDS))
        if unknown:
            raise ValueError(f"Unknown listener field(s): {', '.join(unknown)}")

        protocol = Protocol.parse(data.get("protocol"))
        scheduler = utils.parse_enum(Scheduler, data.get("scheduler"), field="scheduler")
        sticky_session = utils.parse_enum(Flag, data.get("sticky_session"), field="sticky_session")
        health_check = utils.parse_enum(Flag, data.get("health_check"), field="health_check")
        health_check_type = utils.parse_enum(HealthCheckType, data.get("health_check_type"), field="health_check_type")

        if protocol is not Protocol.UDP and scheduler is None:
            scheduler = Scheduler.WEIGHTED_ROUND_ROBIN
        if protocol in (Protocol.HTTP, Protocol.HTTPS):
            sticky_session = sticky_session or Flag.OFF
            health_check = health_check or Flag.OFF
        if protocol is Protocol.TCP and health_check_type is None:
            health_check_type = HealthCheckType.TCP

        return cls(
            load_balancer_port=utils.parse_port(data.get("load_balancer_port"), field="load_balancer_port"),
            instance_port=utils.parse_port(data.get("instance_port"), field="instance_port"),
            protocol=protocol,
            bandwidth=utils.parse_bandwidth(data.get("bandwidth")),
            ssl_certificate_id=utils.normalize_str(data.get("ssl_certificate_id")),
            scheduler=scheduler,
            sticky_session=sticky_session,
            sticky_session_type=utils.parse_enum(
                StickySessionType, data.get("sticky_session_type"), field="sticky_session_type"
            ),
            cookie_timeout=utils.parse_int_in_range(data.get("cookie_timeout"), field="cookie_timeout", low=1, high=86400),
            cookie=utils.normalize_str(data.get("cookie")),
            persistence_timeout=utils.parse_int_in_range(
                data.get("persistence_timeout"), field="persistence_timeout", low=0, high=1000
            ),
            health_check=health_check,
            health_check_type=health_check_type,
            health_check_domain=utils.normalize_str(data.get("health_check_domain")),
            health_check_uri=utils.normalize_str(data.get("health_check_uri")),
            health_check_connect_port=utils.parse_int_in_range(
                data.get("health_check_connect_port"), field="health_check_connect_port", low=1, high=65535
            ),
            healthy_threshold=utils.parse_int_in_range(
                data.get("healthy_threshold"), field="healthy_threshold", low=1, high=10
            ),
            unhealthy_threshold=utils.parse_int_in_range(
                data.get("unhealthy_threshold"), field="unhealthy_threshold", low=1, high=10
            ),
            health_check_timeout=utils.parse_int_in_range(
                data.get("health_check_timeout"), field="health_check_timeout", low=1, high=50
            ),
            health_check_interval=utils.parse_int_in_range(
                data.get("health_check_interval"), field="health_check_interval", low=1, high=5
            ),
            health_check_http_code=utils.parse_http_codes(
                data.get("health_check_http_code"), _HTTP_CODE_VALUES, field="health_check_http_code"
            ),
        )

    def to_json(self) -> dict[str, Any]:
        """Fields defined for the protocol, enums as plain strings."""
        out: dict[str, Any] = {}
        for f in fields(self):
            if f.name not in self.defined_fields:
                continue
            value = getattr(self, f.name)
            if isinstance(value, (Protocol, Flag, Scheduler, StickySessionType, HealthCheckType)):
                value = value.value
            out[f.name] = value
        return out


ZERO_VALUES: dict[str, object] = {
    f.name: f.default for f in fields(Listener) if f.name not in IDENTITY_FIELDS
}
