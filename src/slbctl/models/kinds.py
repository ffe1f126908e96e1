from __future__ import annotations

from enum import Enum


class Protocol(str, Enum):
    TCP = "tcp"
    UDP = "udp"
    HTTP = "http"
    HTTPS = "https"

    @staticmethod
    def parse(value: object) -> Protocol:
        s = str(value or "").strip().lower()
        try:
            return Protocol(s)
        except ValueError:
            allowed = ", ".join(p.value for p in Protocol)
            raise ValueError(f"Invalid protocol: {value!r}. Use one of: {allowed}") from None

    @property
    def api_name(self) -> str:
        """Protocol spelling used in remote action names (`TCP`, `HTTPS`, ...)."""
        return self.value.upper()


class Flag(str, Enum):
    ON = "on"
    OFF = "off"


class Scheduler(str, Enum):
    WEIGHTED_ROUND_ROBIN = "wrr"
    ROUND_ROBIN = "rr"


class StickySessionType(str, Enum):
    INSERT = "insert"
    SERVER = "server"


class HealthCheckType(str, Enum):
    TCP = "tcp"
    HTTP = "http"


class HealthCheckHttpCode(str, Enum):
    HTTP_2XX = "http_2xx"
    HTTP_3XX = "http_3xx"
    HTTP_4XX = "http_4xx"
    HTTP_5XX = "http_5xx"


class ListenerStatus(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    CONFIGURING = "configuring"
    STOPPING = "stopping"
    STOPPED = "stopped"


class ValidationErrorKind(str, Enum):
    HEALTH_CHECK_INCOMPLETE = "HealthCheckIncomplete"
    STICKY_SESSION_TYPE_MISSING = "StickySessionTypeMissing"
    COOKIE_TIMEOUT_MISSING = "CookieTimeoutMissing"
    COOKIE_MISSING = "CookieMissing"
    CERTIFICATE_REQUIRED = "CertificateRequired"

    def describe(self) -> str:
        return _VALIDATION_MESSAGES[self]


_VALIDATION_MESSAGES = {
    ValidationErrorKind.HEALTH_CHECK_INCOMPLETE: (
        "When health_check is on, health_check_uri, health_check_domain, health_check_connect_port, "
        "healthy_threshold, unhealthy_threshold, health_check_timeout, health_check_interval and "
        "health_check_http_code are required"
    ),
    ValidationErrorKind.STICKY_SESSION_TYPE_MISSING: "When sticky_session is on, sticky_session_type is required",
    ValidationErrorKind.COOKIE_TIMEOUT_MISSING: (
        "When sticky_session is on and sticky_session_type is insert, cookie_timeout is required"
    ),
    ValidationErrorKind.COOKIE_MISSING: (
        "When sticky_session is on and sticky_session_type is server, cookie is required"
    ),
    ValidationErrorKind.CERTIFICATE_REQUIRED: "https listeners require ssl_certificate_id",
}
