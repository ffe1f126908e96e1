from __future__ import annotations

from collections.abc import Callable

from .errors import ListenerValidationError
from .models import Flag, Listener, Protocol, StickySessionType, ValidationErrorKind


def _check_http(listener: Listener) -> ValidationErrorKind | None:
    if listener.health_check is Flag.ON:
        required = (
            listener.health_check_uri,
            listener.health_check_domain,
            listener.health_check_connect_port,
            listener.healthy_threshold,
            listener.unhealthy_threshold,
            listener.health_check_timeout,
            listener.health_check_interval,
            listener.health_check_http_code,
        )
        if not all(required):
            return ValidationErrorKind.HEALTH_CHECK_INCOMPLETE

    if listener.sticky_session is Flag.ON:
        if listener.sticky_session_type is None:
            return ValidationErrorKind.STICKY_SESSION_TYPE_MISSING
        if listener.sticky_session_type is StickySessionType.INSERT and listener.cookie_timeout <= 0:
            return ValidationErrorKind.COOKIE_TIMEOUT_MISSING
        if listener.sticky_session_type is StickySessionType.SERVER and not listener.cookie:
            return ValidationErrorKind.COOKIE_MISSING
    return None


def _check_https(listener: Listener) -> ValidationErrorKind | None:
    kind = _check_http(listener)
    if kind is not None:
        return kind
    if not listener.ssl_certificate_id:
        return ValidationErrorKind.CERTIFICATE_REQUIRED
    return None


def _check_nothing(listener: Listener) -> ValidationErrorKind | None:  # noqa: ARG001
    return None


_CHECKS: dict[Protocol, Callable[[Listener], ValidationErrorKind | None]] = {
    Protocol.TCP: _check_nothing,
    Protocol.UDP: _check_nothing,
    Protocol.HTTP: _check_http,
    Protocol.HTTPS: _check_https,
}

_missing = set(Protocol) - set(_CHECKS)
if _missing:
    raise RuntimeError(f"No listener check registered for: {sorted(p.value for p in _missing)}")


def check_listener(listener: Listener) -> ValidationErrorKind | None:
    """Return the first conditional-field violation, or None when the listener is valid."""
    return _CHECKS[listener.protocol](listener)


def validate(listener: Listener) -> None:
    kind = check_listener(listener)
    if kind is not None:
        raise ListenerValidationError(kind, listener)
