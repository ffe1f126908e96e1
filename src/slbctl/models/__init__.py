from .kinds import (
    Flag,
    HealthCheckHttpCode,
    HealthCheckType,
    ListenerStatus,
    Protocol,
    Scheduler,
    StickySessionType,
    ValidationErrorKind,
)
from .listener import IDENTITY_FIELDS, PROTOCOL_FIELDS, ZERO_VALUES, Listener

__all__ = [
    "IDENTITY_FIELDS",
    "PROTOCOL_FIELDS",
    "ZERO_VALUES",
    "Flag",
    "HealthCheckHttpCode",
    "HealthCheckType",
    "Listener",
    "ListenerStatus",
    "Protocol",
    "Scheduler",
    "StickySessionType",
    "ValidationErrorKind",
]
