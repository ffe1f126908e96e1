from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Listener, ValidationErrorKind


class SlbError(RuntimeError):
    pass


class RemoteApiError(SlbError):
    def __init__(
        self,
        message: str,
        *,
        action: str = "",
        code: str = "",
        status_code: int | None = None,
        request_id: str = "",
        port: int | None = None,
    ) -> None:
        super().__init__(message)
        self.action = action
        self.code = code
        self.status_code = status_code
        self.request_id = request_id
        self.port = port

    def with_port(self, port: int) -> RemoteApiError:
        self.port = port
        return self


class SlbAuthError(RemoteApiError):
    pass


class ListenerNotFoundError(RemoteApiError):
    pass


class ListenerValidationError(SlbError):
    def __init__(self, kind: ValidationErrorKind, listener: Listener) -> None:
        super().__init__(f"{kind.describe()} (listener {listener.natural_index})")
        self.kind = kind
        self.listener = listener


class PollTimeoutError(SlbError):
    def __init__(self, *, port: int, status: str, expected: str, timeout_s: float) -> None:
        super().__init__(
            f"Listener on port {port} did not reach status {expected} within {timeout_s:g}s "
            f"(last status: {status or 'unknown'})"
        )
        self.port = port
        self.status = status
        self.expected = expected
        self.timeout_s = timeout_s
