from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import time
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from . import utils
from .configmanager import ConfigManager
from .errors import ListenerNotFoundError, RemoteApiError, SlbAuthError
from .models import Protocol

if TYPE_CHECKING:
    from .listener_requests import ListenerRequest

logger = ConfigManager.get_logger(__name__)

API_VERSION = "2014-05-15"

ACTION_DESCRIBE_LOAD_BALANCER = "DescribeLoadBalancerAttribute"
ACTION_DELETE_LISTENER = "DeleteLoadBalancerListener"
ACTION_START_LISTENER = "StartLoadBalancerListener"

# Returned when a port holds no listener of the protocol that was asked for.
LISTENER_NOT_FOUND_CODES = frozenset({
    "UnsupportedOperationonfixedprotocalport",
    "InvalidParameter.ListenerPort",
})

AUTH_ERROR_CODES = frozenset({
    "InvalidAccessKeyId.NotFound",
    "InvalidAccessKeyId.Inactive",
    "SignatureDoesNotMatch",
    "IncompleteSignature",
    "Forbidden.RAM",
})


def percent_encode(value: object) -> str:
    return quote(str(value), safe="~")


def sign_params(params: Mapping[str, Any], secret: str, *, method: str = "GET") -> str:
    """HMAC-SHA1 signature over the canonicalized query string (RPC signature v1.0)."""
    canonical = "&".join(
        f"{percent_encode(k)}={percent_encode(v)}" for k, v in sorted(params.items())
    )
    string_to_sign = f"{method.upper()}&{percent_encode('/')}&{percent_encode(canonical)}"
    digest = hmac.new((secret + "&").encode("utf-8"), string_to_sign.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def describe_action(protocol: Protocol) -> str:
    return f"DescribeLoadBalancer{protocol.api_name}ListenerAttribute"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class SlbApi:
    """Server Load Balancer RPC API wrapper.

    Every call is a signed `GET <endpoint>/?Action=...`; responses and errors are JSON.
    With `readonly=True` mutating calls are logged and skipped.
    """

    access_key_id: str
    access_key_secret: str
    region_id: str
    endpoint: str = "https://slb.aliyuncs.com"
    verify_tls: bool = True
    timeout_s: float = 30.0
    transport: httpx.BaseTransport | None = None
    retry_count: int = 3
    readonly: bool = False
    timestamp: Callable[[], str] = field(default=_utc_timestamp, repr=False)

    def __post_init__(self) -> None:
        url = self.endpoint.strip()
        if not url:
            raise ValueError("endpoint is required")
        if "://" not in url:
            url = "https://" + url
        self.endpoint = url.rstrip("/") + "/"
        if not self.access_key_id:
            raise ValueError("access_key_id is required")
        if not self.access_key_secret:
            raise ValueError("access_key_secret is required")
        if not self.region_id:
            raise ValueError("region_id is required")
        if self.retry_count < 0:
            raise ValueError("retry_count must be >= 0")
        logger.debug(
            "Initializing SlbApi endpoint=%s region_id=%s verify_tls=%s timeout_s=%s",
            self.endpoint,
            self.region_id,
            self.verify_tls,
            self.timeout_s,
        )
        self._request_seq = 0

        def _log_request(request: httpx.Request) -> None:
            if not logger.isEnabledFor(logging.DEBUG):
                return
            self._request_seq += 1
            req_id = self._request_seq
            request.extensions["slbctl.req_id"] = req_id
            request.extensions["slbctl.start"] = time.perf_counter()
            logger.debug(
                "HTTP -> #%s %s action=%s",
                req_id,
                request.method,
                request.url.params.get("Action"),
            )

        def _log_response(response: httpx.Response) -> None:
            if not logger.isEnabledFor(logging.DEBUG):
                return
            req = response.request
            req_id = req.extensions.get("slbctl.req_id")
            start = req.extensions.get("slbctl.start")
            ms: float | None = None
            if isinstance(start, (int, float)):
                ms = (time.perf_counter() - float(start)) * 1000.0
            logger.debug(
                "HTTP <- #%s action=%s status=%s elapsed_ms=%s",
                req_id,
                req.url.params.get("Action"),
                response.status_code,
                f"{ms:.1f}" if ms is not None else None,
            )

        self._client = httpx.Client(
            timeout=self.timeout_s,
            verify=self.verify_tls,
            headers={"accept": "application/json"},
            transport=self.transport,
            event_hooks={"request": [_log_request], "response": [_log_response]},
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> SlbApi:
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:  # type: ignore[no-untyped-def]
        self.close()

    # --- Load balancer ---
    def describe_load_balancer(self, load_balancer_id: str) -> dict[str, Any]:
        return self._rpc(ACTION_DESCRIBE_LOAD_BALANCER, {"LoadBalancerId": load_balancer_id})

    def listener_ports(self, load_balancer_id: str) -> dict[int, Protocol | None]:
        """Listener ports of the load balancer, with their protocol when the API reports it."""
        data = self.describe_load_balancer(load_balancer_id)
        out: dict[int, Protocol | None] = {}

        ports = (data.get("ListenerPorts") or {}).get("ListenerPort") or []
        for raw_port in ports:
            port = utils.normalize_int(raw_port, default=-1)
            if port > 0:
                out.setdefault(port, None)

        pairs = (data.get("ListenerPortsAndProtocol") or {}).get("ListenerPortAndProtocol") or []
        for pair in pairs:
            if not isinstance(pair, Mapping):
                continue
            port = utils.normalize_int(pair.get("ListenerPort"), default=-1)
            protocol = utils.enum_or_none(Protocol, pair.get("ListenerProtocol"))
            if port > 0:
                out[port] = protocol
        return out

    # --- Listeners ---
    def create_listener(self, protocol: Protocol, request: ListenerRequest) -> dict[str, Any]:
        if request.protocol is not protocol:
            raise ValueError(f"Request for {request.protocol.value} cannot create a {protocol.value} listener")
        params = request.to_params()
        if self.readonly:
            logger.info("[dry-run] %s params=%s", request.action, params)
            return {}
        return self._rpc(request.action, params)

    def delete_listener(self, load_balancer_id: str, port: int) -> None:
        if self.readonly:
            logger.info("[dry-run] delete_listener load_balancer_id=%s port=%s", load_balancer_id, port)
            return
        self._rpc(ACTION_DELETE_LISTENER, {"LoadBalancerId": load_balancer_id, "ListenerPort": port})

    def start_listener(self, load_balancer_id: str, port: int) -> None:
        if self.readonly:
            logger.info("[dry-run] start_listener load_balancer_id=%s port=%s", load_balancer_id, port)
            return
        self._rpc(ACTION_START_LISTENER, {"LoadBalancerId": load_balancer_id, "ListenerPort": port})

    def describe_listener(self, load_balancer_id: str, port: int, protocol: Protocol) -> dict[str, Any]:
        """Raw listener attributes; raises ListenerNotFoundError when no such listener exists."""
        action = describe_action(protocol)
        try:
            return self._rpc(action, {"LoadBalancerId": load_balancer_id, "ListenerPort": port})
        except SlbAuthError:
            raise
        except RemoteApiError as e:
            if e.code in LISTENER_NOT_FOUND_CODES or e.status_code == 404:
                raise ListenerNotFoundError(
                    f"No {protocol.value} listener on port {port}",
                    action=action,
                    code=e.code,
                    status_code=e.status_code,
                    request_id=e.request_id,
                    port=port,
                ) from e
            raise

    # --- Internal helpers ---
    def _signed_params(self, action: str, params: Mapping[str, Any]) -> dict[str, str]:
        query: dict[str, str] = {
            "Format": "JSON",
            "Version": API_VERSION,
            "AccessKeyId": self.access_key_id,
            "SignatureMethod": "HMAC-SHA1",
            "SignatureVersion": "1.0",
            "SignatureNonce": uuid.uuid4().hex,
            "Timestamp": self.timestamp(),
            "RegionId": self.region_id,
            "Action": action,
        }
        for k, v in params.items():
            if v is None:
                continue
            query[k] = str(v)
        query["Signature"] = sign_params(query, self.access_key_secret)
        return query

    def _web_request(self, action: str, params: Mapping[str, Any]) -> httpx.Response:
        """Execute a signed request with retry-on-disconnect behavior.

        Each attempt is signed anew (fresh nonce and timestamp).
        Total attempts = retry_count + 1.
        """
        attempts = self.retry_count + 1
        for attempt in range(1, attempts + 1):
            try:
                return self._client.get(self.endpoint, params=self._signed_params(action, params))
            except httpx.TransportError as e:
                if attempt >= attempts:
                    raise
                # Small backoff; keep it short to avoid long CLI stalls.
                time.sleep(min(0.25 * attempt, 2.0))
                logger.debug(
                    "HTTP transport error on %s (attempt %s/%s): %s; retrying",
                    action,
                    attempt,
                    attempts,
                    str(e),
                )
        raise RuntimeError("request failed")

    def _rpc(self, action: str, params: Mapping[str, Any]) -> dict[str, Any]:
        logger.debug("%s (params=%s)", action, sorted(params.keys()))
        try:
            resp = self._web_request(action, params)
        except httpx.TransportError as e:
            raise RemoteApiError(f"{action} failed: {type(e).__name__}: {e}", action=action) from e
        self._raise_for_status(action, resp)
        try:
            data = resp.json()
        except ValueError as e:
            raise RemoteApiError(
                f"Invalid JSON response from {action}", action=action, status_code=resp.status_code
            ) from e
        if not isinstance(data, dict):
            raise RemoteApiError(
                f"Expected object response from {action}, got {type(data).__name__}",
                action=action,
                status_code=resp.status_code,
            )
        return data

    @staticmethod
    def _raise_for_status(action: str, resp: httpx.Response) -> None:
        if resp.is_success:
            return
        code = ""
        message = ""
        request_id = ""
        try:
            payload = resp.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            code = str(payload.get("Code") or "")
            message = str(payload.get("Message") or "")
            request_id = str(payload.get("RequestId") or "")

        msg = f"HTTP {resp.status_code} for {action}"
        if code:
            msg = f"{msg}: {code}"
        if message:
            msg = f"{msg} ({message})"

        error_cls = RemoteApiError
        if resp.status_code in (401, 403) or code in AUTH_ERROR_CODES:
            logger.warning("Unauthorized status_code=%s for %s", resp.status_code, action)
            error_cls = SlbAuthError
        raise error_cls(msg, action=action, code=code, status_code=resp.status_code, request_id=request_id)
