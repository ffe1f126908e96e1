from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from . import utils
from .configmanager import DEFAULT_POLL_INTERVAL_S, DEFAULT_POLL_TIMEOUT_S, ConfigManager
from .errors import ListenerNotFoundError, PollTimeoutError, RemoteApiError
from .listener_diff import ListenerDiff, diff_listeners
from .listener_requests import request_for
from .models import Listener, ListenerStatus, Protocol
from .normalizer import normalize
from .slb_api import SlbApi
from .validator import validate

logger = ConfigManager.get_logger(__name__)

# Order in which a port is probed when the load balancer does not report its protocol.
_PROBE_ORDER: tuple[Protocol, ...] = (Protocol.HTTP, Protocol.HTTPS, Protocol.TCP, Protocol.UDP)


class AddState(str, Enum):
    VALIDATING = "validating"
    BUILDING = "building"
    CREATING = "creating"
    AWAITING_STOPPED = "awaiting-stopped"
    STARTING = "starting"
    ACTIVE = "active"


@dataclass(frozen=True)
class SyncResult:
    diff: ListenerDiff
    listeners: list[Listener] = field(default_factory=list)

    @property
    def removed(self) -> int:
        return len(self.diff.to_remove)

    @property
    def added(self) -> int:
        return len(self.diff.to_add)


@dataclass
class ListenerSyncer:
    """Apply listener changes to one load balancer.

    Everything runs sequentially: listener ports are a shared namespace on the
    load balancer, so removals happen before additions and calls never overlap.
    """

    api: SlbApi
    load_balancer_id: str
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    poll_timeout_s: float = DEFAULT_POLL_TIMEOUT_S
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    def __post_init__(self) -> None:
        if not self.load_balancer_id:
            raise ValueError("load_balancer_id is required")
        if self.poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be > 0")
        if self.poll_timeout_s <= 0:
            raise ValueError("poll_timeout_s must be > 0")

    # --- Read ---
    def read_listeners(self) -> list[Listener]:
        """Current listeners in canonical form, ordered by port."""
        ports = self.api.listener_ports(self.load_balancer_id)
        listeners: list[Listener] = []
        for port in sorted(ports):
            known = ports[port]
            protocols = (known,) if known is not None else _PROBE_ORDER
            for protocol in protocols:
                try:
                    raw = self.api.describe_listener(self.load_balancer_id, port, protocol)
                except ListenerNotFoundError:
                    logger.debug("No %s listener on port %s", protocol.value, port)
                    continue
                listeners.append(normalize(raw, protocol))
        return listeners

    def plan(self, desired: Sequence[Listener], *, recreate_changed: bool = False) -> ListenerDiff:
        current = self.read_listeners()
        return diff_listeners(
            [x.restricted() for x in desired],
            current,
            recreate_changed=recreate_changed,
        )

    # --- Apply ---
    def remove_listeners(self, listeners: Sequence[Listener]) -> None:
        for listener in listeners:
            port = listener.load_balancer_port
            try:
                self.api.delete_listener(self.load_balancer_id, port)
            except RemoteApiError as e:
                raise e.with_port(port)
            logger.info("Deleted listener %s from %s", listener.natural_index, self.load_balancer_id)

    def add_listener(self, listener: Listener) -> None:
        port = listener.load_balancer_port

        self._transition(listener, AddState.VALIDATING)
        validate(listener)

        self._transition(listener, AddState.BUILDING)
        request = request_for(self.load_balancer_id, listener)

        self._transition(listener, AddState.CREATING)
        try:
            self.api.create_listener(listener.protocol, request)
        except RemoteApiError as e:
            raise e.with_port(port)
        logger.info("Created listener %s on %s", listener.natural_index, self.load_balancer_id)

        self._transition(listener, AddState.AWAITING_STOPPED)
        self.wait_for_status(listener, ListenerStatus.STOPPED)

        self._transition(listener, AddState.STARTING)
        try:
            self.api.start_listener(self.load_balancer_id, port)
        except RemoteApiError as e:
            raise e.with_port(port)

        self._transition(listener, AddState.ACTIVE)
        logger.info("Started listener %s on %s", listener.natural_index, self.load_balancer_id)

    def wait_for_status(self, listener: Listener, status: ListenerStatus) -> None:
        """Poll the listener until it reports `status`; PollTimeoutError after poll_timeout_s."""
        port = listener.load_balancer_port
        deadline = self.clock() + self.poll_timeout_s
        last = ""
        while True:
            try:
                raw = self.api.describe_listener(self.load_balancer_id, port, listener.protocol)
            except ListenerNotFoundError:
                # Freshly created listeners can take a moment to become visible.
                raw = {}
            except RemoteApiError as e:
                raise e.with_port(port)
            last = utils.normalize_str(raw.get("Status")).lower()
            if last == status.value:
                return
            if self.clock() >= deadline:
                raise PollTimeoutError(port=port, status=last, expected=status.value, timeout_s=self.poll_timeout_s)
            logger.debug("Listener %s status=%s; waiting for %s", listener.natural_index, last or "?", status.value)
            self.sleep(self.poll_interval_s)

    def apply(self, diff: ListenerDiff) -> None:
        """Removal batch first, then additions; the first error aborts the pass."""
        self.remove_listeners(diff.to_remove)
        for listener in diff.to_add:
            self.add_listener(listener)

    def sync(self, desired: Sequence[Listener], *, recreate_changed: bool = False) -> SyncResult:
        diff = self.plan(desired, recreate_changed=recreate_changed)
        if diff.empty:
            logger.info("Listeners of %s are up to date", self.load_balancer_id)
            return SyncResult(diff=diff, listeners=self.read_listeners())
        logger.info(
            "Syncing listeners of %s: %s to remove, %s to add",
            self.load_balancer_id,
            len(diff.to_remove),
            len(diff.to_add),
        )
        self.apply(diff)
        return SyncResult(diff=diff, listeners=self.read_listeners())

    def _transition(self, listener: Listener, state: AddState) -> None:
        logger.debug("Listener %s -> %s", listener.natural_index, state.value)
