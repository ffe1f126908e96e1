from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .configmanager import ConfigManager
from .models import Listener

logger = ConfigManager.get_logger(__name__)


@dataclass(frozen=True)
class ListenerFile:
    load_balancer_id: str | None
    listeners: list[Listener] = field(default_factory=list)


def parse_listeners(items: Sequence[Any], *, source: str = "<input>") -> list[Listener]:
    """Parse declared listeners, restricting each to its protocol's fields.

    A load balancer cannot have two listeners on the same port, whatever the protocol.
    """
    out: list[Listener] = []
    seen_ports: dict[int, str] = {}
    for i, item in enumerate(items):
        if not isinstance(item, Mapping):
            raise ValueError(f"{source}: listener #{i + 1} must be a mapping")
        try:
            listener = Listener.from_config(item)
        except ValueError as e:
            raise ValueError(f"{source}: listener #{i + 1}: {e}") from None

        dropped = listener.undefined_fields_set()
        if dropped:
            logger.warning(
                "%s: ignoring %s for %s listener on port %s",
                source,
                ", ".join(dropped),
                listener.protocol.value,
                listener.load_balancer_port,
            )
            listener = listener.restricted()

        port = listener.load_balancer_port
        if port in seen_ports:
            raise ValueError(
                f"{source}: duplicate load_balancer_port {port} ({seen_ports[port]} and {listener.natural_index})"
            )
        seen_ports[port] = listener.natural_index
        out.append(listener)
    return out


def load_listener_file(path: Path) -> ListenerFile:
    """Load a YAML listener declaration.

    Accepts either a mapping with `load_balancer_id` and `listeners`, or a bare
    list of listeners.
    """
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"{path}: invalid YAML ({e})") from e

    if payload is None:
        return ListenerFile(load_balancer_id=None, listeners=[])

    load_balancer_id: str | None = None
    if isinstance(payload, Mapping):
        raw_id = payload.get("load_balancer_id")
        load_balancer_id = str(raw_id).strip() if raw_id is not None and str(raw_id).strip() else None
        items = payload.get("listeners") or []
    else:
        items = payload

    if not isinstance(items, list):
        raise ValueError(f"{path}: listeners must be a list")
    return ListenerFile(load_balancer_id=load_balancer_id, listeners=parse_listeners(items, source=str(path)))
