from __future__ import annotations

import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml

from .models import Listener


def dumps_deterministic(data: Any) -> str:
    # Key order is the payload's own (listener field order), so identity fields come first.
    return yaml.safe_dump(data, allow_unicode=True, sort_keys=False, default_flow_style=False) or ""


def atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", delete=False
    ) as tmp:
        tmp.write(content)
    try:
        Path(tmp.name).replace(path)
    except OSError:
        Path(tmp.name).unlink(missing_ok=True)
        raise


def listener_state_payload(load_balancer_id: str, listeners: Sequence[Listener]) -> dict[str, Any]:
    """The state file layout, which `load_listener_file` reads back as a declaration."""
    ordered = sorted(listeners, key=lambda x: (x.load_balancer_port, x.protocol.value))
    return {
        "load_balancer_id": load_balancer_id,
        "listeners": [x.to_json() for x in ordered],
    }


def write_yaml_file(path: Path, payload: Any, *, skip_unchanged: bool) -> bool:
    """Returns True if the file was written."""
    content = dumps_deterministic(payload)
    if skip_unchanged and path.is_file() and path.read_text(encoding="utf-8") == content:
        return False
    atomic_write_text(path, content)
    return True
